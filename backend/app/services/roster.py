"""
Roster types shared by the pool play and bracket engines.

Every engine function is input-order-sensitive (pool membership, referee
rotation, seeding ties). Callers must hand in rosters already sorted
deterministically; `sort_roster` gives the canonical order used by the
persistence layer (team id ascending).
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

OPEN_CATEGORY = "open"


@dataclass(frozen=True)
class Category:
    division: Optional[str] = None
    skill_level: Optional[str] = None

    @property
    def key(self) -> str:
        parts = [p for p in (self.division, self.skill_level) if p]
        return "_".join(parts) if parts else OPEN_CATEGORY

    @property
    def label(self) -> str:
        parts = []
        if self.division:
            parts.append(self.division.capitalize())
        if self.skill_level:
            parts.append(self.skill_level.upper())
        return " ".join(parts) if parts else "Open"


@dataclass(frozen=True)
class RosterTeam:
    id: int
    name: str
    skill_level: Optional[str] = None
    division: Optional[str] = None

    @property
    def category(self) -> Category:
        return Category(division=self.division or None, skill_level=self.skill_level or None)


def sort_roster(teams: Iterable[RosterTeam]) -> List[RosterTeam]:
    """Canonical roster order: team id ascending."""
    return sorted(teams, key=lambda t: t.id)


def category_lookup(teams: Iterable[RosterTeam]) -> Dict[str, Category]:
    """Map category key -> Category for every category present in the roster."""
    lookup: Dict[str, Category] = {}
    for team in teams:
        category = team.category
        lookup.setdefault(category.key, category)
    return lookup
