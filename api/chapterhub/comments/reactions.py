"""Reaction aggregation and the toggle rule.

A user holds at most one reaction per comment. Picking the active type again
removes it; picking another type replaces it in place.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID

from .models import Reaction, ReactionType


class ReactionChange(str, Enum):
    """What a reaction request does to the stored row."""

    ADD = "add"
    SWITCH = "switch"
    REMOVE = "remove"


@dataclass
class ReactionSummary:
    """Per-type counts for one comment plus the viewer's own reaction."""

    counts: dict[ReactionType, int] = field(
        default_factory=lambda: {t: 0 for t in ReactionType}
    )
    user_reaction: ReactionType | None = None

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    def count(self, reaction_type: ReactionType | str) -> int:
        return self.counts[ReactionType(reaction_type)]

    def to_dict(self) -> dict[str, int]:
        return {t.value: self.counts.get(t, 0) for t in ReactionType}


def aggregate_reactions(
    rows: Iterable[Reaction], viewer_id: UUID | None = None
) -> ReactionSummary:
    """Count reactions by type.

    Every known type is present with a zero default. Should the store ever
    hold two rows for one user, only the newest is counted.
    """
    latest: dict[UUID, Reaction] = {}
    for row in rows:
        current = latest.get(row.user_id)
        if current is None or row.created_at >= current.created_at:
            latest[row.user_id] = row

    summary = ReactionSummary()
    for reaction in latest.values():
        summary.counts[reaction.reaction_type] += 1

    if viewer_id is not None and viewer_id in latest:
        summary.user_reaction = latest[viewer_id].reaction_type

    return summary


def resolve_reaction_change(
    current: ReactionType | None, requested: ReactionType
) -> ReactionChange:
    """Decide how a request changes the user's reaction."""
    if current is None:
        return ReactionChange.ADD
    if current == requested:
        return ReactionChange.REMOVE
    return ReactionChange.SWITCH
