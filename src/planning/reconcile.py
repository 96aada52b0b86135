"""
Order reconciliation: map a solved permutation back onto stop identities.

The solver only knows matrix positions. Positions are meaningful for exactly
one working list, so results are carried back by stop id, never by position.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .models import Anchor, Stop


@dataclass(frozen=True)
class WorkingNode:
    """One entry of the location list handed to the travel-time provider."""

    id: str
    lat: float
    lng: float
    synthetic: bool = False
    """True for anchors (home/office) that have no persistent stop record."""

    @property
    def coordinates(self) -> Tuple[float, float]:
        return (self.lat, self.lng)


START_ANCHOR_ID = "__home__"
END_ANCHOR_ID = "__office__"


def build_working_list(
    stops: Sequence[Stop],
    start_anchor: Optional[Anchor] = None,
    end_anchor: Optional[Anchor] = None,
) -> List[WorkingNode]:
    """Stops in insertion order, prefixed by the start and suffixed by the end anchor."""
    nodes: List[WorkingNode] = []
    if start_anchor is not None:
        nodes.append(WorkingNode(START_ANCHOR_ID, start_anchor.lat, start_anchor.lng, synthetic=True))
    nodes.extend(WorkingNode(stop.id, stop.lat, stop.lng) for stop in stops)
    if end_anchor is not None:
        nodes.append(WorkingNode(END_ANCHOR_ID, end_anchor.lat, end_anchor.lng, synthetic=True))
    return nodes


def reconcile(working_list: Sequence[WorkingNode], order: Sequence[int]) -> Dict[str, int]:
    """
    Assign each real stop its zero-based position in the solved order.

    Anchor nodes are skipped and do not consume a rank, so K stops always
    receive the ranks 0..K-1.

    Raises:
        ValueError: If ``order`` is not a permutation of the working list
    """
    if sorted(order) != list(range(len(working_list))):
        raise ValueError(
            f"Order {list(order)} is not a permutation of {len(working_list)} working-list positions"
        )

    ranks: Dict[str, int] = {}
    for index in order:
        node = working_list[index]
        if node.synthetic:
            continue
        ranks[node.id] = len(ranks)
    return ranks


def apply_ranks(stops: Iterable[Stop], ranks: Mapping[str, int]) -> List[Stop]:
    """Merge ``ranks`` into ``stops`` by id; stops absent from the mapping keep their rank."""
    return [
        stop.model_copy(update={"rank": ranks[stop.id]}) if stop.id in ranks else stop
        for stop in stops
    ]


def clear_ranks(stops: Iterable[Stop]) -> List[Stop]:
    return [stop if stop.rank is None else stop.model_copy(update={"rank": None}) for stop in stops]


def planned_order(stops: Iterable[Stop]) -> List[Stop]:
    """Stops sorted by rank; unranked stops follow in insertion order."""
    return sorted(stops, key=lambda stop: (stop.rank is None, stop.rank or 0))


def next_pending_stop(stops: Iterable[Stop]) -> Optional[Stop]:
    """First unvisited stop in planned order."""
    return next((stop for stop in planned_order(stops) if not stop.visited), None)
