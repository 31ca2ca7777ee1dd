"""
Meta-statements: equality constraints across statements.

Each ``WitnessEqualityMetaStatement`` is a set of (statement handle,
witness reference) pairs asserted equal. Overlapping sets are merged, so
equality is transitive. Nothing here reads witness values; an
inconsistent graph only shows up as a proof that fails verification.
"""

from typing import FrozenSet, Iterable, List, Optional, Set, Tuple

from .statement import AppendOnlyCollection

WitnessRef = Tuple[int, int]


class WitnessEqualityMetaStatement:
    """Accumulates references that must hold equal hidden values."""

    def __init__(self, refs: Optional[Iterable[WitnessRef]] = None):
        self._refs: Set[WitnessRef] = set()
        for statement_index, witness_index in refs or ():
            self.add_witness_ref(statement_index, witness_index)

    def add_witness_ref(self, statement_index: int, witness_index: int) -> None:
        self._refs.add((int(statement_index), int(witness_index)))

    @property
    def refs(self) -> FrozenSet[WitnessRef]:
        return frozenset(self._refs)

    def __len__(self) -> int:
        return len(self._refs)

    def to_list(self) -> List[List[int]]:
        return [list(ref) for ref in sorted(self._refs)]


class MetaStatements(AppendOnlyCollection):
    _item_type = WitnessEqualityMetaStatement


def merge_equalities(groups: Iterable[FrozenSet[WitnessRef]]) -> List[FrozenSet[WitnessRef]]:
    """Union-find over references; returns disjoint equivalence classes."""
    parent = {}

    def find(x):
        while parent[x] != x:
            parent[x] = parent[parent[x]]
            x = parent[x]
        return x

    for group in groups:
        items = sorted(group)
        for item in items:
            parent.setdefault(item, item)
        for item in items[1:]:
            ra, rb = find(items[0]), find(item)
            if ra != rb:
                parent[max(ra, rb)] = min(ra, rb)

    classes = {}
    for item in parent:
        classes.setdefault(find(item), set()).add(item)
    return [frozenset(c) for _, c in sorted(classes.items())]
