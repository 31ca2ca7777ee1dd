"""
⚠️ DRAFT — requires crypto review before production use

Statements and the ordered, append-only Statements collection.

A statement is the public description of one relation to prove. It
compiles to linear relations and bit claims for the sigma engine over
local variable names; variable ``m{i}`` is the value that meta-statements
call witness reference ``i``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Iterator, List, Optional, Sequence, Tuple, Type

from ..exceptions import UsageError
from ..pedersen.commitments import CurveParameters
from ..pedersen.schnorr import CompiledStatement
from ..security import RandomnessSource
from .setup_param import SetupParam


def ref_var(index: int) -> str:
    """Variable name of witness reference ``index``."""
    return f"m{index}"


@dataclass
class PreparedStatement:
    """
    Prover-side output of :meth:`Statement.prepare`.

    Attributes:
        elements: Public values sent with the proof (points, scalars, point lists)
        secrets: Assignment of every relation variable
        bit_openings: (bit, blinding) per bit claim, in compile order
    """

    elements: Dict[str, Any]
    secrets: Dict[str, int]
    bit_openings: List[Tuple[int, int]] = field(default_factory=list)


class Witness(ABC):
    """Secret input paired with the statement at the same position."""

    kind: ClassVar[str] = ""


class Statement(ABC):
    """Public description of one relation."""

    kind: ClassVar[str] = ""
    witness_type: ClassVar[Type[Witness]] = Witness

    @abstractmethod
    def witness_refs(self) -> Sequence[int]:
        """Indices that meta-statements may reference."""

    @abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        """Canonical public description, hashed into the transcript."""

    @abstractmethod
    def prepare(
        self, witness: Witness, params: CurveParameters, rng: RandomnessSource
    ) -> PreparedStatement:
        """Produce public elements and variable assignments from the witness."""

    @abstractmethod
    def compile(self, elements: Dict[str, Any], params: CurveParameters) -> CompiledStatement:
        """Relations over the public elements. Used by prover and verifier alike."""

    def check_elements(self, elements: Dict[str, Any], params: CurveParameters) -> Optional[str]:
        """Checks on the public elements outside the sigma relations. Returns an error or None."""
        return None

    def keyed_proof(self, elements: Dict[str, Any]) -> Optional[Any]:
        """Part of the proof only a secret key holder can check, if any."""
        return None

    def setup_param_refs(self) -> List[int]:
        return []

    def resolve(self, setup_params: Sequence[SetupParam]) -> "Statement":
        """Replace setup param back-references with the parameters themselves."""
        return self

    def message_count(self) -> int:
        refs = list(self.witness_refs())
        return max(refs) + 1 if refs else 0

    def check_witness(self, witness: Witness) -> None:
        if not isinstance(witness, self.witness_type):
            raise UsageError(
                f"Statement {self.kind} expects {self.witness_type.__name__}, "
                f"got {type(witness).__name__}"
            )


class AppendOnlyCollection:
    _item_type: ClassVar[type] = object

    def __init__(self, items: Optional[Sequence[Any]] = None):
        self._items: List[Any] = []
        for item in items or ():
            self.add(item)

    def add(self, item: Any) -> int:
        """Append and return the stable zero-based handle."""
        if not isinstance(item, self._item_type):
            raise UsageError(
                f"Expected {self._item_type.__name__}, got {type(item).__name__}"
            )
        self._items.append(item)
        return len(self._items) - 1

    append = add

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, index: int) -> Any:
        return self._items[index]

    def __iter__(self) -> Iterator[Any]:
        return iter(self._items)

    def to_tuple(self) -> Tuple[Any, ...]:
        return tuple(self._items)


class Statements(AppendOnlyCollection):
    """Ordered statements; the handle of a statement is its insertion index."""

    _item_type = Statement


class Witnesses(AppendOnlyCollection):
    """Witnesses in positional correspondence with a Statements collection."""

    _item_type = Witness
