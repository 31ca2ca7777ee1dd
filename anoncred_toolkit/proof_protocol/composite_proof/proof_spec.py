"""
Proof specifications.

``QuasiProofSpec`` is the mutable draft a builder fills in; statements may
hold setup-param back-references. ``finalize()`` validates it and returns
an immutable ``ProofSpec``. Prover and verifier build their specs
independently; the canonical encoding of the spec is hashed into the
proof transcript, so any difference (including statement order) makes
verification fail.
"""

import logging
from dataclasses import dataclass
from typing import FrozenSet, List, Optional, Sequence, Tuple

from ..exceptions import UsageError
from ..types import VerifyResult, canonical_cbor
from .meta_statement import (
    MetaStatements,
    WitnessEqualityMetaStatement,
    WitnessRef,
    merge_equalities,
)
from .setup_param import SetupParam
from .statement import Statement, Statements

logger = logging.getLogger(__name__)


def _validate(
    statements: Sequence[Statement],
    equalities: Sequence[FrozenSet[WitnessRef]],
    setup_params: Sequence[SetupParam],
) -> VerifyResult:
    resolved: List[Statement] = []
    for i, statement in enumerate(statements):
        for ref in statement.setup_param_refs():
            if not 0 <= ref < len(setup_params):
                return VerifyResult.failure(
                    f"Statement {i} references setup param {ref} but only "
                    f"{len(setup_params)} exist"
                )
        try:
            resolved.append(statement.resolve(setup_params))
        except UsageError as e:
            return VerifyResult.failure(f"Statement {i}: {e}")

    for j, refs in enumerate(equalities):
        if len(refs) < 2:
            return VerifyResult.failure(f"Meta-statement {j} has fewer than 2 witness references")
        for statement_index, witness_index in sorted(refs):
            if not 0 <= statement_index < len(resolved):
                return VerifyResult.failure(
                    f"Meta-statement {j} references statement {statement_index} "
                    f"but only {len(resolved)} exist"
                )
            valid = resolved[statement_index].witness_refs()
            if witness_index not in valid:
                return VerifyResult.failure(
                    f"Meta-statement {j} references witness index {witness_index} "
                    f"which statement {statement_index} does not have"
                )
    return VerifyResult.success()


def _canonical_bytes(
    statements: Sequence[Statement],
    equalities: Sequence[FrozenSet[WitnessRef]],
    setup_params: Sequence[SetupParam],
    context: Optional[bytes],
) -> bytes:
    return canonical_cbor(
        {
            "statements": [s.to_dict() for s in statements],
            "meta_statements": [[list(r) for r in sorted(eq)] for eq in equalities],
            "setup_params": [p.to_dict() for p in setup_params],
            "context": context,
        }
    )


class QuasiProofSpec:
    """Mutable draft of a proof specification."""

    def __init__(
        self,
        statements: Optional[Statements] = None,
        meta_statements: Optional[MetaStatements] = None,
        setup_params: Optional[Sequence[SetupParam]] = None,
        context: Optional[bytes] = None,
    ):
        self.statements = statements if statements is not None else Statements()
        self.meta_statements = meta_statements if meta_statements is not None else MetaStatements()
        self.setup_params: List[SetupParam] = list(setup_params or [])
        self.context = context

    def add_statement(self, statement: Statement) -> int:
        return self.statements.add(statement)

    def add_meta_statement(self, meta_statement: WitnessEqualityMetaStatement) -> int:
        return self.meta_statements.add(meta_statement)

    def add_setup_param(self, setup_param: SetupParam) -> int:
        self.setup_params.append(setup_param)
        return len(self.setup_params) - 1

    def _equalities(self) -> List[FrozenSet[WitnessRef]]:
        return [m.refs for m in self.meta_statements]

    def is_valid(self) -> VerifyResult:
        """Structural checks only; reported, never raised."""
        return _validate(list(self.statements), self._equalities(), self.setup_params)

    def finalize(self) -> "ProofSpec":
        """
        Validate and freeze.

        Raises:
            UsageError: If the draft is structurally invalid
        """
        result = self.is_valid()
        if not result.verified:
            raise UsageError(f"Invalid proof spec: {result.error}")
        return ProofSpec(
            statements=self.statements.to_tuple(),
            equalities=tuple(self._equalities()),
            setup_params=tuple(self.setup_params),
            context=self.context,
        )

    def to_bytes(self) -> bytes:
        return _canonical_bytes(
            list(self.statements), self._equalities(), self.setup_params, self.context
        )


@dataclass(frozen=True)
class ProofSpec:
    """Immutable proof specification: statements, equalities, setup params, context."""

    statements: Tuple[Statement, ...]
    equalities: Tuple[FrozenSet[WitnessRef], ...] = ()
    setup_params: Tuple[SetupParam, ...] = ()
    context: Optional[bytes] = None

    def is_valid(self) -> VerifyResult:
        return _validate(self.statements, self.equalities, self.setup_params)

    def resolved_statements(self) -> List[Statement]:
        return [s.resolve(self.setup_params) for s in self.statements]

    def equality_classes(self) -> List[FrozenSet[WitnessRef]]:
        return merge_equalities(self.equalities)

    def to_bytes(self) -> bytes:
        return _canonical_bytes(self.statements, self.equalities, self.setup_params, self.context)
