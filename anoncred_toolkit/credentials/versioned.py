"""
Version tag and the Open -> Finalized builder state machine.
"""

import logging

from ..proof_protocol.exceptions import BuilderFinalizedError

logger = logging.getLogger(__name__)


class Versioned:
    """Object whose serialized form carries a semantic version string."""

    def __init__(self, version: str):
        self.version = version


class FinalizableBuilder:
    """
    Builders accept mutations while open; ``_finish()`` closes them for good.

    Every mutator calls ``_ensure_open()`` first.
    """

    _finalized: bool = False

    @property
    def is_finalized(self) -> bool:
        return self._finalized

    def _ensure_open(self) -> None:
        if self._finalized:
            raise BuilderFinalizedError(
                f"{type(self).__name__} is finalized and can no longer be changed"
            )

    def _finish(self) -> None:
        self._ensure_open()
        self._finalized = True
        logger.debug("%s finalized", type(self).__name__)
