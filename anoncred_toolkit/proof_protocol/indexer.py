"""
Message indexing for selective disclosure.

A message's index is its position in the flattened, sorted name list of
the attribute structure. Prover and verifier derive indices from the
structure alone, so they agree without exchanging anything but names.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple

from .encoder import Encoder
from .exceptions import ArityMismatch, SchemaMismatch, UsageError
from .flattening import AttributeStructure, flatten, flatten_object
from .signatures.params import SignatureParams

logger = logging.getLogger(__name__)


class MessageIndexer:
    """Name -> index resolution over one attribute structure."""

    def __init__(self, structure: AttributeStructure):
        self.structure = structure
        self._positions = {name: i for i, name in enumerate(structure.names)}

    @classmethod
    def for_object(cls, tree: Mapping[str, Any]) -> "MessageIndexer":
        return cls(AttributeStructure.from_object(tree))

    @property
    def message_count(self) -> int:
        return len(self.structure)

    def index_of(self, name: str) -> int:
        try:
            return self._positions[name]
        except KeyError:
            raise SchemaMismatch(f"Message name {name} was not found") from None

    def indices_of(self, names: Iterable[str]) -> List[int]:
        """Indices in the order of ``names``."""
        return [self.index_of(n) for n in names]

    def name_of(self, index: int) -> str:
        return self.structure.names[index]

    def encode(self, attributes: Mapping[str, Any], encoder: Encoder) -> List[int]:
        """
        Encode a complete attribute object into the message vector.

        Raises:
            SchemaMismatch: If the object does not match the structure exactly
        """
        pairs = flatten(attributes, self.structure)
        if len(pairs) != self.message_count:
            missing = [n for n in self.structure.names if n not in dict(pairs)]
            raise SchemaMismatch(f"Attributes missing from object: {', '.join(missing)}")
        return [encoder.encode_message(n, v) for n, v in pairs]

    def encode_revealed(
        self, revealed_raw: Mapping[str, Any], encoder: Encoder
    ) -> Dict[int, int]:
        """Verifier side: encode revealed raw values at their indices."""
        names, values = flatten_object(revealed_raw)
        return {self.index_of(n): encoder.encode_message(n, v) for n, v in zip(names, values)}

    def split(
        self, encoded: Sequence[int], revealed_names: Iterable[str]
    ) -> Tuple[Dict[int, int], Dict[int, int]]:
        """Split an encoded vector into (revealed, unrevealed) index maps."""
        if len(encoded) != self.message_count:
            raise ArityMismatch(
                f"Expected {self.message_count} encoded messages, got {len(encoded)}"
            )
        revealed_idx = set(self.indices_of(revealed_names))
        revealed = {i: m for i, m in enumerate(encoded) if i in revealed_idx}
        unrevealed = {i: m for i, m in enumerate(encoded) if i not in revealed_idx}
        return revealed, unrevealed

    def adapt_params(self, params: SignatureParams) -> SignatureParams:
        """Signature params sized for this structure."""
        return params.adapt(self.message_count)


def unflatten(flat: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Rebuild a nested object from dotted names.

    Numeric segments become dict keys, not list positions; the result
    flattens back to the same names.
    """
    root: Dict[str, Any] = {}
    for name, value in flat.items():
        node = root
        *parents, leaf = name.split(".")
        for segment in parents:
            child = node.setdefault(segment, {})
            if not isinstance(child, dict):
                raise UsageError(f"Name {name} conflicts with a leaf at {segment}")
            node = child
        node[leaf] = value
    return root


def get_revealed_and_unrevealed(
    messages: Mapping[str, Any], revealed_names: Iterable[str], encoder: Encoder
) -> Tuple[Dict[int, int], Dict[int, int], Dict[str, Any]]:
    """
    Encode ``messages`` and split by ``revealed_names``.

    Returns:
        (revealed index -> encoded, unrevealed index -> encoded, revealed raw
        values as a nested object for the verifier to encode independently)

    Raises:
        SchemaMismatch: If a revealed name is not in ``messages``
    """
    revealed_set = set(revealed_names)
    names, encoded = encoder.encode_message_object(messages)
    missing = revealed_set.difference(names)
    if missing:
        raise SchemaMismatch(
            f"Some of the revealed message names were not found in the given "
            f"messages object: {', '.join(sorted(missing))}"
        )
    revealed = {i: m for i, (n, m) in enumerate(zip(names, encoded)) if n in revealed_set}
    unrevealed = {i: m for i, (n, m) in enumerate(zip(names, encoded)) if n not in revealed_set}

    _, values = flatten_object(messages)
    raw = {n: v for n, v in zip(names, values) if n in revealed_set}
    logger.debug("revealing %d of %d messages", len(revealed), len(names))
    return revealed, unrevealed, unflatten(raw)
