"""
Flattening of nested attribute objects into ordered (dotted-name, value) lists.

Names are dotted paths, with list indices rendered as path segments
("credentialSubject.0.name"). Ordering is lexicographic on the full name,
so it depends only on the shape of the object, never on its values.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from .exceptions import SchemaMismatch


def _walk(node: Any, prefix: str, out: Dict[str, Any]) -> None:
    if isinstance(node, Mapping):
        items = node.items()
    elif isinstance(node, (list, tuple)):
        items = ((str(i), v) for i, v in enumerate(node))
    else:
        out[prefix] = node
        return
    for key, value in items:
        key = str(key)
        if "." in key:
            raise SchemaMismatch(f"Attribute name segment {key!r} must not contain '.'")
        _walk(value, f"{prefix}.{key}" if prefix else key, out)


def flatten_object(obj: Mapping[str, Any]) -> Tuple[List[str], List[Any]]:
    """
    Flatten a nested object into sorted names and their leaf values.

    Example:
        >>> flatten_object({"b": 1, "a": {"y": 2, "x": [3, 4]}})
        (['a.x.0', 'a.x.1', 'a.y', 'b'], [3, 4, 2, 1])
    """
    if not isinstance(obj, Mapping):
        raise SchemaMismatch(f"Expected an object, got {type(obj).__name__}")
    flat: Dict[str, Any] = {}
    _walk(obj, "", flat)
    names = sorted(flat)
    return names, [flat[n] for n in names]


def flatten_till_second_last_key(obj: Mapping[str, Any]) -> Tuple[List[str], List[Dict[str, Any]]]:
    """
    Flatten, then regroup each leaf under its parent path.

    Used on type trees whose leaves are small descriptor objects, e.g.
    ``{"age": {"type": "integer", "minimum": 0}}`` flattens to
    ``(["age"], [{"type": "integer", "minimum": 0}])``.
    """
    flat: Dict[str, Any] = {}
    _walk(obj, "", flat)
    grouped: Dict[str, Dict[str, Any]] = {}
    for key, value in flat.items():
        name, _, last = key.rpartition(".")
        grouped.setdefault(name, {})[last] = value
    names = sorted(grouped)
    return names, [grouped[n] for n in names]


@dataclass(frozen=True)
class AttributeStructure:
    """
    Shape of an attribute object. Leaves carry no value.

    Two structures with the same shape always produce the same ordered
    name list, which is what lets a verifier compute message indices
    without seeing the holder's attributes.
    """

    names: Tuple[str, ...]

    @classmethod
    def from_object(cls, tree: Mapping[str, Any]) -> "AttributeStructure":
        names, _ = flatten_object(tree)
        return cls(tuple(names))

    @classmethod
    def from_names(cls, names: Sequence[str]) -> "AttributeStructure":
        return cls(tuple(sorted(set(names))))

    def __len__(self) -> int:
        return len(self.names)

    def __contains__(self, name: object) -> bool:
        return name in self.names


def flatten(attributes: Mapping[str, Any], structure: AttributeStructure) -> List[Tuple[str, Any]]:
    """
    Flatten ``attributes`` in the order fixed by ``structure``.

    Attributes may cover a subset of the structure; any attribute the
    structure does not declare fails with SchemaMismatch.
    """
    names, values = flatten_object(attributes)
    unknown = [n for n in names if n not in structure]
    if unknown:
        raise SchemaMismatch(f"Attributes not present in structure: {', '.join(unknown)}")
    present = dict(zip(names, values))
    return [(n, present[n]) for n in structure.names if n in present]
