"""
structdiff.formats — Convert between real-world data and document values.

Supported conversions:
    • Python objects (dict, list, str, int, float, bool, None) ↔ YVal
    • YAML text → YVal (PyYAML safe loader)
    • Diff result → the left or right document it was computed from
"""

from collections.abc import Hashable
from typing import Any, Iterable

import yaml

from .core import DiffNode, DiffType, YMap, YScalar, YSeq, YVal
from .errors import Side


# ═══════════════════════════════════════════════════════════════════
#  PYTHON OBJECTS ↔ DOCUMENT VALUES
# ═══════════════════════════════════════════════════════════════════

def from_python(obj: Any) -> YVal:
    """
    Convert a Python object to a document value.

    Mapping:
        None       → YScalar(None)
        bool       → YScalar(bool)
        int/float  → YScalar(number)
        str        → YScalar(str)
        list/tuple → YSeq(...)
        dict       → YMap(...)   keys stringified, order kept

    Nested structures are converted recursively.  Anything else a YAML
    loader can produce (timestamps, binary, sets) becomes its string form.

    Raises ValueError when two keys of one dict stringify to the same
    name, e.g. 1 and "1".
    """
    if obj is None or isinstance(obj, (bool, int, float, str)):
        return YScalar(obj)
    if isinstance(obj, (list, tuple)):
        return YSeq(tuple(from_python(item) for item in obj))
    if isinstance(obj, dict):
        entries: dict[str, YVal] = {}
        originals: dict[str, Any] = {}
        for k, v in obj.items():
            name = _key(k)
            if name in originals:
                raise ValueError(f"keys {originals[name]!r} and {k!r} both read as {name!r}")
            originals[name] = k
            entries[name] = from_python(v)
        return YMap(entries)

    # Fallback: convert to string representation
    return YScalar(str(obj))


def _key(k: Any) -> str:
    if isinstance(k, str):
        return k
    if isinstance(k, bool):
        return "true" if k else "false"
    if k is None:
        return "null"
    return str(k)


def to_python(val: YVal) -> Any:
    """
    Convert a document value back to a plain Python object.

    Inverse of from_python:
        to_python(from_python(obj)) == obj
    for JSON-compatible objects with string keys.
    """
    return val.to_python()


# ═══════════════════════════════════════════════════════════════════
#  YAML TEXT → DOCUMENT VALUES
# ═══════════════════════════════════════════════════════════════════

class _DocumentLoader(yaml.SafeLoader):
    """
    Safe loader that refuses mappings whose keys would merge.

    Two distinct keys of one mapping must neither collide in the Python
    dict the loader builds (1, 1.0 and true are equal there) nor
    stringify to the same name (1 and "1").  Repeating the very same key,
    as a merge key override does, is left to PyYAML: the last one wins.
    """

    def construct_mapping(self, node, deep=False):
        if isinstance(node, yaml.MappingNode):
            self.flatten_mapping(node)
            by_name: dict[str, Any] = {}
            by_value: dict[Any, Any] = {}
            for key_node, _ in node.value:
                key = self.construct_object(key_node, deep=deep)
                if not isinstance(key, Hashable):
                    continue
                ident = (type(key), key)
                name = _key(key)
                previous = by_value.setdefault(key, ident)
                if previous == ident:
                    previous = by_name.setdefault(name, ident)
                if previous != ident:
                    raise yaml.constructor.ConstructorError(
                        "while constructing a mapping", node.start_mark,
                        f"keys {previous[1]!r} and {key!r} name the same entry",
                        key_node.start_mark,
                    )
        return super().construct_mapping(node, deep=deep)


def parse_yaml(text: str) -> YVal:
    """
    Parse a single YAML document into a value.

    Raises yaml.YAMLError (with a problem_mark carrying the line) on
    invalid input, including a stream holding more than one document
    and a mapping with two keys that read as the same name.  An empty
    document is null.
    """
    return from_python(yaml.load(text, Loader=_DocumentLoader))


# ═══════════════════════════════════════════════════════════════════
#  RECONSTRUCTION (diff result → original document)
# ═══════════════════════════════════════════════════════════════════

def reconstruct(nodes: Iterable[DiffNode], side: Side) -> YVal:
    """
    Rebuild the left or right document from a diff result.

    A result holding a single keyless node is a whole-document diff of
    non-mapping roots; anything else is the per-key forest of two
    mapping roots.  Interior nodes are rebuilt from their children, so
    the round trip exercises the tree, not just the root payload:

        reconstruct(diff_values(a, b), Side.LEFT)  == a
        reconstruct(diff_values(a, b), Side.RIGHT) == b
    """
    nodes = list(nodes)
    skip = DiffType.ADDED if side == Side.LEFT else DiffType.DELETED

    if len(nodes) == 1 and nodes[0].key is None:
        return _rebuild(nodes[0], side, skip)
    return YMap({n.key: _rebuild(n, side, skip) for n in nodes if n.diff_type != skip})


def _rebuild(node: DiffNode, side: Side, skip: DiffType) -> YVal:
    payload = node.left_value if side == Side.LEFT else node.right_value
    if payload is None:
        raise ValueError(f"{node!r} has no {side.value} payload")
    if not node.children:
        return payload

    kept = [child for child in node.children if child.diff_type != skip]
    if isinstance(payload, YMap):
        return YMap({child.key: _rebuild(child, side, skip) for child in kept})
    return YSeq(tuple(_rebuild(child, side, skip) for child in kept))
