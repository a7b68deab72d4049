"""
structdiff.core — Structural Diff Trees
=======================================

FRAMEWORK
═════════

§1  THE PROBLEM
───────────────

Line diffs are the wrong tool for configuration files.  Reindenting a
block, moving a key, or reflowing a list produces a wall of red and
green that says nothing about what actually changed.  What a reviewer
wants is the SEMANTIC difference: which keys appeared, which vanished,
which scalars took a new value, and where inside a list an element was
inserted.

structdiff computes that difference as a TREE that mirrors the shape of
the documents themselves, so a renderer can expand, collapse and filter
it the same way it would display the document.


§2  VALUES
──────────

DEFINITION (Value):
The set V of values is the smallest set satisfying:

    (1)  Scalar(v)                  ∈ V   for v ∈ Null ∪ Bool ∪ Number ∪ String
    (2)  Seq(a₁, ..., aₙ)           ∈ V   for a₁,...,aₙ ∈ V, n ≥ 0
    (3)  Map(k₁:v₁, ..., kₙ:vₙ)     ∈ V   for distinct string keys kᵢ, vᵢ ∈ V

Map keeps the order in which the parser produced its keys.  That order
is what a user sees in the file, so it is the order the diff reports
shared and deleted keys in.  EQUALITY of maps, however, ignores order:
{a: 1, b: 2} and {b: 2, a: 1} are the same document.

Every value carries a FINGERPRINT and a DIGEST computed once, bottom-up,
at construction.  A container's fingerprint holds its children
themselves, and hashing it reads each child's cached digest, so
building a value of n nodes costs O(n) whatever its depth.  Two values
are structurally equal iff their fingerprints are equal:

    • Bool is not Number          True ≠ 1
    • Number is not String        1 ≠ "1"
    • Numbers compare by value    1 = 1.0
    • NaN equals NaN              so diff(x, x) is always clean
    • Maps compare as key sets    order-insensitive


§3  THE DIFF TREE
─────────────────

A diff is a forest of DiffNode:

    DiffNode = (key?, type, has_diff, children, left?, right?)
    type ∈ {UNCHANGED, ADDED, DELETED, MODIFIED}

with the propagation rule

    has_diff(n) = ⋁ has_diff(c) for c ∈ children(n)   if children(n) ≠ ∅
                = type(n) ≠ UNCHANGED                  otherwise

A value that exists on only one side is NOT reported as an opaque blob.
Its whole structure is rebuilt as a subtree whose every node is tagged
ADDED (or DELETED), so a renderer can expand removed structure exactly
like present structure.


§4  DISPATCH
────────────

    build(Map, Map)        → key union, recurse per key        (§5)
    build(Seq, Seq)        → edit-script alignment, recurse    (structdiff.sequence)
    build(Scalar, Scalar)  → strict equality                   compare_scalars
    build(X, Y), kind(X) ≠ kind(Y)
                           → one MODIFIED leaf holding both raw values
    build(X, ∅) / build(∅, Y)
                           → full DELETED / ADDED subtree

A kind change is terminal: a list that became a map is not partially
diffable in any way a reader would trust.


§5  KEY ORDER
─────────────

For Map(A) against Map(B) the children appear in the order

    keys(A) in A's order          (shared → recurse, A-only → DELETED)
    keys(B) \\ keys(A) in B's order (→ ADDED)

The same order is produced whether the whole document is diffed in one
call or one top-level key at a time (structdiff.session).


§6  DEPTH CONTROL
─────────────────

Every descent adds one to a depth counter; the root sits at depth 0.
At DiffConfig.max_depth (128 by default) recursion stops and the
remaining pair collapses into a single leaf: UNCHANGED if the two
subtrees are structurally equal, MODIFIED otherwise, both raw subtrees
as payload.  Nothing is dropped; the detail below the cap is simply not
expanded.
"""

import math
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Iterable, Iterator, Optional

from .config import DiffConfig
from .log import get_logger
from .sequence import EditOp, align, pair_replacements

logger = get_logger(__name__)


# ═══════════════════════════════════════════════════════════════════
#  VALUES
# ═══════════════════════════════════════════════════════════════════

class YVal:
    """Base class for parsed document values.  Not instantiated directly."""
    __slots__ = ()

    kind: str
    is_container = False

    def to_python(self) -> Any:
        """Convert back to plain Python (dict / list / scalar)."""
        raise NotImplementedError

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, YVal):
            return NotImplemented
        if self is other:
            return True
        return self.digest == other.digest and self.fp == other.fp

    def __hash__(self) -> int:
        return self.digest


def _scalar_fingerprint(val: Any) -> tuple:
    # bool is a subclass of int, so it must be checked first
    if val is None:
        return ("null",)
    if isinstance(val, bool):
        return ("bool", val)
    if isinstance(val, (int, float)):
        if isinstance(val, float) and math.isnan(val):
            return ("number", "nan")
        return ("number", val)
    if isinstance(val, str):
        return ("string", val)
    raise TypeError(f"Unsupported scalar type: {type(val).__name__}")


@dataclass(frozen=True, slots=True, eq=False)
class YScalar(YVal):
    """
    A leaf value: None, bool, int/float or str.

    Examples:
        YScalar(None)
        YScalar(True)
        YScalar(8080)
        YScalar("prod")
    """
    val: Any
    fp: tuple = field(init=False, repr=False)
    digest: int = field(init=False, repr=False)

    def __post_init__(self):
        fp = _scalar_fingerprint(self.val)
        object.__setattr__(self, "fp", fp)
        object.__setattr__(self, "digest", hash(fp))

    @property
    def kind(self) -> str:
        return self.fp[0]

    def to_python(self) -> Any:
        return self.val

    def __repr__(self) -> str:
        return f"YScalar({self.val!r})"


@dataclass(frozen=True, slots=True, eq=False)
class YSeq(YVal):
    """
    An ordered sequence of values.

    Examples:
        YSeq((YScalar(1), YScalar(2), YScalar(3)))      # [1, 2, 3]
    """
    items: tuple[YVal, ...]
    fp: tuple = field(init=False, repr=False)
    digest: int = field(init=False, repr=False)

    kind = "sequence"
    is_container = True

    def __post_init__(self):
        items = tuple(self.items)
        object.__setattr__(self, "items", items)
        # Children are fingerprinted by reference and hash by their cached digest
        fp = ("sequence", items)
        object.__setattr__(self, "fp", fp)
        object.__setattr__(self, "digest", hash(fp))

    def __len__(self) -> int:
        return len(self.items)

    def to_python(self) -> list:
        return [item.to_python() for item in self.items]

    def __repr__(self) -> str:
        if len(self.items) <= 5:
            return f"YSeq({list(self.items)})"
        return f"YSeq([{self.items[0]!r}, ..., {self.items[-1]!r}] len={len(self.items)})"


@dataclass(frozen=True, slots=True, eq=False)
class YMap(YVal):
    """
    A mapping of string keys to values, in document order.

    Key order is preserved for reporting but ignored by equality.

    Examples:
        YMap({"host": YScalar("db.internal"), "port": YScalar(5432)})
    """
    entries: dict[str, YVal]
    fp: tuple = field(init=False, repr=False)
    digest: int = field(init=False, repr=False)

    kind = "mapping"
    is_container = True

    def __post_init__(self):
        entries = dict(self.entries)
        object.__setattr__(self, "entries", entries)
        fp = ("mapping", frozenset(entries.items()))
        object.__setattr__(self, "fp", fp)
        object.__setattr__(self, "digest", hash(fp))

    def __len__(self) -> int:
        return len(self.entries)

    def to_python(self) -> dict:
        return {k: v.to_python() for k, v in self.entries.items()}

    def __repr__(self) -> str:
        if len(self.entries) <= 3:
            return f"YMap({self.entries})"
        return f"YMap({{...}} len={len(self.entries)})"


# ═══════════════════════════════════════════════════════════════════
#  DIFF TREE
# ═══════════════════════════════════════════════════════════════════

class DiffType(IntEnum):
    """Classification of a diff node.  Integer values are the wire format."""
    UNCHANGED = 0
    ADDED = 1
    DELETED = 2
    MODIFIED = 3


@dataclass
class DiffNode:
    """
    One node of the diff tree.

    `key` is set for mapping members and absent for sequence elements and
    for the root of a non-mapping document.  `has_diff` is derived from
    the children (or from `diff_type` for a leaf) and is never passed in.

    Payload: both values for UNCHANGED/MODIFIED, only `right_value` for
    ADDED, only `left_value` for DELETED.
    """
    diff_type: DiffType
    key: Optional[str] = None
    children: list["DiffNode"] = field(default_factory=list)
    left_value: Optional[YVal] = None
    right_value: Optional[YVal] = None
    has_diff: bool = field(init=False)

    def __post_init__(self):
        if self.children:
            self.has_diff = any(child.has_diff for child in self.children)
        else:
            self.has_diff = self.diff_type != DiffType.UNCHANGED

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def to_dict(self) -> dict[str, Any]:
        """
        Convert this subtree to plain dicts and lists in one pass.

        Absent fields are omitted rather than set to None, so a YAML null
        payload (`left_value: None`) stays distinguishable from no payload.
        """
        out: dict[str, Any] = {}
        if self.key is not None:
            out["key"] = self.key
        out["diff_type"] = int(self.diff_type)
        out["has_diff"] = self.has_diff
        out["children"] = [child.to_dict() for child in self.children]
        if self.left_value is not None:
            out["left_value"] = self.left_value.to_python()
        if self.right_value is not None:
            out["right_value"] = self.right_value.to_python()
        return out

    def __repr__(self) -> str:
        label = self.key if self.key is not None else "·"
        return (
            f"DiffNode({label} {self.diff_type.name} has_diff={self.has_diff} "
            f"children={len(self.children)})"
        )


def iter_nodes(nodes: Iterable[DiffNode]) -> Iterator[DiffNode]:
    """Pre-order walk over a diff forest (iterative, no recursion limit)."""
    stack = list(reversed(list(nodes)))
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


@dataclass
class DiffSummary:
    """Leaf counts per diff type across a result."""
    additions: int = 0
    deletions: int = 0
    modifications: int = 0
    unchanged: int = 0

    @property
    def total_changes(self) -> int:
        return self.additions + self.deletions + self.modifications

    def __repr__(self) -> str:
        return (
            f"DiffSummary(+{self.additions} -{self.deletions} "
            f"~{self.modifications} ={self.unchanged})"
        )


def summarize(nodes: Iterable[DiffNode]) -> DiffSummary:
    """
    Count leaves by diff type.

    Only leaves are counted: an added map with three scalar members
    counts as three additions, an added empty map as one.
    """
    summary = DiffSummary()
    for node in iter_nodes(nodes):
        if node.children:
            continue
        if node.diff_type == DiffType.ADDED:
            summary.additions += 1
        elif node.diff_type == DiffType.DELETED:
            summary.deletions += 1
        elif node.diff_type == DiffType.MODIFIED:
            summary.modifications += 1
        else:
            summary.unchanged += 1
    return summary


# ═══════════════════════════════════════════════════════════════════
#  SCALAR COMPARISON (base case)
# ═══════════════════════════════════════════════════════════════════

def compare_scalars(left: YScalar, right: YScalar, key: Optional[str] = None) -> DiffNode:
    """
    Compare two scalars by strict type-and-value equality.

    No coercion: "1" vs 1, 1 vs true and null vs "" are all MODIFIED.
    """
    diff_type = DiffType.UNCHANGED if left == right else DiffType.MODIFIED
    return DiffNode(diff_type=diff_type, key=key, left_value=left, right_value=right)


# ═══════════════════════════════════════════════════════════════════
#  KEY UNION (mapping alignment)
# ═══════════════════════════════════════════════════════════════════

def key_union(left: YMap, right: YMap) -> list[str]:
    """
    Deterministic union of two mappings' keys.

    Left keys in left order, then right-only keys in right order.
    """
    keys = list(left.entries)
    keys.extend(k for k in right.entries if k not in left.entries)
    return keys


# ═══════════════════════════════════════════════════════════════════
#  TREE BUILDER
# ═══════════════════════════════════════════════════════════════════

class TreeBuilder:
    """
    Recursive dispatcher producing DiffNode subtrees.

    A builder holds only configuration, so one instance can serve any
    number of comparisons.
    """

    def __init__(self, config: Optional[DiffConfig] = None):
        self.config = config if config is not None else DiffConfig()

    def build(
        self,
        left: Optional[YVal],
        right: Optional[YVal],
        key: Optional[str] = None,
        depth: int = 0,
    ) -> DiffNode:
        """
        Diff `left` against `right`.

        Either side may be None (absent), in which case the present side
        is rebuilt as a one-sided ADDED/DELETED subtree.
        """
        if left is None and right is None:
            raise ValueError("build() needs at least one present side")
        if right is None:
            return self.one_sided(left, DiffType.DELETED, key, depth)
        if left is None:
            return self.one_sided(right, DiffType.ADDED, key, depth)

        if depth >= self.config.max_depth and (left.is_container or right.is_container):
            return self._collapse(left, right, key, depth)

        if isinstance(left, YMap) and isinstance(right, YMap):
            return self._pair(left, right, key, self._map_children(left, right, depth + 1))

        if isinstance(left, YSeq) and isinstance(right, YSeq):
            return self._pair(left, right, key, self._seq_children(left, right, depth + 1))

        if isinstance(left, YScalar) and isinstance(right, YScalar):
            return compare_scalars(left, right, key)

        # Kind mismatch: terminal, not partially diffable
        return DiffNode(
            diff_type=DiffType.MODIFIED, key=key, left_value=left, right_value=right
        )

    def build_member(self, left: YMap, right: YMap, key: str, depth: int = 1) -> DiffNode:
        """Diff one key of two mappings (either side may lack it)."""
        return self.build(left.entries.get(key), right.entries.get(key), key, depth)

    def one_sided(
        self, val: YVal, diff_type: DiffType, key: Optional[str] = None, depth: int = 0
    ) -> DiffNode:
        """Rebuild `val` as a subtree tagged entirely ADDED or DELETED."""
        children: list[DiffNode] = []
        if val.is_container and depth < self.config.max_depth:
            if isinstance(val, YMap):
                children = [
                    self.one_sided(v, diff_type, k, depth + 1) for k, v in val.entries.items()
                ]
            else:
                children = [self.one_sided(v, diff_type, None, depth + 1) for v in val.items]
        if diff_type == DiffType.ADDED:
            return DiffNode(diff_type=diff_type, key=key, children=children, right_value=val)
        return DiffNode(diff_type=diff_type, key=key, children=children, left_value=val)

    def _pair(
        self, left: YVal, right: YVal, key: Optional[str], children: list[DiffNode]
    ) -> DiffNode:
        changed = any(child.has_diff for child in children)
        return DiffNode(
            diff_type=DiffType.MODIFIED if changed else DiffType.UNCHANGED,
            key=key,
            children=children,
            left_value=left,
            right_value=right,
        )

    def _collapse(self, left: YVal, right: YVal, key: Optional[str], depth: int) -> DiffNode:
        equal = left == right
        logger.debug("depth_cap_collapse", key=key, depth=depth, equal=equal)
        return DiffNode(
            diff_type=DiffType.UNCHANGED if equal else DiffType.MODIFIED,
            key=key,
            left_value=left,
            right_value=right,
        )

    def _map_children(self, left: YMap, right: YMap, depth: int) -> list[DiffNode]:
        return [self.build_member(left, right, k, depth) for k in key_union(left, right)]

    def _seq_children(self, left: YSeq, right: YSeq, depth: int) -> list[DiffNode]:
        # Intern elements so the alignment compares small ints, not subtrees
        table: dict[YVal, int] = {}
        a = [table.setdefault(item, len(table)) for item in left.items]
        b = [table.setdefault(item, len(table)) for item in right.items]

        script = align(a, b, self.config)
        if self.config.pair_replacements:
            script = pair_replacements(
                script, lambda i, j: _same_container_kind(left.items[i], right.items[j])
            )

        children: list[DiffNode] = []
        for op, i, j in script:
            if op == EditOp.DELETE:
                children.append(self.one_sided(left.items[i], DiffType.DELETED, None, depth))
            elif op == EditOp.INSERT:
                children.append(self.one_sided(right.items[j], DiffType.ADDED, None, depth))
            else:
                children.append(self.build(left.items[i], right.items[j], None, depth))
        return children


def _same_container_kind(left: YVal, right: YVal) -> bool:
    return left.is_container and left.kind == right.kind


def diff_values(
    left: YVal, right: YVal, config: Optional[DiffConfig] = None
) -> list[DiffNode]:
    """
    Diff two whole documents in one call.

    Returns one node per key of the key union when both roots are
    mappings, otherwise a single root node without a key.
    """
    builder = TreeBuilder(config)
    if isinstance(left, YMap) and isinstance(right, YMap):
        return [builder.build_member(left, right, k) for k in key_union(left, right)]
    return [builder.build(left, right)]
