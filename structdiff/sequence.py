"""
structdiff.sequence — Sequence alignment.

Aligns two sequences of opaque, hashable tokens and returns an edit
script of (op, i, j) triples:

    (EQUAL,   i, j)     a[i] and b[j] are the same element
    (DELETE,  i, None)  a[i] exists only on the left
    (INSERT,  None, j)  b[j] exists only on the right
    (REPLACE, i, j)     a[i] and b[j] are paired without being equal

The primary algorithm is Myers' shortest edit script (1986,
"An O(ND) Difference Algorithm and Its Variations"):

    time    O((N + M) · D)
    memory  O(D²)            one frontier snapshot per edit step

where D is the number of inserts + deletes.  The common prefix and
suffix are trimmed before the search, so a long list with a handful of
edits costs little more than a linear scan.

Two cutoffs bound the work on very large inputs (both in DiffConfig):

    • sequence_length_threshold — longer sequences skip the search
    • edit_distance_threshold   — the search gives up past this D

Past either cutoff the alignment falls back to index-by-index pairing,
which is O(N) but cannot see an insertion in the middle of a list.
"""

from enum import Enum, auto
from typing import Callable, Hashable, Optional, Sequence

from .config import DiffConfig
from .log import get_logger

logger = get_logger(__name__)

Script = list[tuple["EditOp", Optional[int], Optional[int]]]


class EditOp(Enum):
    """Types of edit operations."""
    EQUAL = auto()      # Same element on both sides
    INSERT = auto()     # Right-only element
    DELETE = auto()     # Left-only element
    REPLACE = auto()    # Paired by position, compared recursively


# ═══════════════════════════════════════════════════════════════════
#  MYERS SHORTEST EDIT SCRIPT
# ═══════════════════════════════════════════════════════════════════

def edit_script(
    a: Sequence[Hashable],
    b: Sequence[Hashable],
    max_edit_distance: Optional[int] = None,
) -> Optional[Script]:
    """
    Minimal edit script turning `a` into `b`.

    Returns None when more than `max_edit_distance` inserts + deletes
    would be needed.  An empty side never gives up: the answer is
    trivially all-insert or all-delete.
    """
    n, m = len(a), len(b)

    start = 0
    while start < n and start < m and a[start] == b[start]:
        start += 1
    end_a, end_b = n, m
    while end_a > start and end_b > start and a[end_a - 1] == b[end_b - 1]:
        end_a -= 1
        end_b -= 1

    middle = _myers(a[start:end_a], b[start:end_b], max_edit_distance)
    if middle is None:
        return None

    script: Script = [(EditOp.EQUAL, i, i) for i in range(start)]
    for op, i, j in middle:
        script.append((
            op,
            None if i is None else i + start,
            None if j is None else j + start,
        ))
    script.extend((EditOp.EQUAL, end_a + t, end_b + t) for t in range(n - end_a))
    return script


def _myers(
    a: Sequence[Hashable], b: Sequence[Hashable], max_d: Optional[int]
) -> Optional[Script]:
    n, m = len(a), len(b)
    if n == 0:
        return [(EditOp.INSERT, None, j) for j in range(m)]
    if m == 0:
        return [(EditOp.DELETE, i, None) for i in range(n)]

    limit = n + m if max_d is None else min(max_d, n + m)
    offset = limit + 1
    # v[offset + k] = furthest x reached on diagonal k = x - y
    v = [0] * (2 * limit + 3)
    trace: list[list[int]] = []

    for d in range(limit + 1):
        # Snapshot diagonals -d-1 .. d+1 before this round
        trace.append(v[offset - d - 1: offset + d + 2])
        for k in range(-d, d + 1, 2):
            if k == -d or (k != d and v[offset + k - 1] < v[offset + k + 1]):
                x = v[offset + k + 1]           # step down: insert b[y]
            else:
                x = v[offset + k - 1] + 1       # step right: delete a[x]
            y = x - k
            while x < n and y < m and a[x] == b[y]:
                x += 1
                y += 1
            v[offset + k] = x
            if x >= n and y >= m:
                return _backtrack(trace, n, m)

    return None


def _backtrack(trace: list[list[int]], n: int, m: int) -> Script:
    script: Script = []
    x, y = n, m
    for d in range(len(trace) - 1, -1, -1):
        snapshot = trace[d]
        k = x - y
        if k == -d or (k != d and snapshot[k - 1 + d + 1] < snapshot[k + 1 + d + 1]):
            prev_k = k + 1
        else:
            prev_k = k - 1
        prev_x = snapshot[prev_k + d + 1]
        prev_y = prev_x - prev_k

        while x > prev_x and y > prev_y:
            script.append((EditOp.EQUAL, x - 1, y - 1))
            x -= 1
            y -= 1
        if d > 0:
            if x == prev_x:
                script.append((EditOp.INSERT, None, y - 1))
            else:
                script.append((EditOp.DELETE, x - 1, None))
        x, y = prev_x, prev_y

    script.reverse()
    return script


# ═══════════════════════════════════════════════════════════════════
#  POSITIONAL FALLBACK
# ═══════════════════════════════════════════════════════════════════

def positional_script(n: int, m: int) -> Script:
    """
    Pair a[i] with b[i]; the tail of the longer side is deleted/inserted.
    """
    common = min(n, m)
    script: Script = [(EditOp.REPLACE, i, i) for i in range(common)]
    script.extend((EditOp.DELETE, i, None) for i in range(common, n))
    script.extend((EditOp.INSERT, None, j) for j in range(common, m))
    return script


def align(a: Sequence[Hashable], b: Sequence[Hashable], config: DiffConfig) -> Script:
    """
    Edit script for `a` → `b`, falling back to positional pairing past
    the configured cutoffs.
    """
    longest = max(len(a), len(b))
    if longest > config.sequence_length_threshold:
        logger.info(
            "sequence_positional_fallback",
            reason="length",
            left_len=len(a),
            right_len=len(b),
            threshold=config.sequence_length_threshold,
        )
        return positional_script(len(a), len(b))

    script = edit_script(a, b, config.edit_distance_threshold)
    if script is None:
        logger.info(
            "sequence_positional_fallback",
            reason="edit_distance",
            left_len=len(a),
            right_len=len(b),
            threshold=config.edit_distance_threshold,
        )
        return positional_script(len(a), len(b))
    return script


# ═══════════════════════════════════════════════════════════════════
#  REPLACEMENT PAIRING
# ═══════════════════════════════════════════════════════════════════

def pair_replacements(script: Script, can_pair: Callable[[int, int], bool]) -> Script:
    """
    Turn delete/insert pairs inside one edit run into REPLACE entries.

    An edit run is a maximal stretch of non-EQUAL entries.  Within it the
    k-th deletion is offered to the k-th insertion; `can_pair(i, j)`
    decides.  Unpaired entries keep their op, deletions first.
    """
    out: Script = []
    idx = 0
    while idx < len(script):
        if script[idx][0] in (EditOp.EQUAL, EditOp.REPLACE):
            out.append(script[idx])
            idx += 1
            continue

        deletes: list[int] = []
        inserts: list[int] = []
        while idx < len(script) and script[idx][0] in (EditOp.DELETE, EditOp.INSERT):
            op, i, j = script[idx]
            if op == EditOp.DELETE:
                deletes.append(i)
            else:
                inserts.append(j)
            idx += 1

        leftover_deletes: list[int] = []
        leftover_inserts: list[int] = []
        for pos in range(max(len(deletes), len(inserts))):
            i = deletes[pos] if pos < len(deletes) else None
            j = inserts[pos] if pos < len(inserts) else None
            if i is not None and j is not None and can_pair(i, j):
                out.extend((EditOp.DELETE, d, None) for d in leftover_deletes)
                out.extend((EditOp.INSERT, None, s) for s in leftover_inserts)
                leftover_deletes, leftover_inserts = [], []
                out.append((EditOp.REPLACE, i, j))
                continue
            if i is not None:
                leftover_deletes.append(i)
            if j is not None:
                leftover_inserts.append(j)
        out.extend((EditOp.DELETE, d, None) for d in leftover_deletes)
        out.extend((EditOp.INSERT, None, s) for s in leftover_inserts)

    return out
