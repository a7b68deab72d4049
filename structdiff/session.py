"""
structdiff.session — Chunked diff sessions.

A DiffSession lets a single-threaded host diff two large documents one
top-level key at a time, yielding to its own event loop between calls:

    session = DiffSession()
    keys = session.init(left_text, right_text)     # parses, diffs nothing
    if keys:
        for key in keys:
            node = session.step(key)               # one subtree per call
            ...                                    # host may yield here
    else:
        nodes = session.whole_document()           # non-mapping roots
    session.cleanup()

LIFECYCLE:
    init     → parse both sides, store them, return the key union
    step     → diff one pending key, append to the results
    cleanup  → drop all state (idempotent)

Calling init on a live session discards the previous one: a host that
restarts a comparison mid-flight (the user kept typing) does not have to
clean up first.  The engine itself is synchronous; all yielding is the
host's business.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from .config import DiffConfig
from .core import DiffNode, DiffSummary, TreeBuilder, YMap, YVal, key_union, summarize
from .errors import ErrorReporter, Side, UsageError
from .formats import parse_yaml
from .log import get_logger

logger = get_logger(__name__)


@dataclass
class _SessionState:
    left: YVal
    right: YVal
    keys: list[str]
    pending: dict[str, None]
    results: list[DiffNode] = field(default_factory=list)

    @property
    def keyed(self) -> bool:
        return isinstance(self.left, YMap) and isinstance(self.right, YMap)


class DiffSession:
    """
    State for one comparison, driven through discrete calls.

    The session is an ordinary object owned by its caller; independent
    comparisons use independent sessions.  One session must not be
    driven from two call sequences at once.
    """

    def __init__(
        self,
        config: Optional[DiffConfig] = None,
        parser: Callable[[str], YVal] = parse_yaml,
    ):
        self.config = config if config is not None else DiffConfig()
        self._parse = parser
        self._builder = TreeBuilder(self.config)
        self._state: Optional[_SessionState] = None

    # ── lifecycle ────────────────────────────────────────────────────

    def init(self, raw_left: str, raw_right: str) -> list[str]:
        """
        Parse both documents and open a session.

        Returns the ordered key union when both roots are mappings, or an
        empty list when either is not (use whole_document() then).
        Raises DocumentParseError listing every side that failed; both
        sides are always parsed.
        """
        self._discard()
        reporter = ErrorReporter()
        left = reporter.attempt(Side.LEFT, self._parse, raw_left)
        right = reporter.attempt(Side.RIGHT, self._parse, raw_right)
        reporter.raise_if_failed()
        return self.init_values(left, right)

    def init_values(self, left: YVal, right: YVal) -> list[str]:
        """Open a session on already-parsed values."""
        self._discard()
        keys: list[str] = []
        if isinstance(left, YMap) and isinstance(right, YMap):
            keys = key_union(left, right)
        self._state = _SessionState(
            left=left, right=right, keys=keys, pending=dict.fromkeys(keys)
        )
        logger.info(
            "session_initialized",
            left_kind=left.kind,
            right_kind=right.kind,
            keys=len(keys),
        )
        return list(keys)

    def cleanup(self) -> None:
        """Release session state.  Safe to call at any time, any number of times."""
        if self._state is not None:
            logger.debug("session_cleanup", pending=len(self._state.pending))
        self._state = None

    def _discard(self) -> None:
        if self._state is not None:
            logger.debug(
                "session_reset",
                pending=len(self._state.pending),
                completed=len(self._state.results),
            )
            self._state = None

    def _require(self, operation: str) -> _SessionState:
        if self._state is None:
            raise UsageError.not_initialized(operation)
        return self._state

    def __enter__(self) -> "DiffSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    # ── diffing ──────────────────────────────────────────────────────

    def step(self, key: str) -> DiffNode:
        """Diff one pending top-level key and append it to the results."""
        state = self._require("step")
        if not state.keyed:
            raise UsageError.not_a_mapping_root()
        if key not in state.pending:
            raise UsageError.unknown_key(key)

        node = self._builder.build_member(state.left, state.right, key)
        del state.pending[key]
        state.results.append(node)
        logger.debug(
            "session_step", key=key, has_diff=node.has_diff, remaining=len(state.pending)
        )
        return node

    def step_dict(self, key: str) -> dict[str, Any]:
        """step(), converted to plain dicts in one batch for the host."""
        return self.step(key).to_dict()

    def whole_document(self) -> list[DiffNode]:
        """
        Diff everything in one call.

        For mapping roots the result equals the concatenation of step()
        over the keys init() returned, in that order.  The session's
        results are replaced by this list and no keys remain pending.
        """
        state = self._require("whole_document")
        if state.keyed:
            nodes = [self._builder.build_member(state.left, state.right, k) for k in state.keys]
        else:
            nodes = [self._builder.build(state.left, state.right)]
        state.pending.clear()
        state.results = list(nodes)
        return nodes

    # ── views ────────────────────────────────────────────────────────

    @property
    def is_active(self) -> bool:
        return self._state is not None

    @property
    def keys(self) -> list[str]:
        return list(self._require("keys").keys)

    @property
    def pending_keys(self) -> list[str]:
        return list(self._require("pending_keys").pending)

    @property
    def results(self) -> list[DiffNode]:
        return list(self._require("results").results)

    def summary(self) -> DiffSummary:
        """Leaf counts over the results accumulated so far."""
        return summarize(self._require("summary").results)
