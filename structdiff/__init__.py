"""
Structural YAML Diff
====================

A semantic difference tree between two YAML documents.

    left:  {a: 1, b: 2}
    right: {a: 1, b: 3, c: 4}

    a  UNCHANGED  1
    b  MODIFIED   2 → 3
    c  ADDED      4

Mappings are aligned by key, sequences by a minimal edit script (so an
element inserted in the middle of a list is one ADDED node, not a cascade
of modifications), and scalars by strict type-and-value equality.

Large documents can be diffed one top-level key per call through a
DiffSession, so a single-threaded host never blocks on one long call.
"""

import logging

from structdiff.config import DiffConfig, load_config
from structdiff.core import (
    # Values
    YVal,
    YScalar,
    YSeq,
    YMap,
    # Diff tree
    DiffType,
    DiffNode,
    DiffSummary,
    TreeBuilder,
    compare_scalars,
    diff_values,
    iter_nodes,
    key_union,
    summarize,
)
from structdiff.errors import (
    ConfigError,
    DocumentParseError,
    ErrorCode,
    ErrorReporter,
    ParseFailure,
    Side,
    StructDiffError,
    UsageError,
)
from structdiff.formats import from_python, parse_yaml, reconstruct, to_python
from structdiff.log import configure_logging, get_logger
from structdiff.sequence import EditOp, align, edit_script, positional_script
from structdiff.session import DiffSession

__version__ = "0.1.0"
__all__ = [
    "YVal", "YScalar", "YSeq", "YMap",
    "DiffType", "DiffNode", "DiffSummary", "TreeBuilder",
    "compare_scalars", "diff_values", "iter_nodes", "key_union", "summarize",
    "EditOp", "align", "edit_script", "positional_script",
    "DiffSession",
    "DiffConfig", "load_config",
    "ConfigError", "DocumentParseError", "ErrorCode", "ErrorReporter",
    "ParseFailure", "Side", "StructDiffError", "UsageError",
    "from_python", "to_python", "parse_yaml", "reconstruct",
    "configure_logging", "get_logger",
]

logging.getLogger(__name__).addHandler(logging.NullHandler())
