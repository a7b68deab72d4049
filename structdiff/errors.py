"""structdiff error types with typed error codes.

Error code ranges:
- 1xxx: Document parsing (recoverable, reported per side)
- 2xxx: Session API misuse (caller contract violations)
- 3xxx: Configuration
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Callable, Optional, TypeVar

import yaml

from .log import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class Side(str, Enum):
    """Which input document a value or an error belongs to."""
    LEFT = "LEFT"
    RIGHT = "RIGHT"


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Parse (1xxx)
    PARSE_ERROR = 1001

    # Usage (2xxx)
    SESSION_NOT_INITIALIZED = 2001
    UNKNOWN_KEY = 2002
    NOT_A_MAPPING_ROOT = 2003

    # Config (3xxx)
    CONFIG_PARSE_ERROR = 3001
    CONFIG_INVALID_VALUE = 3002
    CONFIG_FILE_NOT_FOUND = 3003


@dataclass(eq=False)
class StructDiffError(Exception):
    """Base error with structured context for host responses."""

    code: ErrorCode
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.message)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'UNKNOWN_KEY')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


# ═══════════════════════════════════════════════════════════════════
#  PARSE FAILURES
# ═══════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ParseFailure:
    """One side's parse failure: `{side, message, line?}`."""

    side: Side
    message: str
    line: Optional[int] = None

    @classmethod
    def from_yaml_error(cls, side: Side, exc: yaml.YAMLError) -> "ParseFailure":
        mark = getattr(exc, "problem_mark", None)
        line = mark.line + 1 if mark is not None else None
        problem = getattr(exc, "problem", None)
        context = getattr(exc, "context", None)
        if problem and context:
            message = f"{context}: {problem}"
        else:
            message = problem or str(exc)
        return cls(side=side, message=message, line=line)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"side": self.side.value, "message": self.message}
        if self.line is not None:
            out["line"] = self.line
        return out

    def __str__(self) -> str:
        if self.line is None:
            return f"[{self.side.value}] Error: {self.message}"
        return f"[{self.side.value}] Error: {self.message} at line: {self.line}"


@dataclass(eq=False)
class DocumentParseError(StructDiffError):
    """One or both input documents failed to parse."""

    failures: list[ParseFailure] = field(default_factory=list)

    @classmethod
    def from_failures(cls, failures: list[ParseFailure]) -> "DocumentParseError":
        sides = " and ".join(f.side.value for f in failures)
        return cls(
            code=ErrorCode.PARSE_ERROR,
            message=f"Failed to parse {sides} document",
            details={"sides": [f.side.value for f in failures]},
            failures=list(failures),
        )

    @property
    def sides(self) -> set[Side]:
        return {f.side for f in self.failures}

    def for_side(self, side: Side) -> Optional[ParseFailure]:
        return next((f for f in self.failures if f.side == side), None)

    def to_dict(self) -> dict[str, Any]:
        out = super().to_dict()
        out["failures"] = [f.to_dict() for f in self.failures]
        return out


class ErrorReporter:
    """
    Collects side-tagged parse failures.

    Both sides are attempted before anything is raised, so a host can
    show an error under each input panel at once.
    """

    def __init__(self) -> None:
        self.failures: list[ParseFailure] = []

    def attempt(self, side: Side, parse: Callable[[str], T], text: str) -> Optional[T]:
        """Run `parse(text)`; record a failure for `side` and return None on error."""
        try:
            return parse(text)
        except yaml.YAMLError as exc:
            self.record(ParseFailure.from_yaml_error(side, exc))
        except RecursionError:
            # Self-referencing aliases or absurd nesting
            self.record(ParseFailure(side=side, message="document is nested too deeply to compare"))
        return None

    def record(self, failure: ParseFailure) -> None:
        logger.info(
            "parse_failed", side=failure.side.value, line=failure.line, reason=failure.message
        )
        self.failures.append(failure)

    @property
    def failed(self) -> bool:
        return bool(self.failures)

    def raise_if_failed(self) -> None:
        if self.failures:
            raise DocumentParseError.from_failures(self.failures)


# ═══════════════════════════════════════════════════════════════════
#  USAGE ERRORS
# ═══════════════════════════════════════════════════════════════════

class UsageError(StructDiffError):
    """The session API was called out of contract."""

    @classmethod
    def not_initialized(cls, operation: str) -> "UsageError":
        return cls(
            code=ErrorCode.SESSION_NOT_INITIALIZED,
            message=f"{operation}() called without a live session; call init() first",
            details={"operation": operation},
        )

    @classmethod
    def unknown_key(cls, key: str) -> "UsageError":
        return cls(
            code=ErrorCode.UNKNOWN_KEY,
            message=f"Key {key!r} is not pending in this session",
            details={"key": key},
        )

    @classmethod
    def not_a_mapping_root(cls) -> "UsageError":
        return cls(
            code=ErrorCode.NOT_A_MAPPING_ROOT,
            message="step() needs two mapping roots; use whole_document() instead",
        )


class ConfigError(StructDiffError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid configuration: {reason}",
            details={"reason": reason},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )
