"""
policy_engine/base.py

Core value types for pmguard's enforcement layer.

Everything the policy engine hands around lives here: the command being
intercepted, the tool identities the detector can produce, the evidence
explaining how an identity was found, and the verdict the policy reaches.
The error types raised by the engine and the dispatcher live here too so
that callers only need a single import for the whole vocabulary.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class ToolIdentity(Enum):
    """
    Package managers pmguard knows how to recognise.

    Values are the bare executable names. UNKNOWN is the identity of every
    command name that is not a recognised package manager, which keeps
    classification total.
    """
    PNPM = "pnpm"
    YARN = "yarn"
    NPM = "npm"
    BUN = "bun"
    UNKNOWN = "unknown"

    @classmethod
    def from_name(cls, name: str) -> "ToolIdentity":
        """Look up a configured tool name (e.g. "pnpm"); raises ValueError."""
        return cls(name.strip().lower())


class Verdict(Enum):
    ALLOW = "allow"
    BLOCK = "block"
    PASSTHROUGH = "passthrough"


# Method labels shown after "via" in user-facing messages.
METHOD_EXPLICIT = "explicit command name"
METHOD_USER_AGENT = "user agent"
METHOD_FALLBACK = "fallback"


def lock_file_method(lock_file: str) -> str:
    return f"lock file ({lock_file})"


@dataclass(frozen=True)
class Command:
    """
    A single intercepted invocation.

    Attributes:
        name : The command name exactly as typed (first shell token).
        args : The remaining argument strings, in order.
    """
    name: str
    args: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        # Accept any sequence from callers but store it immutably.
        object.__setattr__(self, "args", tuple(self.args))

    @property
    def argv(self) -> list:
        return [self.name, *self.args]

    def display(self) -> str:
        return " ".join(self.argv)


@dataclass(frozen=True)
class DetectionEvidence:
    """
    Which tool was detected, and by which signal.

    `method` is for messaging only; decisions are made on `identity` alone.
    """
    identity: ToolIdentity
    method: str


@dataclass(frozen=True)
class VerdictResult:
    """
    Outcome of one policy evaluation.

    Attributes:
        verdict       : ALLOW, BLOCK or PASSTHROUGH.
        required_tool : The tool this installation enforces.
        command       : The evaluated command. None only for ambient checks,
                        where no explicit command was issued.
        evidence      : Detection evidence. Always present on BLOCK.
    """
    verdict: Verdict
    required_tool: ToolIdentity
    command: Optional[Command] = None
    evidence: Optional[DetectionEvidence] = None

    def __post_init__(self) -> None:
        if self.verdict is Verdict.BLOCK and self.evidence is None:
            raise ValueError("a BLOCK verdict must carry detection evidence")

    @property
    def is_blocked(self) -> bool:
        return self.verdict is Verdict.BLOCK


# ─────────────────────────────────────────────────────────────────────────────
# Errors
# ─────────────────────────────────────────────────────────────────────────────

class PmGuardError(Exception):
    """Base class for every error pmguard raises on purpose."""
    exit_code = 1


class PolicyViolation(PmGuardError):
    """A recognised package manager other than the required one was invoked."""
    exit_code = 1

    def __init__(self, result: VerdictResult) -> None:
        self.result = result
        detected = result.evidence.identity.value if result.evidence else "unknown"
        super().__init__(
            f'package manager "{detected}" is not allowed '
            f'(required: "{result.required_tool.value}")'
        )


class UnresolvedCommand(PmGuardError):
    """The delegated command does not exist or cannot be executed."""
    exit_code = 127

    def __init__(self, name: str, reason: str = "not found") -> None:
        self.name = name
        self.reason = reason
        super().__init__(f"{name}: {reason}")


class ConfigurationError(PmGuardError):
    """Startup configuration cannot be used to evaluate policy safely."""
    exit_code = 78


@dataclass
class VersionReport:
    """
    Result of the advisory version check for the required tool.

    `ok` is False both when the version is below the minimum and when the
    version could not be determined; `error` is set in the latter case.
    """
    tool: ToolIdentity
    minimum: str
    ok: bool
    version: Optional[str] = None
    error: Optional[str] = None
