"""
policy_engine: pmguard's command classification and decision layer.

Public API:
    PolicyEngine      : Decides ALLOW / BLOCK / PASSTHROUGH for a command.
    ToolDetector      : Classifies command names, infers the ambient tool.
    Allowlist         : Commands exempt from policy.
    render            : Formats a BLOCK verdict as the boxed diagnostic.
    GuardConfig       : Startup configuration.
    check_version     : Advisory version check for the required tool.
"""

from .allowlist import DEFAULT_ALLOWED_COMMANDS, Allowlist
from .base import (
    Command,
    ConfigurationError,
    DetectionEvidence,
    PmGuardError,
    PolicyViolation,
    ToolIdentity,
    UnresolvedCommand,
    Verdict,
    VerdictResult,
    VersionReport,
)
from .config import GuardConfig, load_environment
from .policy import PolicyEngine
from .renderer import display_width, render, suggested_command
from .tool_detector import ToolDetector, classify
from .version_check import check_version

__all__ = [
    "Allowlist",
    "Command",
    "ConfigurationError",
    "DEFAULT_ALLOWED_COMMANDS",
    "DetectionEvidence",
    "GuardConfig",
    "PmGuardError",
    "PolicyEngine",
    "PolicyViolation",
    "ToolDetector",
    "ToolIdentity",
    "UnresolvedCommand",
    "Verdict",
    "VerdictResult",
    "VersionReport",
    "check_version",
    "classify",
    "display_width",
    "load_environment",
    "render",
    "suggested_command",
]
