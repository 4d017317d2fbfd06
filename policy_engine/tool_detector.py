"""
policy_engine/tool_detector.py

ToolDetector: package-manager identification.
──────────────────────────────────────────────
Answers two questions:

    classify(name)        Which package manager is this command name?
    infer_ambient_tool()  Which package manager is running us right now?

The first is an exact, case-sensitive lookup of the bare command name,
including the shim suffixes Windows installs next to each tool
(npm.cmd, pnpm.exe, yarn.ps1, ...). Nothing is executed and no prefix or
substring matching is done: "npmx" is not npm.

The second is used from install-time hooks, where there is no explicit
command to look at. Signal sources are tried in the order listed in
`ToolDetector.signal_sources`; the first one that produces evidence wins:

    1. user agent   npm_config_user_agent, set by every package manager
                    for the lifecycle scripts it runs.
    2. lock file    pnpm-lock.yaml / yarn.lock / package-lock.json /
                    bun.lockb in the working directory, required tool's
                    lock file first.
    3. fallback     UNKNOWN.

The user agent describes the command being run right now, while a lock
file only records which tool was used last, so the agent is trusted first.
"""

import logging
import os
from pathlib import Path
from typing import Callable, Dict, Mapping, Optional, Tuple

from .base import (
    METHOD_EXPLICIT,
    METHOD_FALLBACK,
    METHOD_USER_AGENT,
    DetectionEvidence,
    ToolIdentity,
    lock_file_method,
)

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Name registry
# ─────────────────────────────────────────────────────────────────────────────

# Suffixes of the launcher shims npm-style installers create on Windows.
EXECUTABLE_SUFFIXES: Tuple[str, ...] = ("", ".cmd", ".exe", ".ps1")

KNOWN_TOOLS: Tuple[ToolIdentity, ...] = (
    ToolIdentity.PNPM,
    ToolIdentity.YARN,
    ToolIdentity.NPM,
    ToolIdentity.BUN,
)

# Checked in this order, after the required tool's own lock file.
LOCK_FILES: Tuple[Tuple[str, ToolIdentity], ...] = (
    ("pnpm-lock.yaml", ToolIdentity.PNPM),
    ("yarn.lock", ToolIdentity.YARN),
    ("package-lock.json", ToolIdentity.NPM),
    ("bun.lockb", ToolIdentity.BUN),
)

USER_AGENT_ENV = "npm_config_user_agent"


def _build_name_table() -> Dict[str, ToolIdentity]:
    table: Dict[str, ToolIdentity] = {}
    for tool in KNOWN_TOOLS:
        for suffix in EXECUTABLE_SUFFIXES:
            table[tool.value + suffix] = tool
    return table


_NAME_TABLE: Dict[str, ToolIdentity] = _build_name_table()


def classify(command_name: str) -> ToolIdentity:
    """
    Map a bare command name to a ToolIdentity.

    Exact match only; anything that is not a known executable name
    (with or without a shim suffix) is UNKNOWN.
    """
    return _NAME_TABLE.get(command_name, ToolIdentity.UNKNOWN)


def parse_user_agent(user_agent: str) -> ToolIdentity:
    """
    Extract the invoking tool from an npm-style user agent string.

    The agent looks like "pnpm/8.15.1 npm/? node/v20.11.0 linux x64"; the
    invoking tool is the product name of the first token. Every tool lists
    "npm/?" further along, so only the first token is meaningful.
    """
    tokens = user_agent.split()
    if not tokens:
        return ToolIdentity.UNKNOWN
    product = tokens[0].split("/", 1)[0]
    return classify(product)


SignalSource = Callable[[], Optional[DetectionEvidence]]


class ToolDetector:
    """
    Classifies command names and infers the ambient package manager.

    Args:
        required_tool : The enforced tool; its lock file is checked first.
        environ       : Environment mapping to read the user agent from.
                        Defaults to os.environ.
        cwd           : Directory to look for lock files in. Defaults to
                        the process working directory at call time.
    """

    def __init__(
        self,
        required_tool: ToolIdentity = ToolIdentity.PNPM,
        environ: Optional[Mapping[str, str]] = None,
        cwd: Optional[Path] = None,
    ) -> None:
        self._required = required_tool
        self._environ = environ
        self._cwd = cwd

    # ── Explicit commands ─────────────────────────────────────────────────────

    def classify(self, command_name: str) -> ToolIdentity:
        identity = classify(command_name)
        logger.debug("classify %r -> %s", command_name, identity.value)
        return identity

    def explicit_evidence(self, command_name: str) -> DetectionEvidence:
        return DetectionEvidence(self.classify(command_name), METHOD_EXPLICIT)

    # ── Ambient inference ─────────────────────────────────────────────────────

    @property
    def signal_sources(self) -> Tuple[SignalSource, ...]:
        """Signal sources in priority order (most specific first)."""
        return (self.from_user_agent, self.from_lock_files)

    def infer_ambient_tool(self) -> DetectionEvidence:
        for source in self.signal_sources:
            evidence = source()
            if evidence is not None:
                logger.debug(
                    "Ambient tool detected | identity=%s method=%s",
                    evidence.identity.value, evidence.method,
                )
                return evidence
        logger.debug("No ambient package manager signal found")
        return DetectionEvidence(ToolIdentity.UNKNOWN, METHOD_FALLBACK)

    def from_user_agent(self) -> Optional[DetectionEvidence]:
        environ = os.environ if self._environ is None else self._environ
        user_agent = environ.get(USER_AGENT_ENV, "")
        identity = parse_user_agent(user_agent)
        if identity is ToolIdentity.UNKNOWN:
            return None
        return DetectionEvidence(identity, METHOD_USER_AGENT)

    def from_lock_files(self) -> Optional[DetectionEvidence]:
        base = Path.cwd() if self._cwd is None else Path(self._cwd)
        for lock_file, identity in self.lock_file_order():
            if (base / lock_file).is_file():
                return DetectionEvidence(identity, lock_file_method(lock_file))
        return None

    def lock_file_order(self) -> Tuple[Tuple[str, ToolIdentity], ...]:
        """Lock files to check, the required tool's own first."""
        own = tuple(entry for entry in LOCK_FILES if entry[1] is self._required)
        rest = tuple(entry for entry in LOCK_FILES if entry[1] is not self._required)
        return own + rest
