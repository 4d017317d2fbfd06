"""
policy_engine/allowlist.py

Commands that bypass package-manager policy entirely.
──────────────────────────────────────────────────────
The default list covers the everyday utilities a developer runs inside a
project: version control, filesystem navigation and inspection, and the
shell builtins used for lookup and environment scoping. The required
tool is not listed: it reaches ALLOW through classification, which also
prints the success status line.

Membership is an exact, case-sensitive match on the bare command name and
wins over any ToolIdentity classification.
"""

import logging
from typing import FrozenSet, Iterable

from .base import ConfigurationError

logger = logging.getLogger(__name__)


DEFAULT_ALLOWED_COMMANDS: FrozenSet[str] = frozenset({
    # Runtime / version control
    "node", "git",
    # Filesystem
    "ls", "cat", "echo", "cd", "pwd", "find", "grep",
    "chmod", "mkdir", "rm", "cp", "mv", "touch",
    # Introspection
    "which", "whereis", "type", "command", "hash",
    # Shell builtins for aliases and environment scoping
    "alias", "unalias", "export", "unset", "source", ".",
})


def validate_command_name(name: str) -> str:
    """Reject names that can never match a single shell token."""
    if not isinstance(name, str) or not name:
        raise ConfigurationError("allowlist entries must be non-empty command names")
    if name != name.strip() or any(ch.isspace() for ch in name):
        raise ConfigurationError(f"allowlist entry {name!r} contains whitespace")
    return name


class Allowlist:
    """
    Immutable set of exempt command names.

    Args:
        names : Command names to exempt. Validated once here; the set is
                read-only afterwards.
    """

    def __init__(self, names: Iterable[str] = DEFAULT_ALLOWED_COMMANDS) -> None:
        validated = frozenset(validate_command_name(n) for n in names)
        if not validated:
            raise ConfigurationError("allowlist is empty")
        self._names: FrozenSet[str] = validated
        logger.debug("Allowlist initialised with %d commands", len(validated))

    @property
    def names(self) -> FrozenSet[str]:
        return self._names

    def is_allowed(self, command_name: str) -> bool:
        return command_name in self._names

    def __len__(self) -> int:
        return len(self._names)
