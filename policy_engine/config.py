"""
policy_engine/config.py

Startup configuration for pmguard.

Settings come from the environment, optionally seeded from a `.env` file in
the project directory (real environment variables always win). They are
read once, validated, and frozen into a GuardConfig that the rest of the
process only reads.

    PMGUARD_REQUIRED_PM       required package manager        (pnpm)
    PMGUARD_ALLOWED_COMMANDS  comma-separated allowlist       (built-in list)
    PMGUARD_EXTRA_ALLOWED     comma-separated additions       (none)
    PMGUARD_MIN_VERSION       advisory minimum version        (8.0.0)
    PMGUARD_ENFORCE           block alternate tools           (on)
    PMGUARD_QUIET             suppress success status lines   (off)
    PMGUARD_LOG_LEVEL         logging level                   (WARNING)
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import FrozenSet, Mapping, Optional

from dotenv import load_dotenv

from .allowlist import DEFAULT_ALLOWED_COMMANDS, Allowlist
from .base import ConfigurationError, ToolIdentity
from .tool_detector import KNOWN_TOOLS
from .version_check import DEFAULT_MIN_VERSION, is_valid_version

logger = logging.getLogger(__name__)

ENV_PREFIX = "PMGUARD_"
DEFAULT_REQUIRED_PM = "pnpm"
DEFAULT_LOG_LEVEL = "WARNING"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def load_environment(project_dir: Optional[Path] = None) -> bool:
    """Seed os.environ from `<project_dir>/.env`; returns True if a file was loaded."""
    env_path = Path(project_dir or Path.cwd()) / ".env"
    if not env_path.is_file():
        return False
    logger.debug("Loading environment from %s", env_path)
    return load_dotenv(env_path, override=False)


def parse_bool(name: str, raw: Optional[str], default: bool) -> bool:
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigurationError(f"{name} must be a boolean (got {raw!r})")


def parse_command_list(raw: str) -> FrozenSet[str]:
    """Split a comma-separated command list; blank entries are an error."""
    names = [part.strip() for part in raw.split(",")]
    if any(not name for name in names):
        raise ConfigurationError(f"malformed command list: {raw!r}")
    return frozenset(names)


def parse_required_tool(raw: Optional[str]) -> ToolIdentity:
    if raw is None or not raw.strip():
        raise ConfigurationError("no required package manager configured")
    try:
        tool = ToolIdentity.from_name(raw)
    except ValueError:
        tool = ToolIdentity.UNKNOWN
    if tool not in KNOWN_TOOLS:
        supported = ", ".join(t.value for t in KNOWN_TOOLS)
        raise ConfigurationError(
            f"unsupported package manager {raw!r} (supported: {supported})"
        )
    return tool


@dataclass(frozen=True)
class GuardConfig:
    """
    Process-wide settings, fixed at startup.

    Attributes:
        required_tool : The only package manager allowed to run.
        allowlist     : Commands exempt from policy.
        min_version   : Advisory minimum for the required tool.
        enforce       : False turns blocks into logged warnings.
        quiet         : Suppress success status lines.
        log_level     : Logging level name.
    """
    required_tool: ToolIdentity
    allowlist: Allowlist
    min_version: str = DEFAULT_MIN_VERSION
    enforce: bool = True
    quiet: bool = False
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        required: Optional[str] = None,
        quiet: Optional[bool] = None,
        log_level: Optional[str] = None,
    ) -> "GuardConfig":
        """
        Build the configuration from `environ` (default os.environ).

        Explicit keyword arguments (from the command line) take precedence
        over the environment.

        Raises:
            ConfigurationError: on any invalid or missing setting.
        """
        env = os.environ if environ is None else environ

        def get(key: str) -> Optional[str]:
            return env.get(ENV_PREFIX + key)

        required_raw = required if required is not None else get("REQUIRED_PM")
        if required_raw is None:
            required_raw = DEFAULT_REQUIRED_PM
        required_tool = parse_required_tool(required_raw)

        allowed_raw = get("ALLOWED_COMMANDS")
        if allowed_raw is None:
            names = set(DEFAULT_ALLOWED_COMMANDS)
        else:
            names = set(parse_command_list(allowed_raw))
        extra_raw = get("EXTRA_ALLOWED")
        if extra_raw:
            names |= parse_command_list(extra_raw)

        min_version = (get("MIN_VERSION") or DEFAULT_MIN_VERSION).strip()
        if not is_valid_version(min_version):
            raise ConfigurationError(f"invalid minimum version: {min_version!r}")

        level = (log_level or get("LOG_LEVEL") or DEFAULT_LOG_LEVEL).strip().upper()
        if level not in LOG_LEVELS:
            raise ConfigurationError(f"invalid log level: {level!r}")

        return cls(
            required_tool=required_tool,
            allowlist=Allowlist(names),
            min_version=min_version,
            enforce=parse_bool(ENV_PREFIX + "ENFORCE", get("ENFORCE"), True),
            quiet=quiet if quiet else parse_bool(ENV_PREFIX + "QUIET", get("QUIET"), False),
            log_level=level,
        )
