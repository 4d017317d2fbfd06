"""
policy_engine/version_check.py

Advisory version check for the required package manager.

Runs `<tool> --version` and compares the major version against the
configured minimum. The result is only ever reported: a tool that is too
old, or that cannot be run at all, produces a warning and never changes a
verdict.
"""

import logging
import re
import subprocess
from typing import Callable, Optional

from .base import ToolIdentity, VersionReport

logger = logging.getLogger(__name__)

DEFAULT_MIN_VERSION = "8.0.0"

# Seconds to wait for `<tool> --version`.
VERSION_TIMEOUT = 10

_VERSION_RE = re.compile(r"^v?(\d+)(?:\.(\d+))?(?:\.(\d+))?")


def parse_major(version: str) -> Optional[int]:
    """Return the major component of a version string, or None if unparseable."""
    match = _VERSION_RE.match(version.strip())
    if not match:
        return None
    return int(match.group(1))


def is_valid_version(version: str) -> bool:
    return parse_major(version) is not None


Runner = Callable[..., subprocess.CompletedProcess]


def check_version(
    tool: ToolIdentity,
    minimum: str = DEFAULT_MIN_VERSION,
    runner: Runner = subprocess.run,
) -> VersionReport:
    """
    Query the installed version of `tool` and compare it to `minimum`.

    Args:
        tool    : The package manager to query.
        minimum : Minimum recommended version; only the major part counts.
        runner  : subprocess.run-compatible callable (injectable for tests).

    Returns:
        A VersionReport. Never raises for a missing or broken tool.
    """
    required_major = parse_major(minimum)
    if required_major is None:
        raise ValueError(f"invalid minimum version: {minimum!r}")

    try:
        proc = runner(
            [tool.value, "--version"],
            capture_output=True,
            text=True,
            timeout=VERSION_TIMEOUT,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        logger.warning("Could not run %s --version: %s", tool.value, exc)
        return VersionReport(tool=tool, minimum=minimum, ok=False, error=str(exc))

    if proc.returncode != 0:
        error = (proc.stderr or "").strip() or f"exit code {proc.returncode}"
        logger.warning("%s --version failed: %s", tool.value, error)
        return VersionReport(tool=tool, minimum=minimum, ok=False, error=error)

    version = (proc.stdout or "").strip()
    major = parse_major(version)
    if major is None:
        logger.warning("Unrecognised %s version output: %r", tool.value, version)
        return VersionReport(
            tool=tool, minimum=minimum, ok=False, version=version,
            error="unrecognised version output",
        )

    ok = major >= required_major
    if not ok:
        logger.warning(
            "%s %s is older than the recommended %s", tool.value, version, minimum,
        )
    return VersionReport(tool=tool, minimum=minimum, ok=ok, version=version)
