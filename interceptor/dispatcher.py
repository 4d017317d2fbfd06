"""
interceptor/dispatcher.py

Dispatcher: runs the intercepted command, or refuses to.
────────────────────────────────────────────────────────
pmguard is invoked in place of the command a developer typed:

    pmguard npm install      instead of    npm install

The dispatcher asks the PolicyEngine for a verdict and then:

  • ALLOW / PASSTHROUGH : hands the terminal over to the original command
                          with its original arguments. On POSIX this is an
                          exec(), so pmguard's process is replaced and the
                          command receives signals directly. Elsewhere (or
                          when exec is disabled) the command runs as a child
                          and its exit code is returned unchanged.
  • BLOCK               : prints the explanation and the boxed diagnostic
                          and returns 1 without running anything.

A command that cannot be found is reported separately (exit 127); it is
never presented as a policy block.
"""

import logging
import os
import shutil
import signal
import subprocess
import sys
from typing import Callable, Optional, TextIO

from colorama import Fore, Style

from policy_engine.base import (
    Command,
    PolicyViolation,
    ToolIdentity,
    UnresolvedCommand,
    Verdict,
    VerdictResult,
    VersionReport,
)
from policy_engine.policy import PolicyEngine
from policy_engine.renderer import render, suggested_command
from policy_engine.version_check import DEFAULT_MIN_VERSION, check_version

logger = logging.getLogger(__name__)

# ─────────────────────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────────────────────

EXIT_BLOCKED = 1

_ERROR = f"{Fore.RED}"
_SUCCESS = f"{Fore.GREEN}"
_INFO = f"{Fore.BLUE}"
_WARN = f"{Fore.YELLOW}{Style.BRIGHT}"
_RESET = Style.RESET_ALL


class Dispatcher:
    """
    Applies a PolicyEngine verdict to a real process.

    Args:
        policy          : Configured PolicyEngine.
        quiet           : Suppress success status lines.
        use_exec        : Replace the current process instead of spawning a
                          child. Defaults to True on POSIX.
        min_version     : Advisory minimum for the required tool (ambient
                          check only).
        stdout, stderr  : Output streams. Default to sys.stdout / sys.stderr
                          at the time of writing.
        which           : Executable lookup (shutil.which-compatible).
        runner          : Child-process runner (subprocess.run-compatible).
        execvp          : Process replacement (os.execvp-compatible).
        version_checker : Advisory version check (check_version-compatible).
    """

    def __init__(
        self,
        policy: PolicyEngine,
        quiet: bool = False,
        use_exec: Optional[bool] = None,
        min_version: str = DEFAULT_MIN_VERSION,
        stdout: Optional[TextIO] = None,
        stderr: Optional[TextIO] = None,
        which: Callable[[str], Optional[str]] = shutil.which,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
        execvp: Callable[[str, list], None] = os.execvp,
        version_checker: Callable[..., VersionReport] = check_version,
    ) -> None:
        self._policy = policy
        self._quiet = quiet
        self._use_exec = (os.name == "posix") if use_exec is None else use_exec
        self._min_version = min_version
        self._stdout = stdout
        self._stderr = stderr
        self._which = which
        self._runner = runner
        self._execvp = execvp
        self._version_checker = version_checker

    # ── Public API ────────────────────────────────────────────────────────────

    def run(self, command: Command) -> int:
        """
        Decide on `command` and act on the verdict.

        Returns:
            1 when blocked, 127 when the command cannot be found, otherwise
            the command's own exit code. With exec enabled a successful
            hand-off never returns.
        """
        try:
            result = self._policy.enforce(command)
        except PolicyViolation as exc:
            self._report_block(exc.result)
            return exc.exit_code

        if self._is_required_tool(result):
            self._status(
                f"{_SUCCESS}✅ Package manager check: "
                f"{result.evidence.identity.value} ✅{_RESET}"
            )

        try:
            return self._delegate(command)
        except UnresolvedCommand as exc:
            logger.error("Cannot execute %s: %s", exc.name, exc.reason)
            self._emit(f"{_ERROR}❌ Command not found: {exc.name}{_RESET}", self.err)
            return exc.exit_code

    def check_ambient(self) -> int:
        """
        Install-hook mode: verify the package manager running this process.

        Returns 0 when it is the required tool, 1 otherwise. The version
        check that follows a success is advisory and never changes the code.
        """
        evidence = self._policy.detector.infer_ambient_tool()
        result = self._policy.check_ambient(evidence)
        if result.is_blocked:
            self._emit_box(result)
            return EXIT_BLOCKED

        self._status(
            f'{_SUCCESS}✅ Package Manager Check: Using "{evidence.identity.value}" '
            f"(detected via {evidence.method}){_RESET}"
        )
        if evidence.identity is self._policy.required_tool:
            self._report_version(self._policy.required_tool)
        return 0

    @property
    def out(self) -> TextIO:
        return self._stdout or sys.stdout

    @property
    def err(self) -> TextIO:
        return self._stderr or sys.stderr

    # ── Reporting ─────────────────────────────────────────────────────────────

    def _report_block(self, result: VerdictResult) -> None:
        command = result.command
        detected = result.evidence.identity.value
        required = result.required_tool
        self._emit(
            f'{_ERROR}❌ Package manager "{detected}" is not allowed in this project!{_RESET}'
        )
        self._emit("")
        self._emit(f"{_INFO}ℹ️  Instead of: {command.display()}{_RESET}")
        self._emit(f"   Use: {suggested_command(command, required)}")
        self._emit_box(result)

    def _emit_box(self, result: VerdictResult) -> None:
        self._emit("")
        self._emit(render(result))
        self._emit("")

    def _report_version(self, tool: ToolIdentity) -> None:
        report = self._version_checker(tool, self._min_version)
        if report.ok:
            self._status(f"{_SUCCESS}✅ {tool.value} version: {report.version}{_RESET}")
        elif report.version is not None:
            self._emit(
                f"{_WARN}⚠️  Warning: {tool.value} version {report.version} detected, "
                f"but {report.minimum}+ is recommended{_RESET}"
            )
        else:
            self._emit(
                f"{_WARN}⚠️  Warning: could not determine {tool.value} version "
                f"({report.error}){_RESET}"
            )

    def _status(self, line: str) -> None:
        if not self._quiet:
            self._emit(line)

    def _emit(self, line: str, stream: Optional[TextIO] = None) -> None:
        stream = stream or self.out
        stream.write(line + "\n")
        stream.flush()

    def _is_required_tool(self, result: VerdictResult) -> bool:
        return (
            result.verdict is Verdict.ALLOW
            and result.evidence is not None
            and result.evidence.identity is result.required_tool
        )

    # ── Process hand-off ──────────────────────────────────────────────────────

    def _delegate(self, command: Command) -> int:
        path = self._which(command.name)
        if path is None:
            raise UnresolvedCommand(command.name)

        logger.debug("Delegating to %s %s", path, list(command.args))

        if self._use_exec:
            # Buffered output would be lost when the process image is replaced.
            self.out.flush()
            self.err.flush()
            try:
                self._execvp(path, command.argv)
            except OSError as exc:
                raise UnresolvedCommand(command.name, exc.strerror or str(exc)) from exc
            # A real execvp never returns; substitutes used in tests do.
            return 0

        try:
            proc = self._runner([path, *command.args])
        except OSError as exc:
            raise UnresolvedCommand(command.name, exc.strerror or str(exc)) from exc
        return exit_status(proc.returncode)


def exit_status(returncode: int) -> int:
    """Translate a child's return code the way a shell reports it."""
    if returncode < 0:
        return 128 + abs(returncode)
    return returncode


def signal_exit_code(sig: signal.Signals) -> int:
    return 128 + int(sig)
