#!/usr/bin/env python3
"""
pmguard.py: pmguard entry point.
──────────────────────────────────
Run package-manager commands through pmguard instead of directly:

    pmguard npm install        # blocked: this project uses pnpm
    pmguard pnpm install       # runs pnpm install
    pmguard git status         # always allowed, runs git status

Shell aliases (alias npm='pmguard npm') make this transparent. For
install-time hooks, `pmguard --check` inspects the package manager that is
running the hook instead of an explicit command:

    "scripts": { "preinstall": "pmguard --check" }

pmguard will:
  1. Load configuration from the environment (and ./.env, if present).
  2. Classify the command: allowlisted utility, required package manager,
     another package manager, or something unrelated.
  3. Block other package managers with an explanatory message.
  4. Hand everything else to the real command, unchanged.

CLI Options
───────────
  --required PM          Package manager to enforce (pnpm, yarn, npm, bun).
                         Defaults to $PMGUARD_REQUIRED_PM or "pnpm".
  --check                Check the package manager running this process
                         (user agent, then lock files) instead of a command.
  --quiet                Do not print success status lines.
  --log-level LEVEL      Python logging level. Defaults to WARNING.
  --version              Print pmguard version and exit.
  -h / --help            Show this help message and exit.

Exit Codes
──────────
  0     Allowed and completed, or usage shown.
  1     Blocked by policy.
  2     Malformed invocation.
  78    Configuration error.
  127   Command not found.
  130   Interrupted.
  Any other value is the exit code of the delegated command.
"""

import argparse
import logging
import signal
import sys
from typing import List, Optional, Tuple

from colorama import Fore, Style, init as colorama_init

from interceptor.dispatcher import Dispatcher, signal_exit_code
from policy_engine.base import Command, ConfigurationError
from policy_engine.config import LOG_LEVELS, GuardConfig, load_environment
from policy_engine.policy import PolicyEngine
from policy_engine.tool_detector import KNOWN_TOOLS, ToolDetector

__version__ = "0.1.0"

EXIT_CONFIG_ERROR = ConfigurationError.exit_code

# pmguard options that consume the following token.
OPTIONS_WITH_VALUE = ("--required", "--log-level")


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pmguard",
        usage="%(prog)s [options] [--] [command [args ...]]",
        allow_abbrev=False,
        description=(
            "pmguard: enforce a single package manager by intercepting "
            "package-manager commands before they run."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--required",
        default=None,
        metavar="PM",
        choices=[tool.value for tool in KNOWN_TOOLS],
        help="Package manager to enforce. Default: $PMGUARD_REQUIRED_PM or 'pnpm'.",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        default=False,
        help="Check the package manager running this process (for install hooks).",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        default=False,
        help="Suppress success status lines.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=list(LOG_LEVELS),
        help="Set the Python logging level. Default: WARNING.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"pmguard {__version__}",
    )
    return parser


def split_argv(argv: List[str]) -> Tuple[List[str], List[str]]:
    """
    Split argv into pmguard's own options and the command to run.

    The command starts at the first token that is not a pmguard option.
    Everything from there on is returned verbatim, including any "--", so
    the delegated command sees exactly what the user typed. A "--" placed
    before the command ends pmguard's options and is dropped.
    """
    i = 0
    while i < len(argv):
        token = argv[i]
        if token == "--":
            return argv[:i], argv[i + 1:]
        if not token.startswith("-") or token == "-":
            break
        if token in OPTIONS_WITH_VALUE:
            i += 1
        i += 1
    return argv[:i], argv[i:]


def configure_logging(level_str: str) -> None:
    """Send pmguard's log records to stderr, keeping stdout for command output."""
    logging.basicConfig(
        stream=sys.stderr,
        level=getattr(logging, level_str.upper(), logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def print_usage(required: str) -> None:
    info = f"{Fore.BLUE}ℹ️ "
    reset = Style.RESET_ALL
    print("🔍 Universal Package Manager Checker")
    print("====================================")
    print()
    print(f"{info} This tool checks if the correct package manager is being used.{reset}")
    print()
    print(f"{info} Usage:{reset}")
    print("  pmguard <command> [args...]")
    print("  pmguard --check")
    print()
    print(f"{info} Examples:{reset}")
    print("  pmguard npm install")
    print("  pmguard yarn add react")
    print(f"  pmguard {required} install")
    print()
    print(f"{info} The tool will:{reset}")
    print(f"  ✅ Allow {required} commands")
    print("  ❌ Block other package managers")
    print("  ✅ Allow system commands (ls, git, etc.)")


def main(argv: Optional[List[str]] = None) -> int:
    """
    pmguard entry point.

    Returns the exit code to pass to the OS.
    """
    parser = build_arg_parser()
    own_argv, command_argv = split_argv(sys.argv[1:] if argv is None else list(argv))
    args = parser.parse_args(own_argv)

    if args.check and command_argv:
        parser.error("--check does not take a command")

    load_environment()
    try:
        config = GuardConfig.from_env(
            required=args.required,
            quiet=args.quiet,
            log_level=args.log_level,
        )
    except ConfigurationError as exc:
        configure_logging(args.log_level or "WARNING")
        logging.getLogger(__name__).error("Invalid configuration: %s", exc)
        print(
            f"{Fore.RED}[pmguard] Configuration error: {exc}{Style.RESET_ALL}",
            file=sys.stderr,
        )
        return EXIT_CONFIG_ERROR

    configure_logging(config.log_level)
    colorama_init()
    logger = logging.getLogger(__name__)

    if not args.check and not command_argv:
        print_usage(config.required_tool.value)
        return 0

    logger.info(
        "pmguard %s | required=%s enforce=%s",
        __version__, config.required_tool.value, config.enforce,
    )

    engine = PolicyEngine(
        required_tool=config.required_tool,
        allowlist=config.allowlist,
        detector=ToolDetector(config.required_tool),
        enforce=config.enforce,
    )
    dispatcher = Dispatcher(
        engine,
        quiet=config.quiet,
        min_version=config.min_version,
    )

    try:
        if args.check:
            exit_code = dispatcher.check_ambient()
        else:
            exit_code = dispatcher.run(Command(command_argv[0], tuple(command_argv[1:])))
    except KeyboardInterrupt:
        exit_code = signal_exit_code(signal.SIGINT)

    logger.info("pmguard exiting with code %d", exit_code)
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
