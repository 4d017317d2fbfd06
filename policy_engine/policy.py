"""
policy_engine/policy.py

PolicyEngine: the interception decision.
─────────────────────────────────────────
Combines the allowlist and the tool detector into a verdict for a single
command:

  1. Allowlisted name                      → ALLOW
  2. Not a package manager (UNKNOWN)       → PASSTHROUGH
  3. The required package manager          → ALLOW
  4. Any other recognised package manager  → BLOCK

The engine holds no mutable state. Its inputs (required tool, allowlist,
enforcement toggle) are fixed at construction, so `decide()` returns the
same verdict for the same command every time.
"""

import logging
from typing import Optional

from .allowlist import Allowlist
from .base import (
    Command,
    DetectionEvidence,
    PolicyViolation,
    ToolIdentity,
    Verdict,
    VerdictResult,
)
from .tool_detector import ToolDetector

logger = logging.getLogger(__name__)


class PolicyEngine:
    """
    Decides whether an intercepted command may run.

    Args:
        required_tool : The only package manager this project accepts.
        allowlist     : Commands exempt from policy. Defaults to the
                        built-in utility list.
        detector      : ToolDetector used for classification. Defaults to
                        one configured for `required_tool`.
        enforce       : When False, recognised alternate tools are allowed
                        with a logged warning instead of being blocked.

    Usage:
        engine = PolicyEngine(ToolIdentity.PNPM)
        result = engine.decide(Command("npm", ("install",)))
        if result.is_blocked:
            print(render(result))
    """

    def __init__(
        self,
        required_tool: ToolIdentity,
        allowlist: Optional[Allowlist] = None,
        detector: Optional[ToolDetector] = None,
        enforce: bool = True,
    ) -> None:
        if required_tool is ToolIdentity.UNKNOWN:
            raise ValueError("required_tool must be a concrete package manager")
        self._required = required_tool
        self._allowlist = allowlist or Allowlist()
        self._detector = detector or ToolDetector(required_tool)
        self._enforce = enforce

        logger.debug(
            "PolicyEngine initialised | required=%s | allowlist=%d | enforce=%s",
            required_tool.value, len(self._allowlist), enforce,
        )

    @property
    def required_tool(self) -> ToolIdentity:
        return self._required

    @property
    def detector(self) -> ToolDetector:
        return self._detector

    def decide(self, command: Command) -> VerdictResult:
        """Return the verdict for a single explicit command."""
        if self._allowlist.is_allowed(command.name):
            logger.debug("%s is allowlisted", command.name)
            return self._result(Verdict.ALLOW, command)

        evidence = self._detector.explicit_evidence(command.name)

        if evidence.identity is ToolIdentity.UNKNOWN:
            return self._result(Verdict.PASSTHROUGH, command, evidence)

        if evidence.identity is self._required:
            return self._result(Verdict.ALLOW, command, evidence)

        if not self._enforce:
            logger.warning(
                "Enforcement disabled: allowing %s although %s is required",
                evidence.identity.value, self._required.value,
            )
            return self._result(Verdict.ALLOW, command, evidence)

        logger.info(
            "Blocking %s (required: %s)", command.display(), self._required.value,
        )
        return self._result(Verdict.BLOCK, command, evidence)

    def enforce(self, command: Command) -> VerdictResult:
        """Like decide(), but raises PolicyViolation instead of returning BLOCK."""
        result = self.decide(command)
        if result.is_blocked:
            raise PolicyViolation(result)
        return result

    def check_ambient(self, evidence: Optional[DetectionEvidence] = None) -> VerdictResult:
        """
        Verdict for an install-time hook, where no explicit command exists.

        Anything other than the required tool is blocked, including an
        ambient tool that could not be determined at all.
        """
        if evidence is None:
            evidence = self._detector.infer_ambient_tool()
        if evidence.identity is self._required or not self._enforce:
            return self._result(Verdict.ALLOW, None, evidence)
        return self._result(Verdict.BLOCK, None, evidence)

    def _result(
        self,
        verdict: Verdict,
        command: Optional[Command],
        evidence: Optional[DetectionEvidence] = None,
    ) -> VerdictResult:
        result = VerdictResult(
            verdict=verdict,
            required_tool=self._required,
            command=command,
            evidence=evidence,
        )
        logger.debug(
            "Verdict | command=%s verdict=%s",
            command.display() if command else "<ambient>", verdict.value,
        )
        return result
