"""
tests/test_tool_detector.py

Unit tests for ToolDetector: command-name classification and ambient
package-manager inference (user agent, lock files, fallback).
"""

import os
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from policy_engine.base import DetectionEvidence, ToolIdentity
from policy_engine.tool_detector import (
    ToolDetector,
    classify,
    parse_user_agent,
)


# ─────────────────────────────────────────────────────────────────────────────
# classify()
# ─────────────────────────────────────────────────────────────────────────────

class TestClassify(unittest.TestCase):

    def test_bare_names(self):
        self.assertIs(classify("pnpm"), ToolIdentity.PNPM)
        self.assertIs(classify("yarn"), ToolIdentity.YARN)
        self.assertIs(classify("npm"), ToolIdentity.NPM)
        self.assertIs(classify("bun"), ToolIdentity.BUN)

    def test_windows_shim_suffixes(self):
        for suffix in (".cmd", ".exe", ".ps1"):
            with self.subTest(suffix=suffix):
                self.assertIs(classify("pnpm" + suffix), ToolIdentity.PNPM)
                self.assertIs(classify("npm" + suffix), ToolIdentity.NPM)

    def test_unrelated_commands_are_unknown(self):
        for name in ("git", "make", "python", "npx", "pnpx", ""):
            with self.subTest(name=name):
                self.assertIs(classify(name), ToolIdentity.UNKNOWN)

    def test_no_prefix_or_substring_matching(self):
        for name in ("npmx", "xnpm", "pnpm-lock", "yarnpkg", "npm.bat"):
            with self.subTest(name=name):
                self.assertIs(classify(name), ToolIdentity.UNKNOWN)

    def test_case_sensitive(self):
        self.assertIs(classify("NPM"), ToolIdentity.UNKNOWN)
        self.assertIs(classify("Pnpm"), ToolIdentity.UNKNOWN)
        self.assertIs(classify("npm.CMD"), ToolIdentity.UNKNOWN)

    def test_explicit_evidence_method(self):
        evidence = ToolDetector().explicit_evidence("yarn")
        self.assertEqual(
            evidence, DetectionEvidence(ToolIdentity.YARN, "explicit command name")
        )


# ─────────────────────────────────────────────────────────────────────────────
# parse_user_agent()
# ─────────────────────────────────────────────────────────────────────────────

class TestParseUserAgent(unittest.TestCase):

    def test_real_agents(self):
        cases = {
            "pnpm/8.15.1 npm/? node/v20.11.0 linux x64": ToolIdentity.PNPM,
            "yarn/1.22.19 npm/? node/v18.17.0 darwin arm64": ToolIdentity.YARN,
            "npm/10.2.4 node/v20.11.0 linux x64 workspaces/false": ToolIdentity.NPM,
            "bun/1.0.25 npm/? node/v21.6.0 linux x64": ToolIdentity.BUN,
        }
        for agent, expected in cases.items():
            with self.subTest(agent=agent):
                self.assertIs(parse_user_agent(agent), expected)

    def test_only_first_token_counts(self):
        """Every tool advertises npm/? later on; that must not win."""
        self.assertIs(parse_user_agent("pnpm/9.0.0 npm/?"), ToolIdentity.PNPM)

    def test_empty_or_foreign_agent(self):
        self.assertIs(parse_user_agent(""), ToolIdentity.UNKNOWN)
        self.assertIs(parse_user_agent("   "), ToolIdentity.UNKNOWN)
        self.assertIs(parse_user_agent("deno/1.40.0"), ToolIdentity.UNKNOWN)


# ─────────────────────────────────────────────────────────────────────────────
# infer_ambient_tool()
# ─────────────────────────────────────────────────────────────────────────────

class TestInferAmbientTool(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.cwd = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def _touch(self, name: str) -> None:
        (self.cwd / name).write_text("")

    def _detector(self, environ=None, required=ToolIdentity.PNPM):
        return ToolDetector(required, environ=environ or {}, cwd=self.cwd)

    def test_no_signals_falls_back_to_unknown(self):
        evidence = self._detector().infer_ambient_tool()
        self.assertEqual(evidence, DetectionEvidence(ToolIdentity.UNKNOWN, "fallback"))

    def test_user_agent_signal(self):
        env = {"npm_config_user_agent": "yarn/1.22.19 npm/? node/v18.17.0"}
        evidence = self._detector(env).infer_ambient_tool()
        self.assertEqual(evidence, DetectionEvidence(ToolIdentity.YARN, "user agent"))

    def test_user_agent_beats_lock_file(self):
        self._touch("pnpm-lock.yaml")
        env = {"npm_config_user_agent": "npm/10.2.4 node/v20.11.0"}
        evidence = self._detector(env).infer_ambient_tool()
        self.assertIs(evidence.identity, ToolIdentity.NPM)
        self.assertEqual(evidence.method, "user agent")

    def test_only_alternate_lock_file(self):
        self._touch("package-lock.json")
        evidence = self._detector().infer_ambient_tool()
        self.assertEqual(
            evidence,
            DetectionEvidence(ToolIdentity.NPM, "lock file (package-lock.json)"),
        )

    def test_unrecognised_user_agent_defers_to_lock_file(self):
        self._touch("yarn.lock")
        env = {"npm_config_user_agent": "deno/1.40.0"}
        evidence = self._detector(env).infer_ambient_tool()
        self.assertEqual(evidence, DetectionEvidence(ToolIdentity.YARN, "lock file (yarn.lock)"))

    def test_required_tool_lock_file_checked_first(self):
        self._touch("package-lock.json")
        self._touch("pnpm-lock.yaml")
        self._touch("yarn.lock")
        pnpm = self._detector(required=ToolIdentity.PNPM).infer_ambient_tool()
        self.assertIs(pnpm.identity, ToolIdentity.PNPM)
        npm = self._detector(required=ToolIdentity.NPM).infer_ambient_tool()
        self.assertIs(npm.identity, ToolIdentity.NPM)

    def test_alternates_in_fixed_order(self):
        self._touch("package-lock.json")
        self._touch("yarn.lock")
        evidence = self._detector(required=ToolIdentity.BUN).infer_ambient_tool()
        self.assertIs(evidence.identity, ToolIdentity.YARN)

    def test_directory_named_like_lock_file_is_ignored(self):
        (self.cwd / "yarn.lock").mkdir()
        evidence = self._detector().infer_ambient_tool()
        self.assertIs(evidence.identity, ToolIdentity.UNKNOWN)

    def test_short_circuits_after_first_signal(self):
        env = {"npm_config_user_agent": "pnpm/8.15.1 npm/?"}
        detector = self._detector(env)
        detector.from_lock_files = MagicMock()
        evidence = detector.infer_ambient_tool()
        self.assertIs(evidence.identity, ToolIdentity.PNPM)
        detector.from_lock_files.assert_not_called()

    def test_signal_source_order_is_explicit(self):
        detector = self._detector()
        self.assertEqual(
            [source.__name__ for source in detector.signal_sources],
            ["from_user_agent", "from_lock_files"],
        )


if __name__ == "__main__":
    unittest.main(verbosity=2)
