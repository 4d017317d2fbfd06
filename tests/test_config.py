"""
tests/test_config.py

Unit tests for GuardConfig: environment parsing, validation and .env loading.
"""

import os
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from policy_engine.base import ConfigurationError, ToolIdentity
from policy_engine.config import GuardConfig, load_environment


class TestGuardConfig(unittest.TestCase):

    def test_defaults(self):
        config = GuardConfig.from_env({})
        self.assertIs(config.required_tool, ToolIdentity.PNPM)
        self.assertTrue(config.allowlist.is_allowed("git"))
        self.assertFalse(config.allowlist.is_allowed("pnpm"))
        self.assertFalse(config.allowlist.is_allowed("npm"))
        self.assertEqual(config.min_version, "8.0.0")
        self.assertTrue(config.enforce)
        self.assertFalse(config.quiet)
        self.assertEqual(config.log_level, "WARNING")

    def test_required_tool_from_env(self):
        config = GuardConfig.from_env({"PMGUARD_REQUIRED_PM": "Yarn"})
        self.assertIs(config.required_tool, ToolIdentity.YARN)
        self.assertFalse(config.allowlist.is_allowed("yarn"))
        self.assertFalse(config.allowlist.is_allowed("pnpm"))

    def test_cli_overrides_env(self):
        env = {"PMGUARD_REQUIRED_PM": "yarn", "PMGUARD_LOG_LEVEL": "INFO"}
        config = GuardConfig.from_env(env, required="npm", quiet=True, log_level="debug")
        self.assertIs(config.required_tool, ToolIdentity.NPM)
        self.assertTrue(config.quiet)
        self.assertEqual(config.log_level, "DEBUG")

    def test_unsupported_or_missing_required_tool(self):
        for value in ("pip", "unknown", "", "   "):
            with self.subTest(value=value):
                with self.assertRaises(ConfigurationError):
                    GuardConfig.from_env({"PMGUARD_REQUIRED_PM": value})

    def test_allowed_commands_replace_defaults(self):
        config = GuardConfig.from_env({"PMGUARD_ALLOWED_COMMANDS": "git, ls"})
        self.assertEqual(config.allowlist.names, frozenset({"git", "ls"}))

    def test_extra_allowed_commands(self):
        config = GuardConfig.from_env({"PMGUARD_EXTRA_ALLOWED": "make,docker"})
        self.assertTrue(config.allowlist.is_allowed("make"))
        self.assertTrue(config.allowlist.is_allowed("git"))

    def test_malformed_allowlist(self):
        for value in ("git,,ls", "git,", ",", "git status,ls"):
            with self.subTest(value=value):
                with self.assertRaises(ConfigurationError):
                    GuardConfig.from_env({"PMGUARD_ALLOWED_COMMANDS": value})

    def test_boolean_toggles(self):
        config = GuardConfig.from_env({"PMGUARD_ENFORCE": "0", "PMGUARD_QUIET": "yes"})
        self.assertFalse(config.enforce)
        self.assertTrue(config.quiet)
        with self.assertRaises(ConfigurationError):
            GuardConfig.from_env({"PMGUARD_ENFORCE": "maybe"})

    def test_invalid_min_version_and_log_level(self):
        with self.assertRaises(ConfigurationError):
            GuardConfig.from_env({"PMGUARD_MIN_VERSION": "latest"})
        with self.assertRaises(ConfigurationError):
            GuardConfig.from_env({"PMGUARD_LOG_LEVEL": "LOUD"})

    def test_configuration_error_exit_code(self):
        self.assertEqual(ConfigurationError.exit_code, 78)


class TestLoadEnvironment(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.project = Path(self._tmp.name)

    def test_no_env_file(self):
        self.assertFalse(load_environment(self.project))

    def test_env_file_seeds_environment(self):
        (self.project / ".env").write_text("PMGUARD_REQUIRED_PM=yarn\n")
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop("PMGUARD_REQUIRED_PM", None)
            self.assertTrue(load_environment(self.project))
            self.assertEqual(os.environ["PMGUARD_REQUIRED_PM"], "yarn")

    def test_existing_environment_wins(self):
        (self.project / ".env").write_text("PMGUARD_REQUIRED_PM=yarn\n")
        with patch.dict(os.environ, {"PMGUARD_REQUIRED_PM": "bun"}):
            load_environment(self.project)
            self.assertEqual(os.environ["PMGUARD_REQUIRED_PM"], "bun")


if __name__ == "__main__":
    unittest.main(verbosity=2)
