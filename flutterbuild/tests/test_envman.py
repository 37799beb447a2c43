"""
Tests for output publication through envman.
"""
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock

from core.command_runner import CommandError, CommandResult, RecordingCommandRunner
from flutterbuild.src.envman import EnvmanPublisher
from flutterbuild.src.errors import ExportError, PublishError


class TestEnvmanPublisher(unittest.TestCase):
    def setUp(self):
        self.runner = RecordingCommandRunner()
        self.publisher = EnvmanPublisher(self.runner)

    def test_value_is_passed_on_stdin(self):
        self.publisher.export("BITRISE_APK_PATH_LIST", "/deploy/a.apk\n/deploy/b.apk")

        record = self.runner.commands[0]
        self.assertEqual(record.command, ["envman", "add", "--key", "BITRISE_APK_PATH_LIST"])
        self.assertEqual(record.input, "/deploy/a.apk\n/deploy/b.apk")
        self.assertEqual(
            self.publisher.exported, {"BITRISE_APK_PATH_LIST": "/deploy/a.apk\n/deploy/b.apk"})

    def test_failure_is_wrapped(self):
        runner = MagicMock()
        runner.run.side_effect = CommandError(
            CommandResult(command=["envman"], returncode=1, stdout="", stderr="boom"))
        with self.assertRaises(PublishError) as ctx:
            EnvmanPublisher(runner).export("KEY", "value")
        self.assertIn("KEY", str(ctx.exception))

    def test_missing_executable_is_wrapped(self):
        runner = MagicMock()
        runner.run.side_effect = FileNotFoundError("envman")
        with self.assertRaises(PublishError):
            EnvmanPublisher(runner).export("KEY", "value")


class TestExportOutputFile(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.runner = RecordingCommandRunner()
        self.publisher = EnvmanPublisher(self.runner)

    def tearDown(self):
        self._tmp.cleanup()

    def test_copies_then_publishes(self):
        source = self.root / "app-release.apk"
        source.write_text("apk")
        destination = self.root / "deploy" / "app-release.apk"

        result = self.publisher.export_output_file(source, destination, "BITRISE_APK_PATH")

        self.assertEqual(result, destination)
        self.assertEqual(destination.read_text(), "apk")
        self.assertEqual(self.publisher.exported["BITRISE_APK_PATH"], str(destination))

    def test_same_path_is_not_copied(self):
        source = self.root / "app.apk"
        source.write_text("apk")
        self.publisher.export_output_file(source, source, "BITRISE_APK_PATH")
        self.assertEqual(source.read_text(), "apk")
        self.assertEqual(len(self.runner.commands), 1)

    def test_missing_source_raises_before_publishing(self):
        with self.assertRaises(ExportError):
            self.publisher.export_output_file(
                self.root / "missing.apk", self.root / "deploy" / "missing.apk", "BITRISE_APK_PATH")
        self.assertEqual(self.runner.commands, [])


if __name__ == "__main__":
    unittest.main()
