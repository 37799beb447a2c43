"""
Tests for the flutterbuild command line entry point.
"""
import io
import json
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path

from core.command_runner import RecordingCommandRunner
from flutterbuild.src.cli import main

IDENTITY = "iPhone Developer: John Doe (ABCDE12345)"


class TestMain(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name).resolve()
        self.project = self.root / "app"
        self.deploy = self.root / "deploy"
        apk_dir = self.project / "build" / "app" / "outputs" / "flutter-apk"
        apk_dir.mkdir(parents=True)
        (apk_dir / "app-release.apk").write_text("apk")
        (apk_dir / "app-release.apk.sha1").write_text("sha")
        self.settings = self.root / ".flutter_settings"
        self.env = {
            "HOME": str(self.root),
            "BITRISE_DEPLOY_DIR": str(self.deploy),
            "project_location": str(self.project),
            "platform": "android",
            "ios_output_pattern": "*build/ios/iphoneos/*.app",
            "android_output_pattern": "*build/app/outputs/flutter-apk/*.apk",
            "cache_level": "none",
        }

    def tearDown(self):
        self._tmp.cleanup()

    def _main(self, runner, env=None, argv=()):
        stdout, stderr = io.StringIO(), io.StringIO()
        with redirect_stdout(stdout), redirect_stderr(stderr):
            code = main(["--settings", str(self.settings), *argv], env=env or self.env, runner=runner)
        return code, stdout.getvalue(), stderr.getvalue()

    def test_android_build_and_export(self):
        runner = RecordingCommandRunner()
        code, out, _ = self._main(runner)

        self.assertEqual(code, 0)
        flutter = runner.commands_for("flutter")
        self.assertEqual(len(flutter), 1)
        self.assertEqual(flutter[0].command, ["flutter", "build", "apk"])
        self.assertEqual(flutter[0].cwd, str(self.project))
        self.assertTrue((self.deploy / "app-release.apk").is_file())

        exported = {record.command[-1]: record.input for record in runner.commands_for("envman")}
        self.assertEqual(exported["BITRISE_APK_PATH"], str(self.deploy / "app-release.apk"))
        self.assertEqual(exported["BITRISE_APK_PATH_LIST"], str(self.deploy / "app-release.apk"))
        self.assertIn("[DONE] - $BITRISE_APK_PATH_LIST", out)
        self.assertEqual(runner.commands_for("security"), [])

    def test_missing_required_input(self):
        env = dict(self.env)
        del env["android_output_pattern"]
        runner = RecordingCommandRunner()
        code, _, err = self._main(runner, env)

        self.assertEqual(code, 1)
        self.assertIn("android_output_pattern", err)
        self.assertEqual(runner.commands, [])

    def test_no_matching_artifacts(self):
        env = dict(self.env, android_output_type="appbundle")
        code, _, err = self._main(RecordingCommandRunner(), env)

        self.assertEqual(code, 1)
        self.assertIn("did not match any artifacts", err)

    def test_build_failure(self):
        runner = RecordingCommandRunner(responses={"flutter": (1, "", "")})
        code, _, err = self._main(runner)

        self.assertEqual(code, 1)
        self.assertIn("Failed to build Android platform", err)
        self.assertEqual(runner.commands_for("envman"), [])

    def test_cache_failures_only_warn(self):
        env = dict(self.env, cache_level="all")
        code, out, _ = self._main(RecordingCommandRunner(), env)

        self.assertEqual(code, 0)
        self.assertIn("[WARN] Failed to collect flutter cache", out)

    def test_flutter_cache_paths_are_published(self):
        hosted = "/home/me/.pub-cache/hosted/pub.dev/async-2.11.0"
        (self.project / ".packages").write_text(f"async:file://{hosted}/lib/\napp:lib/\n")
        runner = RecordingCommandRunner()
        code, _, _ = self._main(runner, dict(self.env, cache_level="all"))

        self.assertEqual(code, 0)
        exported = {record.command[-1]: record.input for record in runner.commands_for("envman")}
        self.assertEqual(exported["BITRISE_CACHE_INCLUDE_PATHS"], hosted)

    def test_ios_without_identities_fails_before_building(self):
        runner = RecordingCommandRunner()
        code, _, err = self._main(runner, dict(self.env, platform="ios"))

        self.assertEqual(code, 1)
        self.assertIn("No codesign identities installed", err)
        self.assertEqual(runner.commands_for("flutter"), [])

    def test_ios_codesign_required(self):
        runner = RecordingCommandRunner(responses={
            "security": (0, f'  1) 0123456789ABCDEF "{IDENTITY}"\n', ""),
            "flutter": (1, "", "Code signing is required for product type 'Application'\n"),
        })
        env = dict(self.env, platform="ios", ios_codesign_identity=IDENTITY)
        code, out, err = self._main(runner, env)

        self.assertEqual(code, 1)
        self.assertIn("Invalid codesign identity is selected", out)
        self.assertIn("Failed to build iOS platform", err)
        self.assertEqual(json.loads(self.settings.read_text()), {"ios-signing-cert": IDENTITY})

        flutter = runner.commands_for("flutter")[0]
        self.assertEqual(flutter.command, ["flutter", "build", "ios", "--no-codesign"])
        self.assertEqual(flutter.input, "a")

    def test_debug_mode_enables_debug_output(self):
        env = dict(self.env, is_debug_mode="true", android_output_pattern="*.apk*")
        code, out, _ = self._main(RecordingCommandRunner(), env)

        self.assertEqual(code, 0)
        self.assertIn("[DEBUG]", out)

    def test_explicit_log_level_wins(self):
        env = dict(self.env, is_debug_mode="true")
        code, out, _ = self._main(RecordingCommandRunner(), env, argv=("--log", "warn"))

        self.assertEqual(code, 0)
        self.assertNotIn("[INFO]", out)
        self.assertNotIn("[DEBUG]", out)


if __name__ == "__main__":
    unittest.main()
