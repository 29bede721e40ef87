import sys
import tempfile
import unittest
from pathlib import Path

from deploy_orchestrator.build import BuildRunner
from deploy_orchestrator.exceptions import BuildFailed


class BuildRunnerTests(unittest.TestCase):
    def test_runs_in_workdir(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            runner = BuildRunner(
                [sys.executable, "-c", "open('target.war', 'w').write('x')"], tmp
            )
            result = runner.run()
            self.assertTrue(result.ok)
            self.assertTrue((Path(tmp) / "target.war").exists())

    def test_string_command_is_split(self) -> None:
        runner = BuildRunner("mvn -B package -DskipTests")
        self.assertEqual(runner.command, ["mvn", "-B", "package", "-DskipTests"])

    def test_non_zero_exit_raises_with_stderr(self) -> None:
        runner = BuildRunner(
            [sys.executable, "-c", "import sys; sys.stderr.write('BUILD FAILURE'); sys.exit(1)"]
        )
        with self.assertRaises(BuildFailed) as ctx:
            runner.run()
        self.assertIn("BUILD FAILURE", str(ctx.exception))

    def test_missing_tool_raises(self) -> None:
        with self.assertRaises(BuildFailed):
            BuildRunner(["definitely-not-a-build-tool-xyz"]).run()


if __name__ == "__main__":
    unittest.main()
