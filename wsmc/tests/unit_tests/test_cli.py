import os
import unittest

import click
import pandas as pd
from click.testing import CliRunner

from wsmc.cli import load_target, main
from wsmc.tests.utilities.models import UniformModel

TARGET = "wsmc.tests.utilities.models:uniform_target"


class TestLoadTarget(unittest.TestCase):

    def test_callable_target(self):
        model, distance, observed = load_target(TARGET)

        self.assertIsInstance(model, UniformModel)
        self.assertEqual(observed, 0.5)
        self.assertEqual(distance(0.75, observed), 0.25)

    def test_malformed_target(self):
        for target in ("wsmc.tests.utilities.models", ":uniform_target", "wsmc.not_a_module:target"):
            with self.subTest(target=target):
                with self.assertRaises(click.BadParameter):
                    load_target(target)

    def test_target_must_be_triple(self):
        with self.assertRaises(click.BadParameter):
            load_target("wsmc.tests.utilities.models:UniformModel")


class TestCli(unittest.TestCase):

    def setUp(self):
        self.runner = CliRunner()

    def test_run_resume_export(self):
        with self.runner.isolated_filesystem():
            result = self.runner.invoke(
                main,
                [
                    "run",
                    "-t",
                    TARGET,
                    "-o",
                    "run.h5",
                    "-n",
                    "40",
                    "-p",
                    "gaussian",
                    "--max-steps",
                    "3",
                    "--seed",
                    "7",
                ],
            )
            self.assertEqual(result.exit_code, 0, msg=result.output)
            self.assertTrue(os.path.exists("run.h5"))

            result = self.runner.invoke(
                main, ["resume", "-t", TARGET, "-i", "run.h5", "-o", "resumed.h5", "--extra-steps", "1"]
            )
            self.assertEqual(result.exit_code, 0, msg=result.output)

            result = self.runner.invoke(
                main, ["export", "-i", "resumed.h5", "-o", "particles.tsv", "-g", "trace.tsv", "--last-only"]
            )
            self.assertEqual(result.exit_code, 0, msg=result.output)

            particles = pd.read_csv("particles.tsv", sep="\t")
            self.assertEqual(len(particles), 40)
            self.assertTrue((particles["step"] == 4).all())
            self.assertIn("theta", particles.columns)

            trace = pd.read_csv("trace.tsv", sep="\t")
            self.assertEqual(trace["step"].tolist(), [1, 2, 3, 4])
            self.assertTrue((trace["threshold"].diff().dropna() <= 0).all())

    def test_run_requires_bound(self):
        with self.runner.isolated_filesystem():
            result = self.runner.invoke(main, ["run", "-t", TARGET, "-o", "run.h5"])

            self.assertNotEqual(result.exit_code, 0)
            self.assertFalse(os.path.exists("run.h5"))

    def test_invalid_minimum_diversity(self):
        with self.runner.isolated_filesystem():
            result = self.runner.invoke(
                main, ["run", "-t", TARGET, "-o", "run.h5", "-d", "0", "--max-steps", "2"]
            )

            self.assertNotEqual(result.exit_code, 0)

    def test_negative_simulation_budget(self):
        with self.runner.isolated_filesystem():
            result = self.runner.invoke(main, ["run", "-t", TARGET, "-o", "run.h5", "-s", "-1"])

            self.assertNotEqual(result.exit_code, 0)
            self.assertIn("non-negative", result.output)
            self.assertFalse(os.path.exists("run.h5"))


if __name__ == "__main__":
    unittest.main()
