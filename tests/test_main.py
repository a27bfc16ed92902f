"""Tests for decision_forest/main.py command line interface."""

from __future__ import annotations

import argparse

import pytest

from decision_forest.main import build_parms, build_parser, main
from decision_forest.model.random_forest import RandomForest
from decision_forest.model.randomizers import SamplingMethod
from decision_forest.training.run_log import JOB_START_MARKER


def _train_args(tabbed_file, tmp_path, *extra):
    return [
        "train",
        str(tabbed_file),
        "--label-col",
        "class",
        "--meta",
        "id",
        "--model",
        str(tmp_path / "forest.joblib"),
        "--seed",
        "3",
        "--trees",
        "10",
        "--n-jobs",
        "2",
        *extra,
    ]


class TestBuildParms:
    def test_overrides_applied(self):
        args = build_parser().parse_args(
            ["train", "in.tbl", "--label-col", "c", "--model", "m", "--trees", "7", "--method", "unique"]
        )

        parms = build_parms(args, 500, 16)

        assert parms.num_trees == 7
        assert parms.method == SamplingMethod.UNIQUE
        assert parms.num_examples == 100
        assert parms.num_features == 5

    def test_no_overrides(self):
        args = argparse.Namespace(
            trees=None, features=None, examples=None, max_depth=None, leaf_limit=None, method=None
        )
        parms = build_parms(args, 100, 4)
        assert parms.num_trees == 50
        assert parms.max_depth == 8


class TestMain:
    """Test cases for main()."""

    def test_train_then_predict(self, tabbed_file, tmp_path):
        model_path = tmp_path / "forest.joblib"
        out_file = tmp_path / "predictions.tbl"

        assert main(_train_args(tabbed_file, tmp_path)) == 0
        assert len(RandomForest.load(model_path)) == 10

        code = main(
            [
                "predict",
                str(model_path),
                str(tabbed_file),
                str(out_file),
                "--labels",
                "high,low",
                "--meta",
                "id",
                "--exclude",
                "class",
            ]
        )

        lines = out_file.read_text(encoding="utf-8").splitlines()
        assert code == 0
        assert lines[0] == "id\tpredicted"
        assert len(lines) == 121
        assert {line.split("\t")[1] for line in lines[1:]} <= {"high", "low"}

    def test_trial_log_written(self, tabbed_file, tmp_path):
        trial_log = tmp_path / "trials.log"

        main(_train_args(tabbed_file, tmp_path, "--testing", str(tabbed_file), "--trial-log", str(trial_log)))

        text = trial_log.read_text(encoding="utf-8")
        assert text.startswith(JOB_START_MARKER)
        assert "accuracy = " in text
        assert "impact x0 = " in text

    def test_same_seed_same_model(self, tabbed_file, tmp_path):
        first_dir = tmp_path / "a"
        second_dir = tmp_path / "b"
        main(_train_args(tabbed_file, first_dir))
        main(_train_args(tabbed_file, second_dir))

        first = RandomForest.load(first_dir / "forest.joblib")
        second = RandomForest.load(second_dir / "forest.joblib")

        assert list(first.compute_impact()) == list(second.compute_impact())

    def test_unknown_log_level_rejected(self, tabbed_file, tmp_path, capsys):
        with pytest.raises(SystemExit):
            main(["--log-level", "FOO", *_train_args(tabbed_file, tmp_path)])

        assert "invalid choice" in capsys.readouterr().err
        assert not (tmp_path / "forest.joblib").exists()

    def test_log_level_case_insensitive(self):
        args = build_parser().parse_args(
            ["--log-level", "warning", "predict", "m", "i", "o", "--labels", "a"]
        )
        assert args.log_level == "WARNING"

    def test_distribute(self, tabbed_file, tmp_path):
        out_file = tmp_path / "mixed.tbl"

        code = main(
            [
                "distribute",
                str(tabbed_file),
                str(out_file),
                "--label-col",
                "class",
                "--balanced",
                "1",
                "--seed",
                "4",
            ]
        )

        labels = [line.split("\t")[-1] for line in out_file.read_text().splitlines()[1:]]
        assert code == 0
        assert labels.count("high") == labels.count("low")

    def test_subcommand_required(self):
        with pytest.raises(SystemExit):
            main([])
