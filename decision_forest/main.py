"""Command line entry point: train a random forest, apply one, or distribute a file.

Usage:
    python -m decision_forest.main train data.tbl --label-col class --model forest.joblib
    python -m decision_forest.main predict forest.joblib in.tbl out.tbl --labels a,b --meta id
    python -m decision_forest.main distribute data.tbl mixed.tbl --label-col class --balanced 2
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Add project root to path
_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from decision_forest.data.distributed import distribute_file
from decision_forest.data.io import read_label_names, read_tabbed_dataset
from decision_forest.evaluation.metrics import evaluate_predictions
from decision_forest.model.parms import Parms
from decision_forest.model.random_forest import RandomForest, get_useful_features, set_seed
from decision_forest.model.randomizers import SamplingMethod
from decision_forest.training.callbacks import TreeProgressLogger
from decision_forest.training.run_log import write_trial_marker, write_trial_report
from decision_forest.utils import LOG_LEVELS, get_logger, setup_logging

logger = get_logger(__name__)


def _split_list(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def build_parms(args: argparse.Namespace, n_rows: int, n_inputs: int) -> Parms:
    """Start from shape-derived hyperparameters and apply command-line overrides."""
    parms = Parms.from_shape(n_rows, n_inputs)
    if args.trees is not None:
        parms = parms.with_num_trees(args.trees)
    if args.features is not None:
        parms = parms.with_num_features(args.features)
    if args.examples is not None:
        parms = parms.with_num_examples(args.examples)
    if args.max_depth is not None:
        parms = parms.with_max_depth(args.max_depth)
    if args.leaf_limit is not None:
        parms = parms.with_leaf_limit(args.leaf_limit)
    if args.method is not None:
        parms = parms.with_method(args.method.upper())
    return parms


def run_train(args: argparse.Namespace) -> int:
    """Train, optionally evaluate, and save a forest."""
    if args.seed is not None:
        set_seed(args.seed)
    meta_cols = _split_list(args.meta)
    labels = _split_list(args.labels) or read_label_names(args.input, args.label_col)
    dataset, feature_names, _ = read_tabbed_dataset(args.input, args.label_col, labels, meta_cols)
    useful = get_useful_features(dataset)
    logger.info("%d of %d features are useful", len(useful), dataset.num_inputs)

    parms = build_parms(args, dataset.num_examples, dataset.num_inputs)
    logger.info("Hyperparameters: %s", parms)
    forest = RandomForest(
        dataset,
        parms,
        reporter=TreeProgressLogger(log_every=args.log_every),
        n_jobs=args.n_jobs,
    )
    forest.save(args.model)

    report_lines = [f"Hyperparameters: {parms}"]
    if args.testing is not None:
        test_set, _, _ = read_tabbed_dataset(args.testing, args.label_col, labels, meta_cols)
        metrics = evaluate_predictions(forest.predict(test_set.features), test_set.labels)
        for name, value in metrics.items():
            logger.info("Test %s = %.4f", name, value)
            report_lines.append(f"{name} = {value:.4f}")

    impact = forest.compute_impact()
    ranked = sorted(zip(feature_names, impact), key=lambda pair: pair[1], reverse=True)
    for name, value in ranked[: args.top_impact]:
        report_lines.append(f"impact {name} = {value:.6f}")

    if args.trial_log is not None:
        write_trial_marker(args.trial_log, "RandomForest")
        write_trial_report(args.trial_log, f"Model {args.model}\n", "\n".join(report_lines))
    return 0


def run_predict(args: argparse.Namespace) -> int:
    """Apply a saved forest to a tab-delimited file."""
    forest = RandomForest.load(args.model)
    forest.make_predictions(
        args.input,
        args.output,
        _split_list(args.meta),
        _split_list(args.labels),
        exclude_cols=_split_list(args.exclude),
    )
    return 0


def run_distribute(args: argparse.Namespace) -> int:
    """Rewrite a tab-delimited file with its label values spread through it."""
    count = distribute_file(
        args.input,
        args.output,
        args.label_col,
        continuous=args.continuous,
        balanced=args.balanced,
        seed=args.seed,
    )
    logger.info("Distributed %d rows by %s", count, args.label_col)
    return 0

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Random forest classifier")
    parser.add_argument(
        "--log-level",
        default="INFO",
        type=str.upper,
        choices=LOG_LEVELS,
        help="Logging level",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    train = subparsers.add_parser("train", help="Train a forest from a tab-delimited file")
    train.add_argument("input", type=Path, help="Training set")
    train.add_argument("--label-col", required=True, help="Name of the label column")
    train.add_argument("--labels", help="Comma-separated label names, in label-column order")
    train.add_argument("--meta", help="Comma-separated metadata columns")
    train.add_argument("--model", type=Path, required=True, help="Output model file")
    train.add_argument("--testing", type=Path, help="Optional testing set")
    train.add_argument("--trial-log", type=Path, help="Trial log to append the results to")
    train.add_argument("--seed", type=int, help="Process-wide random seed")
    train.add_argument("--trees", type=int, help="Number of trees")
    train.add_argument("--features", type=int, help="Features tested at each node")
    train.add_argument("--examples", type=int, help="Examples per tree")
    train.add_argument("--max-depth", type=int, help="Maximum tree depth")
    train.add_argument("--leaf-limit", type=int, help="Leaf size limit")
    train.add_argument(
        "--method",
        choices=[m.value for m in SamplingMethod] + [m.value.lower() for m in SamplingMethod],
        help="Sampling method",
    )
    train.add_argument("--n-jobs", type=int, default=None, help="Worker threads (-1 = all cores)")
    train.add_argument("--log-every", type=int, default=10, help="Log progress every N trees")
    train.add_argument(
        "--top-impact", type=int, default=10, help="Features listed in the trial log"
    )
    train.set_defaults(func=run_train)

    predict = subparsers.add_parser("predict", help="Apply a saved forest to a file")
    predict.add_argument("model", type=Path, help="Saved model file")
    predict.add_argument("input", type=Path, help="Input file")
    predict.add_argument("output", type=Path, help="Output file")
    predict.add_argument("--labels", required=True, help="Comma-separated label names")
    predict.add_argument("--meta", help="Comma-separated metadata columns")
    predict.add_argument("--exclude", help="Comma-separated columns to ignore")
    predict.set_defaults(func=run_predict)

    distribute = subparsers.add_parser(
        "distribute", help="Spread the label values of a file evenly through it"
    )
    distribute.add_argument("input", type=Path, help="Input file")
    distribute.add_argument("output", type=Path, help="Output file")
    distribute.add_argument("--label-col", required=True, help="Name of the label column")
    distribute.add_argument(
        "--continuous", action="store_true", help="Label is numeric; group it into ranges"
    )
    distribute.add_argument(
        "--balanced",
        type=float,
        default=0.0,
        help="Maximum class size as a multiple of the smallest class (0 = no limit)",
    )
    distribute.add_argument("--seed", type=int, help="Shuffle seed")
    distribute.set_defaults(func=run_distribute)
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the command line interface."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
