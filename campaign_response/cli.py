"""Command line entry points for the campaign response toolkit."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from campaign_response.errors import ResponsePipelineError
from campaign_response.foundation.loader import ColumnarFormat
from campaign_response.foundation.records import SourceColumns
from campaign_response.foundation.session import SessionConfig
from campaign_response.pandas import scored_to_dataframe
from campaign_response.pipeline import PipelineConfig, run_pipeline
from campaign_response.synthetic import (
    SyntheticConfig,
    generate_campaign_dataset,
    write_campaign_dataset,
)

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        force=True,
    )


def score_cli(argv: list[str] | None = None) -> int:
    """Fit the response model on the campaign sample and rank everyone else.

    This command runs the complete pipeline:
    1. Loads transactions, demographics and the campaign sample
    2. Aggregates trips and spend per customer
    3. Joins features with demographics and splits the campaign sample
       (training) from the remaining customers (scoring)
    4. Fits a logistic response model and ranks the scoring customers by
       predicted response probability

    Args:
        argv: Command line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, 1 for a pipeline error)
    """
    parser = argparse.ArgumentParser(
        prog="campaign-response score",
        description="Rank customers outside the campaign sample by response probability",
    )
    parser.add_argument("transactions", type=Path, help="Transaction line items file")
    parser.add_argument("demographics", type=Path, help="Customer demographics file")
    parser.add_argument("sample", type=Path, help="Campaign sample file with responses")
    parser.add_argument(
        "--format",
        dest="file_format",
        choices=[item.value for item in ColumnarFormat],
        default=ColumnarFormat.PARQUET.value,
        help="Columnar format of all three input files (default: parquet)",
    )
    parser.add_argument(
        "--demographics-id-column",
        default=SourceColumns.demographics_id,
        help="Identifier column in the demographics file (default: cust_id)",
    )
    parser.add_argument(
        "--top",
        type=int,
        help="Only print the N most likely responders",
    )
    parser.add_argument(
        "--with-std-error",
        action="store_true",
        help="Include the standard error of each probability",
    )
    parser.add_argument(
        "--output",
        type=Path,
        help="Optional path for exporting the full ranking as CSV",
    )
    parser.add_argument(
        "--explain",
        action="store_true",
        help="Print the engine plan of the features/demographics join",
    )
    parser.add_argument(
        "--threads",
        type=int,
        help="Query engine worker threads (default: one per core)",
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default="INFO",
        help="Logging level (default: INFO)",
    )

    args = parser.parse_args(argv)
    _configure_logging(args.log_level)
    if args.top is not None and args.top < 1:
        parser.error("--top must be positive")

    config = PipelineConfig(
        transactions_path=args.transactions,
        demographics_path=args.demographics,
        campaign_sample_path=args.sample,
        file_format=ColumnarFormat(args.file_format),
        columns=SourceColumns(demographics_id=args.demographics_id_column),
        session=SessionConfig(threads=args.threads),
        with_std_error=args.with_std_error,
        explain=args.explain,
    )
    try:
        result = run_pipeline(config)
    except ResponsePipelineError as exc:
        logger.error(f"Pipeline failed: {exc}")
        return 1

    if result.join_plan is not None:
        print(result.join_plan)
        print()

    ranked = scored_to_dataframe(result.ranked, id_column=config.columns.canonical_id)
    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        ranked.to_csv(args.output, index=False)
        logger.info(f"Exported {len(ranked)} scored customers to {args.output}")

    shown = ranked.head(args.top) if args.top else ranked
    print(shown.to_string(index=False))
    return 0


def generate_cli(argv: list[str] | None = None) -> int:
    """Write a synthetic campaign dataset as three parquet files."""

    parser = argparse.ArgumentParser(
        prog="campaign-response generate", description=generate_cli.__doc__
    )
    parser.add_argument("output_dir", type=Path, help="Directory for the parquet files")
    parser.add_argument(
        "--customers",
        type=int,
        default=SyntheticConfig.n_customers,
        help="Number of customers (default: 500)",
    )
    parser.add_argument(
        "--sample-rate",
        type=float,
        default=SyntheticConfig.sample_rate,
        help="Share of customers in the campaign sample (default: 0.4)",
    )
    parser.add_argument("--seed", type=int, help="Random seed")
    parser.add_argument(
        "--log-level", choices=LOG_LEVELS, default="INFO", help="Logging level"
    )

    args = parser.parse_args(argv)
    _configure_logging(args.log_level)
    try:
        dataset = generate_campaign_dataset(
            SyntheticConfig(
                n_customers=args.customers,
                sample_rate=args.sample_rate,
                seed=args.seed,
            )
        )
    except ValueError as exc:
        parser.error(str(exc))
    paths = write_campaign_dataset(dataset, args.output_dir)
    for name, path in paths.items():
        logger.info(f"Wrote {name} to {path}")
    return 0


COMMANDS = {"score": score_cli, "generate": generate_cli}


def main(argv: list[str] | None = None) -> None:
    argv = list(sys.argv[1:] if argv is None else argv)
    if not argv or argv[0] not in COMMANDS:
        print(
            f"usage: campaign-response {{{','.join(COMMANDS)}}} ...",
            file=sys.stderr,
        )
        raise SystemExit(2)
    raise SystemExit(COMMANDS[argv[0]](argv[1:]))


if __name__ == "__main__":  # pragma: no cover
    main()
