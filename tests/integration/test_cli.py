"""Integration tests for the command line entry points.

Tests the complete workflow from generated parquet files through the CLI
to the printed ranking and the exported CSV.
"""

import pandas as pd
import pytest

from campaign_response.cli import generate_cli, main, score_cli

pytestmark = pytest.mark.integration


@pytest.fixture
def generated_dir(tmp_path):
    out_dir = tmp_path / "data"
    assert generate_cli([str(out_dir), "--customers", "300", "--seed", "21"]) == 0
    return out_dir


def _inputs(directory):
    return [
        str(directory / "transactions.parquet"),
        str(directory / "demographics.parquet"),
        str(directory / "campaign_sample.parquet"),
    ]


def test_generate_writes_three_files(generated_dir):
    assert sorted(p.name for p in generated_dir.iterdir()) == [
        "campaign_sample.parquet",
        "demographics.parquet",
        "transactions.parquet",
    ]


def test_score_prints_top_rows_and_exports_csv(generated_dir, tmp_path, capsys):
    output = tmp_path / "out" / "ranked.csv"

    exit_code = score_cli(_inputs(generated_dir) + ["--top", "5", "--output", str(output)])

    assert exit_code == 0
    printed = capsys.readouterr().out.strip().splitlines()
    assert printed[0].split() == ["ID", "probability"]
    assert len(printed) == 6

    ranked = pd.read_csv(output)
    assert ranked.columns.tolist() == ["ID", "probability"]
    assert ranked["probability"].is_monotonic_decreasing
    assert len(ranked) > 5


def test_score_with_std_error(generated_dir, capsys):
    exit_code = score_cli(_inputs(generated_dir) + ["--with-std-error", "--top", "3"])

    assert exit_code == 0
    header = capsys.readouterr().out.strip().splitlines()[0]
    assert header.split() == ["ID", "probability", "std_error"]


def test_score_explain_prints_plan(generated_dir, capsys):
    assert score_cli(_inputs(generated_dir) + ["--explain", "--top", "1"]) == 0

    assert "JOIN" in capsys.readouterr().out


def test_score_missing_file_returns_error(generated_dir, tmp_path):
    inputs = _inputs(generated_dir)
    inputs[1] = str(tmp_path / "missing.parquet")

    assert score_cli(inputs) == 1


def test_score_text_price_returns_error(generated_dir, tmp_path):
    """A transactions file with a text price fails cleanly with exit code 1."""
    bad = tmp_path / "transactions.parquet"
    pd.DataFrame(
        {"cust_id": ["C1"], "day_num": [1], "extended_price": ["10.00"]}
    ).to_parquet(bad, index=False)
    inputs = _inputs(generated_dir)
    inputs[0] = str(bad)

    assert score_cli(inputs) == 1


def test_main_dispatches_subcommand(generated_dir, capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["score"] + _inputs(generated_dir) + ["--top", "2"])

    assert excinfo.value.code == 0


def test_main_unknown_command():
    with pytest.raises(SystemExit) as excinfo:
        main(["bogus"])

    assert excinfo.value.code == 2
