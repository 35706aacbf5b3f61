"""Tests for the run_statement_ingestion command-line runner."""

import json
import os

import pytest

import run_statement_ingestion
from conftest import make_csv


@pytest.fixture
def cli_env(monkeypatch, tmp_path):
    # main() flattens settings into os.environ; register them so they are restored.
    for key in ("CONTEXT_STORE", "OUTPUT_DIR", "DEBUG"):
        monkeypatch.setenv(key, "")
    monkeypatch.delenv("KEYWORD_MAPPING_CONFIG", raising=False)
    store_path = str(tmp_path / "context.json")
    base_args = ["--config", str(tmp_path / "no_settings.json"), "--store", store_path]
    return base_args, store_path


def _write_statement(tmp_path, name, rows):
    path = tmp_path / name
    path.write_bytes(make_csv(rows))
    return str(path)


HOLDINGS = [["Symbol", "Qty", "Avg. Price", "LTP"], ["INFY", "10", "1500", "1600"], ["TCS", "2", "3000", "3500"]]


class TestMain:
    def test_no_inputs(self, cli_env, capsys):
        base_args, _ = cli_env
        assert run_statement_ingestion.main(base_args) == 2
        assert "No input files" in capsys.readouterr().err

    def test_ingest_and_summary(self, cli_env, tmp_path, capsys):
        base_args, store_path = cli_env
        path = _write_statement(tmp_path, "zerodha.csv", HOLDINGS)
        assert run_statement_ingestion.main([path, "--source", "zerodha"] + base_args) == 0
        summary = json.loads(capsys.readouterr().out)
        assert summary["accounts"] == ["acc_node_zerodha"]
        assert summary["holdings"] == 2
        assert summary["metrics"]["current_value"] == 23000
        assert os.path.isfile(store_path)

    def test_default_source_is_agent(self, cli_env, tmp_path, capsys):
        base_args, _ = cli_env
        path = _write_statement(tmp_path, "h.csv", HOLDINGS)
        assert run_statement_ingestion.main([path] + base_args) == 0
        assert json.loads(capsys.readouterr().out)["accounts"] == ["acc_node_agent"]

    def test_all_inputs_fail(self, cli_env, tmp_path, capsys):
        base_args, store_path = cli_env
        empty = _write_statement(tmp_path, "empty.csv", [["foo", "bar"], ["1", "2"]])
        missing = str(tmp_path / "missing.csv")
        assert run_statement_ingestion.main([empty, missing] + base_args) == 3
        err = capsys.readouterr().err
        assert "No investment records found in the file." in err
        assert not os.path.exists(store_path)

    def test_partial_failure_still_succeeds(self, cli_env, tmp_path, capsys):
        base_args, _ = cli_env
        good = _write_statement(tmp_path, "good.csv", HOLDINGS)
        missing = str(tmp_path / "missing.csv")
        assert run_statement_ingestion.main([good, missing] + base_args) == 0
        assert json.loads(capsys.readouterr().out)["holdings"] == 2

    def test_clear_and_show(self, cli_env, tmp_path, capsys):
        base_args, store_path = cli_env
        path = _write_statement(tmp_path, "h.csv", HOLDINGS)
        run_statement_ingestion.main([path] + base_args)
        capsys.readouterr()
        assert run_statement_ingestion.main(["--clear", "--show"] + base_args) == 0
        assert json.loads(capsys.readouterr().out)["holdings"] == 0

    def test_export_csv(self, cli_env, tmp_path, capsys):
        base_args, _ = cli_env
        path = _write_statement(tmp_path, "h.csv", HOLDINGS)
        outdir = tmp_path / "reports"
        code = run_statement_ingestion.main([path, "--export", "csv", "--outdir", str(outdir)] + base_args)
        assert code == 0
        assert len(list(outdir.glob("*.csv"))) == 4
        assert "Exported:" in capsys.readouterr().out

    def test_unknown_source_rejected(self, cli_env):
        base_args, _ = cli_env
        with pytest.raises(SystemExit):
            run_statement_ingestion.main(["x.csv", "--source", "robinhood"] + base_args)

    def test_invalid_default_source_in_settings(self, cli_env, tmp_path, capsys):
        base_args, store_path = cli_env
        settings = tmp_path / "settings.json"
        settings.write_text(json.dumps({"DEFAULT_SOURCE": "ROBINHOOD"}), encoding="utf-8")
        path = _write_statement(tmp_path, "h.csv", HOLDINGS)
        assert run_statement_ingestion.main([path] + base_args + ["--config", str(settings)]) == 3
        assert "Unknown account source" in capsys.readouterr().err
        assert not os.path.exists(store_path)
