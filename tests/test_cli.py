"""Tests for the command-line entry point."""

from pathlib import Path
from unittest.mock import patch

import yaml

from kline_sync import cli
from kline_sync.config import SyncConfig


class TestMain:
    def test_print_config(self, tmp_path: Path, capsys) -> None:
        code = cli.main(["--symbol", "btcusdt", "--page-size", "50", "--data-root", str(tmp_path), "--print-config"])

        assert code == 0
        data = yaml.safe_load(capsys.readouterr().out)
        assert data["symbols"] == ["BTCUSDT"]
        assert data["page_size"] == 50
        assert data["data_root"] == str(tmp_path)

    def test_config_file_with_overrides(self, tmp_path: Path, capsys) -> None:
        path = tmp_path / "c.yaml"
        path.write_text("symbols: [ETHUSDT]\nhorizon_days: 30\n")

        cli.main(["--config", str(path), "--horizon-days", "60", "--print-config"])

        data = yaml.safe_load(capsys.readouterr().out)
        assert data["symbols"] == ["ETHUSDT"]
        assert data["horizon_days"] == 60

    def test_no_symbols(self) -> None:
        assert cli.main([]) == 2

    def test_page_size_above_exchange_maximum(self) -> None:
        assert cli.main(["--symbol", "BTCUSDT", "--page-size", "1500", "--print-config"]) == 2

    def test_invalid_config(self, tmp_path: Path) -> None:
        assert cli.main(["--config", str(tmp_path / "missing.yaml")]) == 2

    def test_runs_each_symbol(self, tmp_path: Path) -> None:
        with patch.object(cli, "synchronize_kline_data", return_value=True) as sync:
            code = cli.main(["-s", "BTCUSDT", "-s", "ETHUSDT", "--data-root", str(tmp_path), "--polling"])

        assert code == 0
        assert [c.args[0] for c in sync.call_args_list] == ["BTCUSDT", "ETHUSDT"]
        assert sync.call_args_list[0].args[1].polling is True

    def test_failure_exit_code(self, tmp_path: Path) -> None:
        with patch.object(cli, "synchronize_kline_data", side_effect=[False, True]) as sync:
            code = cli.main(["-s", "BTCUSDT", "-s", "ETHUSDT", "--data-root", str(tmp_path)])

        assert code == 1
        assert sync.call_count == 2


class TestRunSchedule:
    def test_runs_fixed_number_of_rounds(self, tmp_path: Path) -> None:
        config = SyncConfig(symbols=["BTCUSDT"], data_root=tmp_path)
        sleeps = []
        with patch.object(cli, "synchronize_kline_data", return_value=True) as sync:
            ok = cli.run_schedule(config, 60, max_runs=3, sleep=sleeps.append)

        assert ok is True
        assert sync.call_count == 3
        assert sleeps == [60, 60]
