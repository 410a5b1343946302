"""Tests for the rtlgen-serve command line."""

from unittest.mock import patch

import pytest

from rtlgen.services import cli


class TestServeCommand:
    def test_parser(self):
        args = cli.build_parser().parse_args(["analysis", "--port", "4001"])

        assert args.service == "analysis"
        assert args.port == 4001

    def test_unknown_service(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["frontend"])

    def test_main_runs_selected_service(self, monkeypatch):
        monkeypatch.delenv("RTLGEN_SERVICE_NAME", raising=False)
        monkeypatch.delenv("PORT", raising=False)

        with patch.object(cli.uvicorn, "run") as run, patch.object(cli, "configure_logging"):
            cli.main(["validation"])

        app = run.call_args.args[0]
        assert app.state.settings.service_name == "test-validation"
        assert run.call_args.kwargs["port"] == 3003

    def test_invalid_configuration_exits(self, monkeypatch, capsys):
        monkeypatch.setenv("CIRCUIT_BREAKER_FAILURE_THRESHOLD", "zero")

        with pytest.raises(SystemExit) as exc_info:
            cli.main(["gateway"])

        assert exc_info.value.code == 2
        assert "Configuration error" in capsys.readouterr().err
