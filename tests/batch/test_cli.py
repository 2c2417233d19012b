"""Tests for the commission-settle command line entry point."""

import logging

import pytest

from commission_batch.cli import load_gateway, main
from commission_kernel.logging_config import configure_logging, reset_logging
from fakes import FakeProcessor


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch):
    """Keep the CLI from attaching a handler to the captured stderr."""
    monkeypatch.delenv("COMMISSION_CONFIG", raising=False)
    reset_logging()
    configure_logging(handler=logging.NullHandler())
    yield
    reset_logging()


@pytest.fixture
def pending_sale(platform, profile):
    platform.register_tenant("user_ar", profile, "AR")
    platform.attach_processor_account("user_ar", "acct_ar_real", actor="ops")
    payment = platform.create_payment("acct_ar_real", 10000, "usd", "Order", "user_ar")
    platform.confirm_payment(payment.handle.session_id, "pi_cli_1")
    return payment


def _argv(database_url, *extra):
    return [
        "--gateway", "fakes:build_gateway",
        "--database-url", database_url,
        "--pacing", "0",
        *extra,
    ]


class TestLoadGateway:
    def test_factory_is_called(self):
        gateway = load_gateway("fakes:build_gateway")
        assert isinstance(gateway, FakeProcessor)

    def test_instance_used_as_is(self, monkeypatch):
        import fakes

        instance = FakeProcessor()
        monkeypatch.setattr(fakes, "SHARED_PROCESSOR", instance, raising=False)
        assert load_gateway("fakes:SHARED_PROCESSOR") is instance

    @pytest.mark.parametrize("target_path", ["fakes", "fakes:", ":build_gateway"])
    def test_malformed_target(self, target_path):
        with pytest.raises(ValueError, match="module:attribute"):
            load_gateway(target_path)

    def test_unknown_module(self):
        with pytest.raises(ImportError):
            load_gateway("no_such_module_xyz:build")


class TestMain:
    def test_run_settles_pending_sale(self, pending_sale, database_url, capsys):
        code = main(_argv(database_url))

        out = capsys.readouterr().out
        assert code == 0
        assert "Transferred: 1 sale(s), total 9500" in out
        assert "acct_ar_real" in out

    def test_preview_writes_nothing(self, pending_sale, platform, database_url, capsys):
        code = main(_argv(database_url, "--preview"))

        out = capsys.readouterr().out
        assert code == 0
        assert out.startswith("Preview run")
        assert "Would transfer: 1 sale(s)" in out
        assert len(platform.reconciler().pending()) == 1

    def test_nothing_pending(self, db_engine, database_url, capsys):
        code = main(_argv(database_url))

        assert code == 0
        assert "Transferred: 0 sale(s), total 0" in capsys.readouterr().out

    def test_bad_gateway_exits_2(self, db_engine, database_url, capsys):
        code = main(["--gateway", "no_such_module_xyz:build", "--database-url", database_url])

        assert code == 2
        assert "Failed to load gateway" in capsys.readouterr().err

    def test_missing_config_exits_2(self, database_url, tmp_path, capsys):
        code = main(_argv(database_url, "--config", str(tmp_path / "absent.yaml")))

        assert code == 2
        assert "Failed to load config" in capsys.readouterr().err

    def test_gateway_required(self):
        with pytest.raises(SystemExit):
            main([])
