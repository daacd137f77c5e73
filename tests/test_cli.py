"""
Tests for the click commands.
"""

from unittest.mock import Mock, patch

import pytest
from click.testing import CliRunner

from conftest import FakeDropletsClient, make_droplet, write_machine
from droplet_cleaner import cli
from droplet_cleaner.errors import DropletsClientError


@pytest.fixture(autouse=True)
def no_logging_setup(monkeypatch):
    monkeypatch.setattr(cli, "configure_logging", lambda **kwargs: None)


@pytest.fixture
def do_client(monkeypatch):
    client = FakeDropletsClient([make_droplet("runner-abc123-hanging", age_seconds=3600)])
    monkeypatch.setattr(cli, "DigitalOceanClient", lambda token: client)
    return client


def _args(machines_dir, *extra):
    return [
        *extra,
        "--digitalocean-token", "token",
        "--machines-directory", str(machines_dir),
        "--droplet-age", "10",
        "--runner-prefix", "runner-abc123",
    ]


class TestOneShot:
    """Test the one-shot command."""

    def test_dry_run_by_default(self, machines_dir, do_client):
        result = CliRunner().invoke(cli.main, ["one-shot", *_args(machines_dir)])

        assert result.exit_code == 0, result.output
        assert do_client.stopped == []
        assert do_client.deleted == []

    def test_delete_confirmed(self, machines_dir, do_client):
        write_machine(machines_dir, "runner-abc123-tracked", {"Driver": {"DropletID": 7}})

        result = CliRunner().invoke(cli.main, ["one-shot", *_args(machines_dir, "--delete")], input="yes\n")

        assert result.exit_code == 0, result.output
        assert "Are you sure you want to delete droplets? [yes/no] ->" in result.output
        assert do_client.deleted == ["runner-abc123-hanging"]

    def test_delete_declined(self, machines_dir, do_client):
        result = CliRunner().invoke(cli.main, ["one-shot", *_args(machines_dir, "--delete")], input="y\n")

        assert result.exit_code == 0, result.output
        assert do_client.deleted == []

    def test_listing_error_exits(self, machines_dir, do_client):
        do_client.list_error = DropletsClientError("unauthorized", status_code=401)

        result = CliRunner().invoke(cli.main, ["one-shot", *_args(machines_dir)])

        assert result.exit_code == 1

    def test_malformed_machine_config_exits(self, machines_dir, do_client, caplog):
        write_machine(machines_dir, "runner-abc123-broken", '{"Driver": {"DropletID": NaN}}')

        result = CliRunner().invoke(cli.main, ["one-shot", *_args(machines_dir)])

        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "Error during cleanup: Malformed Driver.DropletID nan" in caplog.text
        assert do_client.stopped == []

    def test_missing_prefix_exits(self, machines_dir, do_client):
        result = CliRunner().invoke(cli.main, [
            "one-shot", "--digitalocean-token", "token", "--machines-directory", str(machines_dir),
        ])

        assert result.exit_code == 1

    def test_token_from_env(self, machines_dir, do_client):
        result = CliRunner().invoke(
            cli.main,
            ["one-shot", "--machines-directory", str(machines_dir), "--runner-prefix", "runner-abc123"],
            env={"DIGITALOCEAN_TOKEN": "from-env"},
        )

        assert result.exit_code == 0, result.output


class TestService:
    """Test the service command wiring."""

    def test_service_enables_delete(self, machines_dir, do_client):
        with patch.object(cli, "ServiceRunner") as runner_cls:
            result = CliRunner().invoke(cli.main, ["service", "--interval", "30", *_args(machines_dir)])

        assert result.exit_code == 0, result.output
        cleaner, interval = runner_cls.call_args.args
        assert cleaner.delete_enabled
        assert interval == 30
        runner_cls.return_value.run_forever.assert_called_once()

    def test_service_starts_metrics_server(self, machines_dir, do_client):
        server = Mock()
        with patch.object(cli, "ServiceRunner"), \
                patch.object(cli, "MetricsServer", return_value=server) as server_cls:
            result = CliRunner().invoke(cli.main, ["service", "--listen", ":9402", *_args(machines_dir)])

        assert result.exit_code == 0, result.output
        assert server_cls.call_args.args[1:] == ("0.0.0.0", 9402)
        server.start.assert_called_once()
        server.stop.assert_called_once()

    def test_invalid_listen_address(self, machines_dir, do_client):
        with patch.object(cli, "ServiceRunner") as runner_cls:
            result = CliRunner().invoke(cli.main, ["service", "--listen", "nope", *_args(machines_dir)])

        assert result.exit_code == 1
        runner_cls.assert_not_called()


def test_version():
    result = CliRunner().invoke(cli.main, ["--version"])

    assert result.exit_code == 0
    assert "Version:" in result.output
    assert "Python version:" in result.output
