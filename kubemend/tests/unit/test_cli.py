"""Tests for the kubemend command line."""

from __future__ import annotations

import asyncio

import pytest

from kubemend import cli
from kubemend.constants.enums import ResourceKind
from kubemend.constants.values import EXIT_FATAL, EXIT_OK, EXIT_PARTIAL_FAILURE
from kubemend.controllers.errors import (
    ClusterUnreachableError,
    FatalAuthError,
    PermanentAPIError,
)
from kubemend.models.state.app_settings import RemediationSettings
from kubemend.tests.unit.fakes import FakeClusterClient, node_dict, pod_dict


def _settings(**overrides) -> RemediationSettings:
    values = {
        "evictions_per_second": 1000,
        "burst": 100,
        "max_budget_requeues": 0,
        "budget_requeue_delay_seconds": 0,
        "shutdown_grace_seconds": 0.1,
    }
    values.update(overrides)
    return RemediationSettings(**values)


class TestParser:
    """Tests for build_parser and settings_overrides."""

    def test_node_command(self) -> None:
        args = cli.build_parser().parse_args(
            ["--context", "prod", "node", "n1", "--max-concurrency", "2", "--dry-run", "--no-cordon"]
        )
        assert args.command == "node"
        assert args.name == "n1"
        assert cli.settings_overrides(args) == {
            "kubeconfig": None,
            "context": "prod",
            "max_concurrency": 2,
            "dry_run": True,
            "cordon_before_drain": False,
        }

    def test_pod_command(self) -> None:
        args = cli.build_parser().parse_args(["pod", "web-1", "-n", "shop"])
        assert (args.command, args.name, args.namespace) == ("pod", "web-1", "shop")
        overrides = cli.settings_overrides(args)
        assert overrides["max_concurrency"] is None
        assert overrides["dry_run"] is None
        assert overrides["cordon_before_drain"] is None

    def test_watch_command(self) -> None:
        assert cli.build_parser().parse_args(["watch"]).command == "watch"

    def test_command_is_required(self) -> None:
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])


class TestRun:
    """Tests for run() against an in-memory cluster."""

    @pytest.mark.asyncio
    async def test_pod_eviction_succeeds(self, fake_client, capsys) -> None:
        args = cli.build_parser().parse_args(["pod", "p1"])

        code = await cli.run(args, _settings(), fake_client)

        assert code == EXIT_OK
        assert fake_client.evicted == ["default/p1"]
        out = capsys.readouterr().out
        assert "Eviction Results" in out
        assert "HEALTHY" in out
        assert "UNHEALTHY" not in out

    @pytest.mark.asyncio
    async def test_drain_blocked_by_budget_is_partial_failure(self, fake_client, capsys) -> None:
        args = cli.build_parser().parse_args(["node", "n1"])

        code = await cli.run(args, _settings(), fake_client)

        assert code == EXIT_PARTIAL_FAILURE
        assert fake_client.evicted == ["default/p3"]
        assert "UNHEALTHY" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_dry_run_prints_plan_only(self, fake_client, capsys) -> None:
        args = cli.build_parser().parse_args(["node", "n1", "--dry-run"])

        code = await cli.run(args, _settings(dry_run=True), fake_client)

        assert code == EXIT_OK
        assert fake_client.evict_calls == []
        assert fake_client.cordoned == []
        assert "dry run" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_unknown_pod(self, fake_client) -> None:
        args = cli.build_parser().parse_args(["pod", "ghost"])
        assert await cli.run(args, _settings(), fake_client) == EXIT_PARTIAL_FAILURE
        assert fake_client.evict_calls == []

    @pytest.mark.asyncio
    async def test_unknown_node(self, fake_client) -> None:
        args = cli.build_parser().parse_args(["node", "n9"])
        assert await cli.run(args, _settings(), fake_client) == EXIT_PARTIAL_FAILURE

    @pytest.mark.asyncio
    async def test_unreachable_cluster_is_fatal(self, fake_client) -> None:
        fake_client.connection_error = ClusterUnreachableError("connection refused")
        args = cli.build_parser().parse_args(["pod", "p1"])

        with pytest.raises(ClusterUnreachableError):
            await cli.run(args, _settings(), fake_client)

    @pytest.mark.asyncio
    async def test_watch_surfaces_observer_failure(self, fake_client) -> None:
        gate = asyncio.Event()
        fake_client.watch_scripts[ResourceKind.PODS].append(
            [gate, PermanentAPIError("403 Forbidden", status=403)]
        )
        asyncio.get_running_loop().call_later(0.05, gate.set)
        args = cli.build_parser().parse_args(["watch"])

        with pytest.raises(FatalAuthError):
            await asyncio.wait_for(cli.run(args, _settings(), fake_client), timeout=5)


class TestMain:
    """Tests for main() exit codes."""

    @pytest.fixture(autouse=True)
    def _quiet_logging(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(cli, "configure_logging", lambda verbose=False: None)

    def test_invalid_config_file(self, tmp_path) -> None:
        config = tmp_path / "kubemend.yaml"
        config.write_text("max_concurrency: [unclosed\n")
        assert cli.main(["--config", str(config), "watch"]) == EXIT_FATAL

    def test_config_validation_error(self, tmp_path) -> None:
        config = tmp_path / "kubemend.yaml"
        config.write_text("max_concurrency: 0\n")
        assert cli.main(["--config", str(config), "watch"]) == EXIT_FATAL

    def test_missing_credentials(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def _no_credentials(*args, **kwargs):
            raise FatalAuthError("no kubeconfig")

        monkeypatch.setattr(cli.KubernetesClusterClient, "from_config", _no_credentials)
        assert cli.main(["node", "n1"]) == EXIT_FATAL

    def test_settings_reach_run(self, monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
        config = tmp_path / "kubemend.yaml"
        config.write_text("max_concurrency: 8\nburst: 9\n")
        seen = {}

        async def _fake_run(args, settings, cluster_client=None):
            seen["settings"] = settings
            return EXIT_PARTIAL_FAILURE

        monkeypatch.setattr(cli, "run", _fake_run)

        code = cli.main(["--config", str(config), "node", "n1", "--max-concurrency", "3"])

        assert code == EXIT_PARTIAL_FAILURE
        assert seen["settings"].max_concurrency == 3
        assert seen["settings"].burst == 9

    def test_forbidden_initial_sync(self, monkeypatch: pytest.MonkeyPatch) -> None:
        client = FakeClusterClient(pods=[pod_dict("p1")], nodes=[node_dict("n1")])
        client.list_errors[ResourceKind.PODS].append(
            PermanentAPIError("403 Forbidden", status=403)
        )
        monkeypatch.setattr(
            cli.KubernetesClusterClient, "from_config", lambda *args, **kwargs: client
        )

        assert cli.main(["pod", "p1"]) == EXIT_FATAL
        assert client.evict_calls == []
