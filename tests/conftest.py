"""Shared pytest fixtures for tunnelman tests."""

from unittest.mock import Mock

import pytest
from helpers import ACCOUNT_ID, API_BASE, TUNNEL_ID, FakeProcess

from tunnelman.common.settings import TunnelmanSettings
from tunnelman.ingress.models import IngressRule, TunnelConfig
from tunnelman.remote.api import CloudflareAPI
from tunnelman.runner.config_file import RunnerConfigStore
from tunnelman.runner.supervisor import ProcessSupervisor


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a fake API and a temporary config directory."""
    return TunnelmanSettings(
        _env_file=None,
        api_token="test-token-abcdef",
        account_id=ACCOUNT_ID,
        api_base_url=API_BASE,
        config_dir=tmp_path / "cloudflared",
        stop_timeout=0.2,
        selected_domain="example.com",
    )


@pytest.fixture
def api(settings):
    """CloudflareAPI backed by a real httpx client; mock it with respx."""
    client = CloudflareAPI(settings)
    yield client
    client.close()


@pytest.fixture
def config_store(tmp_path):
    return RunnerConfigStore(tmp_path / "cloudflared")


@pytest.fixture
def spawned():
    """FakeProcess objects handed out by the fake spawner, in spawn order."""
    return []


@pytest.fixture
def spawner(spawned):
    """Spawner returning a fresh FakeProcess per call."""

    def _spawn(command):
        process = FakeProcess()
        process.command = list(command)
        spawned.append(process)
        return process

    return Mock(side_effect=_spawn)


@pytest.fixture
def supervisor(config_store, spawner, spawned):
    """ProcessSupervisor with fake processes and a short grace period."""
    sup = ProcessSupervisor(
        config_store=config_store,
        stop_timeout=0.2,
        spawner=spawner,
        process_lister=Mock(return_value=[]),
        monitor_interval=0.01,
    )
    yield sup
    for process in spawned:
        if process.poll() is None:
            process.finish()


@pytest.fixture
def catch_all_config():
    """Remote config holding only the catch-all rule."""
    return TunnelConfig(ingress=[IngressRule(service="http_status:404")])


@pytest.fixture
def remote_config_wire():
    """Remote configuration document as returned by the API."""
    return {
        "tunnel_id": TUNNEL_ID,
        "version": 7,
        "source": "cloudflare",
        "created_at": "2024-05-01T10:00:00Z",
        "config": {
            "ingress": [
                {
                    "id": "3",
                    "hostname": "app.example.com",
                    "service": "http://localhost:3000",
                    "originRequest": {"noTLSVerify": True},
                },
                {
                    "id": "x-7",
                    "hostname": "docs.example.com",
                    "path": "/docs",
                    "service": "http://localhost:4000",
                },
                {"service": "http_status:404"},
            ],
            "warp-routing": {"enabled": False},
            "originRequest": {"connectTimeout": 30},
        },
    }
