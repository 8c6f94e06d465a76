"""Config loading from TOML and environment."""

from __future__ import annotations

import pytest

from ens_pinner.config import load_config
from ens_pinner.models.config import BackendKind, Strategy

CONFIG_TOML = """
[daemon]
strategy = "sequential"
error_backoff = 2

[ipfs]
local_rpc_url = "http://kubo:5001"
pin_timeout = 300
gc_timeout = 90

[[nodes]]
name = "vm1"
kind = "remote-cloud"
url = "http://10.0.0.1:5001"

[[nodes]]
name = "vm2"
url = "http://10.0.0.2:5001"

[admin]
port = 9000

[storage]
db_path = ""
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("STRATEGY", "LOCAL_RPC_URL", "ADMIN_PORT", "DB_PATH"):
        monkeypatch.delenv(f"ENS_PINNER_{var}", raising=False)


@pytest.fixture
def config_file(tmp_path):
    p = tmp_path / "pinner.toml"
    p.write_text(CONFIG_TOML)
    return p


def test_defaults_without_file():
    cfg = load_config(None)
    assert cfg.strategy == Strategy.PARALLEL
    assert cfg.local_rpc_url == "http://127.0.0.1:5001"
    assert cfg.timeouts.pin == 120
    assert cfg.nodes == []
    assert cfg.db_path.endswith("history.db")
    assert "~" not in cfg.db_path


def test_toml_values(config_file):
    cfg = load_config(config_file)

    assert cfg.strategy == Strategy.SEQUENTIAL
    assert cfg.error_backoff == 2
    assert cfg.local_rpc_url == "http://kubo:5001"
    assert (cfg.timeouts.pin, cfg.timeouts.gc, cfg.timeouts.stat) == (300, 90, 30)
    assert [(n.name, n.kind) for n in cfg.nodes] == [
        ("vm1", BackendKind.REMOTE_CLOUD),
        ("vm2", BackendKind.REMOTE_CLOUD),
    ]
    assert cfg.admin_port == 9000
    assert cfg.db_path == ""


def test_env_overrides_file(config_file, monkeypatch):
    monkeypatch.setenv("ENS_PINNER_STRATEGY", "distributed")
    monkeypatch.setenv("ENS_PINNER_ADMIN_PORT", "9100")
    monkeypatch.setenv("ENS_PINNER_DB_PATH", ":memory:")

    cfg = load_config(config_file)

    assert cfg.strategy == Strategy.DISTRIBUTED
    assert cfg.admin_port == 9100
    assert cfg.db_path == ":memory:"


def test_unknown_strategy_means_unset(monkeypatch):
    monkeypatch.setenv("ENS_PINNER_STRATEGY", "mirror-everything")
    assert load_config(None).strategy is None


def test_missing_file_uses_defaults(tmp_path):
    cfg = load_config(tmp_path / "nope.toml")
    assert cfg.strategy == Strategy.PARALLEL


def test_zero_error_backoff_is_kept(tmp_path):
    p = tmp_path / "pinner.toml"
    p.write_text("[daemon]\nerror_backoff = 0\n")
    assert load_config(p).error_backoff == 0
