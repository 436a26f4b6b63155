"""Global test fixtures: accounts, clock, wired components, clean environment."""
import os
from pathlib import Path

import pytest
import yaml

from app.lending_core import build_lending_core
from core.access_control import AccessControl
from core.clock import ManualClock
from core.market import InMemoryMarketRegistry
from core.price_oracle import PriceOracle
from shared.config_loader import LendingConfig
from shared.enums import Role

# Accounts
ADMIN = "admin"
GUARDIAN = "guardian"
ORCHESTRATOR = "orchestrator"
UPDATER = "keeper"
BORROWER = "alice"
LIQUIDATOR = "bob"
OUTSIDER = "mallory"

START = 1_700_000_000
S = 10**18
USDC = 10**6
DAY = 86400
HOUR = 3600


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset module-level singletons before and after each test."""
    _do_reset()
    yield
    _do_reset()


def _do_reset():
    import shared.config_loader as config_mod
    config_mod.reset_lending_config()


@pytest.fixture
def clean_env(monkeypatch):
    """Isolated os.environ without LENDING_* overrides."""
    env = {k: v for k, v in os.environ.items() if not k.startswith("LENDING_")}
    monkeypatch.setattr(os, "environ", env)
    return env


@pytest.fixture
def clock():
    return ManualClock(START)


@pytest.fixture
def access():
    acl = AccessControl(admin=ADMIN, guardian=GUARDIAN)
    acl.set_once(ADMIN, Role.ORCHESTRATOR, ORCHESTRATOR)
    acl.grant(ADMIN, Role.UPDATER, UPDATER)
    return acl


@pytest.fixture
def registry(access):
    return InMemoryMarketRegistry(access)


@pytest.fixture
def oracle(access, clock):
    return PriceOracle(access, clock)


@pytest.fixture
def config_file(tmp_path) -> Path:
    """lending.yaml with all roles assigned."""
    path = tmp_path / "lending.yaml"
    path.write_text(yaml.safe_dump({
        "roles": {
            "admin": ADMIN,
            "guardian": GUARDIAN,
            "orchestrator": ORCHESTRATOR,
            "updaters": [UPDATER],
        },
        "logging": {"level": "INFO", "log_dir": None},
    }), encoding="utf-8")
    return path


@pytest.fixture
def lending_config(config_file, tmp_path, clean_env):
    return LendingConfig(config_path=config_file, env_path=tmp_path / "missing.env")


@pytest.fixture
def core(lending_config, clock):
    return build_lending_core(lending_config, clock=clock)
