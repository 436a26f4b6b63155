"""Tests for LendingConfig: YAML loading, environment overrides, validation."""
import pytest
import yaml

import shared.config_loader as config_mod
from shared.config_loader import LendingConfig


def write_yaml(path, data):
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


@pytest.fixture
def no_env(tmp_path):
    return tmp_path / "missing.env"


class TestLoading:

    def test_missing_file_uses_defaults(self, tmp_path, no_env, clean_env):
        config = LendingConfig(config_path=tmp_path / "nope.yaml", env_path=no_env)

        assert config.oracle.max_observations == 60
        assert config.oracle.twap_window_seconds == 1800
        assert config.risk_tiers.normal_ltv_bps == 5000
        assert config.liquidation.threshold_bps == 7500
        assert config.freeze.circuit_breaker_cooldown_seconds == 3600
        assert config.roles.orchestrator is None

    def test_sections_loaded(self, tmp_path, no_env, clean_env):
        path = write_yaml(tmp_path / "lending.yaml", {
            "liquidation": {"threshold_bps": 8000, "bonus_bps": 500},
            "freeze": {"circuit_breaker_cooldown_seconds": 7200},
        })

        config = LendingConfig(config_path=path, env_path=no_env)

        assert config.liquidation.threshold_bps == 8000
        assert config.liquidation.bonus_bps == 500
        assert config.liquidation.close_factor_bps == 5000
        assert config.freeze.circuit_breaker_cooldown_seconds == 7200

    def test_unknown_keys_ignored(self, tmp_path, no_env, clean_env):
        path = write_yaml(tmp_path / "lending.yaml", {"oracle": {"max_observations": 60, "bogus": 1}})

        config = LendingConfig(config_path=path, env_path=no_env)
        assert not hasattr(config.oracle, "bogus")

    def test_section_must_be_mapping(self, tmp_path, no_env, clean_env):
        path = write_yaml(tmp_path / "lending.yaml", {"oracle": [1, 2]})

        with pytest.raises(ValueError):
            LendingConfig(config_path=path, env_path=no_env)

    def test_shipped_config_is_valid(self, clean_env, tmp_path):
        config = LendingConfig(env_path=tmp_path / "missing.env")

        assert config.roles.updaters == ["keeper"]
        assert config.to_dict()["collector"]["gamma_url"].startswith("https://")


class TestEnvOverrides:

    def test_environment_overrides_roles(self, config_file, no_env, clean_env):
        clean_env["LENDING_ADMIN"] = "root"
        clean_env["LENDING_UPDATERS"] = "k1, k2,,"
        clean_env["LENDING_LOG_LEVEL"] = "debug"

        config = LendingConfig(config_path=config_file, env_path=no_env)

        assert config.roles.admin == "root"
        assert config.roles.updaters == ["k1", "k2"]
        assert config.logging.level == "DEBUG"

    def test_dotenv_file_loaded(self, config_file, tmp_path, clean_env):
        env_file = tmp_path / ".env"
        env_file.write_text("LENDING_ORCHESTRATOR=router\n", encoding="utf-8")

        config = LendingConfig(config_path=config_file, env_path=env_file)

        assert config.roles.orchestrator == "router"

    def test_process_env_wins_over_dotenv(self, config_file, tmp_path, clean_env):
        env_file = tmp_path / ".env"
        env_file.write_text("LENDING_GUARDIAN=from_file\n", encoding="utf-8")
        clean_env["LENDING_GUARDIAN"] = "from_env"

        config = LendingConfig(config_path=config_file, env_path=env_file)

        assert config.roles.guardian == "from_env"


class TestValidation:

    @pytest.mark.parametrize("data", [
        {"risk_tiers": {"normal_ltv_bps": 3000, "medium_ltv_bps": 3500}},
        {"liquidation": {"threshold_bps": 0}},
        {"liquidation": {"bonus_bps": 5001}},
        {"liquidation": {"close_factor_bps": 10001}},
        {"oracle": {"max_observations": 1}},
        {"freeze": {"circuit_breaker_cooldown_seconds": 0}},
        {"roles": {"admin": ""}},
        {"logging": {"level": "LOUD"}},
    ])
    def test_rejects_out_of_range(self, tmp_path, no_env, clean_env, data):
        path = write_yaml(tmp_path / "lending.yaml", data)

        with pytest.raises(ValueError):
            LendingConfig(config_path=path, env_path=no_env)

    def test_log_level_constant(self, lending_config):
        import logging
        assert lending_config.log_level == logging.INFO


class TestSingleton:

    def test_cached_until_reset(self, clean_env):
        first = config_mod.get_lending_config()
        assert config_mod.get_lending_config() is first

        config_mod.reset_lending_config()
        assert config_mod.get_lending_config() is not first
