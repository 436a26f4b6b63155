# =============================================================================
# POLYMARKET LENDING - CONFIG LOADER
# =============================================================================
#
# Centralized configuration loading.
# Reads config/lending.yaml and applies environment overrides (.env supported).
#
# USAGE:
#   from shared.config_loader import LendingConfig
#
#   config = LendingConfig()
#   config.liquidation.threshold_bps
#
# ENV OVERRIDES:
#   LENDING_ADMIN, LENDING_GUARDIAN, LENDING_ORCHESTRATOR
#   LENDING_UPDATERS  (comma separated)
#   LENDING_LOG_LEVEL
#
# =============================================================================

import logging
import os
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Base directory
BASE_DIR = Path(__file__).parent.parent
CONFIG_PATH = BASE_DIR / "config" / "lending.yaml"
ENV_PATH = BASE_DIR / ".env"


@dataclass
class OracleSettings:
    """Price oracle parameters."""
    max_observations: int = 60
    twap_window_seconds: int = 30 * 60
    staleness_threshold_seconds: int = 5 * 60
    max_deviation_bps: int = 800


@dataclass
class RiskTierSettings:
    """Maximum collateral factor per tier (basis points)."""
    normal_ltv_bps: int = 5000
    medium_ltv_bps: int = 3500
    high_ltv_bps: int = 2000


@dataclass
class LiquidationSettings:
    """Liquidation engine parameters (basis points)."""
    threshold_bps: int = 7500
    bonus_bps: int = 1000
    close_factor_bps: int = 5000


@dataclass
class FreezeSettings:
    """Freeze controller parameters."""
    circuit_breaker_cooldown_seconds: int = 60 * 60
    pre_resolution_window_seconds: int = 24 * 60 * 60


@dataclass
class RoleSettings:
    """Accounts holding each capability."""
    admin: str = "admin"
    guardian: str = "guardian"
    orchestrator: Optional[str] = None
    updaters: List[str] = field(default_factory=list)


@dataclass
class CollectorSettings:
    """Market data collector parameters."""
    gamma_url: str = "https://gamma-api.polymarket.com"
    clob_url: str = "https://clob.polymarket.com"
    timeout_seconds: int = 15
    max_retries: int = 3
    market_cache_ttl_seconds: int = 300
    poll_interval_seconds: int = 60


@dataclass
class LoggingSettings:
    """Logging parameters."""
    level: str = "INFO"
    log_dir: Optional[str] = None


class LendingConfig:
    """
    Central configuration for the lending risk core.

    - Changes require editing the YAML file or the environment
    - Values are validated at load time (ValueError on violation)
    - Missing file means defaults
    """

    def __init__(self, config_path: Optional[Path] = None, env_path: Optional[Path] = None):
        """
        Initialize configuration.

        Args:
            config_path: Path to lending.yaml. Defaults to config/lending.yaml
            env_path: Path to a .env file. Defaults to <project>/.env
        """
        self.config_path = config_path or CONFIG_PATH
        self.env_path = env_path or ENV_PATH
        self._raw: Dict[str, Any] = {}

        self.oracle = OracleSettings()
        self.risk_tiers = RiskTierSettings()
        self.liquidation = LiquidationSettings()
        self.freeze = FreezeSettings()
        self.roles = RoleSettings()
        self.collector = CollectorSettings()
        self.logging = LoggingSettings()

        self._load_config()
        self._apply_env_overrides()
        self._validate()

    def _load_config(self) -> None:
        """Load configuration from YAML file."""
        if not self.config_path.exists():
            logger.warning(f"Config file not found: {self.config_path}, using defaults")
            return

        with open(self.config_path, "r", encoding="utf-8") as f:
            self._raw = yaml.safe_load(f) or {}

        self.oracle = self._section(OracleSettings, "oracle")
        self.risk_tiers = self._section(RiskTierSettings, "risk_tiers")
        self.liquidation = self._section(LiquidationSettings, "liquidation")
        self.freeze = self._section(FreezeSettings, "freeze")
        self.roles = self._section(RoleSettings, "roles")
        self.collector = self._section(CollectorSettings, "collector")
        self.logging = self._section(LoggingSettings, "logging")

        logger.info(f"Loaded lending config from {self.config_path}")

    def _section(self, settings_cls, name: str):
        """Build a settings dataclass from a YAML section, ignoring unknown keys."""
        section = self._raw.get(name) or {}
        if not isinstance(section, dict):
            raise ValueError(f"Config section '{name}' must be a mapping")

        known = set(settings_cls.__dataclass_fields__)
        unknown = set(section) - known
        if unknown:
            logger.warning(f"Ignoring unknown keys in '{name}': {sorted(unknown)}")
        return settings_cls(**{k: v for k, v in section.items() if k in known})

    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides (after loading .env if present)."""
        if self.env_path.exists():
            load_dotenv(self.env_path, override=False)

        if os.environ.get("LENDING_ADMIN"):
            self.roles.admin = os.environ["LENDING_ADMIN"]
        if os.environ.get("LENDING_GUARDIAN"):
            self.roles.guardian = os.environ["LENDING_GUARDIAN"]
        if os.environ.get("LENDING_ORCHESTRATOR"):
            self.roles.orchestrator = os.environ["LENDING_ORCHESTRATOR"]
        if os.environ.get("LENDING_UPDATERS"):
            self.roles.updaters = [
                u.strip() for u in os.environ["LENDING_UPDATERS"].split(",") if u.strip()
            ]
        if os.environ.get("LENDING_LOG_LEVEL"):
            self.logging.level = os.environ["LENDING_LOG_LEVEL"].upper()

    def _validate(self) -> None:
        """Validate value ranges."""
        tiers = self.risk_tiers
        if not (10_000 >= tiers.normal_ltv_bps >= tiers.medium_ltv_bps >= tiers.high_ltv_bps >= 0):
            raise ValueError(
                "Invalid risk tiers: require 10000 >= normal >= medium >= high >= 0, got "
                f"{tiers.normal_ltv_bps}/{tiers.medium_ltv_bps}/{tiers.high_ltv_bps}"
            )

        liq = self.liquidation
        if not 0 < liq.threshold_bps <= 10_000:
            raise ValueError(f"Invalid liquidation threshold: {liq.threshold_bps}")
        if not 0 <= liq.bonus_bps <= 5_000:
            raise ValueError(f"Invalid liquidation bonus: {liq.bonus_bps}")
        if not 0 < liq.close_factor_bps <= 10_000:
            raise ValueError(f"Invalid close factor: {liq.close_factor_bps}")

        if self.oracle.max_observations < 2:
            raise ValueError("oracle.max_observations must be at least 2")
        if self.oracle.twap_window_seconds <= 0 or self.oracle.staleness_threshold_seconds <= 0:
            raise ValueError("oracle windows must be positive")

        if not 0 < self.freeze.circuit_breaker_cooldown_seconds <= 7 * 24 * 60 * 60:
            raise ValueError("freeze.circuit_breaker_cooldown_seconds must be in (0, 7 days]")

        if not self.roles.admin:
            raise ValueError("roles.admin must be set")

        if self.logging.level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level: {self.logging.level}")

    @property
    def log_level(self) -> int:
        """Configured log level as a logging constant."""
        return getattr(logging, self.logging.level)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary for logging/display."""
        return {
            "oracle": asdict(self.oracle),
            "risk_tiers": asdict(self.risk_tiers),
            "liquidation": asdict(self.liquidation),
            "freeze": asdict(self.freeze),
            "roles": asdict(self.roles),
            "collector": asdict(self.collector),
            "logging": asdict(self.logging),
        }


# =============================================================================
# SINGLETON ACCESS
# =============================================================================

_instance: Optional[LendingConfig] = None


def get_lending_config() -> LendingConfig:
    """Get the global LendingConfig instance (loaded on first use)."""
    global _instance
    if _instance is None:
        _instance = LendingConfig()
    return _instance


def reset_lending_config() -> None:
    """Drop the cached instance so the next call reloads from disk."""
    global _instance
    _instance = None
