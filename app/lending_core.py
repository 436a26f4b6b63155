# =============================================================================
# POLYMARKET LENDING - SYSTEM WIRING
# =============================================================================
#
# TWO-PHASE INITIALIZATION:
# 1. Construct every component independently (no cross references yet)
# 2. One configure pass injects capabilities and collaborators:
#    - ORCHESTRATOR account (set once)
#    - oracle UPDATER accounts
#    - LIQUIDATION_ENGINE account consulted by custody (set once)
#    - custody + pool into the liquidation engine (once)
#
# Every capability is set through the admin account from the config.
#
# =============================================================================

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from core.access_control import AccessControl
from core.clock import Clock, SystemClock
from core.freeze_controller import FreezeController
from core.liquidation_engine import LiquidationEngine, LiquidationParameters
from core.market import InMemoryMarketRegistry, MarketRegistry
from core.price_oracle import PriceOracle
from core.risk_tier_scheduler import RiskTierConfig, RiskTierScheduler
from execution.collaborators import (
    CollateralCustody,
    InMemoryCollateralCustody,
    InMemoryLendingPool,
    LendingPool,
)
from shared.config_loader import LendingConfig
from shared.enums import Component, Role
from shared.logging_config import AuditLogger

from .risk_gate import RiskGate

logger = logging.getLogger(__name__)


@dataclass
class LendingCore:
    """Handles to every wired component."""
    config: LendingConfig
    clock: Clock
    access: AccessControl
    registry: MarketRegistry
    oracle: PriceOracle
    risk_tiers: RiskTierScheduler
    freeze: FreezeController
    liquidation: LiquidationEngine
    custody: CollateralCustody
    pool: LendingPool
    gate: RiskGate

    @property
    def admin(self) -> str:
        return self.config.roles.admin

    def status(self) -> Dict[str, Any]:
        """JSON-ready summary of the risk core state."""
        assets = {}
        for asset in self.oracle.assets():
            count = self.oracle.get_observation_count(asset)
            latest_price = self.oracle.get_latest_price(asset)[0] if count else None
            assets[asset] = {
                "observations": count,
                "latest_price": latest_price,
                "last_twap": self.oracle.get_last_twap(asset),
                "stale": self.oracle.is_price_stale(asset),
                "circuit_breaker": self.oracle.is_circuit_breaker_triggered(asset),
            }

        positions = self.liquidation.positions()
        return {
            "timestamp": self.clock.now(),
            "paused": self.freeze.paused,
            "global_circuit_breaker": self.freeze.global_circuit_breaker,
            "cooldown_seconds": self.freeze.cooldown_seconds,
            "risk_tiers": self.risk_tiers.config.to_dict(),
            "liquidation_parameters": self.liquidation.params.to_dict(),
            "orchestrator": self.access.get_single(Role.ORCHESTRATOR),
            "liquidation_engine": self.access.get_single(Role.LIQUIDATION_ENGINE),
            "updaters": sorted(self.access.members(Role.UPDATER)),
            "assets": assets,
            "positions": len(positions),
            "open_debt_positions": sum(1 for p in positions if p.debt_amount > 0),
        }


def build_lending_core(
    config: Optional[LendingConfig] = None,
    clock: Optional[Clock] = None,
    registry: Optional[MarketRegistry] = None,
    custody: Optional[CollateralCustody] = None,
    pool: Optional[LendingPool] = None,
    access: Optional[AccessControl] = None,
) -> LendingCore:
    """
    Construct and wire the lending risk core.

    Collaborators passed in must share `access` with the core; pass the same
    AccessControl instance (or let this function create one and build the
    in-memory defaults against it).

    Args:
        config: Loaded configuration (defaults to config/lending.yaml)
        clock: Time source (defaults to SystemClock)
        registry: Market metadata source (defaults to InMemoryMarketRegistry)
        custody: Collateral custody (defaults to InMemoryCollateralCustody)
        pool: Lending pool (defaults to InMemoryLendingPool)
        access: Shared AccessControl (built from config.roles if omitted)

    Returns:
        Fully configured LendingCore
    """
    config = config or LendingConfig()
    clock = clock or SystemClock()
    roles = config.roles
    log_dir = Path(config.logging.log_dir) if config.logging.log_dir else None

    # ---- Phase 1: construct -------------------------------------------------
    access = access or AccessControl(admin=roles.admin, guardian=roles.guardian)
    registry = registry or InMemoryMarketRegistry(access)
    custody = custody or InMemoryCollateralCustody(access)
    pool = pool or InMemoryLendingPool(access)

    oracle = PriceOracle(
        access,
        clock,
        max_observations=config.oracle.max_observations,
        twap_window_seconds=config.oracle.twap_window_seconds,
        staleness_threshold_seconds=config.oracle.staleness_threshold_seconds,
        max_deviation_bps=config.oracle.max_deviation_bps,
        audit=AuditLogger(Component.ORACLE, log_dir),
    )
    risk_tiers = RiskTierScheduler(
        access,
        clock,
        registry,
        RiskTierConfig(
            normal_ltv_bps=config.risk_tiers.normal_ltv_bps,
            medium_risk_ltv_bps=config.risk_tiers.medium_ltv_bps,
            high_risk_ltv_bps=config.risk_tiers.high_ltv_bps,
        ),
    )
    freeze = FreezeController(
        access,
        clock,
        registry,
        cooldown_seconds=config.freeze.circuit_breaker_cooldown_seconds,
        pre_resolution_window_seconds=config.freeze.pre_resolution_window_seconds,
        audit=AuditLogger(Component.FREEZE, log_dir),
    )
    liquidation = LiquidationEngine(
        access,
        clock,
        oracle,
        LiquidationParameters(
            liquidation_threshold_bps=config.liquidation.threshold_bps,
            liquidation_bonus_bps=config.liquidation.bonus_bps,
            close_factor_bps=config.liquidation.close_factor_bps,
        ),
        audit=AuditLogger(Component.LIQUIDATION, log_dir),
    )

    # ---- Phase 2: configure -------------------------------------------------
    admin = roles.admin
    if roles.orchestrator:
        access.set_once(admin, Role.ORCHESTRATOR, roles.orchestrator)
    else:
        logger.warning("No orchestrator configured; position updates are disabled")
    for updater in roles.updaters:
        oracle.authorize_updater(admin, updater)
    access.set_once(admin, Role.LIQUIDATION_ENGINE, liquidation.address)
    liquidation.configure(admin, custody, pool)

    gate = RiskGate(oracle, risk_tiers, freeze, liquidation)

    logger.info(
        f"Lending core wired | admin={admin} | guardian={roles.guardian} | "
        f"orchestrator={roles.orchestrator} | updaters={len(roles.updaters)}"
    )
    return LendingCore(
        config=config,
        clock=clock,
        access=access,
        registry=registry,
        oracle=oracle,
        risk_tiers=risk_tiers,
        freeze=freeze,
        liquidation=liquidation,
        custody=custody,
        pool=pool,
        gate=gate,
    )
