# =============================================================================
# POLYMARKET LENDING - SHARED ENUMS
# =============================================================================
#
# These enums define the shared vocabulary of the risk core.
# They encode the capability model and the freeze policy at the type level.
#
# =============================================================================

from enum import Enum


class Component(Enum):
    """
    Components of the lending risk core.

    Used for log routing and audit records.
    """
    ORACLE = "ORACLE"
    RISK_TIERS = "RISK_TIERS"
    FREEZE = "FREEZE"
    LIQUIDATION = "LIQUIDATION"
    COLLECTOR = "COLLECTOR"


class Role(Enum):
    """
    Capabilities that guard privileged operations.

    ADMIN: Parameter updates, updater management, breaker resets on the oracle.
    GUARDIAN: Pause/unpause, circuit breakers, manual market freeze.
    ORCHESTRATOR: Position updates and liquidation execution. Set ONCE.
    UPDATER: May record price observations. Any number of accounts.
    LIQUIDATION_ENGINE: May instruct collateral seizure. Set ONCE.
    """
    ADMIN = "ADMIN"
    GUARDIAN = "GUARDIAN"
    ORCHESTRATOR = "ORCHESTRATOR"
    UPDATER = "UPDATER"
    LIQUIDATION_ENGINE = "LIQUIDATION_ENGINE"


class LTVTier(Enum):
    """
    Collateral-factor tier derived from time to resolution.

    NORMAL:      >= 7 days to resolution
    MEDIUM_RISK: 2 days <= T < 7 days
    HIGH_RISK:   24h <= T < 48h
    FROZEN:      < 24h, already resolved, or manually frozen

    The closer a market is to resolution, the more binary its token price
    becomes. Collateral factors shrink accordingly and reach zero.
    """
    NORMAL = "NORMAL"
    MEDIUM_RISK = "MEDIUM_RISK"
    HIGH_RISK = "HIGH_RISK"
    FROZEN = "FROZEN"


class ActionClass(Enum):
    """Action classes gated by the freeze controller."""
    BORROW = "BORROW"
    WITHDRAW = "WITHDRAW"
    REPAY = "REPAY"
    LIQUIDATE = "LIQUIDATE"


class BlockReason(Enum):
    """
    Reason an action is blocked, in borrow-check priority order.

    NONE: Action is allowed.
    GLOBALLY_PAUSED: Guardian paused the whole system.
    GLOBAL_CIRCUIT_BREAKER: Global breaker is tripped.
    MARKET_CIRCUIT_BREAKER: Market breaker tripped and still within cooldown.
    PRE_RESOLUTION_FREEZE: Less than 24h to resolution, or already resolved.
    MARKET_FROZEN: Market carries the manual freeze flag.
    """
    NONE = "NONE"
    GLOBALLY_PAUSED = "GLOBALLY_PAUSED"
    GLOBAL_CIRCUIT_BREAKER = "GLOBAL_CIRCUIT_BREAKER"
    MARKET_CIRCUIT_BREAKER = "MARKET_CIRCUIT_BREAKER"
    PRE_RESOLUTION_FREEZE = "PRE_RESOLUTION_FREEZE"
    MARKET_FROZEN = "MARKET_FROZEN"
