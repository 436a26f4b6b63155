# =============================================================================
# POLYMARKET LENDING - APPLICATION LAYER
# =============================================================================
#
# Wiring, pre-action risk checks and state persistence around the core.
#
# =============================================================================

from .risk_gate import RiskGate
from .lending_core import LendingCore, build_lending_core
from .state_snapshot import load_snapshot, save_snapshot

__all__ = [
    "RiskGate",
    "LendingCore",
    "build_lending_core",
    "load_snapshot",
    "save_snapshot",
]
