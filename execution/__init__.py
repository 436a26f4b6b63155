# =============================================================================
# POLYMARKET LENDING - EXECUTION COLLABORATORS
# =============================================================================
#
# Custody and pool capabilities consumed by the liquidation engine.
# The risk core never holds funds; it instructs these collaborators.
#
# =============================================================================

from execution.collaborators import (
    CollateralCustody,
    LendingPool,
    InMemoryCollateralCustody,
    InMemoryLendingPool,
)

__all__ = [
    "CollateralCustody",
    "LendingPool",
    "InMemoryCollateralCustody",
    "InMemoryLendingPool",
]
