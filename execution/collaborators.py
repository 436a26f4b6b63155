# =============================================================================
# POLYMARKET LENDING - EXECUTION COLLABORATORS
# =============================================================================
#
# Value-moving capabilities the risk core calls into. The core never holds
# funds itself.
#
#   CollateralCustody.seize_collateral()  - ONLY the liquidation engine
#   LendingPool.receive_repayment()       - orchestrator or liquidation engine
#   LendingPool.disburse()                - orchestrator
#
# The in-memory implementations keep plain balance maps and are used for
# wiring, simulations and tests. Every failure raises before any balance
# changes.
#
# Both interfaces expose savepoint() / restore() for Transaction rollback.
#
# =============================================================================

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Tuple

from core.access_control import AccessControl
from core.exceptions import (
    InsufficientCollateralError,
    InsufficientLiquidityError,
    InvalidParameterError,
    UnauthorizedCallerError,
    ZeroAmountError,
)
from shared.enums import Role

logger = logging.getLogger(__name__)


# =============================================================================
# INTERFACES
# =============================================================================


class Savepointable(ABC):
    """State that can be captured and put back by a Transaction."""

    @abstractmethod
    def savepoint(self) -> Any:
        """Opaque copy of the current balances."""

    @abstractmethod
    def restore(self, savepoint: Any) -> None:
        """Put back balances captured by `savepoint()`."""


class CollateralCustody(Savepointable):
    """Holds outcome-token collateral on behalf of borrowers."""

    @abstractmethod
    def seize_collateral(
        self,
        caller: str,
        asset: str,
        borrower: str,
        liquidator: str,
        amount: int,
    ) -> None:
        """Move `amount` of `asset` from the borrower to the liquidator."""


class LendingPool(Savepointable):
    """Holds loan-currency liquidity."""

    @abstractmethod
    def receive_repayment(self, caller: str, payer: str, amount: int) -> None:
        """Pull `amount` from the payer into the pool."""

    @abstractmethod
    def disburse(self, caller: str, borrower: str, amount: int) -> None:
        """Send `amount` of pool liquidity to the borrower."""


def _require_non_negative(name: str, amount: int) -> None:
    if amount < 0:
        raise InvalidParameterError(name, amount, "must be non-negative")


# =============================================================================
# IN-MEMORY CUSTODY
# =============================================================================


class InMemoryCollateralCustody(CollateralCustody):
    """Balance map keyed by (account, asset), in collateral token units."""

    def __init__(self, access: AccessControl):
        self._access = access
        self._balances: Dict[Tuple[str, str], int] = {}

    def balance_of(self, account: str, asset: str) -> int:
        return self._balances.get((account, asset), 0)

    def deposit(self, caller: str, account: str, asset: str, amount: int) -> None:
        """Credit collateral to an account (ORCHESTRATOR only)."""
        self._access.require(Role.ORCHESTRATOR, caller)
        _require_non_negative("amount", amount)
        key = (account, asset)
        self._balances[key] = self._balances.get(key, 0) + amount

    def savepoint(self) -> Dict[Tuple[str, str], int]:
        return dict(self._balances)

    def restore(self, savepoint: Dict[Tuple[str, str], int]) -> None:
        self._balances = dict(savepoint)
        logger.warning("Custody balances restored to savepoint")

    def withdraw(self, caller: str, account: str, asset: str, amount: int) -> None:
        """Debit collateral from an account (ORCHESTRATOR only)."""
        self._access.require(Role.ORCHESTRATOR, caller)
        _require_non_negative("amount", amount)
        available = self.balance_of(account, asset)
        if amount > available:
            raise InsufficientCollateralError(available, amount, account)
        self._balances[(account, asset)] = available - amount

    def seize_collateral(
        self,
        caller: str,
        asset: str,
        borrower: str,
        liquidator: str,
        amount: int,
    ) -> None:
        self._access.require(Role.LIQUIDATION_ENGINE, caller)
        _require_non_negative("amount", amount)

        available = self.balance_of(borrower, asset)
        if amount > available:
            raise InsufficientCollateralError(available, amount, borrower)

        self._balances[(borrower, asset)] = available - amount
        self._balances[(liquidator, asset)] = self.balance_of(liquidator, asset) + amount
        logger.info(f"Seized {amount} {asset} from {borrower} to {liquidator}")


# =============================================================================
# IN-MEMORY POOL
# =============================================================================


class InMemoryLendingPool(LendingPool):
    """
    Pool liquidity plus per-account wallets, in loan currency units.

    Wallets stand in for the accounts' own loan-currency holdings.
    """

    def __init__(self, access: AccessControl):
        self._access = access
        self.liquidity = 0
        self._wallets: Dict[str, int] = {}

    def wallet_of(self, account: str) -> int:
        return self._wallets.get(account, 0)

    def fund_wallet(self, caller: str, account: str, amount: int) -> None:
        """Credit an account wallet (ADMIN only)."""
        self._access.require(Role.ADMIN, caller)
        _require_non_negative("amount", amount)
        self._wallets[account] = self.wallet_of(account) + amount

    def add_liquidity(self, caller: str, amount: int) -> None:
        """Seed pool liquidity (ADMIN only)."""
        self._access.require(Role.ADMIN, caller)
        _require_non_negative("amount", amount)
        self.liquidity += amount

    def savepoint(self) -> Tuple[int, Dict[str, int]]:
        return self.liquidity, dict(self._wallets)

    def restore(self, savepoint: Tuple[int, Dict[str, int]]) -> None:
        self.liquidity, wallets = savepoint
        self._wallets = dict(wallets)
        logger.warning(f"Pool restored to savepoint: liquidity={self.liquidity}")

    def receive_repayment(self, caller: str, payer: str, amount: int) -> None:
        if not (
            self._access.has_role(Role.ORCHESTRATOR, caller)
            or self._access.has_role(Role.LIQUIDATION_ENGINE, caller)
        ):
            raise UnauthorizedCallerError(caller, Role.ORCHESTRATOR)
        if amount == 0:
            raise ZeroAmountError(payer)
        _require_non_negative("amount", amount)

        available = self.wallet_of(payer)
        if amount > available:
            raise InsufficientLiquidityError(available, amount, payer)

        self._wallets[payer] = available - amount
        self.liquidity += amount
        logger.info(f"Repayment received: {amount} from {payer}")

    def disburse(self, caller: str, borrower: str, amount: int) -> None:
        self._access.require(Role.ORCHESTRATOR, caller)
        if amount == 0:
            raise ZeroAmountError(borrower)
        _require_non_negative("amount", amount)
        if amount > self.liquidity:
            raise InsufficientLiquidityError(self.liquidity, amount, borrower)

        self.liquidity -= amount
        self._wallets[borrower] = self.wallet_of(borrower) + amount
        logger.info(f"Disbursed {amount} to {borrower}")
