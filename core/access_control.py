# =============================================================================
# POLYMARKET LENDING - ACCESS CONTROL
# =============================================================================
#
# Capability model for privileged operations.
#
# RULES:
# - ADMIN is fixed at construction
# - GUARDIAN and UPDATER accounts are granted/revoked by ADMIN
# - ORCHESTRATOR and LIQUIDATION_ENGINE are SET ONCE (two-phase wiring)
# - Every guarded operation calls require(role, caller) FIRST
#
# A single AccessControl instance is shared by all components and passed
# in at construction, so tests can substitute accounts freely.
#
# =============================================================================

import logging
from typing import Dict, Optional, Set

from shared.enums import Role

from .exceptions import AlreadyConfiguredError, InvalidParameterError, UnauthorizedCallerError

logger = logging.getLogger(__name__)

# Roles that can be assigned exactly once
SET_ONCE_ROLES = frozenset({Role.ORCHESTRATOR, Role.LIQUIDATION_ENGINE})


class AccessControl:
    """Role registry shared by the risk-core components."""

    def __init__(self, admin: str, guardian: Optional[str] = None):
        if not admin:
            raise InvalidParameterError("admin", admin, "admin account is required")

        self._members: Dict[Role, Set[str]] = {role: set() for role in Role}
        self._members[Role.ADMIN].add(admin)
        if guardian:
            self._members[Role.GUARDIAN].add(guardian)

    # -------------------------------------------------------------------------
    # CHECKS
    # -------------------------------------------------------------------------

    def has_role(self, role: Role, account: str) -> bool:
        return account in self._members[role]

    def require(self, role: Role, caller: str) -> None:
        """
        Raise unless caller holds role.

        Raises:
            UnauthorizedCallerError: If the caller lacks the role
        """
        if caller not in self._members[role]:
            logger.warning(f"Unauthorized call: {caller!r} lacks {role.value}")
            raise UnauthorizedCallerError(caller, role)

    def members(self, role: Role) -> Set[str]:
        return set(self._members[role])

    def get_single(self, role: Role) -> Optional[str]:
        """Return the holder of a set-once role, or None."""
        holders = self._members[role]
        return next(iter(holders)) if holders else None

    # -------------------------------------------------------------------------
    # ADMINISTRATION
    # -------------------------------------------------------------------------

    def grant(self, caller: str, role: Role, account: str) -> None:
        """Grant a role (ADMIN only). Set-once roles go through set_once()."""
        self.require(Role.ADMIN, caller)
        if role in SET_ONCE_ROLES:
            self.set_once(caller, role, account)
            return
        if role == Role.ADMIN:
            raise InvalidParameterError("role", role.value, "admin cannot be granted")
        if not account:
            raise InvalidParameterError("account", account, "account is required")

        self._members[role].add(account)
        logger.info(f"Granted {role.value} to {account!r}")

    def revoke(self, caller: str, role: Role, account: str) -> None:
        """Revoke a role (ADMIN only). Set-once roles cannot be revoked."""
        self.require(Role.ADMIN, caller)
        if role in SET_ONCE_ROLES or role == Role.ADMIN:
            raise InvalidParameterError("role", role.value, "role cannot be revoked")

        self._members[role].discard(account)
        logger.info(f"Revoked {role.value} from {account!r}")

    def set_once(self, caller: str, role: Role, account: str) -> None:
        """
        Assign a set-once role (ADMIN only).

        Raises:
            AlreadyConfiguredError: If the role already has a holder
        """
        self.require(Role.ADMIN, caller)
        if role not in SET_ONCE_ROLES:
            raise InvalidParameterError("role", role.value, "role is not set-once")
        if not account:
            raise InvalidParameterError("account", account, "account is required")
        if self._members[role]:
            raise AlreadyConfiguredError(role.value)

        self._members[role].add(account)
        logger.info(f"Configured {role.value} = {account!r}")
