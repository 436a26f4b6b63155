# =============================================================================
# POLYMARKET LENDING - SHARED MODULE
# =============================================================================
#
# Shared utilities with NO business logic.
#
# CONTENTS:
# - Enums (shared type definitions)
# - Fixed-point arithmetic
# - Logging utilities (separated by component) and audit records
# - Configuration loading
#
# =============================================================================

from .enums import ActionClass, BlockReason, Component, LTVTier, Role
from .logging_config import AuditLogger, get_component_logger, setup_logging

__all__ = [
    "ActionClass",
    "BlockReason",
    "Component",
    "LTVTier",
    "Role",
    "AuditLogger",
    "get_component_logger",
    "setup_logging",
]
