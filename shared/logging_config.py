# =============================================================================
# POLYMARKET LENDING - LOGGING CONFIGURATION
# =============================================================================
#
# Logs are separated by component.
# - Oracle logs go to logs/oracle/
# - Liquidation logs go to logs/liquidation/
# - ... one directory per Component
#
# Audit records (breaker trips, liquidations, parameter changes) are
# JSON lines on a dedicated "audit.<component>" logger.
#
# =============================================================================

import hashlib
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from .enums import Component


LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


# =============================================================================
# LOG DIRECTORIES (relative to project root)
# =============================================================================

def _get_project_root() -> Path:
    """Get the project root directory."""
    # This file is at shared/logging_config.py
    return Path(__file__).parent.parent


def _get_log_dir(component: Optional[Component] = None, base_dir: Optional[Path] = None) -> Path:
    """Get the log directory for a specific component."""
    root = base_dir or (_get_project_root() / "logs")
    if component is None:
        return root / "core"
    return root / component.value.lower()


def _logger_name(component: Optional[Component]) -> str:
    return "core" if component is None else component.value.lower()


# =============================================================================
# LOGGING SETUP
# =============================================================================

def setup_logging(
    component: Optional[Component] = None,
    level: int = logging.INFO,
    console_output: bool = True,
    file_output: bool = True,
    log_dir: Optional[Path] = None,
) -> logging.Logger:
    """
    Configure logging for a component.

    The root logger receives the handlers so module loggers
    (core.price_oracle, core.liquidation_engine, ...) propagate into them.

    Args:
        component: Component to configure logging for (None for the whole core)
        level: Logging level
        console_output: Whether to log to console
        file_output: Whether to log to file
        log_dir: Base log directory. Defaults to <project>/logs

    Returns:
        The component logger
    """
    logger_name = _logger_name(component)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    root = logging.getLogger()
    root.setLevel(level)

    # Remove existing handlers to avoid duplicates
    root.handlers.clear()

    if console_output:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)

    log_file = None
    if file_output:
        target_dir = _get_log_dir(component, log_dir)
        target_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = target_dir / f"{logger_name}_{timestamp}.log"

        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    logger = logging.getLogger(logger_name)
    logger.setLevel(level)
    logger.info(f"Logging initialized for {logger_name}")
    if log_file is not None:
        logger.info(f"Log file: {log_file}")
    return logger


def get_component_logger(component: Optional[Component] = None) -> logging.Logger:
    """
    Get the logger for a specific component.

    Args:
        component: The component to get the logger for

    Returns:
        Logger instance
    """
    return logging.getLogger(_logger_name(component))


# =============================================================================
# AUDIT LOGGING
# =============================================================================

class AuditLogger:
    """
    Logger for audit-grade records.

    Audit records are:
    - JSON, one object per line
    - Hashed (SHA-256 over the details) for traceability
    - Emitted on "audit.<component>" regardless of operational log level
    - Written to logs/audit/ when a log directory is given
    """

    def __init__(self, component: Component, log_dir: Optional[Path] = None):
        self.component = component
        self._log_dir = log_dir
        self._setup_audit_logger()

    def _setup_audit_logger(self) -> None:
        """Set up the audit logger, with a dedicated file if requested."""
        name = self.component.value.lower()
        self.logger = logging.getLogger(f"audit.{name}")
        self.logger.setLevel(logging.INFO)

        if self._log_dir is None:
            return

        audit_dir = self._log_dir / "audit"
        audit_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d")
        audit_file = audit_dir / f"audit_{name}_{timestamp}.jsonl"

        self.logger.handlers.clear()
        handler = logging.FileHandler(audit_file, encoding="utf-8")
        handler.setFormatter(logging.Formatter("%(message)s"))
        self.logger.addHandler(handler)

    @staticmethod
    def _compute_hash(data: Dict[str, Any]) -> str:
        """
        Compute SHA-256 hash of event details.

        Large integers are serialized as decimal strings by json.
        """
        serialized = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
        return hashlib.sha256(serialized.encode("utf-8")).hexdigest()

    def log_event(self, event_type: str, details: Dict[str, Any]) -> Dict[str, Any]:
        """
        Log an audit event.

        Args:
            event_type: Type of event (e.g. "OBSERVATION_REJECTED")
            details: Event details as a dictionary

        Returns:
            The emitted record
        """
        record = {
            "timestamp": datetime.now().isoformat(),
            "component": self.component.value,
            "event": event_type,
            "details": details,
            "details_hash": self._compute_hash(details),
        }
        self.logger.info(json.dumps(record, ensure_ascii=False, default=str))
        return record
