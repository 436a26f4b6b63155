# =============================================================================
# POLYMARKET LENDING - STATE SNAPSHOTS
# =============================================================================
#
# JSON state file for the risk core:
#   oracle asset states, positions, freeze state, risk tiers,
#   liquidation parameters and (in-memory registry only) markets.
#
# Role assignments are NOT persisted; they come from configuration.
# Integers are stored as JSON numbers at full precision.
#
# =============================================================================

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

from core.market import InMemoryMarketRegistry, MarketInfo
from core.risk_tier_scheduler import RiskTierConfig

from .lending_core import LendingCore

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1
DEFAULT_SNAPSHOT_PATH = Path(__file__).parent.parent / "data" / "lending_state.json"


def build_snapshot(core: LendingCore) -> Dict[str, Any]:
    snapshot = {
        "version": SNAPSHOT_VERSION,
        "saved_at": datetime.now(timezone.utc).isoformat(),
        "clock": core.clock.now(),
        "oracle": core.oracle.export_state(),
        "freeze": core.freeze.export_state(),
        "risk_tiers": core.risk_tiers.config.to_dict(),
        "liquidation": core.liquidation.export_state(),
    }
    if isinstance(core.registry, InMemoryMarketRegistry):
        snapshot["markets"] = [m.to_dict() for m in core.registry.markets().values()]
    return snapshot


def save_snapshot(core: LendingCore, path: Path = DEFAULT_SNAPSHOT_PATH) -> Path:
    """Write the core state atomically (.tmp + replace)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    snapshot = build_snapshot(core)

    fd, tmp = tempfile.mkstemp(dir=str(path.parent), suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(snapshot, f, indent=2)
        os.replace(tmp, str(path))
    except Exception:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise

    logger.info(f"Snapshot saved: {path}")
    return path


def load_snapshot(core: LendingCore, path: Path = DEFAULT_SNAPSHOT_PATH) -> Dict[str, Any]:
    """
    Restore core state from a snapshot file.

    Every section is parsed before any component is updated, so a bad
    section leaves the core as it was.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the snapshot version is unsupported or data is invalid
        InvalidParameterError: If stored parameters are out of bounds
    """
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        snapshot = json.load(f)

    version = snapshot.get("version")
    if version != SNAPSHOT_VERSION:
        raise ValueError(f"Unsupported snapshot version: {version}")

    oracle_state = core.oracle.parse_state(snapshot.get("oracle", {}))
    freeze_state = core.freeze.parse_state(snapshot.get("freeze", {}))
    liquidation_state = core.liquidation.parse_state(snapshot.get("liquidation", {}))
    tiers = RiskTierConfig.from_dict(snapshot.get("risk_tiers", {}))
    markets = None
    if "markets" in snapshot and isinstance(core.registry, InMemoryMarketRegistry):
        markets = {
            m.condition_id: m
            for m in (MarketInfo.from_dict(raw) for raw in snapshot["markets"])
        }

    core.oracle.apply_state(oracle_state)
    core.freeze.apply_state(freeze_state)
    core.liquidation.apply_state(liquidation_state)
    core.risk_tiers.config = tiers
    if markets is not None:
        core.registry.load(markets)

    logger.info(f"Snapshot loaded: {path} (saved_at={snapshot.get('saved_at')})")
    return snapshot
