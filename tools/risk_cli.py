#!/usr/bin/env python3
# =============================================================================
# POLYMARKET LENDING - RISK CLI
# =============================================================================
#
# Command-line interface for inspecting the lending risk core.
#
# Commands:
#   tiers   --resolution-time <ISO|epoch>    LTV schedule for a market
#   market  <condition_id>                   Gamma lookup, tier, freeze status
#   health  --collateral --price --debt      Health factor from numbers
#   poll    --asset NAME=TOKEN_ID --rounds N Run the oracle keeper, print TWAP
#
# READ-ONLY against Polymarket. Nothing here moves funds.
#
# =============================================================================

import argparse
import json
import logging
import sys
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import List, Optional

# Setup project root
BASE_DIR = Path(__file__).parent.parent
sys.path.insert(0, str(BASE_DIR))

from app.lending_core import build_lending_core
from collector.client import CollectorError, PolymarketHttpClient
from collector.market_registry import GammaMarketRegistry
from collector.price_feed import OracleKeeper
from core.clock import ManualClock, SystemClock
from core.exceptions import InsufficientObservationsError
from core.risk_tier_scheduler import RiskTierConfig, tier_for_time_to_resolution
from shared.config_loader import LendingConfig
from shared.enums import Component
from shared.fixed_point import (
    COLLATERAL_DECIMALS,
    LOAN_DECIMALS,
    MAX_UINT256,
    collateral_value,
    from_fixed_point,
    to_fixed_point,
)
from shared.logging_config import setup_logging


# =============================================================================
# FORMATTING
# =============================================================================


def _fmt_duration(seconds: int) -> str:
    days, rest = divmod(seconds, 86400)
    hours, rest = divmod(rest, 3600)
    return f"{days}d {hours}h {rest // 60}m"


def _fmt_bps(bps: int) -> str:
    return f"{bps / 100:.2f}%"


def _fmt_hf(health_factor: int) -> str:
    if health_factor == MAX_UINT256:
        return "inf"
    return f"{from_fixed_point(health_factor):.4f}"


def _fmt_time(timestamp: int) -> str:
    if timestamp <= 0:
        return "N/A"
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


def _parse_time(value: str) -> int:
    """Unix seconds or ISO 8601."""
    if value.isdigit():
        return int(value)
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp())


# =============================================================================
# CLI COMMANDS
# =============================================================================


def cmd_tiers(args, config: LendingConfig) -> int:
    """Print the LTV schedule and the current tier for a resolution time."""
    tiers = RiskTierConfig(
        normal_ltv_bps=config.risk_tiers.normal_ltv_bps,
        medium_risk_ltv_bps=config.risk_tiers.medium_ltv_bps,
        high_risk_ltv_bps=config.risk_tiers.high_ltv_bps,
    )
    now = _parse_time(args.now) if args.now else SystemClock().now()
    resolution_time = _parse_time(args.resolution_time)
    remaining = max(0, resolution_time - now)
    tier = tier_for_time_to_resolution(remaining)

    print()
    print("=" * 50)
    print("LTV SCHEDULE")
    print("=" * 50)
    print(f"  NORMAL       (>= 7d)     {_fmt_bps(tiers.normal_ltv_bps)}")
    print(f"  MEDIUM_RISK  (2d - 7d)   {_fmt_bps(tiers.medium_risk_ltv_bps)}")
    print(f"  HIGH_RISK    (24h - 48h) {_fmt_bps(tiers.high_risk_ltv_bps)}")
    print(f"  FROZEN       (< 24h)     {_fmt_bps(tiers.frozen_ltv_bps)}")
    print()
    print(f"Resolution:   {_fmt_time(resolution_time)}")
    print(f"Remaining:    {_fmt_duration(remaining)}")
    print(f"Tier:         {tier.value}  (max LTV {_fmt_bps(tiers.ltv_for(tier))})")
    print()
    return 0


def cmd_market(args, config: LendingConfig) -> int:
    """Look up a market on Gamma and print its risk status."""
    client = PolymarketHttpClient.from_settings(config.collector)
    registry = GammaMarketRegistry(client, config.collector.market_cache_ttl_seconds)
    core = build_lending_core(config, clock=SystemClock(), registry=registry)

    try:
        market = registry.get_market(args.condition_id)
    except CollectorError as e:
        print(f"Market lookup failed: {e}")
        return 1

    if not market.is_registered:
        print(f"Market {args.condition_id} not found on Gamma")
        return 1

    can_borrow, reason = core.freeze.can_borrow(market.condition_id)
    result = {
        "condition_id": market.condition_id,
        "resolution_time": _fmt_time(market.resolution_time),
        "time_to_resolution": _fmt_duration(core.risk_tiers.get_time_to_resolution(market.condition_id)),
        "is_frozen": market.is_frozen,
        "outcome_count": market.outcome_count,
        "tier": core.risk_tiers.get_ltv_tier(market.condition_id).value,
        "max_ltv": _fmt_bps(core.risk_tiers.get_max_ltv(market.condition_id)),
        "pre_resolution_freeze": core.freeze.is_in_pre_resolution_freeze(market.condition_id),
        "can_borrow": can_borrow,
        "block_reason": reason.value,
    }

    if args.json:
        print(json.dumps(result, indent=2))
    else:
        print()
        for key, value in result.items():
            print(f"  {key:<24} {value}")
        print()
    return 0


def cmd_health(args, config: LendingConfig) -> int:
    """Compute a health factor from human-readable amounts."""
    core = build_lending_core(config, clock=ManualClock())
    if args.threshold_bps is not None:
        params = core.liquidation.params
        core.liquidation.update_parameters(
            config.roles.admin, args.threshold_bps, params.liquidation_bonus_bps, params.close_factor_bps
        )

    collateral = to_fixed_point(args.collateral, COLLATERAL_DECIMALS)
    price = to_fixed_point(args.price)
    debt = to_fixed_point(args.debt, LOAN_DECIMALS)

    value = collateral_value(collateral, price)
    health_factor = core.liquidation.calculate_health_factor(value, debt)

    print()
    print(f"Collateral value:  {from_fixed_point(value, LOAN_DECIMALS)}")
    print(f"Debt:              {from_fixed_point(debt, LOAN_DECIMALS)}")
    print(f"Threshold:         {_fmt_bps(core.liquidation.params.liquidation_threshold_bps)}")
    print(f"Health factor:     {_fmt_hf(health_factor)}")
    print(f"Liquidatable:      {debt > 0 and health_factor < to_fixed_point(1)}")
    print()
    return 0


def cmd_poll(args, config: LendingConfig) -> int:
    """Run the oracle keeper against the CLOB API and print TWAPs."""
    if not config.roles.updaters:
        print("No oracle updater configured (roles.updaters / LENDING_UPDATERS)")
        return 1

    assets = {}
    for entry in args.asset:
        name, sep, token_id = entry.partition("=")
        assets[name] = token_id if sep else name

    core = build_lending_core(config, clock=SystemClock())
    client = PolymarketHttpClient.from_settings(config.collector)
    keeper = OracleKeeper(core.oracle, client, config.roles.updaters[0], assets)

    def report(index, round_result):
        print(f"Round {index + 1}: stored {round_result.stored}/{round_result.submitted}"
              f" failed={round_result.failed}")
        for asset in assets:
            try:
                twap, ts = core.oracle.get_twap(asset)
                print(f"  {asset:<20} TWAP {from_fixed_point(twap):.6f} (latest {_fmt_time(ts)})")
            except InsufficientObservationsError:
                count = core.oracle.get_observation_count(asset)
                print(f"  {asset:<20} TWAP n/a ({count} observation(s))")

    interval = args.interval if args.interval is not None else config.collector.poll_interval_seconds
    keeper.run(args.rounds, interval, on_round=report)
    return 0


# =============================================================================
# MAIN
# =============================================================================


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Polymarket Lending Risk CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python tools/risk_cli.py tiers --resolution-time 2026-11-05T00:00:00Z
  python tools/risk_cli.py market 0xabc...
  python tools/risk_cli.py health --collateral 2000 --price 0.5 --debt 800
  python tools/risk_cli.py poll --asset yes=1234 --rounds 3 --interval 10
""",
    )
    parser.add_argument("--config", type=Path, default=None, help="Path to lending.yaml")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    tiers_parser = subparsers.add_parser("tiers", help="LTV schedule for a resolution time")
    tiers_parser.add_argument("--resolution-time", required=True, help="ISO 8601 or unix seconds")
    tiers_parser.add_argument("--now", default=None, help="Override current time")

    market_parser = subparsers.add_parser("market", help="Market risk status from Gamma")
    market_parser.add_argument("condition_id")
    market_parser.add_argument("--json", action="store_true", help="JSON output")

    health_parser = subparsers.add_parser("health", help="Health factor from amounts")
    health_parser.add_argument("--collateral", type=Decimal, required=True, help="Collateral tokens")
    health_parser.add_argument("--price", type=Decimal, required=True, help="Token price in [0, 1]")
    health_parser.add_argument("--debt", type=Decimal, required=True, help="Debt in loan currency")
    health_parser.add_argument("--threshold-bps", type=int, default=None)

    poll_parser = subparsers.add_parser("poll", help="Run the oracle keeper")
    poll_parser.add_argument("--asset", action="append", required=True,
                             help="NAME=TOKEN_ID (repeatable)")
    poll_parser.add_argument("--rounds", type=int, default=3)
    poll_parser.add_argument("--interval", type=float, default=None)

    args = parser.parse_args(argv)

    config = LendingConfig(config_path=args.config) if args.config else LendingConfig()
    setup_logging(
        Component.COLLECTOR if args.command == "poll" else None,
        level=logging.DEBUG if args.verbose else config.log_level,
        file_output=False,
    )

    commands = {
        "tiers": cmd_tiers,
        "market": cmd_market,
        "health": cmd_health,
        "poll": cmd_poll,
    }
    return commands[args.command](args, config)


if __name__ == "__main__":
    sys.exit(main())
