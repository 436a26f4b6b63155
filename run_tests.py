#!/usr/bin/env python3
# =============================================================================
# POLYMARKET LENDING - TEST RUNNER
# =============================================================================
#
# USAGE:
#   python run_tests.py              # Run all tests (pytest)
#   python run_tests.py -v           # Verbose mode
#   python run_tests.py --quick      # Quick smoke test only
#
# =============================================================================

import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))


def _smoke_test() -> int:
    print("\n" + "=" * 50)
    print("  QUICK SMOKE TEST")
    print("=" * 50 + "\n")

    errors = []

    # Test 1: Imports
    print("Testing imports...", end=" ")
    try:
        from app.lending_core import build_lending_core
        from core.clock import ManualClock
        from shared.config_loader import LendingConfig
        print("OK")
    except Exception as e:
        print(f"FAIL: {e}")
        errors.append(("imports", str(e)))
        return _summary(errors)

    # Test 2: Wiring
    print("Testing wiring...", end=" ")
    core = None
    try:
        core = build_lending_core(LendingConfig(), clock=ManualClock())
        status = core.status()
        assert status["liquidation_engine"] == core.liquidation.address
        print("OK")
    except Exception as e:
        print(f"FAIL: {e}")
        errors.append(("wiring", str(e)))

    # Test 3: Oracle TWAP
    print("Testing oracle...", end=" ")
    try:
        updater = core.config.roles.updaters[0]
        core.oracle.record_observation(updater, "smoke", 5 * 10**17)
        core.clock.advance(60)
        core.oracle.record_observation(updater, "smoke", 5 * 10**17)
        twap, _ = core.oracle.get_twap("smoke")
        assert twap == 5 * 10**17
        print("OK")
    except Exception as e:
        print(f"FAIL: {e}")
        errors.append(("oracle", str(e)))

    return _summary(errors)


def _summary(errors) -> int:
    print("\n" + "=" * 50)
    if errors:
        print(f"  SMOKE TEST: {len(errors)} ERRORS")
        for name, err in errors:
            print(f"    - {name}: {err}")
    else:
        print("  SMOKE TEST: ALL PASSED")
    print("=" * 50 + "\n")
    return 1 if errors else 0


def main():
    import argparse

    parser = argparse.ArgumentParser(
        description="Polymarket Lending Test Runner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_tests.py              Run all tests
  python run_tests.py -v           Verbose output
  python run_tests.py --quick      Quick smoke test
"""
    )

    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Verbose output")
    parser.add_argument("--quick", action="store_true",
                        help="Quick smoke test only")

    args = parser.parse_args()

    if args.quick:
        sys.exit(_smoke_test())

    import pytest
    pytest_args = [str(PROJECT_ROOT / "tests")]
    if args.verbose:
        pytest_args.append("-v")
    sys.exit(pytest.main(pytest_args))


if __name__ == "__main__":
    main()
