# =============================================================================
# POLYMARKET LENDING - TEST SUITE
# =============================================================================
#
# Structure:
#   tests/
#     conftest.py     - Shared fixtures (accounts, clock, wired core)
#     unit/           - Unit tests per component
#     integration/    - Wired-system flows (borrow, liquidation, snapshots)
#
# Usage:
#   pytest                       # All tests
#   pytest tests/unit/           # Unit tests only
#   python run_tests.py --quick  # Smoke test
#
# =============================================================================
