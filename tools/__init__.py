# =============================================================================
# POLYMARKET LENDING - COMMAND LINE TOOLS
# =============================================================================
