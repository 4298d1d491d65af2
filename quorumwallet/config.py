"""
Configuration module for QuorumWallet.

Centralizes configuration with environment variable support and
validation. Values are read once at import; wallets take explicit
constructor arguments that default to these.
"""

import os

# ============================================================
# Environment Configuration
# ============================================================

ENV = os.getenv("QUORUMWALLET_ENV", "dev")  # dev|stage|prod

# Chain / execution environment identifier bound into every digest
CHAIN_ID = int(os.getenv("QUORUMWALLET_CHAIN_ID", "1"))

# Percentage of collected revenue credited to the first approver, and
# again to the executor
FEE_PERCENTAGE = int(os.getenv("QUORUMWALLET_FEE_PERCENTAGE", "20"))

# Gas stipend for withdrawal transfers
TRANSFER_GAS = int(os.getenv("QUORUMWALLET_TRANSFER_GAS", "2300"))

# Logging
LOG_LEVEL = os.getenv("QUORUMWALLET_LOG_LEVEL", "INFO")
LOG_JSON = os.getenv("QUORUMWALLET_LOG_JSON", "1").lower() in ("1", "true", "yes")
LOG_FILE = os.getenv("QUORUMWALLET_LOG_FILE") or None


# ============================================================
# Validation
# ============================================================

def validate_fee_percentage(fee_percentage: int) -> int:
    """
    Both fixed shares come out of the same revenue, so together they may
    not exceed the whole.
    """
    if not isinstance(fee_percentage, int) or isinstance(fee_percentage, bool):
        raise ValueError("fee_percentage must be an integer")
    if fee_percentage < 0 or fee_percentage * 2 > 100:
        raise ValueError(
            f"fee_percentage must be between 0 and 50, got {fee_percentage}"
        )
    return fee_percentage


# ============================================================
# Feature Flags
# ============================================================

def is_production() -> bool:
    """Check if running in production mode."""
    return ENV == "prod"


def is_debug() -> bool:
    """Check if debug mode is enabled."""
    return os.getenv("QUORUMWALLET_DEBUG", "").lower() in ("1", "true", "yes")
