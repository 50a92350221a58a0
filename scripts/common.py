#!/usr/bin/env python3
"""
NFT Price Fetcher — Shared Constants and Utilities

Centralized configuration for:
- Known collections (alias -> contract address mapping)
- Currency units
- Common error messages
- Formatting utilities (presentation only, never used by price resolution)
"""

from datetime import datetime
from typing import Optional

# =============================================================================
# Known Collections (alias -> collection contract address)
# =============================================================================

KNOWN_COLLECTIONS = {
    "blitmap": "0x8d04a8c79cEB0889Bdd12acdF3Fa9D207eD3Ff63",
    "zora": "0xabEFBc9fD2F806065b4f3C237d4b59D9A97Bcac7",
}

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


# =============================================================================
# Currency Units
# =============================================================================

WEI_PER_ETH = 10**18
NATIVE_SYMBOL = "ETH"


# =============================================================================
# Error Messages
# =============================================================================

ERROR_MESSAGES = {
    "invalid_address": "Invalid collection address format: {}",
    "invalid_token_id": "Token ID must be a non-negative integer, got: {}",
    "api_timeout": "API request timeout",
    "api_connection": "Connection error. Check network connectivity",
    "malformed_response": "Malformed {} response from ledger: {}",
}


# =============================================================================
# Formatting Utilities
# =============================================================================


def format_eth_amount(wei: Optional[int], symbol: str = NATIVE_SYMBOL) -> str:
    """Convert wei to ETH with exact decimal precision: 1500000000000000000 -> '1.5 ETH'."""
    if wei is None:
        return "N/A"
    whole, frac = divmod(int(wei), WEI_PER_ETH)
    frac_text = f"{frac:018d}".rstrip("0") or "0"
    return f"{whole}.{frac_text} {symbol}"


def format_end_time(end_time: int) -> str:
    """Render an auction end time; 0 means the auction has not started."""
    if not end_time:
        return "Not started"
    return datetime.fromtimestamp(end_time).strftime("%Y-%m-%d %H:%M:%S")


def truncate_address(address: str, start: int = 6, end: int = 4) -> str:
    """Truncate address for display: 0x8d04...Ff63"""
    if not address or len(address) <= start + end + 3:
        return address
    return f"{address[:start]}...{address[-end:]}"


def format_listing(listing) -> dict:
    """Presentation dict for a ListingFact."""
    return {
        "exists": listing.exists,
        "price_wei": str(listing.price),
        "price": format_eth_amount(listing.price),
        "seller": listing.seller,
    }


def format_auction(auction) -> dict:
    """Presentation dict for an AuctionFact."""
    return {
        "exists": auction.exists,
        "reserve_price_wei": str(auction.reserve_price),
        "reserve_price": format_eth_amount(auction.reserve_price),
        "highest_bid_wei": str(auction.highest_bid),
        "highest_bid": format_eth_amount(auction.highest_bid),
        "highest_bidder": auction.highest_bidder,
        "end_time": auction.end_time,
        "end_time_display": format_end_time(auction.end_time),
        "active": auction.active,
    }


def format_best_price(best) -> dict:
    """Presentation dict for a BestPriceResult."""
    return {
        "available": best.available,
        "price_wei": str(best.best_price),
        "price": format_eth_amount(best.best_price),
        "is_auction": best.is_auction,
    }


# =============================================================================
# Collection Resolution
# =============================================================================


def resolve_collection_alias(collection: str) -> str:
    """
    Resolve collection alias to contract address.

    Args:
        collection: Alias (e.g. 'blitmap') or address

    Returns:
        Collection address (unchanged if not a known alias)
    """
    alias_lower = collection.lower().strip()
    if alias_lower in KNOWN_COLLECTIONS:
        return KNOWN_COLLECTIONS[alias_lower]
    return collection.strip()


# =============================================================================
# CLI Help Text
# =============================================================================

COMMON_EPILOG = """
Environment variables:
  LEDGER_API_URL     Ledger API base URL (overrides config)
  LEDGER_API_KEY     Ledger API key (optional)

Configuration:
  Config file: ~/.nft-price-fetcher/config.json
  Set values: python utils.py config set <key> <value>

Known collections: blitmap, zora. Use an alias or the full contract address.
"""


# =============================================================================
# Module exports
# =============================================================================

__all__ = [
    # Collections
    "KNOWN_COLLECTIONS",
    "ZERO_ADDRESS",
    "resolve_collection_alias",
    # Units
    "WEI_PER_ETH",
    "NATIVE_SYMBOL",
    # Errors
    "ERROR_MESSAGES",
    # Formatting
    "format_eth_amount",
    "format_end_time",
    "truncate_address",
    "format_listing",
    "format_auction",
    "format_best_price",
    # Help
    "COMMON_EPILOG",
]
