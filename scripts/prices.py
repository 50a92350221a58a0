#!/usr/bin/env python3
"""
NFT Price Fetcher — Price Resolution

Reads the sale state of one (collection, token) pair and resolves a single
best price across the two sale mechanisms of the marketplace:

- Fixed-price listing (Listing Inspector)
- Timed auction with reserve price (Auction Inspector)
- Best price across both (Price Aggregator)
- Cheap "is anything for sale" probe

Amounts are integers in wei. Conversion to ETH happens only in the
presentation layer (common.py).
"""

import sys
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any

# Локальный импорт
script_dir = Path(__file__).parent
sys.path.insert(0, str(script_dir))

from common import ERROR_MESSAGES, ZERO_ADDRESS, resolve_collection_alias  # noqa: E402
from ledger import query_listing, query_auction, query_exists  # noqa: E402
from utils import is_valid_address, normalize_address  # noqa: E402


logger = logging.getLogger("nft-price")


# =============================================================================
# Data Model
# =============================================================================


@dataclass(frozen=True)
class ItemIdentity:
    collection_address: str
    token_id: int

    def __post_init__(self):
        if not is_valid_address(self.collection_address):
            raise ValueError(
                ERROR_MESSAGES["invalid_address"].format(self.collection_address)
            )
        if (
            isinstance(self.token_id, bool)
            or not isinstance(self.token_id, int)
            or self.token_id < 0
        ):
            raise ValueError(ERROR_MESSAGES["invalid_token_id"].format(self.token_id))

    def __str__(self) -> str:
        return f"{self.collection_address}#{self.token_id}"


@dataclass(frozen=True)
class ListingFact:
    exists: bool
    price: int = 0
    seller: str = ""


@dataclass(frozen=True)
class AuctionFact:
    exists: bool
    reserve_price: int = 0
    highest_bid: int = 0
    highest_bidder: str = ""
    end_time: int = 0  # 0 = not started
    active: bool = False

    @property
    def has_bids(self) -> bool:
        return self.highest_bid > 0

    @property
    def started(self) -> bool:
        return self.end_time > 0


@dataclass(frozen=True)
class BestPriceResult:
    available: bool
    best_price: int
    is_auction: bool


NOT_AVAILABLE = BestPriceResult(available=False, best_price=0, is_auction=False)


@dataclass(frozen=True)
class SaleState:
    """Everything the presentation layer needs for one item."""

    identity: ItemIdentity
    listing: ListingFact
    auction: AuctionFact
    best: BestPriceResult


def make_identity(collection: str, token_id: int) -> ItemIdentity:
    """
    Build an ItemIdentity from user input.

    Args:
        collection: Collection alias (e.g. "blitmap") or contract address
        token_id: Token ID

    Raises:
        ValueError: invalid address or token ID
    """
    address = normalize_address(resolve_collection_alias(collection))
    return ItemIdentity(collection_address=address, token_id=token_id)


# =============================================================================
# Field Validation
# =============================================================================


def _malformed(kind: str, identity: ItemIdentity, detail: str) -> LookupError:
    message = ERROR_MESSAGES["malformed_response"].format(kind, f"{identity}: {detail}")
    logger.warning(message)
    return LookupError(message)


def _parse_flag(raw: dict, field: str, kind: str, identity: ItemIdentity) -> bool:
    value = raw.get(field)
    if not isinstance(value, bool):
        raise _malformed(kind, identity, f"'{field}' must be a boolean, got {value!r}")
    return value


def _parse_amount(
    raw: dict, field: str, kind: str, identity: ItemIdentity, required: bool = False
) -> int:
    """Non-negative integer amount; uint256 values may arrive as digit strings."""
    value: Any = raw.get(field)
    if value is None:
        if required:
            raise _malformed(kind, identity, f"'{field}' is missing")
        return 0

    if isinstance(value, bool):
        raise _malformed(kind, identity, f"'{field}' must be an integer, got {value!r}")
    if isinstance(value, str):
        text = value.strip()
        if not (text.isascii() and text.isdigit()):
            raise _malformed(kind, identity, f"'{field}' must be an integer, got {value!r}")
        return int(text)
    if not isinstance(value, int):
        raise _malformed(kind, identity, f"'{field}' must be an integer, got {value!r}")
    if value < 0:
        raise _malformed(kind, identity, f"'{field}' must be non-negative, got {value}")
    return value


def _parse_party(raw: dict, field: str, kind: str, identity: ItemIdentity) -> str:
    """Seller/bidder address; the zero address means nobody."""
    value = raw.get(field)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise _malformed(kind, identity, f"'{field}' must be an address, got {value!r}")
    if value.lower() == ZERO_ADDRESS:
        return ""
    return value


# =============================================================================
# Listing Inspector
# =============================================================================


def get_listing(identity: ItemIdentity) -> ListingFact:
    """
    Fixed-price listing facts for one item.

    "No listing" is a valid result (exists=False), not an error.

    Raises:
        LookupError: ledger unreachable or returned malformed data
    """
    raw = query_listing(identity.collection_address, identity.token_id)

    if not _parse_flag(raw, "exists", "listing", identity):
        return ListingFact(exists=False)

    return ListingFact(
        exists=True,
        price=_parse_amount(raw, "price", "listing", identity, required=True),
        seller=_parse_party(raw, "seller", "listing", identity),
    )


# =============================================================================
# Auction Inspector
# =============================================================================


def get_auction(identity: ItemIdentity) -> AuctionFact:
    """
    Auction facts for one item.

    end_time=0 (not started) is returned as-is. `active` is kept separate
    from `exists`: an ended or cancelled auction still exists.

    Raises:
        LookupError: ledger unreachable or returned malformed data
    """
    raw = query_auction(identity.collection_address, identity.token_id)

    if not _parse_flag(raw, "exists", "auction", identity):
        return AuctionFact(exists=False)

    return AuctionFact(
        exists=True,
        reserve_price=_parse_amount(
            raw, "reserve_price", "auction", identity, required=True
        ),
        highest_bid=_parse_amount(raw, "highest_bid", "auction", identity),
        highest_bidder=_parse_party(raw, "highest_bidder", "auction", identity),
        end_time=_parse_amount(raw, "end_time", "auction", identity),
        active=_parse_flag(raw, "active", "auction", identity),
    )


# =============================================================================
# Price Aggregator
# =============================================================================


def effective_auction_price(auction: AuctionFact) -> int:
    """Price a buyer must currently clear: the reserve until a bid exceeds it."""
    return max(auction.highest_bid, auction.reserve_price)


def resolve_best_price(listing: ListingFact, auction: AuctionFact) -> BestPriceResult:
    """
    Resolve one best price from listing and auction facts.

    Pure and total. Precedence:
      1. nothing for sale -> not available
      2. listing only     -> listing price
      3. auction only     -> effective auction price (active does not matter)
      4. both             -> the lower one; on a tie the fixed price wins
    """
    if not listing.exists and not auction.exists:
        return NOT_AVAILABLE

    if not auction.exists:
        return BestPriceResult(available=True, best_price=listing.price, is_auction=False)

    auction_price = effective_auction_price(auction)

    if not listing.exists:
        return BestPriceResult(available=True, best_price=auction_price, is_auction=True)

    if auction_price < listing.price:
        return BestPriceResult(available=True, best_price=auction_price, is_auction=True)
    return BestPriceResult(available=True, best_price=listing.price, is_auction=False)


# =============================================================================
# Existence Probe
# =============================================================================


def is_listed(identity: ItemIdentity) -> bool:
    """
    True if the item has a listing or an auction record.

    Ignores `active` and prices; use it to skip fetching full detail.

    Raises:
        LookupError: ledger unreachable or returned malformed data
    """
    raw = query_exists(identity.collection_address, identity.token_id)
    fixed_price = _parse_flag(raw, "fixed_price", "exists", identity)
    auction = _parse_flag(raw, "auction", "exists", identity)
    return fixed_price or auction


# =============================================================================
# Full Sale State
# =============================================================================


def fetch_sale_state(identity: ItemIdentity, parallel: bool = True) -> SaleState:
    """
    Fetch listing and auction facts and resolve the best price.

    The two queries are independent; with parallel=True they run on two
    threads and are joined before aggregation. A LookupError from either
    query propagates unchanged.
    """
    if parallel:
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="ledger") as pool:
            listing_future = pool.submit(get_listing, identity)
            auction_future = pool.submit(get_auction, identity)
            listing = listing_future.result()
            auction = auction_future.result()
    else:
        listing = get_listing(identity)
        auction = get_auction(identity)

    best = resolve_best_price(listing, auction)
    logger.debug(
        f"Resolved {identity}: available={best.available} "
        f"price={best.best_price} auction={best.is_auction}"
    )
    return SaleState(identity=identity, listing=listing, auction=auction, best=best)
