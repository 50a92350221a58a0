#!/usr/bin/env python3
"""
NFT Price Fetcher — Ledger Query Service

Клиент индексатора маркетплейса (только чтение):
- Fixed-price листинг токена
- Аукцион токена
- Быстрая проверка наличия продажи

Все суммы приходят в wei (целые числа или строки из цифр).
Ошибки транспорта и неожиданные ответы поднимаются как LookupError.
"""

import sys
import json
import logging
import argparse
from pathlib import Path

# Локальный импорт
script_dir = Path(__file__).parent
sys.path.insert(0, str(script_dir))

from utils import ledger_request  # noqa: E402
from errors import extract_error_message  # noqa: E402


logger = logging.getLogger("nft-price")


# Человекочитаемые причины для HTTP статусов индексатора
STATUS_REASONS = {
    401: "Unauthorized",
    403: "Unauthorized",
    404: "Not found",
    429: "Rate limit exceeded",
}


def _token_endpoint(collection_address: str, token_id: int, kind: str) -> str:
    return f"/collections/{collection_address}/tokens/{token_id}/{kind}"


def _query(collection_address: str, token_id: int, kind: str) -> dict:
    """
    Выполняет запрос к индексатору и возвращает JSON объект ответа.

    Raises:
        LookupError: API недоступен, вернул ошибку или не-объект
    """
    result = ledger_request(_token_endpoint(collection_address, token_id, kind))
    item = f"{collection_address}#{token_id}"

    if not result["success"]:
        status = result.get("status_code")
        error = extract_error_message(result.get("error", "unknown error"))
        if status in STATUS_REASONS:
            error = f"HTTP {status}: {STATUS_REASONS[status]} ({error})"
        elif status:
            error = f"HTTP {status}: {error}"
        logger.warning(f"Ledger {kind} query failed for {item}: {error}")
        raise LookupError(f"Ledger {kind} query failed for {item}: {error}")

    data = result["data"]
    if not isinstance(data, dict):
        logger.warning(f"Ledger {kind} response for {item} is not an object")
        raise LookupError(
            f"Malformed {kind} response from ledger for {item}: expected object"
        )

    return data


def query_listing(collection_address: str, token_id: int) -> dict:
    """
    Raw fixed-price listing record.

    Returns:
        {"exists": bool, "price": int|str, "seller": str}
    """
    return _query(collection_address, token_id, "listing")


def query_auction(collection_address: str, token_id: int) -> dict:
    """
    Raw auction record.

    Returns:
        {"exists", "reserve_price", "highest_bid", "highest_bidder",
         "end_time", "active"}
    """
    return _query(collection_address, token_id, "auction")


def query_exists(collection_address: str, token_id: int) -> dict:
    """
    Existence probe, cheaper than fetching both records.

    Returns:
        {"fixed_price": bool, "auction": bool}
    """
    return _query(collection_address, token_id, "exists")


# =============================================================================
# CLI
# =============================================================================


def main():
    parser = argparse.ArgumentParser(description="Raw ledger queries (debugging)")
    parser.add_argument(
        "kind", choices=["listing", "auction", "exists"], help="Record to fetch"
    )
    parser.add_argument("--collection", "-c", required=True, help="Collection address")
    parser.add_argument("--token-id", "-t", type=int, required=True, help="Token ID")

    args = parser.parse_args()

    queries = {
        "listing": query_listing,
        "auction": query_auction,
        "exists": query_exists,
    }

    try:
        result = {"success": True, "data": queries[args.kind](args.collection, args.token_id)}
    except LookupError as e:
        print(json.dumps({"success": False, "error": extract_error_message(e)}, indent=2))
        return sys.exit(1)

    print(json.dumps(result, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
