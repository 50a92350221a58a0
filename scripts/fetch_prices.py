#!/usr/bin/env python3
"""
NFT Price Fetcher — CLI

- Проверка, выставлен ли токен на продажу
- Fixed-price листинг
- Аукцион (резерв, ставка, время окончания)
- Лучшая цена по обоим механизмам

Вывод: JSON в stdout, логи в stderr (и опционально в файл).
"""

import sys
import json
import argparse
import logging
from pathlib import Path
from typing import Optional

# Локальный импорт
script_dir = Path(__file__).parent
sys.path.insert(0, str(script_dir))

from common import (  # noqa: E402
    COMMON_EPILOG,
    format_listing,
    format_auction,
    format_best_price,
)
from errors import (  # noqa: E402
    format_lookup_error,
    format_input_error,
    is_api_unavailable_error,
)
from prices import (  # noqa: E402
    ItemIdentity,
    make_identity,
    is_listed,
    get_listing,
    get_auction,
    fetch_sale_state,
)


# =============================================================================
# Logging
# =============================================================================


def setup_logging(verbose: bool = False, log_file: Optional[Path] = None) -> logging.Logger:
    """Настройка логирования в stderr и (опционально) в файл."""
    logger = logging.getLogger("nft-price")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    # Повторный вызов main() не должен дублировать хендлеры
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
    )

    sh = logging.StreamHandler(sys.stderr)
    sh.setLevel(logging.DEBUG if verbose else logging.WARNING)
    sh.setFormatter(formatter)
    logger.addHandler(sh)

    if log_file:
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(formatter)
        logger.addHandler(fh)

    return logger


# =============================================================================
# Commands
# =============================================================================


def _item(identity: ItemIdentity) -> dict:
    return {
        "collection": identity.collection_address,
        "token_id": identity.token_id,
    }


def cmd_listed(identity: ItemIdentity) -> dict:
    return {"success": True, **_item(identity), "listed": is_listed(identity)}


def cmd_listing(identity: ItemIdentity) -> dict:
    return {"success": True, **_item(identity), "listing": format_listing(get_listing(identity))}


def cmd_auction(identity: ItemIdentity) -> dict:
    return {"success": True, **_item(identity), "auction": format_auction(get_auction(identity))}


def cmd_best_price(identity: ItemIdentity, parallel: bool = True) -> dict:
    state = fetch_sale_state(identity, parallel=parallel)
    return {"success": True, **_item(identity), "best_price": format_best_price(state.best)}


def cmd_check(identity: ItemIdentity, parallel: bool = True) -> dict:
    """
    Full report: existence probe first, details only when something is for sale.
    """
    result = {"success": True, **_item(identity), "listed": is_listed(identity)}
    if not result["listed"]:
        return result

    state = fetch_sale_state(identity, parallel=parallel)
    result["listing"] = format_listing(state.listing)
    result["auction"] = format_auction(state.auction)
    result["best_price"] = format_best_price(state.best)
    return result


# =============================================================================
# CLI
# =============================================================================


def main():
    parser = argparse.ArgumentParser(
        description="NFT marketplace price fetcher (fixed-price listings and auctions)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Выставлен ли токен
  %(prog)s listed --collection blitmap --token-id 1

  # Полный отчёт (листинг, аукцион, лучшая цена)
  %(prog)s check -c 0x8d04a8c79cEB0889Bdd12acdF3Fa9D207eD3Ff63 -t 1

  # Только лучшая цена, запросы последовательно
  %(prog)s best-price -c blitmap -t 1 --sequential
"""
        + COMMON_EPILOG,
    )

    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    parser.add_argument("--log-file", type=Path, help="Also write logs to this file")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    def add_item_args(p, with_sequential: bool = False):
        p.add_argument(
            "--collection",
            "-c",
            required=True,
            help="Collection address or alias (blitmap, zora)",
        )
        p.add_argument("--token-id", "-t", type=int, required=True, help="Token ID")
        if with_sequential:
            p.add_argument(
                "--sequential",
                action="store_true",
                help="Query listing and auction one after another",
            )

    add_item_args(subparsers.add_parser("listed", help="Is the token for sale"))
    add_item_args(subparsers.add_parser("listing", help="Fixed-price listing"))
    add_item_args(subparsers.add_parser("auction", help="Auction details"))
    add_item_args(
        subparsers.add_parser("best-price", help="Best price across listing and auction"),
        with_sequential=True,
    )
    add_item_args(
        subparsers.add_parser("check", help="Full report"),
        with_sequential=True,
    )

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    setup_logging(args.verbose, args.log_file)

    try:
        identity = make_identity(args.collection, args.token_id)
    except ValueError as e:
        print(json.dumps(format_input_error(e), indent=2, ensure_ascii=False))
        return sys.exit(1)

    parallel = not getattr(args, "sequential", False)

    try:
        if args.command == "listed":
            result = cmd_listed(identity)
        elif args.command == "listing":
            result = cmd_listing(identity)
        elif args.command == "auction":
            result = cmd_auction(identity)
        elif args.command == "best-price":
            result = cmd_best_price(identity, parallel=parallel)
        elif args.command == "check":
            result = cmd_check(identity, parallel=parallel)
        else:
            result = {"success": False, "error": f"Unknown command: {args.command}"}

    except LookupError as e:
        result = format_lookup_error(
            e, collection=identity.collection_address, token_id=identity.token_id
        )
        result["retryable"] = is_api_unavailable_error(e)

    print(json.dumps(result, indent=2, ensure_ascii=False))

    if not result.get("success", False):
        return sys.exit(1)


if __name__ == "__main__":
    main()
