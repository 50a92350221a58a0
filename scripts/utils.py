#!/usr/bin/env python3
"""
NFT Price Fetcher — Общие утилиты

- Конфиг менеджер
- Форматирование EVM адресов
- HTTP клиент с retry
- Запросы к Ledger API (индексатор маркетплейса)
"""

import os
import sys
import copy
import json
import re
import argparse
import logging
from pathlib import Path
from typing import Any, Optional

# Зависимости
try:
    import requests
    from requests.adapters import HTTPAdapter
    from urllib3.util.retry import Retry
except ImportError:
    print(
        json.dumps(
            {"error": "Missing dependency: requests", "install": "pip install requests"}
        )
    )
    sys.exit(1)
    raise SystemExit


logger = logging.getLogger("nft-price")


# =============================================================================
# Константы
# =============================================================================

SKILL_DIR = Path.home() / ".nft-price-fetcher"
CONFIG_FILE = SKILL_DIR / "config.json"

# Ledger API (индексатор состояния продаж)
LEDGER_API_BASE = "https://api.zora-indexer.example/v1"


# =============================================================================
# Конфиг менеджер
# =============================================================================

DEFAULT_CONFIG = {
    "ledger_api_url": LEDGER_API_BASE,
    "ledger_api_key": "",
    "network": "mainnet",
    "http": {"timeout": 30, "retries": 3, "backoff_factor": 0.5},
}


def ensure_skill_dir() -> Path:
    """Создаёт директорию конфигурации если не существует."""
    SKILL_DIR.mkdir(parents=True, exist_ok=True)
    return SKILL_DIR


def load_config() -> dict:
    """Загружает конфигурацию из файла."""
    ensure_skill_dir()
    if CONFIG_FILE.exists():
        try:
            with open(CONFIG_FILE, "r") as f:
                config = json.load(f)
            # Merge с дефолтами (для новых полей)
            merged = copy.deepcopy(DEFAULT_CONFIG)
            merged.update(config)
            return merged
        except (OSError, ValueError):
            logger.warning(f"Config file unreadable, using defaults: {CONFIG_FILE}")
            return copy.deepcopy(DEFAULT_CONFIG)
    return copy.deepcopy(DEFAULT_CONFIG)


def save_config(config: dict) -> bool:
    """Сохраняет конфигурацию в файл."""
    ensure_skill_dir()
    try:
        with open(CONFIG_FILE, "w") as f:
            json.dump(config, f, indent=2, ensure_ascii=False)
        return True
    except OSError:
        return False


def get_config_value(key: str, default: Any = None) -> Any:
    """Получает значение из конфига по ключу (поддерживает dot notation: http.timeout)."""
    config = load_config()
    keys = key.split(".")
    value = config
    for k in keys:
        if isinstance(value, dict) and k in value:
            value = value[k]
        else:
            return default
    return value


def set_config_value(key: str, value: Any) -> bool:
    """Устанавливает значение в конфиге (поддерживает dot notation)."""
    config = load_config()
    keys = key.split(".")
    target = config
    for k in keys[:-1]:
        if not isinstance(target.get(k), dict):
            target[k] = {}
        target = target[k]
    target[keys[-1]] = value
    return save_config(config)


# =============================================================================
# Форматирование EVM адресов
# =============================================================================

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def is_valid_address(address: str) -> bool:
    """Проверяет формат EVM адреса (0x + 40 hex символов)."""
    if not isinstance(address, str):
        return False
    return bool(_ADDRESS_RE.match(address.strip()))


def normalize_address(address: str) -> str:
    """
    Нормализует EVM адрес: trim, префикс 0x, нижний регистр.

    Args:
        address: Адрес коллекции или кошелька

    Returns:
        Адрес в нижнем регистре

    Raises:
        ValueError: если адрес невалиден
    """
    if not isinstance(address, str):
        raise ValueError(f"Invalid address: {address!r}")

    addr = address.strip()
    if addr[:2].lower() == "0x":
        addr = "0x" + addr[2:]
    else:
        addr = "0x" + addr

    if not is_valid_address(addr):
        raise ValueError(f"Invalid address: {address}")

    return addr.lower()


# =============================================================================
# HTTP клиент с retry
# =============================================================================


def create_http_session(
    retries: int = 3,
    backoff_factor: float = 0.5,
    status_forcelist: tuple = (429, 500, 502, 503, 504),
    timeout: int = 30,
) -> requests.Session:
    """
    Создаёт HTTP сессию с автоматическими retry.

    Args:
        retries: Количество повторных попыток
        backoff_factor: Фактор задержки между попытками
        status_forcelist: HTTP коды для retry
        timeout: Таймаут по умолчанию

    Returns:
        Настроенная requests.Session
    """
    session = requests.Session()

    retry_strategy = Retry(
        total=retries,
        backoff_factor=backoff_factor,
        status_forcelist=status_forcelist,
        allowed_methods=["HEAD", "GET", "OPTIONS"],
        raise_on_status=False,
    )

    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("https://", adapter)
    session.mount("http://", adapter)

    # Default timeout через hook
    session.request = lambda method, url, **kwargs: requests.Session.request(  # ty: ignore[invalid-assignment]
        session, method, url, timeout=kwargs.pop("timeout", timeout), **kwargs
    )

    return session


def api_request(
    url: str,
    method: str = "GET",
    headers: Optional[dict] = None,
    params: Optional[dict] = None,
    api_key: Optional[str] = None,
    timeout: int = 30,
    retries: int = 3,
    backoff_factor: float = 0.5,
) -> dict:
    """
    Универсальный API запрос с retry и обработкой ошибок.

    Args:
        url: URL запроса
        method: HTTP метод
        headers: Дополнительные заголовки
        params: Query параметры
        api_key: API ключ (если есть)
        timeout: Таймаут
        retries: Количество retry
        backoff_factor: Фактор задержки между retry

    Returns:
        dict с ключами: success, data/error, status_code
    """
    session = create_http_session(
        retries=retries, backoff_factor=backoff_factor, timeout=timeout
    )

    req_headers = {"Accept": "application/json"}
    if headers:
        req_headers.update(headers)
    if api_key:
        req_headers["Authorization"] = f"Bearer {api_key}"

    try:
        response = session.request(
            method=method.upper(),
            url=url,
            headers=req_headers,
            params=params,
            timeout=timeout,
        )

        # Пытаемся распарсить JSON
        try:
            data = response.json()
        except ValueError:
            data = response.text

        if response.ok:
            return {"success": True, "data": data, "status_code": response.status_code}
        else:
            return {
                "success": False,
                "error": data if data else response.reason,
                "status_code": response.status_code,
            }

    except requests.exceptions.Timeout:
        return {"success": False, "error": "Request timeout", "status_code": None}
    except requests.exceptions.ConnectionError:
        return {"success": False, "error": "Connection error", "status_code": None}
    except requests.exceptions.RequestException as e:
        return {"success": False, "error": str(e), "status_code": None}
    finally:
        session.close()


# =============================================================================
# Ledger API helpers
# =============================================================================


def get_ledger_api_url() -> str:
    """Base URL Ledger API: env LEDGER_API_URL или конфиг."""
    url = (
        os.environ.get("LEDGER_API_URL")
        or get_config_value("ledger_api_url")
        or LEDGER_API_BASE
    )
    return str(url).rstrip("/")


def get_ledger_api_key() -> Optional[str]:
    """API ключ Ledger API из конфига или окружения."""
    config = load_config()
    return config.get("ledger_api_key") or os.environ.get("LEDGER_API_KEY") or None


def ledger_request(
    endpoint: str,
    method: str = "GET",
    params: Optional[dict] = None,
) -> dict:
    """
    Запрос к Ledger API с использованием ключа и HTTP настроек из конфига.

    Args:
        endpoint: Endpoint (без base URL), например "/collections/{addr}/tokens/1/listing"
        method: HTTP метод
        params: Query параметры

    Returns:
        Результат api_request
    """
    http = get_config_value("http", {}) or {}
    url = f"{get_ledger_api_url()}{endpoint}"

    logger.debug(f"Ledger request: {method} {url}")

    return api_request(
        url=url,
        method=method,
        params=params,
        api_key=get_ledger_api_key(),
        timeout=http.get("timeout", 30),
        retries=http.get("retries", 3),
        backoff_factor=http.get("backoff_factor", 0.5),
    )


# =============================================================================
# CLI
# =============================================================================


def main():
    parser = argparse.ArgumentParser(description="NFT Price Fetcher Utilities")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # --- config ---
    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_sub = config_parser.add_subparsers(dest="config_cmd")

    config_get = config_sub.add_parser("get", help="Get config value")
    config_get.add_argument("key", help="Config key (dot notation)")

    config_set = config_sub.add_parser("set", help="Set config value")
    config_set.add_argument("key", help="Config key")
    config_set.add_argument("value", help="Value to set")

    config_sub.add_parser("show", help="Show all config")

    # --- address ---
    addr_parser = subparsers.add_parser("address", help="Address formatting")
    addr_sub = addr_parser.add_subparsers(dest="addr_cmd")

    addr_normalize = addr_sub.add_parser("normalize", help="Normalize address")
    addr_normalize.add_argument("address", help="EVM address")

    addr_validate = addr_sub.add_parser("validate", help="Validate address")
    addr_validate.add_argument("address", help="Address to validate")

    args = parser.parse_args()

    result = {}

    if args.command == "config":
        if args.config_cmd == "get":
            value = get_config_value(args.key)
            result = {"key": args.key, "value": value}
        elif args.config_cmd == "set":
            # Try to parse value as JSON
            try:
                value = json.loads(args.value)
            except ValueError:
                value = args.value
            success = set_config_value(args.key, value)
            result = {"success": success, "key": args.key, "value": value}
        elif args.config_cmd == "show":
            result = load_config()
            if result.get("ledger_api_key"):
                result["ledger_api_key"] = "***"
        else:
            result = {"error": "Unknown config command"}

    elif args.command == "address":
        if args.addr_cmd == "normalize":
            try:
                result = {"address": args.address, "normalized": normalize_address(args.address)}
            except ValueError as e:
                result = {"error": str(e)}
        elif args.addr_cmd == "validate":
            valid = is_valid_address(args.address)
            result = {"address": args.address, "valid": valid}
        else:
            result = {"error": "Unknown address command"}

    else:
        parser.print_help()
        return

    print(json.dumps(result, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
