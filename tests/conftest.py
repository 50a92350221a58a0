"""
Pytest configuration and shared fixtures for nft-price-fetcher tests.
"""

import json
import sys
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

# Add scripts directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "scripts"))


# =============================================================================
# Test Data
# =============================================================================

# Blitmap collection
COLLECTION = "0x8d04a8c79ceb0889bdd12acdf3fa9d207ed3ff63"
COLLECTION_CHECKSUM = "0x8d04a8c79cEB0889Bdd12acdF3Fa9D207eD3Ff63"

SELLER = "0x742d35cc6634c0532925a3b844bc9e7595f8fe2d"
BIDDER = "0x53d284357ec70ce289d6d64134dfac8e511c8a3d"
ZERO = "0x0000000000000000000000000000000000000000"

ONE_ETH = 10**18


# =============================================================================
# Fixtures - Sample Ledger Payloads
# =============================================================================


@pytest.fixture
def listing_payload():
    """Raw fixed-price listing from the ledger (1.5 ETH)."""
    return {"exists": True, "price": str(3 * ONE_ETH // 2), "seller": SELLER}


@pytest.fixture
def no_listing_payload():
    """Ledger answer for an item without a listing."""
    return {"exists": False, "price": "0", "seller": ZERO}


@pytest.fixture
def auction_payload():
    """Raw auction with one bid above reserve, ending 2024-01-01."""
    return {
        "exists": True,
        "reserve_price": str(ONE_ETH),
        "highest_bid": str(2 * ONE_ETH),
        "highest_bidder": BIDDER,
        "end_time": 1704067200,
        "active": True,
    }


@pytest.fixture
def unstarted_auction_payload():
    """Auction row created but not started: no bids, end_time 0."""
    return {
        "exists": True,
        "reserve_price": str(ONE_ETH),
        "highest_bid": "0",
        "highest_bidder": ZERO,
        "end_time": 0,
        "active": False,
    }


@pytest.fixture
def no_auction_payload():
    return {
        "exists": False,
        "reserve_price": "0",
        "highest_bid": "0",
        "highest_bidder": ZERO,
        "end_time": 0,
        "active": False,
    }


# =============================================================================
# Fixtures - Mock Ledger API
# =============================================================================


def make_response(data, status_code: int = 200, ok: bool = True):
    """Build a fake requests.Response."""
    response = MagicMock()
    response.ok = ok
    response.status_code = status_code
    response.json.return_value = data
    response.reason = "OK" if ok else "Error"
    return response


@pytest.fixture
def mock_ledger():
    """
    Mock Ledger API by endpoint suffix.

    Set `mock_ledger.routes["listing"] = {...}` etc.; unknown routes return 404.
    """
    routes = {}

    def fake_request(session, method, url, **kwargs):
        for suffix, data in routes.items():
            if url.endswith(f"/{suffix}"):
                return make_response(data)
        return make_response({"error": "entity not found"}, status_code=404, ok=False)

    with patch("requests.Session.request") as mock_request:
        mock_request.side_effect = fake_request
        mock_request.routes = routes
        yield mock_request


@pytest.fixture
def mock_ledger_error():
    """Mock Ledger API error responses."""
    with patch("requests.Session.request") as mock_request:
        mock_request.return_value = make_response(
            {"error": "Internal Server Error"}, status_code=500, ok=False
        )
        yield mock_request


@pytest.fixture
def mock_ledger_timeout():
    """Mock Ledger API timeout."""
    import requests

    with patch("requests.Session.request") as mock_request:
        mock_request.side_effect = requests.exceptions.Timeout("Connection timed out")
        yield mock_request


# =============================================================================
# Fixtures - Mock Config
# =============================================================================


@pytest.fixture
def mock_config(tmp_path, monkeypatch):
    """Mock configuration for tests."""
    temp_skill_dir = tmp_path / "nft-price-fetcher"
    temp_config_file = temp_skill_dir / "config.json"

    temp_skill_dir.mkdir(parents=True, exist_ok=True)

    default_config = {
        "ledger_api_url": "https://ledger.test/v1",
        "ledger_api_key": "test_api_key",
        "network": "mainnet",
        "http": {"timeout": 5, "retries": 0, "backoff_factor": 0},
    }
    temp_config_file.write_text(json.dumps(default_config))

    import utils

    monkeypatch.setattr(utils, "SKILL_DIR", temp_skill_dir)
    monkeypatch.setattr(utils, "CONFIG_FILE", temp_config_file)
    monkeypatch.delenv("LEDGER_API_URL", raising=False)
    monkeypatch.delenv("LEDGER_API_KEY", raising=False)

    return {
        "skill_dir": temp_skill_dir,
        "config_file": temp_config_file,
        "config": default_config,
    }


@pytest.fixture
def ledger_server(mock_config, monkeypatch):
    """
    Local HTTP ledger answering every GET with a fixed status and JSON body.

    Requests go through the real session and retry adapter.
    Set `ledger_server.status` / `ledger_server.body`; `ledger_server.hits` counts requests.
    """
    state = SimpleNamespace(status=200, body={}, hits=0)

    class Handler(BaseHTTPRequestHandler):
        def do_GET(self):
            state.hits += 1
            payload = json.dumps(state.body).encode()
            self.send_response(state.status)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(payload)))
            self.end_headers()
            self.wfile.write(payload)

        def log_message(self, format, *args):
            pass

    server = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()

    host, port = server.server_address
    monkeypatch.setenv("LEDGER_API_URL", f"http://{host}:{port}/v1")
    monkeypatch.setenv("NO_PROXY", "127.0.0.1")
    monkeypatch.setenv("no_proxy", "127.0.0.1")

    yield state

    server.shutdown()
    server.server_close()


# =============================================================================
# Test Categories (markers)
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: Integration tests requiring network"
    )
    config.addinivalue_line("markers", "prices: Price resolution tests")
    config.addinivalue_line("markers", "ledger: Ledger client tests")
    config.addinivalue_line("markers", "cli: Command line tests")
    config.addinivalue_line("markers", "utils: Utils module tests")


# =============================================================================
# Pytest Hooks
# =============================================================================


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers based on test location."""
    for item in items:
        if "test_prices" in str(item.fspath):
            item.add_marker(pytest.mark.prices)
        elif "test_ledger" in str(item.fspath):
            item.add_marker(pytest.mark.ledger)
        elif "test_fetch_prices" in str(item.fspath):
            item.add_marker(pytest.mark.cli)
        elif "test_utils" in str(item.fspath):
            item.add_marker(pytest.mark.utils)
