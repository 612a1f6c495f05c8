"""
Pytest configuration and shared fixtures for explorer aggregation tests.
"""

import threading
import time

import pytest

from scripts.lib.explorer_client import ExplorerAPIError


@pytest.fixture
def sample_address():
    """Sample Ergo P2PK address for testing."""
    return "9f4QF8AD1nQ3nJahQVkMj8hFSVVzVom77b52JU7EW71Zexg6N8v"


@pytest.fixture
def mock_api_url():
    return "https://explorer.test"


@pytest.fixture
def mock_markets_url():
    return "https://dex.test/v1/amm/markets"


def make_balance(nano_ergs=0, tokens=None, unconfirmed_nano_ergs=0, unconfirmed_tokens=None):
    """Build a raw /balance/total payload."""
    return {
        "confirmed": {"nanoErgs": nano_ergs, "tokens": tokens or []},
        "unconfirmed": {"nanoErgs": unconfirmed_nano_ergs, "tokens": unconfirmed_tokens or []},
    }


def make_token(token_id, amount=1, name=None, decimals=0, token_type="EIP-004"):
    return {
        "tokenId": token_id,
        "amount": amount,
        "decimals": decimals,
        "name": name or token_id,
        "tokenType": token_type,
    }


class FakeExplorerClient:
    """
    In-memory stand-in for ExplorerClient.

    Records call start/end events and the peak number of calls running
    at the same time. Addresses listed in `failing` raise ExplorerAPIError.
    """

    def __init__(self, balances=None, totals=None, boxes=None, markets=None, delay=0.01):
        self.balances = balances or {}
        self.totals = totals or {}
        self.boxes = boxes or {}
        self.markets = markets or []
        self.delay = delay
        self.failing = set()
        self.events = []
        self.history_params = []
        self.market_windows = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def _call(self, key, result):
        with self._lock:
            self.events.append(("start", key))
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            time.sleep(self.delay)
            if key in self.failing:
                raise ExplorerAPIError(f"Server error for {key}", status_code=500)
            return result
        finally:
            with self._lock:
                self.in_flight -= 1
                self.events.append(("end", key))

    def get_address_balance(self, address):
        return self._call(address, self.balances.get(address, make_balance()))

    def get_tx_history(self, address, offset=None, limit=None, concise=None):
        with self._lock:
            self.history_params.append((address, offset, limit, concise))
        return self._call(address, {"total": self.totals.get(address, 0), "items": []})

    def get_unspent_boxes(self, address):
        return self._call(address, [b for b in self.boxes.values() if b["address"] == address])

    def get_box(self, box_id):
        return self._call(box_id, self.boxes[box_id])

    def get_issuing_boxes(self, token_id):
        return self._call(
            token_id, [b for b in self.boxes.values() if b.get("mints") == token_id]
        )

    def get_markets(self, from_ms, to_ms):
        self.market_windows.append((from_ms, to_ms))
        return self._call("markets", self.markets)


@pytest.fixture
def fake_client():
    return FakeExplorerClient()
