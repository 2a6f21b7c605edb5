"""
Logical timestamp sources.

The registry stamps ``created_at`` / ``updated_at`` with a block height, so a
clock only has to hand out a non-decreasing integer.
"""

import logging
import threading

import requests

from .errors import ClockError

logger = logging.getLogger(__name__)

ALGOD_URL = "https://testnet-api.algonode.cloud"


class BlockClock:
    """Local block counter. Tests move it with ``advance``."""

    def __init__(self, height: int = 0, auto_advance: bool = False) -> None:
        if height < 0:
            raise ValueError("block height cannot be negative")
        self._height = height
        self._auto_advance = auto_advance
        self._lock = threading.Lock()

    @property
    def height(self) -> int:
        return self._height

    def advance(self, blocks: int = 1) -> int:
        if blocks < 0:
            raise ValueError("a clock cannot move backwards")
        with self._lock:
            self._height += blocks
            return self._height

    def __call__(self) -> int:
        with self._lock:
            current = self._height
            if self._auto_advance:
                self._height += 1
            return current


class AlgodRoundClock:
    """Current round of an Algorand node, read from ``/v2/status``."""

    def __init__(self, algod_url: str = ALGOD_URL, algod_token: str = "", timeout: float = 10) -> None:
        self.algod_url = algod_url.rstrip("/")
        self.algod_token = algod_token
        self.timeout = timeout
        self._last_round = 0
        self._lock = threading.Lock()

    def __call__(self) -> int:
        headers = {"X-Algo-API-Token": self.algod_token} if self.algod_token else {}
        try:
            resp = requests.get(f"{self.algod_url}/v2/status", headers=headers, timeout=self.timeout)
            resp.raise_for_status()
            current = int(resp.json()["last-round"])
        except (requests.RequestException, KeyError, ValueError) as e:
            raise ClockError(f"Could not read round from {self.algod_url}: {e}") from e

        with self._lock:
            # Rounds handed out never go backwards
            if current < self._last_round:
                logger.debug(f"[CHAIN] Node reported round {current} behind {self._last_round}")
                current = self._last_round
            self._last_round = current
        return current
