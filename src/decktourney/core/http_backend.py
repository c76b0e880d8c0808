"""HTTP match backend.

Talks to the match service over JSON POST requests:
- POST /start_ai_test  {deckP0, deckP1}
- POST /ai_move        {gameId}

The blocking request runs in a worker thread so the event loop stays free.
An awaiting caller that gets cancelled does not abort the request; its
result is simply never read.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Sequence

import requests

from decktourney.core.backend import MatchBackend
from decktourney.core.errors import BackendError, TransportError
from decktourney.core.schemas import validate_match_state
from decktourney.core.state import MatchState

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:5000"
START_PATH = "/start_ai_test"
MOVE_PATH = "/ai_move"


class HttpMatchBackend(MatchBackend):
    """Backend adapter for the match service HTTP API."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout_s: float | None = None,
        session: requests.Session | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout_s = timeout_s
        self._session = session or requests.Session()
        self._session.headers.update({"Content-Type": "application/json"})

    @property
    def base_url(self) -> str:
        return self._base_url

    async def start_match(
        self, deck_a: Sequence[int], deck_b: Sequence[int]
    ) -> MatchState:
        payload = {"deckP0": list(deck_a), "deckP1": list(deck_b)}
        return await asyncio.to_thread(self._post_state, START_PATH, payload)

    async def advance_match(self, match_id: str) -> MatchState:
        return await asyncio.to_thread(
            self._post_state, MOVE_PATH, {"gameId": match_id}
        )

    def close(self) -> None:
        self._session.close()

    def _post_state(self, path: str, payload: dict[str, Any]) -> MatchState:
        document = self._post_json(path, payload)
        return MatchState.from_document(validate_match_state(document))

    def _post_json(self, path: str, payload: dict[str, Any]) -> Any:
        url = f"{self._base_url}{path}"
        start = time.monotonic()
        try:
            response = self._session.post(url, json=payload, timeout=self._timeout_s)
        except requests.exceptions.RequestException as e:
            raise TransportError(f"{url} unreachable: {e}") from e
        elapsed_ms = (time.monotonic() - start) * 1000
        logger.debug("POST %s -> %s (%.1f ms)", path, response.status_code, elapsed_ms)

        if not response.ok:
            raise BackendError(
                f"API Error: {error_message(response)}",
                status=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise BackendError(
                f"malformed match state: response is not JSON ({e})",
                status=response.status_code,
            ) from e


def error_message(response: requests.Response) -> str:
    """Pull ``{"error": ...}`` from a failed response, else the status text."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return response.reason or f"HTTP {response.status_code}"
