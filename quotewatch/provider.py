"""Quote vendor access. The only module that talks HTTP."""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union
from urllib.parse import quote

import requests

from quotewatch.constants import (
    XUEQIU_QUOTE_URL, XUEQIU_SENTINEL, REQUEST_TIMEOUT, USER_AGENT,
)

logger = logging.getLogger(__name__)

TRANSPORT = "transport"
DECODE = "decode"


@dataclass
class Quote:
    """A decoded quote record, keyed by the names in QUOTE_COLUMNS."""
    record: Dict[str, Any]


@dataclass
class Failure:
    """Why a fetch produced no record: TRANSPORT or DECODE."""
    kind: str
    detail: str = ""


Outcome = Union[Quote, Failure]


def _reject_constant(name: str):
    raise ValueError(f"non-finite number {name}")


class QuoteSource:
    """Where quotes come from and how to find them in a response body."""

    def url_for(self, symbol: str) -> str:
        raise NotImplementedError

    def payload_sentinel(self) -> bytes:
        raise NotImplementedError

    def field_map(self) -> Dict[str, str]:
        """Vendor key -> record key. Keys not listed pass through unchanged."""
        return {}


class XueqiuSource(QuoteSource):
    """CN vendor: stock.xueqiu.com realtime quotec endpoint."""

    def url_for(self, symbol: str) -> str:
        return XUEQIU_QUOTE_URL.format(symbol=quote(symbol, safe=""))

    def payload_sentinel(self) -> bytes:
        return XUEQIU_SENTINEL

    def field_map(self) -> Dict[str, str]:
        return {}


class QuoteClient:
    """Synchronous single-symbol quote fetcher.

    fetch() never raises: transport and decode problems come back as a
    Failure so a batch keeps going when one symbol is unavailable.
    """

    def __init__(self, source: Optional[QuoteSource] = None, session: Optional[Any] = None,
                 timeout: float = REQUEST_TIMEOUT):
        self.source = source or XueqiuSource()
        self.timeout = timeout
        self._owns_session = session is None
        self.session = session or requests.Session()
        if self._owns_session:
            self.session.headers.update({"User-Agent": USER_AGENT})

    def copy(self) -> "QuoteClient":
        """Client for a background worker.

        Opens a fresh session, unless the session was injected, in which
        case the copy shares it and close() leaves it open.
        """
        if self._owns_session:
            return QuoteClient(self.source, timeout=self.timeout)
        return QuoteClient(self.source, session=self.session, timeout=self.timeout)

    def close(self):
        if self._owns_session:
            self.session.close()

    def fetch(self, symbol: str) -> Outcome:
        url = self.source.url_for(symbol)
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning("Fetching %s failed: %s", symbol, e)
            return Failure(TRANSPORT, str(e))

        if response.status_code != 200:
            logger.warning("Fetching %s failed: HTTP %s", symbol, response.status_code)
            return Failure(TRANSPORT, f"HTTP {response.status_code}")

        outcome = self.decode(response.content)
        if isinstance(outcome, Failure):
            logger.warning("Bad response for %s: %s", symbol, outcome.detail)
        return outcome

    def decode(self, body: bytes) -> Outcome:
        """Slice the data array out of a raw body and return its first record."""
        sentinel = self.source.payload_sentinel()
        idx = body.find(sentinel)
        if idx < 0:
            return Failure(DECODE, "payload sentinel not found")

        # The sentinel ends with the array's opening bracket
        start = idx + len(sentinel) - 1
        text = body[start:].decode("utf-8", errors="replace")
        try:
            items, _ = json.JSONDecoder(parse_constant=_reject_constant).raw_decode(text)
        except ValueError as e:
            return Failure(DECODE, f"malformed JSON: {e}")

        if not items or not isinstance(items[0], dict):
            return Failure(DECODE, "empty data array")

        mapping = self.source.field_map()
        record = {mapping.get(k, k): v for k, v in items[0].items()}
        return Quote(record)
