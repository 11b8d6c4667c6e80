import logging
from typing import Callable, Iterable, List, Optional

from quotewatch.formatting import format_record
from quotewatch.provider import Failure

logger = logging.getLogger(__name__)


def _unique(symbols: Iterable[str]) -> List[str]:
    """Strip, drop empties and keep the first spelling of each symbol."""
    seen = set()
    result = []
    for symbol in symbols:
        symbol = symbol.strip()
        key = symbol.lower()
        if not symbol or key in seen:
            continue
        seen.add(key)
        result.append(symbol)
    return result


class Watchlist:
    """Ordered, case-insensitively unique list of symbols."""

    def __init__(self, symbols: Iterable[str] = (),
                 on_change: Optional[Callable[[List[str]], None]] = None):
        self._symbols: List[str] = _unique(symbols)
        self.on_change = on_change

    @property
    def symbols(self) -> List[str]:
        return list(self._symbols)

    def snapshot(self) -> List[str]:
        """Copy for a refresh."""
        return list(self._symbols)

    def contains(self, symbol: str) -> bool:
        key = symbol.strip().lower()
        return any(s.lower() == key for s in self._symbols)

    def add(self, symbol: str) -> bool:
        symbol = symbol.strip()
        if not symbol or self.contains(symbol):
            return False
        self._symbols.append(symbol)
        self._changed()
        return True

    def remove(self, symbol: str) -> bool:
        key = symbol.strip().lower()
        for i, s in enumerate(self._symbols):
            if s.lower() == key:
                del self._symbols[i]
                self._changed()
                return True
        return False

    def _changed(self):
        if self.on_change:
            self.on_change(self.symbols)

    def __len__(self):
        return len(self._symbols)


# -- Commands ---------------------------------------------------------------

def add_symbol(engine, symbol: str) -> bool:
    """Fetch one symbol now and, if it renders, append it to table and watchlist."""
    symbol = symbol.strip()
    if not symbol:
        return False
    if engine.watchlist.contains(symbol):
        logger.info("%s is already being watched", symbol)
        return False

    outcome = engine.client.fetch(symbol)
    if isinstance(outcome, Failure):
        logger.info("Could not add %s", symbol)
        return False
    row = format_record(outcome.record, engine.policy)
    if row is None:
        return False

    engine.append_row(row)
    engine.watchlist.add(symbol)
    logger.info("Added %s", symbol)
    return True


def remove_selected(engine) -> Optional[str]:
    """Drop the symbol under the cursor from both watchlist and table."""
    symbol = engine.view.selected_symbol()
    if symbol is None:
        return None
    engine.watchlist.remove(symbol)
    engine.remove_row(symbol)
    logger.info("Removed %s", symbol)
    return symbol
