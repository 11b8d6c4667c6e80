import unittest
from unittest.mock import MagicMock

from quotewatch.config import Config
from quotewatch.engine import RefreshEngine
from quotewatch.provider import TRANSPORT, Failure, Quote
from quotewatch.ui import QuoteView
from quotewatch.watchlist import Watchlist, add_symbol, remove_selected


def _record(symbol: str) -> dict:
    return {
        "symbol": symbol, "current": 85.1, "percent": 1.23, "chg": 1.05,
        "volume": 12345678, "amount": 1050000000, "market_capital": 2.2e11,
        "float_market_capital": 2.1e11, "turnover_rate": 0.45, "amplitude": 2.1,
        "open": 84.0, "last_close": 84.05, "high": 85.5, "low": 83.8, "avg_price": 84.7,
    }


class TestWatchlist(unittest.TestCase):
    def test_snapshot_dedups_and_drops_empties(self):
        watchlist = Watchlist(["BABA", "", "baba", " 0700.HK ", "  ", "Baba"])
        self.assertEqual(watchlist.snapshot(), ["BABA", "0700.HK"])

    def test_add_keeps_order_and_rejects_duplicates(self):
        on_change = MagicMock()
        watchlist = Watchlist(["BABA"], on_change=on_change)

        self.assertTrue(watchlist.add("0700.HK"))
        self.assertFalse(watchlist.add("baba"))
        self.assertFalse(watchlist.add("   "))

        self.assertEqual(watchlist.symbols, ["BABA", "0700.HK"])
        on_change.assert_called_once_with(["BABA", "0700.HK"])

    def test_remove_first_case_insensitive_match(self):
        watchlist = Watchlist(["AAA", "bbb", "CCC"])

        self.assertTrue(watchlist.remove("BBB"))
        self.assertFalse(watchlist.remove("ZZZ"))

        self.assertEqual(watchlist.symbols, ["AAA", "CCC"])
        self.assertTrue(watchlist.contains("aaa"))
        self.assertEqual(len(watchlist), 2)

    def test_loaded_duplicates_collapse_to_first_spelling(self):
        watchlist = Watchlist([" BABA", "baba", "", "0700.HK"])

        self.assertEqual(watchlist.symbols, ["BABA", "0700.HK"])
        self.assertEqual(len(watchlist), 2)


class TestCommands(unittest.TestCase):
    def setUp(self):
        self.client = MagicMock()
        self.client.fetch.side_effect = lambda symbol: Quote(_record(symbol))
        self.view = QuoteView()
        self.watchlist = Watchlist(["BABA"])
        self.now = [100.0]
        self.engine = RefreshEngine(self.watchlist, self.view, self.client, Config(),
                                    clock=lambda: self.now[0])
        self.engine.refresh(async_=False)

    def test_add_then_remove_other_row(self):
        self.assertTrue(add_symbol(self.engine, "0700.HK"))
        self.assertEqual(self.watchlist.symbols, ["BABA", "0700.HK"])
        self.assertEqual(self.view.symbols(), ["BABA", "0700.HK"])

        self.view.move_cursor(-1)
        self.assertEqual(remove_selected(self.engine), "BABA")

        self.assertEqual(self.watchlist.symbols, ["0700.HK"])
        self.assertEqual(self.view.symbols(), ["0700.HK"])
        self.assertEqual([row.symbol for row in self.engine.latest_data], ["0700.HK"])

    def test_add_then_remove_restores_state(self):
        before_rows = list(self.view.rows)
        before_symbols = self.watchlist.symbols

        add_symbol(self.engine, "0700.HK")
        self.view.move_cursor(1)
        remove_selected(self.engine)

        self.assertEqual(self.view.rows, before_rows)
        self.assertEqual(self.watchlist.symbols, before_symbols)

    def test_failed_add_changes_nothing(self):
        self.client.fetch.side_effect = lambda symbol: Failure(TRANSPORT, "timed out")

        self.assertFalse(add_symbol(self.engine, "NOPE"))

        self.assertEqual(self.watchlist.symbols, ["BABA"])
        self.assertEqual(self.view.symbols(), ["BABA"])

    def test_invalid_record_is_not_added(self):
        broken = _record("HALF")
        del broken["high"]
        self.client.fetch.side_effect = lambda symbol: Quote(broken)

        with self.assertLogs("quotewatch.formatting", level="WARNING"):
            self.assertFalse(add_symbol(self.engine, "HALF"))
        self.assertEqual(self.watchlist.symbols, ["BABA"])

    def test_duplicate_add_is_refused_without_fetching(self):
        self.client.fetch.reset_mock()

        self.assertFalse(add_symbol(self.engine, "baba"))

        self.client.fetch.assert_not_called()
        self.assertEqual(self.view.symbols(), ["BABA"])

    def test_added_row_survives_older_in_flight_batch(self):
        self.now[0] = 150.0
        add_symbol(self.engine, "0700.HK")

        self.assertFalse(self.engine.handle_batch(120.0, [_record("BABA")]))
        self.assertEqual(self.view.symbols(), ["BABA", "0700.HK"])

    def test_remove_with_empty_table_is_noop(self):
        remove_selected(self.engine)
        self.assertIsNone(remove_selected(self.engine))
        self.assertEqual(self.watchlist.symbols, [])

    def test_remove_after_loading_case_duplicates(self):
        watchlist = Watchlist(["BABA", "baba"])
        view = QuoteView()
        engine = RefreshEngine(watchlist, view, self.client, Config(), clock=lambda: self.now[0])
        engine.refresh(async_=False)
        self.assertEqual(view.symbols(), ["BABA"])

        self.assertEqual(remove_selected(engine), "BABA")

        self.assertEqual(watchlist.symbols, [])
        self.assertEqual(view.symbols(), [])
        self.assertFalse(watchlist.contains("baba"))

    def test_watchlist_matches_table_after_commands(self):
        add_symbol(self.engine, "0700.HK")
        add_symbol(self.engine, "SH600519")
        self.view.move_cursor(1)
        remove_selected(self.engine)

        self.assertEqual(
            {s.lower() for s in self.watchlist.symbols},
            {s.lower() for s in self.view.symbols()},
        )


if __name__ == "__main__":
    unittest.main()
