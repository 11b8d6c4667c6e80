import os
import tempfile
import unittest

from quotewatch.config import Config, parse_config, parse_interval, parse_watchlist, save_watchlist


class TestConfig(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmpdir = self._tmp.name

    def tearDown(self):
        self._tmp.cleanup()

    def _write(self, name: str, text: str) -> str:
        path = os.path.join(self.tmpdir, name)
        with open(path, "w", encoding="utf-8") as f:
            f.write(text)
        return path

    def test_missing_config_uses_defaults(self):
        config = parse_config(os.path.join(self.tmpdir, "nope.ini"))

        self.assertEqual(config, Config())
        self.assertEqual(config.refresh_interval, 10)
        self.assertEqual(config.kill_delay, 12)
        self.assertEqual(config.worker_deadline, 120)
        self.assertTrue(config.enable_log)
        self.assertTrue(config.up_red_down_green)

    def test_reads_dashboard_section(self):
        path = self._write("config.ini", (
            "[quotewatch]\n"
            "refresh_interval = 30s\n"
            "subprocess_kill_delay = 3\n"
            "enable_log = no\n"
            "up_red_down_green = false\n"
        ))

        config = parse_config(path)

        self.assertEqual(config.refresh_interval, 30)
        self.assertEqual(config.worker_deadline, 30)
        self.assertFalse(config.enable_log)
        self.assertFalse(config.up_red_down_green)

    def test_bad_values_fall_back(self):
        path = self._write("config.ini", (
            "[quotewatch]\n"
            "refresh_interval = soon\n"
            "subprocess_kill_delay = -4\n"
            "up_red_down_green = maybe\n"
        ))

        with self.assertLogs("quotewatch.config", level="WARNING") as logs:
            config = parse_config(path)

        self.assertEqual(len(logs.output), 3)
        self.assertEqual(config, Config())

    def test_parse_interval(self):
        self.assertEqual(parse_interval("10s", 5), 10)
        self.assertEqual(parse_interval(" 2M ", 5), 120)
        self.assertEqual(parse_interval("1h", 5), 3600)
        with self.assertLogs("quotewatch.config", level="WARNING"):
            self.assertEqual(parse_interval("0s", 5), 5)

    def test_watchlist_file(self):
        path = self._write("watchlist.txt", "# mine\nBABA\n\n  0700.HK  \n# SH600000\nSH600519\n")
        self.assertEqual(parse_watchlist(path), ["BABA", "0700.HK", "SH600519"])

    def test_missing_or_empty_watchlist_defaults_to_baba(self):
        self.assertEqual(parse_watchlist(os.path.join(self.tmpdir, "none.txt")), ["BABA"])
        self.assertEqual(parse_watchlist(self._write("empty.txt", "# nothing\n")), ["BABA"])

    def test_save_watchlist_persists_order(self):
        path = os.path.join(self.tmpdir, "watchlist.txt")

        self.assertTrue(save_watchlist(["0700.HK", "BABA"], path))

        self.assertEqual(parse_watchlist(path), ["0700.HK", "BABA"])

    def test_save_watchlist_reports_failure(self):
        path = os.path.join(self.tmpdir, "missing", "watchlist.txt")
        with self.assertLogs("quotewatch.config", level="ERROR"):
            self.assertFalse(save_watchlist(["BABA"], path))


if __name__ == "__main__":
    unittest.main()
