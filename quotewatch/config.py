import configparser
import logging
import os
import re
from dataclasses import dataclass
from typing import List

from quotewatch.constants import (
    CONFIG_PATH, WATCHLIST_PATH, DEFAULT_STOCKS,
    DEFAULT_REFRESH, DEFAULT_KILL_DELAY,
)

logger = logging.getLogger(__name__)

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def parse_interval(value: str, default: int) -> int:
    """Convert interval string like '10s', '1m', '5m', '1h', '1d' to seconds."""
    value = value.strip().lower()
    m = re.match(r"^(\d+)\s*(s|m|h|d)$", value)
    if not m:
        logger.warning("Invalid interval '%s', using %ss", value, default)
        return default
    num, unit = int(m.group(1)), m.group(2)
    multipliers = {"s": 1, "m": 60, "h": 3600, "d": 86400}
    seconds = num * multipliers[unit]
    if seconds <= 0:
        logger.warning("Interval '%s' must be positive, using %ss", value, default)
        return default
    return seconds


def _parse_bool(value: str, default: bool) -> bool:
    v = value.strip().lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    logger.warning("Invalid boolean '%s', using %s", value, default)
    return default


def _parse_positive_int(value: str, default: int) -> int:
    try:
        n = int(value.strip())
    except ValueError:
        logger.warning("Invalid integer '%s', using %s", value, default)
        return default
    if n <= 0:
        logger.warning("Value '%s' must be positive, using %s", value, default)
        return default
    return n


@dataclass
class Config:
    refresh_interval: int = DEFAULT_REFRESH
    kill_delay: int = DEFAULT_KILL_DELAY
    enable_log: bool = True
    up_red_down_green: bool = True

    @property
    def worker_deadline(self) -> int:
        """Seconds a background refresh may run before it is killed."""
        return 10 * self.kill_delay


def parse_config(path: str = "") -> Config:
    """Read config.ini and return a Config object."""
    path = path or CONFIG_PATH
    cfg_obj = Config()
    if not os.path.exists(path):
        logger.info("%s not found, using defaults", os.path.basename(path))
        return cfg_obj

    cfg = configparser.RawConfigParser()
    cfg.read(path, encoding="utf-8")
    sect = cfg["quotewatch"] if "quotewatch" in cfg else {}
    cfg_obj.refresh_interval = parse_interval(sect.get("refresh_interval", "10s"), DEFAULT_REFRESH)

    if "subprocess_kill_delay" in sect:
        cfg_obj.kill_delay = _parse_positive_int(sect["subprocess_kill_delay"], DEFAULT_KILL_DELAY)
    if "enable_log" in sect:
        cfg_obj.enable_log = _parse_bool(sect["enable_log"], True)
    if "up_red_down_green" in sect:
        cfg_obj.up_red_down_green = _parse_bool(sect["up_red_down_green"], True)

    return cfg_obj


def parse_watchlist(path: str = "") -> List[str]:
    """Parse a watchlist file into an ordered list of symbols.

    One symbol per line; blank lines and '#' comments are skipped. A missing
    or empty file yields the default list.
    """
    path = path or WATCHLIST_PATH
    if not os.path.exists(path):
        logger.info("%s not found, watching %s", os.path.basename(path), ", ".join(DEFAULT_STOCKS))
        return list(DEFAULT_STOCKS)

    symbols: List[str] = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            symbols.append(line)
    return symbols or list(DEFAULT_STOCKS)


def save_watchlist(symbols: List[str], path: str = "") -> bool:
    """Write the watchlist back to disk, one symbol per line."""
    path = path or WATCHLIST_PATH
    try:
        with open(path, "w", encoding="utf-8") as f:
            f.write("# quotewatch watchlist, one symbol per line\n")
            for symbol in symbols:
                f.write(f"{symbol}\n")
    except OSError as e:
        logger.error("Could not save watchlist to %s: %s", path, e)
        return False
    return True
