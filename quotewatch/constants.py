import os

# Project root: parent of the quotewatch/ package directory
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

CONFIG_PATH = os.path.join(PROJECT_ROOT, "config.ini")
WATCHLIST_PATH = os.path.join(PROJECT_ROOT, "watchlist.txt")
LOG_DIR = os.path.join(PROJECT_ROOT, "logs")

DEFAULT_STOCKS = ["BABA"]

DEFAULT_REFRESH = 10          # fetch timer period, seconds
REAPER_INTERVAL = 10 * 6 * 3  # 3 minutes
DEFAULT_KILL_DELAY = 12       # x10 s worker deadline
REQUEST_TIMEOUT = 5

XUEQIU_QUOTE_URL = "https://stock.xueqiu.com/v5/stock/realtime/quotec.json?symbol={symbol}"
XUEQIU_SENTINEL = b'data":['
USER_AGENT = "Mozilla/5.0 (X11; Linux x86_64) quotewatch/0.1"

REQUIRED_FIELDS = (
    "symbol", "current", "percent", "volume", "amount",
    "market_capital", "float_market_capital", "turnover_rate", "amplitude",
    "open", "last_close", "high", "low",
)

# Column definitions in display order
# Each column: (record_key, header_label, justify, min_width)
QUOTE_COLUMNS = [
    ("symbol",               "代码",     "left",  8),
    ("current",              "当前价",   "right", 9),
    ("percent",              "涨跌幅",   "right", 8),
    ("chg",                  "涨跌额",   "right", 8),
    ("volume",               "成交量",   "right", 12),
    ("amount",               "成交额",   "right", 15),
    ("market_capital",       "总市值",   "right", 17),
    ("float_market_capital", "流通市值", "right", 17),
    ("turnover_rate",        "换手率",   "right", 7),
    ("amplitude",            "振幅",     "right", 7),
    ("open",                 "今开",     "right", 9),
    ("last_close",           "昨收",     "right", 9),
    ("high",                 "最高",     "right", 9),
    ("low",                  "最低",     "right", 9),
    ("avg_price",            "均价",     "right", 9),
]

THOUSANDS_FIELDS = {"volume", "amount", "market_capital", "float_market_capital"}
PERCENT_FIELDS = {"percent", "turnover_rate", "amplitude"}

UP_COLOR_RED = "red"
DOWN_COLOR_GREEN = "green"
