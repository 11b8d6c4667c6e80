import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from quotewatch.constants import (
    QUOTE_COLUMNS, REQUIRED_FIELDS, THOUSANDS_FIELDS, PERCENT_FIELDS,
    UP_COLOR_RED, DOWN_COLOR_GREEN,
)

logger = logging.getLogger(__name__)

MISSING = "—"


@dataclass(frozen=True)
class ColorPolicy:
    up_is_red: bool = True

    @property
    def up_color(self) -> str:
        return UP_COLOR_RED if self.up_is_red else DOWN_COLOR_GREEN

    @property
    def down_color(self) -> str:
        return DOWN_COLOR_GREEN if self.up_is_red else UP_COLOR_RED


@dataclass(frozen=True)
class DisplayRow:
    symbol: str
    cells: Tuple[str, ...]
    color: str


def fmt_thousands(val: Optional[float]) -> str:
    if val is None:
        return MISSING
    return f"{int(round(val)):,}"


def fmt_pct(val: Optional[float]) -> str:
    if val is None:
        return MISSING
    return f"{val:.2f}%"


def fmt_price(val: Optional[float]) -> str:
    if val is None:
        return MISSING
    return f"{val:.2f}"


def fmt_cell(key: str, val: Any) -> str:
    if key == "symbol":
        return str(val)
    if key in THOUSANDS_FIELDS:
        return fmt_thousands(val)
    if key in PERCENT_FIELDS:
        return fmt_pct(val)
    return fmt_price(val)


def validate_record(record: Dict[str, Any]) -> bool:
    return all(record.get(k) is not None for k in REQUIRED_FIELDS)


def row_color(record: Dict[str, Any], policy: ColorPolicy) -> str:
    chg = record.get("chg")
    if chg is not None and chg > 0:
        return policy.up_color
    return policy.down_color


def format_record(record: Dict[str, Any], policy: ColorPolicy) -> Optional[DisplayRow]:
    """Project a quote record onto the table columns, or None if it is incomplete."""
    if not validate_record(record):
        logger.warning("Invalid data received")
        return None
    try:
        cells = tuple(fmt_cell(key, record.get(key)) for key, _, _, _ in QUOTE_COLUMNS)
        color = row_color(record, policy)
    except (TypeError, ValueError, OverflowError):
        logger.warning("Invalid data received")
        return None
    return DisplayRow(symbol=str(record["symbol"]), cells=cells, color=color)
