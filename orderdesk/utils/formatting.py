from datetime import datetime
from typing import Optional, Union

DISPLAY_FORMAT = "%d/%m/%Y %H:%M:%S"


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    except ValueError:
        return None


def format_timestamp(value: Union[str, datetime, None]) -> str:
    """Operator-facing timestamp, or the raw value if it cannot be parsed."""
    if value in (None, ""):
        return ""
    parsed = parse_timestamp(value)
    if parsed is None:
        return str(value)
    return parsed.strftime(DISPLAY_FORMAT)


def format_money(amount) -> str:
    return f"{int(round(amount or 0)):,}".replace(",", ".") + " ₫"
