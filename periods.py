from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo

from config import get_settings


@dataclass(frozen=True)
class Month:
    year: int
    month: int

    @property
    def key(self) -> str:
        return month_key(self.year, self.month)


def month_key(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def month_from_key(key: str) -> int:
    return int(key[5:7])


def months_of_year(year: int) -> list[Month]:
    return [Month(year, month) for month in range(1, 13)]


def local_today() -> date:
    settings = get_settings()
    tz = ZoneInfo(settings.timezone)
    return datetime.now(tz).date()


def resolve_year(value: Optional[str], *, today: Optional[date] = None) -> int:
    """Parse a ``YYYY`` query value, falling back to the current local year."""
    if value and len(value) == 4 and value.isdigit():
        return int(value)
    today = today or local_today()
    return today.year
