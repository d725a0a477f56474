"""Economic calendar - weekly release feed and indicator links."""

from fxwatch.economics.client import CalendarClient, parse_calendar
from fxwatch.economics.config import CalendarConfig
from fxwatch.economics.links import trading_economics_link
from fxwatch.economics.schemas import EconomicEvent

__all__ = [
    "CalendarClient",
    "CalendarConfig",
    "EconomicEvent",
    "parse_calendar",
    "trading_economics_link",
]
