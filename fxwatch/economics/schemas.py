"""Economic calendar event schema."""

import datetime

from pydantic import BaseModel, Field


class EconomicEvent(BaseModel):
    """One scheduled release from the weekly calendar feed."""

    title: str
    currency: str = Field(..., description="Three-letter code the release moves")
    date: datetime.date
    time: str = Field(default="", description="Feed time label, e.g. '1:30pm' or 'All Day'")
    impact: str = Field(default="Low", description="Low, Medium, High (or Holiday)")
    forecast: str = ""
    previous: str = ""

    @property
    def is_important(self) -> bool:
        return self.impact in ("High", "Medium")
