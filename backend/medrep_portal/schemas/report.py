"""
Daily report payloads.

Create and update share the field types below, so a value that is rejected on
submission is rejected on update too. Coercion policy: a missing or null
counter means 0; anything present must already be a non-negative whole number
(numeric strings are accepted). Negative, fractional or non-numeric input is
rejected, never clamped.
"""

from datetime import date, datetime
from typing import Annotated, Optional
from pydantic import AfterValidator, BaseModel, BeforeValidator, Field, StringConstraints
from medrep_portal.models.daily_report import REGION_MAX_LENGTH, SUMMARY_MAX_LENGTH

MAX_ORDERS_VALUE = 10 ** 13  # exclusive; NUMERIC(15, 2)


def _blank_to_zero(value):
    if isinstance(value, bool):
        raise ValueError("Expected a number, not a boolean")
    if value is None or (isinstance(value, str) and not value.strip()):
        return 0
    return value


def _none_to_empty(value):
    return "" if value is None else value


def _not_in_future(value: date) -> date:
    if value > date.today():
        raise ValueError("Report date cannot be in the future")
    return value


def _two_places(value: float) -> float:
    value = round(value, 2)
    if value >= MAX_ORDERS_VALUE:
        raise ValueError(f"Input should be less than {MAX_ORDERS_VALUE}")
    return value


ReportDate = Annotated[date, AfterValidator(_not_in_future)]
Region = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=REGION_MAX_LENGTH)]
Count = Annotated[int, BeforeValidator(_blank_to_zero), Field(ge=0)]
Money = Annotated[float, BeforeValidator(_blank_to_zero), Field(ge=0, lt=MAX_ORDERS_VALUE), AfterValidator(_two_places)]
Summary = Annotated[
    str,
    BeforeValidator(_none_to_empty),
    StringConstraints(strip_whitespace=True, max_length=SUMMARY_MAX_LENGTH),
]


class DailyReportCreate(BaseModel):
    report_date: ReportDate = Field(default_factory=date.today)
    region: Optional[Region] = None  # falls back to the owner's region

    dentists: Count = 0
    physiotherapists: Count = 0
    gynecologists: Count = 0
    internists: Count = 0
    general_practitioners: Count = 0
    pediatricians: Count = 0
    dermatologists: Count = 0

    pharmacies: Count = 0
    dispensaries: Count = 0

    orders_count: Count = 0
    orders_value: Money = 0.0
    summary: Summary = ""


class DailyReportUpdate(BaseModel):
    report_date: Optional[ReportDate] = None
    region: Optional[Region] = None

    dentists: Optional[Count] = None
    physiotherapists: Optional[Count] = None
    gynecologists: Optional[Count] = None
    internists: Optional[Count] = None
    general_practitioners: Optional[Count] = None
    pediatricians: Optional[Count] = None
    dermatologists: Optional[Count] = None

    pharmacies: Optional[Count] = None
    dispensaries: Optional[Count] = None

    orders_count: Optional[Count] = None
    orders_value: Optional[Money] = None
    summary: Optional[Summary] = None

    def changes(self) -> dict:
        """Fields the caller actually sent; explicit nulls leave a field untouched."""
        return {k: v for k, v in self.model_dump(exclude_unset=True).items() if v is not None}


class DailyReportResponse(BaseModel):
    id: int
    user_id: int
    report_date: date
    region: str
    dentists: int
    physiotherapists: int
    gynecologists: int
    internists: int
    general_practitioners: int
    pediatricians: int
    dermatologists: int
    pharmacies: int
    dispensaries: int
    orders_count: int
    orders_value: float
    summary: Optional[str] = None
    total_doctors: int
    total_visits: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
