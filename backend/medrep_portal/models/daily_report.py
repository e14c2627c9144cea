from functools import reduce
from operator import add

from sqlalchemy import (
    Column, Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, UniqueConstraint,
)
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.sql import func
from medrep_portal import aggregation
from medrep_portal.database import Base

SUMMARY_MAX_LENGTH = 1000
REGION_MAX_LENGTH = 50


def _column_sum(cls, fields):
    return reduce(add, (getattr(cls, f) for f in fields))


class DailyReport(Base):
    __tablename__ = "daily_reports"
    __table_args__ = (
        UniqueConstraint("user_id", "report_date", name="uq_daily_reports_user_date"),
        Index("ix_daily_reports_report_date", "report_date"),
        Index("ix_daily_reports_region", "region"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    report_date = Column(Date, nullable=False)
    region = Column(String(REGION_MAX_LENGTH), nullable=False)

    # Doctors visited
    dentists = Column(Integer, nullable=False, default=0)
    physiotherapists = Column(Integer, nullable=False, default=0)
    gynecologists = Column(Integer, nullable=False, default=0)
    internists = Column(Integer, nullable=False, default=0)
    general_practitioners = Column(Integer, nullable=False, default=0)
    pediatricians = Column(Integer, nullable=False, default=0)
    dermatologists = Column(Integer, nullable=False, default=0)

    # Facilities visited
    pharmacies = Column(Integer, nullable=False, default=0)
    dispensaries = Column(Integer, nullable=False, default=0)

    # Orders
    orders_count = Column(Integer, nullable=False, default=0)
    orders_value = Column(Numeric(15, 2, asdecimal=False), nullable=False, default=0)

    summary = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @hybrid_property
    def total_doctors(self) -> int:
        return aggregation.total_doctors(self)

    @total_doctors.expression
    def total_doctors(cls):
        return _column_sum(cls, aggregation.DOCTOR_CATEGORIES)

    @hybrid_property
    def total_visits(self) -> int:
        return aggregation.total_visits(self)

    @total_visits.expression
    def total_visits(cls):
        return _column_sum(cls, aggregation.COUNTER_FIELDS)
