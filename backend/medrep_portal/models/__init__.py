from medrep_portal.models.user import User
from medrep_portal.models.daily_report import DailyReport

__all__ = ["User", "DailyReport"]
