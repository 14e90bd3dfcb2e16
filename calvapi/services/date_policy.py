"""What to do with a booking request whose start time is already past.

Voice callers often say "March 3rd" and the assistant fills in last year, and
the caller cannot easily be asked for a corrected date mid-call. The default
policy moves such requests forward instead of rejecting them. Wall-clock
fields are kept in the offset the caller supplied.
"""

import logging
from datetime import datetime, timedelta
from typing import Protocol

from calvapi.config import Settings, settings
from calvapi.schemas.booking import DateAdjustment

logger = logging.getLogger(__name__)


class DateRepairPolicy(Protocol):
    def repair(self, start: datetime, now: datetime) -> DateAdjustment | None:
        """Return the adjustment to apply, or None to keep ``start`` as is."""
        ...


def _with_year(dt: datetime, year: int) -> datetime:
    try:
        return dt.replace(year=year)
    except ValueError:
        # Feb 29 into a non-leap year.
        return dt.replace(year=year, day=28)


class ShiftToFuturePolicy:
    """Move past requests into the future, keeping the time of day."""

    def repair(self, start: datetime, now: datetime) -> DateAdjustment | None:
        now_local = now.astimezone(start.tzinfo)
        past_year = start.year < now_local.year
        if not past_year and start > now:
            return None

        if past_year:
            adjusted = _with_year(start, now_local.year)
            if adjusted <= now:
                adjusted = _with_year(start, now_local.year + 1)
            reason = f"requested year {start.year} is in the past"
        else:
            tomorrow = now_local + timedelta(days=1)
            adjusted = tomorrow.replace(hour=start.hour, minute=start.minute, second=0, microsecond=0)
            reason = "requested time has already passed today"

        logger.info("Adjusting past booking date %s -> %s (%s)", start.isoformat(), adjusted.isoformat(), reason)
        return DateAdjustment(original=start, adjusted=adjusted, reason=reason)


class NoDateRepairPolicy:
    """Leave requested dates untouched; the provider decides what is bookable."""

    def repair(self, start: datetime, now: datetime) -> DateAdjustment | None:
        return None


def get_date_policy(cfg: Settings | None = None) -> DateRepairPolicy:
    cfg = cfg or settings
    return ShiftToFuturePolicy() if cfg.date_repair_enabled else NoDateRepairPolicy()
