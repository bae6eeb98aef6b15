import logging
from collections import defaultdict
from typing import Iterable

from periods import month_key
from records import EntityKey, HourRecord

logger = logging.getLogger(__name__)

GroupedHours = dict[EntityKey, dict[str, list[HourRecord]]]


def group_hours(hours: Iterable[HourRecord], year: int) -> GroupedHours:
    """Bucket hour records per entity and ``YYYY-MM`` month.

    Records without a date or owner, or dated outside ``year``, are left out.
    Each month's list is ordered by (date, id).
    """
    grouped: dict[EntityKey, dict[str, list[HourRecord]]] = defaultdict(
        lambda: defaultdict(list)
    )
    dropped_no_date = 0
    dropped_no_owner = 0
    dropped_other_year = 0

    for hour in hours:
        if hour.work_date is None:
            dropped_no_date += 1
            continue
        key = hour.entity_key
        if key is None:
            dropped_no_owner += 1
            continue
        if hour.work_date.year != year:
            dropped_other_year += 1
            continue
        grouped[key][month_key(year, hour.work_date.month)].append(hour)

    for months in grouped.values():
        for records in months.values():
            records.sort(key=lambda h: (h.work_date, h.id))

    if dropped_no_date or dropped_no_owner or dropped_other_year:
        logger.debug(
            f"group_hours: year={year} dropped_no_date={dropped_no_date} "
            f"dropped_no_owner={dropped_no_owner} dropped_other_year={dropped_other_year}"
        )
    return {key: dict(months) for key, months in grouped.items()}
