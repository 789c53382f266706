"""
Usage statistics.

Everything here is computed on demand from the usage log and the current box
list; nothing is stored.
"""

from collections import defaultdict
from datetime import date, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

from hive_api.config import STATS_DAYS
from hive_api.models import Box, BoxStatus, UsageAction, UsageEvent, utcnow


def event_day(event: UsageEvent) -> date:
    ts = event.timestamp
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc)
    return ts.date()


def users_per_day(events: Iterable[UsageEvent], today: date, days: int = STATS_DAYS) -> List[Dict[str, Any]]:
    """Distinct identities per calendar day for the trailing window, oldest first."""
    window = [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]
    seen: Dict[date, set] = {day: set() for day in window}
    for event in events:
        bucket = seen.get(event_day(event))
        if bucket is not None:
            bucket.add(event.user_id)
    return [{"date": day.isoformat(), "count": len(seen[day])} for day in window]


def box_usage(events: Iterable[UsageEvent], boxes: Iterable[Box]) -> List[Dict[str, Any]]:
    connects: Dict[int, int] = defaultdict(int)
    for event in events:
        if event.action == UsageAction.CONNECT and event.box_id is not None:
            connects[event.box_id] += 1
    return [
        {
            "boxId": box.id,
            "boxNumber": box.box_number,
            "hiveId": box.hive_id,
            "currentStatus": box.status.value,
            "usageCount": connects[box.id],
        }
        for box in boxes
    ]


def user_usage(events: Iterable[UsageEvent]) -> Dict[str, Dict[str, int]]:
    usage: Dict[str, Dict[str, int]] = {}
    for event in events:
        counts = usage.setdefault(event.user_id, {"connects": 0, "releases": 0})
        if event.action == UsageAction.CONNECT:
            counts["connects"] += 1
        elif event.action == UsageAction.RELEASE:
            counts["releases"] += 1
    return usage


def aggregate(
    events: List[UsageEvent],
    boxes: List[Box],
    active_count: int,
    today: Optional[date] = None,
    days: int = STATS_DAYS,
) -> Dict[str, Any]:
    """Full stats payload for the admin dashboard."""
    if today is None:
        today = utcnow().date()
    return {
        "usersPerDay": users_per_day(events, today, days),
        "boxUsage": box_usage(events, boxes),
        "userUsage": user_usage(events),
        "usageStats": [e.to_json() for e in events],
        "totalUsers": active_count,
        "totalBoxes": len(boxes),
        "freeBoxes": sum(1 for b in boxes if b.status == BoxStatus.FREE),
        "occupiedBoxes": sum(1 for b in boxes if b.status == BoxStatus.OCCUPIED),
    }
