"""Dashboard and analytics rollups.

Pure functions over rows the caller is already allowed to see. Dates are
bucketed on UTC calendar boundaries.

``avg_time_to_close`` uses ``updated_at - created_at`` of won leads and
``lead_trend`` buckets wins by the month the lead was created; neither has a
dedicated close timestamp to work from, so a later edit to a won lead shifts
the former.
"""
from collections import Counter
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, List, Optional, Sequence, Tuple

from crm.analytics.schemas import (
    Analytics,
    DailyActivity,
    DashboardStats,
    MonthlyTrend,
    SourceCount,
    StatusCount,
    StatusShare,
    UserPerformance,
)
from crm.leads.models import CLOSED_STATUSES, LeadStatus

RECENT_ACTIVITY_DAYS = 7
TREND_MONTHS = 6

def _utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

def _status(lead) -> str:
    return getattr(lead.status, "value", lead.status)

def _is_won(lead) -> bool:
    return _status(lead) == LeadStatus.WON.value

def _trailing_days(today: date, days: int) -> List[date]:
    return [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]

def _trailing_months(today: date, months: int) -> List[Tuple[int, int]]:
    result = []
    for offset in range(months - 1, -1, -1):
        year, month = today.year, today.month - offset
        while month <= 0:
            month += 12
            year -= 1
        result.append((year, month))
    return result

def compute_stats(leads: Sequence, activities: Iterable, now: Optional[datetime] = None) -> DashboardStats:
    now = _utc(now or datetime.now(timezone.utc))

    closed = {status.value for status in CLOSED_STATUSES}
    status_counts = Counter(_status(lead) for lead in leads)
    source_counts = Counter(lead.source for lead in leads)

    per_day = Counter(_utc(activity.created_at).date() for activity in activities)
    recent_activity = [
        DailyActivity(date=day.isoformat(), count=per_day.get(day, 0))
        for day in _trailing_days(now.date(), RECENT_ACTIVITY_DAYS)
    ]

    return DashboardStats(
        total_leads=len(leads),
        active_leads=sum(1 for lead in leads if _status(lead) not in closed),
        converted_leads=status_counts.get(LeadStatus.WON.value, 0),
        total_value=sum(lead.value or 0 for lead in leads),
        leads_by_status=[StatusCount(status=status, count=count) for status, count in status_counts.items()],
        leads_by_source=[SourceCount(source=source, count=count) for source, count in source_counts.items()],
        recent_activity=recent_activity,
    )

def compute_analytics(leads: Sequence, users: Iterable, now: Optional[datetime] = None) -> Analytics:
    now = _utc(now or datetime.now(timezone.utc))
    total = len(leads)
    won = [lead for lead in leads if _is_won(lead)]

    conversion_rate = (len(won) / total) * 100 if total else 0.0
    avg_deal_size = sum(lead.value or 0 for lead in won) / len(won) if won else 0.0
    days_to_close = [
        (_utc(lead.updated_at) - _utc(lead.created_at)).total_seconds() / 86400 for lead in won
    ]
    avg_time_to_close = sum(days_to_close) / len(days_to_close) if days_to_close else 0.0

    lead_trend = []
    for year, month in _trailing_months(now.date(), TREND_MONTHS):
        created = [
            lead for lead in leads
            if (_utc(lead.created_at).year, _utc(lead.created_at).month) == (year, month)
        ]
        lead_trend.append(MonthlyTrend(
            month=date(year, month, 1).strftime("%b"),
            leads=len(created),
            won=sum(1 for lead in created if _is_won(lead)),
        ))

    performance_by_user = []
    for user in users:
        owned = [lead for lead in leads if lead.owner_id == user.id]
        if not owned:
            continue
        owned_won = [lead for lead in owned if _is_won(lead)]
        performance_by_user.append(UserPerformance(
            user=user.full_name,
            leads=len(owned),
            won=len(owned_won),
            value=sum(lead.value or 0 for lead in owned_won),
        ))

    status_counts = Counter(_status(lead) for lead in leads)
    status_distribution = [
        StatusShare(status=status.capitalize(), count=count, percentage=(count / total) * 100)
        for status, count in status_counts.items()
    ]

    return Analytics(
        conversion_rate=conversion_rate,
        avg_deal_size=avg_deal_size,
        avg_time_to_close=avg_time_to_close,
        lead_trend=lead_trend,
        performance_by_user=performance_by_user,
        status_distribution=status_distribution,
    )
