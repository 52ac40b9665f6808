from typing import List

from crm.schemas import CamelModel

class StatusCount(CamelModel):
    status: str
    count: int

class SourceCount(CamelModel):
    source: str
    count: int

class DailyActivity(CamelModel):
    date: str
    count: int

class DashboardStats(CamelModel):
    total_leads: int
    active_leads: int
    converted_leads: int
    total_value: int
    leads_by_status: List[StatusCount]
    leads_by_source: List[SourceCount]
    recent_activity: List[DailyActivity]

class MonthlyTrend(CamelModel):
    month: str
    leads: int
    won: int

class UserPerformance(CamelModel):
    user: str
    leads: int
    won: int
    value: int

class StatusShare(CamelModel):
    status: str
    count: int
    percentage: float

class Analytics(CamelModel):
    conversion_rate: float
    avg_deal_size: float
    avg_time_to_close: float
    lead_trend: List[MonthlyTrend]
    performance_by_user: List[UserPerformance]
    status_distribution: List[StatusShare]
