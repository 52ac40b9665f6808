from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from conftest import lead_payload, login
from crm.analytics.service import compute_analytics, compute_stats
from crm.activities.models import Activity
from crm.leads.models import Lead, LeadStatus
from crm.users.models import User

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)

def make_lead(status="new", value=None, source="website", owner_id=1,
              created_at=datetime(2026, 10, 1), updated_at=None) -> Lead:
    return Lead(
        company_name="Co", contact_name="C", email="c@example.com",
        status=LeadStatus(status), source=source, value=value, owner_id=owner_id,
        created_at=created_at, updated_at=updated_at or created_at,
    )

def activity_at(created_at: datetime) -> Activity:
    return Activity(lead_id=1, user_id=1, type="note", subject="s", created_at=created_at)

def test_stats_on_empty_input():
    stats = compute_stats([], [], now=NOW)
    assert stats.total_leads == 0
    assert stats.active_leads == 0
    assert stats.converted_leads == 0
    assert stats.total_value == 0
    assert stats.leads_by_status == []
    assert [day.count for day in stats.recent_activity] == [0] * 7
    assert stats.recent_activity[0].date == "2026-10-12"
    assert stats.recent_activity[-1].date == "2026-10-18"

def test_stats_counts():
    leads = [
        make_lead("new", 100, "website"),
        make_lead("won", None, "referral"),
        make_lead("lost", 50, "website"),
        make_lead("contacted", 25, "event"),
        make_lead("won", 1000, "website"),
    ]
    activities = [
        activity_at(datetime(2026, 10, 18, 9)),
        activity_at(datetime(2026, 10, 18, 23, 59)),
        activity_at(datetime(2026, 10, 15, 0, 0)),
        # Outside the 7-day window
        activity_at(datetime(2026, 10, 1)),
    ]

    stats = compute_stats(leads, activities, now=NOW)
    assert stats.total_leads == 5
    assert stats.active_leads == 2
    assert stats.converted_leads == 2
    assert stats.total_value == 1175
    assert {s.status: s.count for s in stats.leads_by_status} == {"new": 1, "won": 2, "lost": 1, "contacted": 1}
    assert {s.source: s.count for s in stats.leads_by_source} == {"website": 3, "referral": 1, "event": 1}
    assert [(d.date, d.count) for d in stats.recent_activity] == [
        ("2026-10-12", 0),
        ("2026-10-13", 0),
        ("2026-10-14", 0),
        ("2026-10-15", 1),
        ("2026-10-16", 0),
        ("2026-10-17", 0),
        ("2026-10-18", 2),
    ]

def test_conversion_rate_bounds():
    assert compute_analytics([], [], now=NOW).conversion_rate == 0
    assert compute_analytics([make_lead("new"), make_lead("lost")], [], now=NOW).conversion_rate == 0
    assert compute_analytics([make_lead("won"), make_lead("won")], [], now=NOW).conversion_rate == 100
    assert compute_analytics([make_lead("won"), make_lead("new")], [], now=NOW).conversion_rate == 50

def test_deal_size_and_time_to_close():
    leads = [
        make_lead("won", 1000, created_at=datetime(2026, 10, 1), updated_at=datetime(2026, 10, 11)),
        make_lead("won", None, created_at=datetime(2026, 10, 1), updated_at=datetime(2026, 10, 3)),
        make_lead("new", 99999),
    ]
    analytics = compute_analytics(leads, [], now=NOW)
    assert analytics.avg_deal_size == 500
    assert analytics.avg_time_to_close == pytest.approx(6)

def test_empty_analytics():
    analytics = compute_analytics([], [], now=NOW)
    assert analytics.avg_deal_size == 0
    assert analytics.avg_time_to_close == 0
    assert analytics.performance_by_user == []
    assert analytics.status_distribution == []
    assert [(m.month, m.leads, m.won) for m in analytics.lead_trend] == [
        ("May", 0, 0), ("Jun", 0, 0), ("Jul", 0, 0), ("Aug", 0, 0), ("Sep", 0, 0), ("Oct", 0, 0),
    ]

def test_lead_trend_buckets_by_creation_month():
    leads = [
        make_lead("won", created_at=datetime(2026, 9, 3), updated_at=datetime(2026, 10, 2)),
        make_lead("new", created_at=datetime(2026, 9, 30, 23)),
        make_lead("new", created_at=datetime(2026, 10, 1)),
        # Too old for the window
        make_lead("won", created_at=datetime(2026, 4, 30)),
    ]
    trend = compute_analytics(leads, [], now=NOW).lead_trend
    by_month = {m.month: (m.leads, m.won) for m in trend}
    assert by_month["Sep"] == (2, 1)
    assert by_month["Oct"] == (1, 0)
    assert sum(m.leads for m in trend) == 3

def test_lead_trend_wraps_year():
    trend = compute_analytics([make_lead(created_at=datetime(2025, 12, 24))], [],
                              now=datetime(2026, 2, 10, tzinfo=timezone.utc)).lead_trend
    assert [m.month for m in trend] == ["Sep", "Oct", "Nov", "Dec", "Jan", "Feb"]
    assert [m.leads for m in trend] == [0, 0, 0, 1, 0, 0]

def test_performance_and_distribution():
    users = [
        User(id=1, username="alice", email="a@example.com", full_name="Alice Smith", hashed_password="x"),
        User(id=2, username="bob", email="b@example.com", full_name="Bob Jones", hashed_password="x"),
        User(id=3, username="cara", email="c@example.com", full_name="Cara Idle", hashed_password="x"),
    ]
    leads = [
        make_lead("won", 500, owner_id=1),
        make_lead("new", 300, owner_id=1),
        make_lead("won", 200, owner_id=2),
        make_lead("won", None, owner_id=2),
    ]
    analytics = compute_analytics(leads, users, now=NOW)

    performance = [(p.user, p.leads, p.won, p.value) for p in analytics.performance_by_user]
    assert performance == [("Alice Smith", 2, 1, 500), ("Bob Jones", 2, 2, 200)]

    distribution = {s.status: (s.count, s.percentage) for s in analytics.status_distribution}
    assert distribution == {"Won": (3, 75.0), "New": (1, 25.0)}

def test_stats_endpoint_scoped_to_caller(client: TestClient, rep, other_rep, admin):
    rep_headers = login(client, "rep")
    other_headers = login(client, "otherrep")

    mine = client.post("/api/leads", json=lead_payload(status="won", value=100), headers=rep_headers).json()
    theirs = client.post("/api/leads", json=lead_payload(value=40, source="event"), headers=other_headers).json()
    client.post("/api/activities", json={"leadId": mine["id"], "type": "call", "subject": "a"}, headers=rep_headers)
    for subject in ("b", "c"):
        client.post("/api/activities", json={"leadId": theirs["id"], "type": "call", "subject": subject},
                    headers=other_headers)

    stats = client.get("/api/stats", headers=rep_headers).json()
    assert stats["totalLeads"] == 1
    assert stats["convertedLeads"] == 1
    assert stats["totalValue"] == 100
    assert sum(day["count"] for day in stats["recentActivity"]) == 1

    stats = client.get("/api/stats", headers=login(client, "admin")).json()
    assert stats["totalLeads"] == 2
    assert stats["activeLeads"] == 1
    assert stats["leadsBySource"] == [{"source": "event", "count": 1}, {"source": "website", "count": 1}]
    assert sum(day["count"] for day in stats["recentActivity"]) == 3
    assert len(stats["recentActivity"]) == 7

def test_analytics_endpoint_permissions(client: TestClient, rep, manager):
    rep_headers = login(client, "rep")
    client.post("/api/leads", json=lead_payload(status="won", value=800), headers=rep_headers)

    assert client.get("/api/analytics", headers=rep_headers).status_code == 403

    response = client.get("/api/analytics", headers=login(client, "manager"))
    assert response.status_code == 200
    analytics = response.json()
    assert analytics["conversionRate"] == 100
    assert analytics["avgDealSize"] == 800
    assert analytics["performanceByUser"] == [{"user": "Rep", "leads": 1, "won": 1, "value": 800}]
    assert len(analytics["leadTrend"]) == 6
