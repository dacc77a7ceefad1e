"""
Analytics Service Tests

Tests:
1. Default profile for new users
2. Profile aggregation (averages, per-type stats, strengths/weaknesses)
3. Trends between the two latest sessions
4. Rolling metrics window
5. Benchmarks and percentile bands

Run with: pytest tests/test_analytics_service.py -v
"""
from datetime import timedelta

import pytest

from prepcoach.db.postgres import utcnow
from prepcoach.services import analytics_service
from prepcoach.services.analytics_service import (
    AnalyticsService,
    get_benchmark_data,
    percentile_band,
    determine_preferred_difficulty,
    calculate_trends,
)
from prepcoach.services.scoring_service import METRICS

from conftest import USER_ID


@pytest.fixture
def analytics():
    return AnalyticsService()


def store(analytics, score, minutes_ago, interview_type="behavioral", breakdown=None, difficulty="medium"):
    breakdown = breakdown or {m: float(score) for m in METRICS}
    return analytics.store_performance_metrics(
        USER_ID,
        f"session-{minutes_ago}",
        {"overall_score": score, "breakdown": breakdown},
        {"completion_rate": 100.0, "average_response_time": 42.0, "total_questions": 3, "answered_questions": 3},
        difficulty=difficulty,
        interview_type=interview_type,
        timestamp=utcnow() - timedelta(minutes=minutes_ago),
    )


def test_default_profile_for_new_user(analytics):
    profile = analytics.generate_user_performance_profile(USER_ID)

    assert profile["total_sessions"] == 0
    assert profile["average_score"] == 0.0
    assert profile["preferred_difficulty"] == "medium"
    assert profile["performance_by_type"]["technical"]["session_count"] == 0


def test_profile_aggregates_sessions(analytics):
    store(analytics, 70, 30)
    store(analytics, 80, 20)
    store(analytics, 90, 10, interview_type="technical")

    profile = analytics.generate_user_performance_profile(USER_ID)

    assert profile["total_sessions"] == 3
    assert profile["average_score"] == 80.0
    assert profile["preferred_difficulty"] == "medium"
    assert profile["performance_by_type"]["behavioral"] == {
        "average_score": 75.0, "session_count": 2, "best_score": 80.0,
    }
    assert profile["performance_by_type"]["technical"]["best_score"] == 90.0


def test_profile_averages_are_not_rounded(analytics):
    store(analytics, 84.85, 40)
    for minutes_ago in (30, 20, 10):
        store(analytics, 85, minutes_ago)

    profile = analytics.generate_user_performance_profile(USER_ID)

    assert profile["average_score"] == pytest.approx(84.9625)
    assert profile["performance_by_type"]["behavioral"]["average_score"] == pytest.approx(84.9625)


def test_strengths_and_weaknesses_use_display_names(analytics):
    breakdown = {m: 85.0 for m in METRICS}
    breakdown["examples"] = 50.0
    store(analytics, 80, 5, breakdown=breakdown)

    profile = analytics.generate_user_performance_profile(USER_ID)

    assert len(profile["strengths"]) == 3
    assert profile["weaknesses"] == ["Use of Examples"]


def test_trends_compare_latest_two_sessions(analytics):
    store(analytics, 60, 20)
    store(analytics, 90, 10)

    trends = analytics.calculate_performance_trends(USER_ID)
    overall = next(t for t in trends if t["metric"] == "overall_score")

    assert overall["direction"] == "improving"
    assert overall["change_percentage"] == 50.0
    assert overall["recent_score"] == 90.0
    assert overall["previous_score"] == 60.0


def trend_doc(score):
    return {"overall_score": score, "breakdown": {m: float(score) for m in METRICS}}


def test_five_percent_change_is_stable():
    up = calculate_trends(trend_doc(84), trend_doc(80))
    down = calculate_trends(trend_doc(76), trend_doc(80))

    assert {t["direction"] for t in up} == {"stable"}
    assert {t["direction"] for t in down} == {"stable"}
    assert up[0]["change_percentage"] == 5.0
    assert down[0]["change_percentage"] == -5.0


def test_change_beyond_five_percent_sets_direction():
    assert calculate_trends(trend_doc(85), trend_doc(80))[0]["direction"] == "improving"
    assert calculate_trends(trend_doc(75), trend_doc(80))[0]["direction"] == "declining"


def test_trend_against_zero_is_stable():
    trend = calculate_trends(trend_doc(50), trend_doc(0))[0]
    assert trend["direction"] == "stable"
    assert trend["change_percentage"] == 0.0


def test_metrics_window_keeps_newest(analytics, monkeypatch):
    monkeypatch.setattr(analytics_service, "MAX_METRICS_PER_USER", 3)
    for minutes_ago, score in [(50, 10), (40, 20), (30, 30), (20, 40), (10, 50)]:
        store(analytics, score, minutes_ago)

    remaining = [m["overall_score"] for m in analytics.get_all_performance_metrics(USER_ID)]
    assert remaining == [30, 40, 50]


def test_recent_metrics_are_newest_first(analytics):
    store(analytics, 10, 30)
    store(analytics, 20, 20)
    store(analytics, 30, 10)

    recent = analytics.get_recent_performance_metrics(USER_ID, 2)
    assert [m["overall_score"] for m in recent] == [30, 20]
    assert "_id" not in recent[0]


def test_summary_compares_with_benchmark(analytics):
    for minutes_ago in (30, 20, 10):
        store(analytics, 80, minutes_ago, interview_type="technical")

    summary = analytics.get_user_performance_summary(USER_ID)

    assert summary["benchmark"]["difficulty"] == "medium"
    assert summary["benchmark"]["interview_type"] == "technical"
    assert summary["percentile_band"] == "top 25%"
    assert len(summary["recent_sessions"]) == 3


def test_summary_without_history_has_no_band(analytics):
    summary = analytics.get_user_performance_summary(USER_ID)
    assert summary["percentile_band"] is None
    assert summary["benchmark"]["interview_type"] == "behavioral"


def test_unknown_benchmark_falls_back_to_medium_behavioral():
    benchmark = get_benchmark_data("medium", "mixed")
    assert (benchmark["difficulty"], benchmark["interview_type"]) == ("medium", "behavioral")
    assert benchmark["average_overall_score"] == 74


def test_percentile_bands():
    percentiles = {"p25": 60, "p50": 70, "p75": 80, "p90": 90}
    assert percentile_band(95, percentiles) == "top 10%"
    assert percentile_band(72, percentiles) == "above median"
    assert percentile_band(10, percentiles) == "bottom 25%"


def test_preferred_difficulty_from_recent_scores():
    assert determine_preferred_difficulty([90, 90]) == "medium"
    # only the last five count
    assert determine_preferred_difficulty([10, 90, 90, 90, 90, 90]) == "hard"
    assert determine_preferred_difficulty([50, 60, 55]) == "easy"
