"""
Analytics Service - per-user performance history and profiles.

Every completed session appends one metrics document to `performance_metrics`:

    {user_id, session_id, timestamp, difficulty, interview_type,
     overall_score, breakdown{8 metrics}, completion_rate,
     average_response_time, total_questions, answered_questions}

Only the MAX_METRICS_PER_USER most recent documents are kept per user.
Profiles, trends and benchmark comparisons are derived from that window.
"""

from datetime import datetime
from typing import Dict, List, Optional

import numpy as np

from prepcoach.db.mongodb import get_collection, COLLECTIONS
from prepcoach.db.postgres import utcnow
from prepcoach.services.scoring_service import METRICS
from prepcoach.core.logging import get_logger

logger = get_logger(__name__)

MAX_METRICS_PER_USER = 50
TREND_THRESHOLD_PCT = 5
STRENGTH_THRESHOLD = 80
WEAKNESS_THRESHOLD = 65
INTERVIEW_TYPES = ["behavioral", "technical", "mixed"]

METRIC_NAMES = {
    "technical_accuracy": "Technical Accuracy",
    "communication_skills": "Communication Skills",
    "problem_solving": "Problem Solving",
    "confidence": "Confidence",
    "relevance": "Relevance",
    "clarity": "Clarity",
    "structure": "Structure",
    "examples": "Use of Examples",
}


def _benchmark(avg, p25, p50, p75, p90, breakdown):
    return {
        "average_overall_score": avg,
        "percentiles": {"p25": p25, "p50": p50, "p75": p75, "p90": p90},
        "average_breakdown": dict(zip(METRICS, breakdown)),
        "sample_size": 1000,
    }


# Breakdown order follows METRICS
BENCHMARKS = {
    "easy-behavioral": _benchmark(76, 65, 76, 85, 92, [75, 80, 70, 75, 85, 80, 75, 70]),
    "easy-technical": _benchmark(71, 60, 71, 80, 88, [70, 75, 65, 70, 80, 75, 70, 65]),
    "medium-behavioral": _benchmark(74, 65, 74, 83, 90, [75, 75, 70, 70, 80, 75, 70, 75]),
    "medium-technical": _benchmark(69, 58, 69, 78, 86, [70, 70, 65, 65, 75, 70, 65, 70]),
    "hard-behavioral": _benchmark(69, 58, 69, 78, 86, [70, 70, 65, 65, 75, 70, 65, 70]),
    "hard-technical": _benchmark(64, 52, 64, 73, 82, [65, 65, 60, 60, 70, 65, 60, 65]),
}
DEFAULT_BENCHMARK_KEY = "medium-behavioral"


def format_metric_name(metric: str) -> str:
    return METRIC_NAMES.get(metric, metric)


def get_benchmark_data(difficulty: str, interview_type: str) -> dict:
    """Static benchmark for a difficulty/type; unknown combinations use medium-behavioral."""
    key = f"{difficulty}-{interview_type}"
    if key not in BENCHMARKS:
        key = DEFAULT_BENCHMARK_KEY
    found_difficulty, found_type = key.split("-")
    return {"difficulty": found_difficulty, "interview_type": found_type, **BENCHMARKS[key]}


def percentile_band(score: float, percentiles: Dict[str, float]) -> str:
    if score >= percentiles["p90"]:
        return "top 10%"
    if score >= percentiles["p75"]:
        return "top 25%"
    if score >= percentiles["p50"]:
        return "above median"
    if score >= percentiles["p25"]:
        return "below median"
    return "bottom 25%"


def determine_preferred_difficulty(scores: List[float]) -> str:
    """scores are chronological overall scores."""
    if len(scores) < 3:
        return "medium"
    recent_avg = float(np.mean(scores[-5:]))
    if recent_avg >= 85:
        return "hard"
    if recent_avg >= 70:
        return "medium"
    return "easy"


def calculate_trends(current: dict, previous: dict) -> List[dict]:
    """Compare two metrics documents, newest first."""
    pairs = [("overall_score", current["overall_score"], previous["overall_score"])]
    pairs += [
        (m, current["breakdown"].get(m, 0), previous["breakdown"].get(m, 0))
        for m in METRICS
    ]

    trends = []
    for metric, recent, prior in pairs:
        change_pct = ((recent - prior) / prior) * 100 if prior > 0 else 0.0
        if change_pct > TREND_THRESHOLD_PCT:
            direction = "improving"
        elif change_pct < -TREND_THRESHOLD_PCT:
            direction = "declining"
        else:
            direction = "stable"
        trends.append({
            "metric": metric,
            "direction": direction,
            "change_percentage": round(change_pct, 1),
            "recent_score": float(recent),
            "previous_score": float(prior),
        })
    return trends


def _strip_id(doc: dict) -> dict:
    doc.pop("_id", None)
    return doc


class AnalyticsService:
    """Reads and writes the performance_metrics collection."""

    def __init__(self):
        self.collection = get_collection(COLLECTIONS["metrics"])

    def store_performance_metrics(
        self,
        user_id: str,
        session_id: str,
        detailed_score: dict,
        session_stats: dict,
        difficulty: str,
        interview_type: str,
        timestamp: Optional[datetime] = None,
    ) -> dict:
        doc = {
            "user_id": user_id,
            "session_id": session_id,
            "timestamp": timestamp or utcnow(),
            "difficulty": difficulty,
            "interview_type": interview_type,
            "overall_score": detailed_score["overall_score"],
            "breakdown": dict(detailed_score["breakdown"]),
            "completion_rate": session_stats["completion_rate"],
            "average_response_time": session_stats["average_response_time"],
            "total_questions": session_stats["total_questions"],
            "answered_questions": session_stats["answered_questions"],
        }
        self.collection.insert_one(doc)
        self._trim(user_id)
        logger.info(
            f"Stored metrics for user {user_id} session {session_id}: "
            f"{doc['overall_score']} ({difficulty}/{interview_type})"
        )
        return doc

    def _trim(self, user_id: str) -> None:
        stale = self.collection.find(
            {"user_id": user_id}
        ).sort([("timestamp", -1), ("_id", -1)]).skip(MAX_METRICS_PER_USER)
        stale_ids = [d["_id"] for d in stale]
        if stale_ids:
            self.collection.delete_many({"_id": {"$in": stale_ids}})

    def get_all_performance_metrics(self, user_id: str) -> List[dict]:
        """Chronological (oldest first)."""
        cursor = self.collection.find({"user_id": user_id}).sort([("timestamp", 1), ("_id", 1)])
        return [_strip_id(d) for d in cursor]

    def get_recent_performance_metrics(self, user_id: str, count: int = 5) -> List[dict]:
        """Newest first."""
        cursor = (
            self.collection.find({"user_id": user_id})
            .sort([("timestamp", -1), ("_id", -1)])
            .limit(count)
        )
        return [_strip_id(d) for d in cursor]

    def calculate_performance_trends(self, user_id: str) -> List[dict]:
        recent = self.get_recent_performance_metrics(user_id, 2)
        if len(recent) < 2:
            return []
        return calculate_trends(recent[0], recent[1])

    def generate_user_performance_profile(self, user_id: str) -> dict:
        metrics = self.get_all_performance_metrics(user_id)
        if not metrics:
            return self._default_profile(user_id)

        scores = [m["overall_score"] for m in metrics]

        by_type = {}
        for interview_type in INTERVIEW_TYPES:
            type_scores = [m["overall_score"] for m in metrics if m["interview_type"] == interview_type]
            by_type[interview_type] = {
                "average_score": float(np.mean(type_scores)) if type_scores else 0.0,
                "session_count": len(type_scores),
                "best_score": float(max(type_scores)) if type_scores else 0.0,
            }

        recent = sorted(metrics, key=lambda m: m["timestamp"], reverse=True)[:10]
        averages = {
            metric: float(np.mean([m["breakdown"].get(metric, 0) for m in recent]))
            for metric in METRICS
        }
        strengths = [
            format_metric_name(metric)
            for metric, avg in sorted(averages.items(), key=lambda kv: kv[1], reverse=True)
            if avg >= STRENGTH_THRESHOLD
        ][:3]
        weaknesses = [
            format_metric_name(metric)
            for metric, avg in sorted(averages.items(), key=lambda kv: kv[1])
            if avg < WEAKNESS_THRESHOLD
        ][:3]

        return {
            "user_id": user_id,
            "total_sessions": len(metrics),
            "average_score": float(np.mean(scores)),
            "strengths": strengths,
            "weaknesses": weaknesses,
            "preferred_difficulty": determine_preferred_difficulty(scores),
            "performance_by_type": by_type,
            "recent_trends": self.calculate_performance_trends(user_id),
            "last_updated": utcnow(),
        }

    def _default_profile(self, user_id: str) -> dict:
        return {
            "user_id": user_id,
            "total_sessions": 0,
            "average_score": 0.0,
            "strengths": [],
            "weaknesses": [],
            "preferred_difficulty": "medium",
            "performance_by_type": {
                t: {"average_score": 0.0, "session_count": 0, "best_score": 0.0}
                for t in INTERVIEW_TYPES
            },
            "recent_trends": [],
            "last_updated": utcnow(),
        }

    def get_user_performance_summary(self, user_id: str) -> dict:
        """Profile plus a benchmark comparison for the user's usual level and type."""
        profile = self.generate_user_performance_profile(user_id)

        practiced = {
            t: profile["performance_by_type"][t]["session_count"]
            for t in ("behavioral", "technical")
        }
        main_type = max(practiced, key=practiced.get) if any(practiced.values()) else "behavioral"
        benchmark = get_benchmark_data(profile["preferred_difficulty"], main_type)

        band = None
        if profile["total_sessions"] > 0:
            band = percentile_band(profile["average_score"], benchmark["percentiles"])

        recent_sessions = [
            {
                "session_id": m["session_id"],
                "timestamp": m["timestamp"],
                "difficulty": m["difficulty"],
                "interview_type": m["interview_type"],
                "overall_score": m["overall_score"],
            }
            for m in self.get_recent_performance_metrics(user_id, 5)
        ]

        return {
            "profile": profile,
            "benchmark": benchmark,
            "percentile_band": band,
            "recent_sessions": recent_sessions,
        }


# Singleton
_analytics_service = None


def get_analytics_service() -> AnalyticsService:
    global _analytics_service
    if _analytics_service is None:
        _analytics_service = AnalyticsService()
    return _analytics_service
