#!/usr/bin/env python3
"""
Adaptive Difficulty Simulation Script

Feeds a synthetic practice history for a throwaway user into the analytics
store and prints what the engine recommends after each session.

Scenarios:
1. Improving candidate (should end on a harder level)
2. Struggling candidate (should drop to easy)
3. Candidate weak on technical accuracy (should focus technical)

PREREQUISITES:
- MongoDB running (metrics and choices are written, then removed)

Run: python scripts/simulate_adaptive.py
"""
import sys
sys.path.insert(0, '.')

from datetime import timedelta

from prepcoach.db.mongodb import get_collection, COLLECTIONS
from prepcoach.db.postgres import new_id, utcnow
from prepcoach.services.adaptive_engine import AdaptiveDifficultyEngine
from prepcoach.services.analytics_service import AnalyticsService
from prepcoach.services.scoring_service import METRICS


SCENARIOS = {
    "Improving candidate": [(80, "behavioral"), (86, "technical"), (90, "behavioral"), (92, "technical"), (94, "behavioral")],
    "Struggling candidate": [(58, "technical"), (52, "technical"), (49, "behavioral")],
    "Weak technical accuracy": [(72, "technical"), (70, "technical"), (74, "behavioral")],
}


def breakdown_for(scenario: str, score: float) -> dict:
    breakdown = {m: float(score) for m in METRICS}
    if scenario == "Weak technical accuracy":
        breakdown["technical_accuracy"] = 45.0
    return breakdown


def cleanup(user_id: str):
    for name in ("metrics", "choices"):
        get_collection(COLLECTIONS[name]).delete_many({"user_id": user_id})


def run_scenario(name: str, history: list):
    print(f"\n[{name}]")
    user_id = f"simulation-{new_id()}"
    analytics = AnalyticsService()
    engine = AdaptiveDifficultyEngine(analytics=analytics)
    start = utcnow() - timedelta(days=len(history))

    try:
        for i, (score, interview_type) in enumerate(history, 1):
            rec = engine.generate_recommendation(user_id)
            engine.record_user_choice(
                user_id, rec,
                {"difficulty": rec["recommended_difficulty"], "type": interview_type},
                session_id=f"sim-{i}", timestamp=start + timedelta(days=i)
            )
            analytics.store_performance_metrics(
                user_id, f"sim-{i}",
                {"overall_score": score, "breakdown": breakdown_for(name, score)},
                {"completion_rate": 100.0, "average_response_time": 60.0,
                 "total_questions": 5, "answered_questions": 5},
                difficulty=rec["recommended_difficulty"], interview_type=interview_type,
                timestamp=start + timedelta(days=i),
            )
            engine.update_session_outcome(
                user_id, start + timedelta(days=i),
                {"overall_score": score, "completion_rate": 100.0}, session_id=f"sim-{i}"
            )
            print(f"    Session {i}: {interview_type:<10} scored {score}")

        final = engine.generate_recommendation(user_id)
        print(f"    → Next: {final['recommended_difficulty']} / {final['recommended_type']}"
              f" (confidence {final['confidence']})")
        print(f"    → Why: {final['rationale']['primary']}")
        if final["focus_areas"]:
            print(f"    → Focus: {', '.join(final['focus_areas'])}")

        accuracy = engine.get_recommendation_accuracy(user_id)
        print(f"    → Recommendation accuracy: {accuracy['overall_accuracy']}%"
              f" over {accuracy['total_recommendations']} sessions")
        return final
    finally:
        cleanup(user_id)


def main():
    print("=" * 50)
    print("PREPCOACH - ADAPTIVE DIFFICULTY SIMULATION")
    print("=" * 50)

    results = {name: run_scenario(name, history) for name, history in SCENARIOS.items()}

    print("\n" + "=" * 50)
    checks = [
        ("Improving candidate moves up", results["Improving candidate"]["recommended_difficulty"] == "hard"),
        ("Struggling candidate moves down", results["Struggling candidate"]["recommended_difficulty"] == "easy"),
        ("Technical weakness targeted", results["Weak technical accuracy"]["recommended_type"] == "technical"),
    ]
    for label, passed in checks:
        print(f"    {'✅' if passed else '❌'} {label}")
    print("=" * 50)


if __name__ == "__main__":
    main()
