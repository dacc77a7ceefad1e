"""
Adaptive Difficulty Engine - recommends the next practice session.

Pipeline for generate_recommendation(user_id):
1. Build the performance profile (analytics_service) and take the last 3 scores
2. Evaluate the rules below; the highest-priority applicable rule wins
3. Fill in what the rule left open (difficulty, type, focus areas, alternatives)
4. Compute a confidence score from history size, score stability and rationale depth

Users with no history, or where no rule applies, get DEFAULT_RECOMMENDATION.

What the user actually picked is stored in `recommendation_choices` together with
the session outcome, which feeds get_recommendation_accuracy().
"""

from datetime import datetime, timedelta
from typing import Callable, List, Optional

import numpy as np

from prepcoach.db.mongodb import get_collection, COLLECTIONS
from prepcoach.db.postgres import utcnow
from prepcoach.services.analytics_service import AnalyticsService, get_analytics_service
from prepcoach.core.logging import get_logger

logger = get_logger(__name__)

DIFFICULTY_LEVELS = ["easy", "medium", "hard"]
MAX_CHOICE_RECORDS = 100
OUTCOME_MATCH_WINDOW = timedelta(seconds=60)
SUCCESSFUL_OUTCOME_SCORE = 70

DEFAULT_RECOMMENDATION = {
    "recommended_difficulty": "medium",
    "recommended_type": "mixed",
    "confidence": 50.0,
    "rationale": {
        "primary": "Starting with a balanced approach",
        "supporting": [
            "Medium difficulty provides a good baseline",
            "Mixed type covers both technical and behavioral skills",
        ],
    },
    "alternative_options": [
        {"difficulty": "easy", "type": "behavioral", "reason": "Build confidence with behavioral questions"},
        {"difficulty": "easy", "type": "technical", "reason": "Practice technical fundamentals"},
    ],
    "focus_areas": [],
    "estimated_difficulty": "appropriate",
}


def increase_difficulty(difficulty: str) -> str:
    index = DIFFICULTY_LEVELS.index(difficulty)
    return DIFFICULTY_LEVELS[min(index + 1, len(DIFFICULTY_LEVELS) - 1)]


def decrease_difficulty(difficulty: str) -> str:
    index = DIFFICULTY_LEVELS.index(difficulty)
    return DIFFICULTY_LEVELS[max(index - 1, 0)]


def _mean(values: List[float]) -> float:
    return float(np.mean(values)) if values else 0.0


def default_recommendation() -> dict:
    rec = dict(DEFAULT_RECOMMENDATION)
    rec["rationale"] = {
        "primary": DEFAULT_RECOMMENDATION["rationale"]["primary"],
        "supporting": list(DEFAULT_RECOMMENDATION["rationale"]["supporting"]),
    }
    rec["alternative_options"] = [dict(o) for o in DEFAULT_RECOMMENDATION["alternative_options"]]
    rec["focus_areas"] = []
    return rec


# ============================================================
# RULES
# condition(profile, recent_scores) -> bool
# action(profile, recent_scores) -> partial recommendation
# recent_scores are overall scores, newest first (at most 3)
# ============================================================

class AdaptiveRule:
    def __init__(self, rule_id: str, name: str, priority: int,
                 condition: Callable[[dict, List[float]], bool],
                 action: Callable[[dict, List[float]], dict]):
        self.id = rule_id
        self.name = name
        self.priority = priority
        self.condition = condition
        self.action = action


def _high_performer_condition(profile, recent):
    return (
        profile["total_sessions"] >= 3
        and profile["average_score"] >= 85
        and _mean(recent) >= 85
    )


def _high_performer_action(profile, recent):
    return {
        "recommended_difficulty": increase_difficulty(profile["preferred_difficulty"]),
        "rationale": {
            "primary": "You're consistently performing at a high level",
            "supporting": [
                f"Average score: {profile['average_score']:.1f}%",
                "Ready for more challenging questions",
            ],
        },
        "estimated_difficulty": "challenging",
    }


def _struggling_condition(profile, recent):
    return profile["total_sessions"] >= 2 and (
        profile["average_score"] < 60 or _mean(recent) < 60
    )


def _struggling_action(profile, recent):
    return {
        "recommended_difficulty": decrease_difficulty(profile["preferred_difficulty"]),
        "rationale": {
            "primary": "Let's build confidence with more appropriate questions",
            "supporting": [
                "Recent scores need improvement",
                "Focus on mastering fundamentals",
            ],
        },
        "estimated_difficulty": "comfortable",
    }


def _technical_weakness_condition(profile, recent):
    return any(w in ("Technical Accuracy", "Problem Solving") for w in profile["weaknesses"])


def _technical_weakness_action(profile, recent):
    focus = [w for w in profile["weaknesses"] if "Technical" in w or "Problem Solving" in w]
    return {
        "recommended_type": "technical",
        "focus_areas": focus,
        "rationale": {
            "primary": "Let's strengthen your technical skills",
            "supporting": [f"Improve {w}" for w in profile["weaknesses"]],
        },
    }


COMMUNICATION_MARKERS = ("Communication", "Clarity", "Confidence")


def _communication_weakness_condition(profile, recent):
    return any(m in w for w in profile["weaknesses"] for m in COMMUNICATION_MARKERS)


def _communication_weakness_action(profile, recent):
    focus = [w for w in profile["weaknesses"] if any(m in w for m in COMMUNICATION_MARKERS)]
    return {
        "recommended_type": "behavioral",
        "focus_areas": focus,
        "rationale": {
            "primary": "Let's work on your communication skills",
            "supporting": [f"Strengthen {w}" for w in profile["weaknesses"]],
        },
    }


def _balanced_condition(profile, recent):
    by_type = profile["performance_by_type"]
    gap = abs(by_type["behavioral"]["average_score"] - by_type["technical"]["average_score"])
    return profile["total_sessions"] >= 5 and gap < 10


def _balanced_action(profile, recent):
    return {
        "recommended_type": "mixed",
        "rationale": {
            "primary": "You have balanced skills, let's practice both areas",
            "supporting": [
                "Similar performance in behavioral and technical questions",
                "Mixed interviews provide comprehensive practice",
            ],
        },
    }


def _specialization_condition(profile, recent):
    behavioral = profile["performance_by_type"]["behavioral"]
    technical = profile["performance_by_type"]["technical"]
    return (
        behavioral["session_count"] >= 3
        and technical["session_count"] >= 3
        and abs(behavioral["average_score"] - technical["average_score"]) > 15
    )


def _specialization_action(profile, recent):
    behavioral = profile["performance_by_type"]["behavioral"]
    technical = profile["performance_by_type"]["technical"]
    stronger = "behavioral" if behavioral["average_score"] > technical["average_score"] else "technical"
    stronger_avg = profile["performance_by_type"][stronger]["average_score"]
    return {
        "recommended_type": stronger,
        "rationale": {
            "primary": f"Focus on your stronger area: {stronger} questions",
            "supporting": [
                f"You excel at {stronger} questions ({stronger_avg:.1f}% average)",
                "Build confidence before addressing weaker areas",
            ],
        },
    }


RULES = [
    AdaptiveRule("high-performer-advance", "High Performer - Advance Difficulty", 100,
                 _high_performer_condition, _high_performer_action),
    AdaptiveRule("struggling-simplify", "Struggling - Simplify", 90,
                 _struggling_condition, _struggling_action),
    AdaptiveRule("technical-weakness-focus", "Technical Weakness - Focus Technical", 80,
                 _technical_weakness_condition, _technical_weakness_action),
    AdaptiveRule("communication-weakness-focus", "Communication Weakness - Focus Behavioral", 75,
                 _communication_weakness_condition, _communication_weakness_action),
    AdaptiveRule("balanced-approach", "Balanced Performance - Mixed Practice", 50,
                 _balanced_condition, _balanced_action),
    AdaptiveRule("type-specialization", "Type Specialization", 40,
                 _specialization_condition, _specialization_action),
]


# ============================================================
# ENGINE
# ============================================================

class AdaptiveDifficultyEngine:
    """Rule-based recommender plus recommendation/choice bookkeeping."""

    def __init__(self, analytics: Optional[AnalyticsService] = None, rules: Optional[List[AdaptiveRule]] = None):
        self.analytics = analytics or get_analytics_service()
        self.rules = sorted(rules or RULES, key=lambda r: r.priority, reverse=True)
        self.collection = get_collection(COLLECTIONS["choices"])

    def get_rules(self) -> List[dict]:
        return [{"id": r.id, "name": r.name, "priority": r.priority} for r in self.rules]

    def generate_recommendation(self, user_id: str) -> dict:
        profile = self.analytics.generate_user_performance_profile(user_id)
        if profile["total_sessions"] == 0:
            return default_recommendation()

        recent = [
            m["overall_score"]
            for m in self.analytics.get_recent_performance_metrics(user_id, 3)
        ]

        for rule in self.rules:
            if rule.condition(profile, recent):
                logger.debug(f"Rule {rule.id} applied for user {user_id}")
                partial = rule.action(profile, recent)
                return self._complete_recommendation(partial, profile, recent)

        return default_recommendation()

    def _complete_recommendation(self, partial: dict, profile: dict, recent: List[float]) -> dict:
        difficulty = partial.get("recommended_difficulty") or profile["preferred_difficulty"]
        interview_type = partial.get("recommended_type") or "mixed"
        rationale = partial.get("rationale") or {
            "primary": "Recommended based on your performance",
            "supporting": [f"Current skill level suggests {profile['preferred_difficulty']} difficulty"],
        }

        focus_areas = partial.get("focus_areas")
        if focus_areas is None:
            focus_areas = profile["weaknesses"][:2]

        return {
            "recommended_difficulty": difficulty,
            "recommended_type": interview_type,
            "confidence": self._calculate_confidence(profile, recent, partial),
            "rationale": rationale,
            "alternative_options": self._generate_alternatives(difficulty, interview_type),
            "focus_areas": focus_areas,
            "estimated_difficulty": partial.get("estimated_difficulty") or "appropriate",
        }

    def _generate_alternatives(self, difficulty: str, interview_type: str) -> List[dict]:
        alternatives = []
        if interview_type != "behavioral":
            alternatives.append({
                "difficulty": difficulty, "type": "behavioral",
                "reason": "Focus on communication and soft skills",
            })
        if interview_type != "technical":
            alternatives.append({
                "difficulty": difficulty, "type": "technical",
                "reason": "Focus on technical problem-solving",
            })
        if difficulty != "easy":
            alternatives.append({
                "difficulty": "easy", "type": interview_type,
                "reason": "Build confidence with easier questions",
            })
        if difficulty != "hard":
            alternatives.append({
                "difficulty": "hard", "type": interview_type,
                "reason": "Challenge yourself with harder questions",
            })
        return alternatives[:2]

    def _calculate_confidence(self, profile: dict, recent: List[float], partial: dict) -> float:
        confidence = 50.0
        confidence += min(20, profile["total_sessions"] * 2)

        if len(recent) >= 2:
            variance = float(np.var(recent))
            confidence += max(0.0, 15 - variance * 2)

        if len((partial.get("rationale") or {}).get("supporting", [])) >= 2:
            confidence += 10

        return round(max(0.0, min(100.0, confidence)), 1)

    # ========================================================
    # Choice tracking
    # ========================================================

    def record_user_choice(
        self,
        user_id: str,
        recommendation: dict,
        user_choice: dict,
        session_id: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> dict:
        followed = (
            recommendation["recommended_difficulty"] == user_choice["difficulty"]
            and recommendation["recommended_type"] == user_choice["type"]
        )
        record = {
            "user_id": user_id,
            "session_id": session_id,
            "timestamp": timestamp or utcnow(),
            "recommendation": recommendation,
            "user_choice": {"difficulty": user_choice["difficulty"], "type": user_choice["type"]},
            "was_recommendation_followed": followed,
            "session_outcome": None,
        }
        self.collection.insert_one(record)
        self._trim(user_id)
        record.pop("_id", None)
        return record

    def _trim(self, user_id: str) -> None:
        stale = self.collection.find({"user_id": user_id}).sort(
            [("timestamp", -1), ("_id", -1)]
        ).skip(MAX_CHOICE_RECORDS)
        stale_ids = [d["_id"] for d in stale]
        if stale_ids:
            self.collection.delete_many({"_id": {"$in": stale_ids}})

    def update_session_outcome(
        self,
        user_id: str,
        session_timestamp: datetime,
        outcome: dict,
        session_id: Optional[str] = None,
    ) -> bool:
        """
        Attach {overall_score, completion_rate} to the choice record for a session.
        Matches by session id first, otherwise the record closest in time within 60s.
        """
        target = None
        if session_id:
            target = self.collection.find_one(
                {"user_id": user_id, "session_id": session_id},
                sort=[("timestamp", -1)]
            )

        if target is None:
            candidates = self.collection.find({
                "user_id": user_id,
                "timestamp": {
                    "$gte": session_timestamp - OUTCOME_MATCH_WINDOW,
                    "$lte": session_timestamp + OUTCOME_MATCH_WINDOW,
                },
            })
            candidates = sorted(candidates, key=lambda d: abs(d["timestamp"] - session_timestamp))
            target = candidates[0] if candidates else None

        if target is None:
            return False

        self.collection.update_one(
            {"_id": target["_id"]},
            {"$set": {"session_outcome": {
                "overall_score": outcome["overall_score"],
                "completion_rate": outcome["completion_rate"],
            }}}
        )
        return True

    def get_choice_history(self, user_id: str, limit: int = 20) -> List[dict]:
        docs = self.collection.find({"user_id": user_id}).sort(
            [("timestamp", -1), ("_id", -1)]
        ).limit(limit)
        return [{k: v for k, v in d.items() if k != "_id"} for d in docs]

    def get_recommendation_accuracy(self, user_id: str) -> dict:
        records = list(self.collection.find({"user_id": user_id, "session_outcome": {"$ne": None}}))
        total = len(records)
        if total == 0:
            return {
                "overall_accuracy": 0.0,
                "difficulty_accuracy": 0.0,
                "type_accuracy": 0.0,
                "total_recommendations": 0,
            }

        successful = sum(
            1 for r in records
            if r["was_recommendation_followed"]
            and r["session_outcome"]["overall_score"] >= SUCCESSFUL_OUTCOME_SCORE
        )
        difficulty_matches = sum(
            1 for r in records
            if r["recommendation"]["recommended_difficulty"] == r["user_choice"]["difficulty"]
        )
        type_matches = sum(
            1 for r in records
            if r["recommendation"]["recommended_type"] == r["user_choice"]["type"]
        )

        return {
            "overall_accuracy": round(successful / total * 100, 1),
            "difficulty_accuracy": round(difficulty_matches / total * 100, 1),
            "type_accuracy": round(type_matches / total * 100, 1),
            "total_recommendations": total,
        }


# Singleton
_engine = None


def get_adaptive_engine() -> AdaptiveDifficultyEngine:
    global _engine
    if _engine is None:
        _engine = AdaptiveDifficultyEngine()
    return _engine
