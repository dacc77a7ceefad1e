"""
Scoring Service - heuristic grading of interview answers.

Each answer gets eight 0-100 metric scores:

    technical_accuracy    keyword coverage for the role (technical questions only)
    communication_skills  speaking pace, sentence length, filler words
    problem_solving       analytical vocabulary, explicit steps
    confidence            assertive vs hedging phrases, completeness, pace
    relevance             overlap with the question's significant words
    clarity               sentence length, vocabulary diversity, transitions
    structure             STAR coverage and flow words
    examples              example phrases and specific facts

The overall score is the weighted mean of the eight metrics. Weights default
to DEFAULT_WEIGHTS and can be overridden per user (user_scoring_weights).
"""

import re
from typing import Dict, List, Optional

import numpy as np
from sqlalchemy import text

from prepcoach.db.postgres import get_db_session, utcnow
from prepcoach.core.logging import get_logger

logger = get_logger(__name__)


METRICS = [
    "technical_accuracy",
    "communication_skills",
    "problem_solving",
    "confidence",
    "relevance",
    "clarity",
    "structure",
    "examples",
]

DEFAULT_WEIGHTS = {
    "technical_accuracy": 0.15,
    "communication_skills": 0.20,
    "problem_solving": 0.15,
    "confidence": 0.10,
    "relevance": 0.15,
    "clarity": 0.10,
    "structure": 0.10,
    "examples": 0.05,
}

PRESET_WEIGHTS = {
    "default": DEFAULT_WEIGHTS,
    "technical": {
        "technical_accuracy": 0.30, "communication_skills": 0.10, "problem_solving": 0.25,
        "confidence": 0.05, "relevance": 0.10, "clarity": 0.10, "structure": 0.05, "examples": 0.05,
    },
    "behavioral": {
        "technical_accuracy": 0.05, "communication_skills": 0.20, "problem_solving": 0.10,
        "confidence": 0.10, "relevance": 0.15, "clarity": 0.10, "structure": 0.15, "examples": 0.15,
    },
    "product-manager": {
        "technical_accuracy": 0.10, "communication_skills": 0.20, "problem_solving": 0.20,
        "confidence": 0.10, "relevance": 0.15, "clarity": 0.10, "structure": 0.10, "examples": 0.05,
    },
    "leadership": {
        "technical_accuracy": 0.05, "communication_skills": 0.20, "problem_solving": 0.15,
        "confidence": 0.15, "relevance": 0.10, "clarity": 0.10, "structure": 0.10, "examples": 0.15,
    },
}

TECHNICAL_KEYWORDS = {
    "Frontend Engineer": {
        "react": 3, "javascript": 3, "css": 2, "html": 2, "typescript": 3,
        "responsive": 2, "performance": 3, "accessibility": 2, "webpack": 2,
    },
    "Backend Engineer": {
        "api": 3, "database": 3, "sql": 2, "python": 2, "java": 2,
        "microservices": 3, "scalability": 3, "security": 3, "docker": 2,
    },
    "Full Stack Engineer": {
        "full stack": 3, "frontend": 2, "backend": 2, "database": 3,
        "api": 3, "deployment": 2, "architecture": 3, "cloud": 2,
    },
    "Product Manager": {
        "user experience": 3, "metrics": 3, "roadmap": 3, "stakeholders": 3,
        "agile": 2, "requirements": 2, "market": 3, "analytics": 3,
    },
}

ROLE_COMPLEXITY = {
    "Senior": 10,
    "Lead": 15,
    "Principal": 20,
    "Staff": 15,
    "Manager": 10,
}

FILLER_WORDS = ["um", "uh", "like", "you know", "basically"]
PROBLEM_SOLVING_KEYWORDS = [
    "analyze", "approach", "solution", "strategy", "consider", "evaluate",
    "pros and cons", "trade-off", "alternative", "implement", "test",
    "first", "then", "next", "finally", "because", "therefore",
]
CONFIDENT_PHRASES = ["i believe", "i think", "in my experience", "i would", "i will"]
UNCERTAIN_PHRASES = ["maybe", "perhaps", "i guess", "not sure", "probably"]
STOP_WORDS = {"the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with"}
TRANSITION_WORDS = ["however", "therefore", "furthermore", "additionally", "consequently"]
STAR_INDICATORS = {
    "situation": ["situation", "context", "background", "when", "where"],
    "task": ["task", "challenge", "problem", "goal", "objective"],
    "action": ["action", "did", "implemented", "decided", "approach"],
    "result": ["result", "outcome", "achieved", "success", "learned"],
}
FLOW_WORDS = ["first", "then", "next", "finally", "because", "so", "therefore"]
EXAMPLE_INDICATORS = [
    "for example", "for instance", "such as", "like when", "in my experience",
    "at my previous job", "when i worked", "in one project", "recently",
]

STRUCTURE_MARKERS = re.compile(r"\b(first|second|third|1\.|2\.|3\.|step|phase)\b", re.IGNORECASE)
DATE_OR_SPAN = re.compile(r"\b(19|20)\d{2}\b|\b\d+\s?(months?|years?|weeks?)\b", re.IGNORECASE)
COMPANY_NAME = re.compile(r"[A-Z][a-zA-Z]+\s+(Company|Corp|Inc|Ltd)")
SENTENCE_SPLIT = re.compile(r"[.!?]+")

STRENGTH_DESCRIPTIONS = {
    "technical_accuracy": "Demonstrates strong technical knowledge and accuracy",
    "communication_skills": "Excellent communication and articulation skills",
    "problem_solving": "Shows strong analytical and problem-solving abilities",
    "confidence": "Displays confidence and conviction in responses",
    "relevance": "Provides highly relevant and on-topic answers",
    "clarity": "Communicates with exceptional clarity and precision",
    "structure": "Uses well-structured and organized response format",
    "examples": "Effectively uses concrete examples to illustrate points",
}

WEAKNESS_DESCRIPTIONS = {
    "technical_accuracy": "Could improve technical depth and accuracy",
    "communication_skills": "Needs to work on communication clarity and flow",
    "problem_solving": "Should develop stronger problem-solving approach",
    "confidence": "Could benefit from more confident delivery",
    "relevance": "Should focus more on directly addressing the question",
    "clarity": "Needs improvement in clear and concise communication",
    "structure": "Could use better organization and structure in responses",
    "examples": "Should include more specific examples and evidence",
}

RECOMMENDATIONS = {
    "technical_accuracy": "Study core technical concepts and practice explaining complex topics clearly",
    "communication_skills": "Practice speaking aloud and focus on pace, clarity, and eliminating filler words",
    "problem_solving": 'Use structured problem-solving frameworks like "Define-Analyze-Solve-Validate"',
    "confidence": "Practice responses out loud and work on positive body language and tone",
    "relevance": "Listen carefully to questions and create mental outlines before responding",
    "clarity": "Use the PREP method: Point, Reason, Example, Point to organize thoughts",
    "structure": "Practice STAR method (Situation, Task, Action, Result) for behavioral questions",
    "examples": "Prepare 3-5 detailed stories that demonstrate different skills and experiences",
}

SHORT_TERM_IMPROVEMENTS = {
    "technical_accuracy": "Review fundamental concepts for 30 minutes daily",
    "communication_skills": "Practice speaking responses aloud for 15 minutes daily",
    "problem_solving": "Solve one practice problem using structured approach daily",
    "confidence": "Record yourself answering questions and review for improvement",
    "relevance": "Practice listening to questions twice before responding",
    "clarity": "Write out key points before speaking in practice sessions",
    "structure": "Practice STAR method with 3 different scenarios this week",
    "examples": "Prepare and practice 2-3 detailed stories from your experience",
}

LONG_TERM_IMPROVEMENTS = {
    "technical_accuracy": "Take advanced courses or certifications in your field",
    "communication_skills": "Join Toastmasters or take a public speaking course",
    "problem_solving": "Practice whiteboard problems and case studies regularly",
    "confidence": "Seek speaking opportunities and practice presentations",
    "relevance": "Study job descriptions and common interview questions for your role",
    "clarity": "Work with a communication coach or mentor",
    "structure": "Practice different response frameworks for various question types",
    "examples": "Build a portfolio of diverse professional experiences and stories",
}


# ============================================================
# HELPERS
# ============================================================

def _count_phrase(text_lower: str, phrase: str) -> int:
    return len(re.findall(rf"\b{re.escape(phrase)}\b", text_lower))


def _sentences(response: str) -> List[str]:
    return [s for s in SENTENCE_SPLIT.split(response) if s.strip()]


def get_technical_keywords(role: str) -> Dict[str, int]:
    return TECHNICAL_KEYWORDS.get(role or "", {})


def get_role_complexity(role: str) -> int:
    for key, complexity in ROLE_COMPLEXITY.items():
        if key in (role or ""):
            return complexity
    return 0


def normalize_weights(weights: Optional[Dict[str, float]]) -> Dict[str, float]:
    """Fill missing metrics from the defaults."""
    merged = dict(DEFAULT_WEIGHTS)
    if weights:
        merged.update({k: float(v) for k, v in weights.items() if k in DEFAULT_WEIGHTS})
    return merged


# ============================================================
# METRIC SCORES
# ============================================================

def technical_score(response: str, question_type: str, role: str) -> float:
    if question_type != "technical":
        return 100.0  # N/A for non-technical

    keywords = get_technical_keywords(role)
    response_lower = response.lower()
    total_weight = sum(keywords.values())
    hit_weight = sum(w for k, w in keywords.items() if k.lower() in response_lower)

    keyword_pct = (hit_weight / total_weight) * 100 if total_weight > 0 else 50.0
    detail_bonus = 10 if len(response) > 200 else 0
    return min(100.0, keyword_pct + detail_bonus)


def communication_score(response: str, duration: float) -> float:
    words = len(response.split())
    wps = words / duration if duration > 0 else 0.0

    if 1.5 <= wps <= 4:
        rate_score = 100
    elif 1 <= wps <= 5:
        rate_score = 80
    elif 0.5 <= wps <= 6:
        rate_score = 60
    else:
        rate_score = 40

    sentences = _sentences(response)
    avg_sentence = words / len(sentences) if sentences else 0
    coherence_score = 100 if 5 <= avg_sentence <= 20 else 70

    response_lower = response.lower()
    filler_count = sum(_count_phrase(response_lower, f) for f in FILLER_WORDS)
    filler_penalty = min(30, filler_count * 5)

    return max(20.0, (rate_score + coherence_score) / 2 - filler_penalty)


def problem_solving_score(response: str) -> float:
    response_lower = response.lower()
    keyword_count = sum(1 for k in PROBLEM_SOLVING_KEYWORDS if k in response_lower)
    keyword_score = min(100.0, (keyword_count / len(PROBLEM_SOLVING_KEYWORDS)) * 150)

    structure_bonus = min(20, len(STRUCTURE_MARKERS.findall(response_lower)) * 5)
    return min(100.0, keyword_score + structure_bonus)


def confidence_score(response: str, duration: float) -> float:
    response_lower = response.lower()
    confident = sum(_count_phrase(response_lower, p) for p in CONFIDENT_PHRASES)
    uncertain = sum(_count_phrase(response_lower, p) for p in UNCERTAIN_PHRASES)

    completeness = 20 if len(response) > 100 else 10 if len(response) > 50 else 0

    words = len(response.split())
    pace = min(30.0, (words / duration) * 10) if words > 0 and duration > 0 else 0.0

    score = 50 + confident * 10 - uncertain * 8 + completeness + pace
    return max(20.0, min(100.0, score))


def relevance_score(response: str, question: str) -> float:
    response_lower = response.lower()
    significant = [
        w for w in question.lower().split()
        if len(w) > 3 and w not in STOP_WORDS
    ]

    if significant:
        hits = sum(1 for w in significant if w in response_lower)
        pct = (hits / len(significant)) * 100
    else:
        pct = 50.0

    direct = 10 if any(w in response_lower for w in ("question", "answer", "experience")) else 0
    return min(100.0, pct + direct)


def clarity_score(response: str) -> float:
    words = response.split()
    sentences = _sentences(response)

    avg_sentence = len(words) / len(sentences) if sentences else 0
    if 8 <= avg_sentence <= 25:
        length_score = 100
    elif 5 <= avg_sentence <= 30:
        length_score = 80
    else:
        length_score = 60

    vocabulary = min(100.0, (len({w.lower() for w in words}) / len(words)) * 200) if words else 0.0

    response_lower = response.lower()
    transitions = sum(_count_phrase(response_lower, w) for w in TRANSITION_WORDS)
    transition_bonus = min(20, transitions * 5)

    return (length_score + vocabulary) / 2 + transition_bonus


def structure_score(response: str) -> float:
    response_lower = response.lower()
    star = sum(
        25 for keywords in STAR_INDICATORS.values()
        if any(k in response_lower for k in keywords)
    )
    flow = sum(_count_phrase(response_lower, w) for w in FLOW_WORDS)
    return min(100.0, star + min(20, flow * 3))


def examples_score(response: str, question_type: str) -> float:
    response_lower = response.lower()
    example_count = sum(1 for e in EXAMPLE_INDICATORS if e in response_lower)
    specificity = len(DATE_OR_SPAN.findall(response)) + len(COMPANY_NAME.findall(response))

    base = min(80, example_count * 20)
    bonus = min(20, specificity * 5)
    multiplier = 1.2 if question_type == "behavioral" else 1.0
    return min(100.0, (base + bonus) * multiplier)


# ============================================================
# SCORING SERVICE
# ============================================================

class ScoringService:
    """Turns answers into DetailedScore dicts and manages per-user weights."""

    def calculate_breakdown(
        self,
        question: str,
        response: str,
        duration: float,
        criteria: dict,
        ai_feedback: Optional[dict] = None,
    ) -> Dict[str, float]:
        question_type = criteria.get("question_type", "behavioral")
        role = criteria.get("role", "")

        breakdown = {
            "technical_accuracy": technical_score(response, question_type, role),
            "communication_skills": communication_score(response, duration),
            "problem_solving": problem_solving_score(response),
            "confidence": confidence_score(response, duration),
            "relevance": relevance_score(response, question),
            "clarity": clarity_score(response),
            "structure": structure_score(response),
            "examples": examples_score(response, question_type),
        }

        if ai_feedback:
            breakdown["technical_accuracy"] = float(ai_feedback["technical_accuracy"])
            breakdown["communication_skills"] = float(ai_feedback["communication"])
            breakdown["confidence"] = float(ai_feedback["confidence"])
            breakdown["relevance"] = float(ai_feedback["relevance"])

        return {k: round(v, 1) for k, v in breakdown.items()}

    def calculate_overall_score(self, breakdown: Dict[str, float], weights: Optional[dict] = None) -> int:
        weights = normalize_weights(weights)
        w = np.array([weights[m] for m in METRICS], dtype=float)
        s = np.array([breakdown.get(m, 0.0) for m in METRICS], dtype=float)
        if w.sum() <= 0:
            return int(round(float(s.mean())))
        return int(round(float(np.dot(s, w) / w.sum())))

    def assess_level(self, overall_score: int, role: str) -> str:
        complexity = get_role_complexity(role)
        if overall_score >= 85 - complexity:
            return "senior"
        if overall_score >= 70 - complexity:
            return "mid"
        return "junior"

    def identify_strengths(self, breakdown: Dict[str, float], response: str = "") -> List[str]:
        strengths = [
            STRENGTH_DESCRIPTIONS[metric]
            for metric, score in sorted(breakdown.items(), key=lambda kv: kv[1], reverse=True)[:3]
            if score >= 80
        ]
        if len(response) > 300:
            strengths.append("Provides comprehensive and detailed responses")
        lowered = response.lower()
        if "example" in lowered or "experience" in lowered:
            strengths.append("Supports answers with concrete examples")
        return strengths[:5]

    def identify_weaknesses(self, breakdown: Dict[str, float], response: Optional[str] = None) -> List[str]:
        weaknesses = [
            WEAKNESS_DESCRIPTIONS[metric]
            for metric, score in sorted(breakdown.items(), key=lambda kv: kv[1])[:3]
            if score < 60
        ]
        if response is not None and len(response) < 50:
            weaknesses.append("Responses are too brief and lack detail")
        return weaknesses[:5]

    def generate_recommendations(self, breakdown: Dict[str, float]) -> List[str]:
        return [RECOMMENDATIONS[m] for m in METRICS if breakdown.get(m, 0) < 70][:5]

    def create_improvement_plan(self, breakdown: Dict[str, float]) -> dict:
        weak = sorted(
            ((m, s) for m, s in breakdown.items() if s < 70),
            key=lambda kv: kv[1]
        )
        return {
            "short_term": [SHORT_TERM_IMPROVEMENTS[m] for m, _ in weak[:2]],
            "long_term": [LONG_TERM_IMPROVEMENTS[m] for m, _ in weak][:3],
        }

    def calculate_detailed_score(
        self,
        question: str,
        response: str,
        duration: float,
        criteria: dict,
        ai_feedback: Optional[dict] = None,
        weights: Optional[dict] = None,
    ) -> dict:
        """
        Score a single answer.

        criteria: {"question_type", "role", "difficulty", "expected_duration"}
        ai_feedback: optional {"technical_accuracy", "communication", "confidence", "relevance"}
        """
        breakdown = self.calculate_breakdown(question, response, duration, criteria, ai_feedback)
        overall = self.calculate_overall_score(breakdown, weights)

        return {
            "overall_score": overall,
            "breakdown": breakdown,
            "level_assessment": self.assess_level(overall, criteria.get("role", "")),
            "strengths": self.identify_strengths(breakdown, response),
            "weaknesses": self.identify_weaknesses(breakdown, response),
            "recommendations": self.generate_recommendations(breakdown),
            "improvement_plan": self.create_improvement_plan(breakdown),
        }

    def aggregate_scores(self, scores: List[dict], role: str = "", weights: Optional[dict] = None) -> dict:
        """
        Combine per-answer scores into one session score.
        Metric scores are averaged; narrative fields are merged in order, de-duplicated.
        """
        if scores:
            breakdown = {
                m: round(float(np.mean([s["breakdown"][m] for s in scores])), 1)
                for m in METRICS
            }
        else:
            breakdown = {m: 0.0 for m in METRICS}

        overall = self.calculate_overall_score(breakdown, weights)

        def merged(key):
            seen = []
            for s in scores:
                for item in s[key]:
                    if item not in seen:
                        seen.append(item)
            return seen[:5]

        weaknesses = merged("weaknesses") if scores else ["No questions were answered"]

        return {
            "overall_score": overall,
            "breakdown": breakdown,
            "level_assessment": self.assess_level(overall, role),
            "strengths": merged("strengths"),
            "weaknesses": weaknesses,
            "recommendations": self.generate_recommendations(breakdown),
            "improvement_plan": self.create_improvement_plan(breakdown),
        }

    # ========================================================
    # Per-user weights (user_scoring_weights)
    # ========================================================

    def get_user_weights(self, user_id: str) -> dict:
        """Returns {"weights", "preset_name", "is_default"}."""
        with get_db_session() as db:
            row = db.execute(
                text(f"SELECT {', '.join(METRICS)}, preset_name FROM user_scoring_weights WHERE user_id = :uid"),
                {"uid": user_id}
            ).mappings().fetchone()

        if not row:
            return {"weights": dict(DEFAULT_WEIGHTS), "preset_name": None, "is_default": True}

        return {
            "weights": {m: float(row[m]) for m in METRICS},
            "preset_name": row["preset_name"],
            "is_default": False,
        }

    def save_user_weights(self, user_id: str, weights: Dict[str, float], preset_name: Optional[str] = None) -> dict:
        weights = normalize_weights(weights)
        params = {"uid": user_id, "preset": preset_name, "now": utcnow(), **weights}
        columns = ", ".join(METRICS)
        values = ", ".join(f":{m}" for m in METRICS)
        updates = ", ".join(f"{m} = EXCLUDED.{m}" for m in METRICS)

        with get_db_session() as db:
            db.execute(
                text(f"""
                    INSERT INTO user_scoring_weights (user_id, {columns}, preset_name, updated_at)
                    VALUES (:uid, {values}, :preset, :now)
                    ON CONFLICT (user_id) DO UPDATE SET {updates},
                        preset_name = EXCLUDED.preset_name, updated_at = EXCLUDED.updated_at
                """),
                params
            )
        logger.info(f"Saved scoring weights for user {user_id} (preset={preset_name})")
        return {"weights": weights, "preset_name": preset_name, "is_default": False}

    def reset_user_weights(self, user_id: str) -> None:
        with get_db_session() as db:
            db.execute(text("DELETE FROM user_scoring_weights WHERE user_id = :uid"), {"uid": user_id})


def get_preset_weights(name: str) -> Optional[Dict[str, float]]:
    preset = PRESET_WEIGHTS.get(name)
    return dict(preset) if preset else None


# Singleton
_scoring_service = None


def get_scoring_service() -> ScoringService:
    global _scoring_service
    if _scoring_service is None:
        _scoring_service = ScoringService()
    return _scoring_service
