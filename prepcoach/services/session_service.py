"""
Session Service - interview practice sessions stored in MongoDB.

A session document:

    {session_id, user_id, type, difficulty, duration, role, template_id,
     questions[], current_question_index, status, start_time, end_time,
     question_sources[], responses[], detailed_score, created_at, updated_at}

Status flow: setup -> active <-> paused -> completed.

Question sourcing for a new session, first source that yields questions wins:
1. the user's question banks (optionally merged with the default pool)
2. a built-in template
3. custom questions sent with the request
4. AI-generated questions for the role (when AI is configured)
5. the fallback pool: bundled defaults + previously generated questions
"""

from typing import List, Optional

import numpy as np

from prepcoach.db.mongodb import get_collection, COLLECTIONS
from prepcoach.db.postgres import new_id, utcnow
from prepcoach.services.adaptive_engine import get_adaptive_engine
from prepcoach.services.ai_client import get_ai_client, is_ai_configured
from prepcoach.services.analytics_service import get_analytics_service
from prepcoach.services.question_bank_service import get_question_bank_service
from prepcoach.services.scoring_service import get_scoring_service
from prepcoach.services.template_service import get_template, load_default_questions
from prepcoach.core.logging import get_logger

logger = get_logger(__name__)

MIXED_POOL_SIZE = 5
TYPED_POOL_SIZE = 8

STATUS_TRANSITIONS = {
    "setup": {"active", "completed"},
    "active": {"paused", "completed"},
    "paused": {"active", "completed"},
    "completed": set(),
}


def _strip_id(doc: Optional[dict]) -> Optional[dict]:
    if doc is not None:
        doc.pop("_id", None)
    return doc


def merge_unique_questions(*groups: List[dict]) -> List[dict]:
    """Concatenate question lists, keeping the first occurrence of each id."""
    seen = set()
    merged = []
    for group in groups:
        for q in group:
            if q["id"] not in seen:
                seen.add(q["id"])
                merged.append(q)
    return merged


def calculate_session_stats(session: dict) -> dict:
    total = len(session.get("questions", []))
    answered = [r for r in session.get("responses", []) if r.get("response", "").strip()]
    avg_time = float(np.mean([r["duration"] for r in answered])) if answered else 0.0
    return {
        "total_questions": total,
        "answered_questions": len(answered),
        "average_response_time": round(avg_time, 1),
        "completion_rate": round(len(answered) / total * 100, 1) if total else 0.0,
    }


class SessionService:
    """Creates, updates and scores interview sessions."""

    def __init__(self):
        self.collection = get_collection(COLLECTIONS["sessions"])
        self.question_cache = get_collection(COLLECTIONS["question_cache"])

    # ========================================================
    # Question sourcing
    # ========================================================

    def get_fallback_questions(self, interview_type: str, difficulty: str) -> List[dict]:
        """Bundled defaults plus cached generated questions, filtered for the session."""
        cached = [_strip_id(d) for d in self.question_cache.find({})]
        pool = merge_unique_questions(load_default_questions(), cached)

        if interview_type == "mixed":
            matches = [q for q in pool if q["difficulty"] == difficulty][:MIXED_POOL_SIZE]
        else:
            matches = [
                q for q in pool
                if q["type"] == interview_type and q["difficulty"] == difficulty
            ][:TYPED_POOL_SIZE]

        if not matches and interview_type != "mixed":
            matches = [q for q in pool if q["type"] == interview_type][:TYPED_POOL_SIZE]
        if not matches:
            matches = pool[:MIXED_POOL_SIZE]
        return [dict(q) for q in matches]

    def _generate_ai_questions(self, role: str, interview_type: str, difficulty: str,
                               duration: int) -> List[dict]:
        count = max(1, duration // 10)
        if interview_type == "mixed":
            plan = [("behavioral", count - count // 2), ("technical", count // 2)]
        else:
            plan = [(interview_type, count)]

        client = get_ai_client()
        questions = []
        for question_type, n in plan:
            if n <= 0:
                continue
            for q in client.generate_questions(role, question_type, difficulty, n):
                q["id"] = new_id()
                q["category"] = role
                questions.append(q)
        self._cache_questions(questions)
        return questions

    def _cache_questions(self, questions: List[dict]) -> None:
        for q in questions:
            payload = {k: v for k, v in q.items() if k != "question"}
            self.question_cache.update_one(
                {"question": q["question"]},
                {"$setOnInsert": {**payload, "cached_at": utcnow()}},
                upsert=True
            )

    def _source_questions(self, user_id: str, params: dict):
        interview_type = params["type"]
        difficulty = params["difficulty"]

        if params.get("question_set_ids"):
            bank_questions = get_question_bank_service().get_questions_for_sets(
                user_id, params["question_set_ids"]
            )
            if bank_questions:
                sources = ["question_bank"]
                if params.get("include_default_questions"):
                    template = get_template(params["template_id"]) if params.get("template_id") else None
                    defaults = template["questions"] if template else self.get_fallback_questions(interview_type, difficulty)
                    bank_questions = merge_unique_questions(bank_questions, defaults)
                    sources.append("template" if template else "default")
                return bank_questions, sources

        if params.get("template_id"):
            template = get_template(params["template_id"])
            if template:
                return [dict(q) for q in template["questions"]], ["template"]

        if params.get("custom_questions"):
            return list(params["custom_questions"]), ["custom"]

        if params.get("role") and is_ai_configured():
            try:
                generated = self._generate_ai_questions(
                    params["role"], interview_type, difficulty, params["duration"]
                )
                if generated:
                    return generated, ["ai"]
            except Exception as e:
                logger.warning(f"AI question generation failed, using fallback pool: {e}")

        return self.get_fallback_questions(interview_type, difficulty), ["fallback"]

    # ========================================================
    # Session lifecycle
    # ========================================================

    def create_session(self, user_id: str, params: dict) -> dict:
        """
        params: type, difficulty, duration, role, template_id,
                question_set_ids, include_default_questions, custom_questions
        """
        questions, sources = self._source_questions(user_id, params)
        now = utcnow()
        session = {
            "session_id": new_id(),
            "user_id": user_id,
            "type": params["type"],
            "difficulty": params["difficulty"],
            "duration": params["duration"],
            "role": params.get("role"),
            "template_id": params.get("template_id"),
            "questions": questions,
            "current_question_index": 0,
            "status": "setup",
            "start_time": None,
            "end_time": None,
            "question_sources": sources,
            "responses": [],
            "detailed_score": None,
            "created_at": now,
            "updated_at": now,
        }
        self.collection.insert_one(session)
        logger.info(
            f"Created session {session['session_id']} for user {user_id}: "
            f"{len(questions)} questions from {'+'.join(sources)}"
        )
        return _strip_id(session)

    def create_adaptive_session(self, user_id: str, params: dict) -> dict:
        """Create a session at the recommended level unless the user picked their own."""
        engine = get_adaptive_engine()
        recommendation = engine.generate_recommendation(user_id)
        choice = params.get("user_choice") or {
            "difficulty": recommendation["recommended_difficulty"],
            "type": recommendation["recommended_type"],
        }

        session = self.create_session(user_id, {
            **params,
            "type": choice["type"],
            "difficulty": choice["difficulty"],
        })
        record = engine.record_user_choice(
            user_id, recommendation, choice,
            session_id=session["session_id"], timestamp=session["created_at"]
        )
        return {
            "session": session,
            "recommendation": recommendation,
            "used_recommendation": record["was_recommendation_followed"],
        }

    def get_session(self, user_id: str, session_id: str) -> Optional[dict]:
        return _strip_id(self.collection.find_one({"session_id": session_id, "user_id": user_id}))

    def list_sessions(self, user_id: str, status: Optional[str] = None, limit: int = 20) -> List[dict]:
        query = {"user_id": user_id}
        if status:
            query["status"] = status
        cursor = self.collection.find(query).sort("created_at", -1).limit(limit)
        return [_strip_id(d) for d in cursor]

    def save_response(self, user_id: str, session_id: str, answer: dict) -> Optional[dict]:
        """
        Upsert the answer for a question (one answer per question id).
        Returns None for unknown sessions; raises ValueError for invalid answers.
        """
        session = self.get_session(user_id, session_id)
        if not session:
            return None
        if session["status"] == "completed":
            raise ValueError("Session is already completed")

        question_ids = [q["id"] for q in session["questions"]]
        if answer["question_id"] not in question_ids:
            raise ValueError(f"Question {answer['question_id']} is not part of this session")

        entry = {
            "question_id": answer["question_id"],
            "response": answer.get("response", ""),
            "duration": float(answer.get("duration", 0)),
            "audio_url": answer.get("audio_url"),
            "timestamp": utcnow(),
        }
        responses = [r for r in session["responses"] if r["question_id"] != entry["question_id"]]
        responses.append(entry)

        next_index = min(question_ids.index(entry["question_id"]) + 1, max(len(question_ids) - 1, 0))
        self.collection.update_one(
            {"session_id": session_id},
            {"$set": {
                "responses": responses,
                "current_question_index": max(session["current_question_index"], next_index),
                "updated_at": utcnow(),
            }}
        )
        return self.get_session(user_id, session_id)

    def update_session_status(self, user_id: str, session_id: str, status: str) -> Optional[dict]:
        session = self.get_session(user_id, session_id)
        if not session:
            return None
        current = session["status"]
        if status == current:
            return session
        if status not in STATUS_TRANSITIONS[current]:
            raise ValueError(f"Cannot change session status from {current} to {status}")

        now = utcnow()
        changes = {"status": status, "updated_at": now}
        if status == "active" and session["start_time"] is None:
            changes["start_time"] = now
        if status == "completed":
            changes["end_time"] = now

        self.collection.update_one({"session_id": session_id}, {"$set": changes})
        return self.get_session(user_id, session_id)

    def get_session_stats(self, user_id: str, session_id: str) -> Optional[dict]:
        session = self.get_session(user_id, session_id)
        return calculate_session_stats(session) if session else None

    def export_session(self, user_id: str, session_id: str) -> Optional[dict]:
        session = self.get_session(user_id, session_id)
        if not session:
            return None
        return {
            "session": session,
            "stats": calculate_session_stats(session),
            "exported_at": utcnow(),
        }

    def delete_session(self, user_id: str, session_id: str) -> bool:
        result = self.collection.delete_one({"session_id": session_id, "user_id": user_id})
        return result.deleted_count > 0

    def generate_follow_up(self, user_id: str, session_id: str, question_id: str) -> Optional[dict]:
        """Follow-up for an answered question: AI when configured, else the question's own list."""
        session = self.get_session(user_id, session_id)
        if not session:
            return None
        question = next((q for q in session["questions"] if q["id"] == question_id), None)
        if not question:
            raise ValueError(f"Question {question_id} is not part of this session")

        answer = next((r for r in session["responses"] if r["question_id"] == question_id), None)
        if answer and answer["response"].strip() and is_ai_configured():
            try:
                follow_up = get_ai_client().generate_follow_up(
                    question["question"], answer["response"], session.get("role") or "candidate"
                )
                if follow_up:
                    return {"question_id": question_id, "follow_up": follow_up, "source": "ai"}
            except Exception as e:
                logger.warning(f"AI follow-up generation failed: {e}")

        listed = question.get("follow_up") or []
        return {
            "question_id": question_id,
            "follow_up": listed[0] if listed else None,
            "source": "question",
        }

    # ========================================================
    # Completion & performance
    # ========================================================

    def _ai_feedback(self, question: dict, answer: dict, role: str) -> Optional[dict]:
        try:
            return get_ai_client().evaluate_response(
                question["question"], answer["response"], role or "candidate", answer["duration"]
            )
        except Exception as e:
            logger.warning(f"AI evaluation failed, using heuristic scores: {e}")
            return None

    def complete_session(self, user_id: str, session_id: str, role: Optional[str] = None,
                         use_ai_feedback: bool = False) -> Optional[dict]:
        """
        Score every answer, store performance metrics, mark the session completed
        and attach the outcome to the recommendation record.
        Returns {"detailed_score", "session_stats"} or None for unknown sessions.
        """
        session = self.get_session(user_id, session_id)
        if not session:
            return None
        if session["status"] == "completed" and session.get("detailed_score"):
            return {
                "detailed_score": session["detailed_score"],
                "session_stats": calculate_session_stats(session),
            }

        scoring = get_scoring_service()
        weights = scoring.get_user_weights(user_id)["weights"]
        role = role or session.get("role") or ""
        questions = {q["id"]: q for q in session["questions"]}
        ai_enabled = use_ai_feedback and is_ai_configured()

        scores = []
        for answer in session["responses"]:
            question = questions.get(answer["question_id"])
            if not question or not answer["response"].strip():
                continue
            criteria = {
                "question_type": question["type"],
                "role": role,
                "difficulty": question["difficulty"],
                "expected_duration": question.get("time_limit", 180),
            }
            feedback = self._ai_feedback(question, answer, role) if ai_enabled else None
            scores.append(scoring.calculate_detailed_score(
                question["question"], answer["response"], answer["duration"],
                criteria, ai_feedback=feedback, weights=weights
            ))

        detailed_score = scoring.aggregate_scores(scores, role, weights)
        stats = calculate_session_stats(session)

        get_analytics_service().store_performance_metrics(
            user_id, session_id, detailed_score, stats,
            difficulty=session["difficulty"], interview_type=session["type"]
        )

        now = utcnow()
        self.collection.update_one(
            {"session_id": session_id},
            {"$set": {
                "status": "completed",
                "end_time": session.get("end_time") or now,
                "detailed_score": detailed_score,
                "updated_at": now,
            }}
        )

        matched = get_adaptive_engine().update_session_outcome(
            user_id, session["created_at"],
            {"overall_score": detailed_score["overall_score"], "completion_rate": stats["completion_rate"]},
            session_id=session_id
        )
        if not matched:
            logger.debug(f"No recommendation record for session {session_id}")

        return {"detailed_score": detailed_score, "session_stats": stats}

    def get_adaptive_config(self, user_id: str) -> dict:
        return get_adaptive_engine().generate_recommendation(user_id)

    def get_user_performance_summary(self, user_id: str) -> dict:
        return get_analytics_service().get_user_performance_summary(user_id)

    def get_recommendation_accuracy(self, user_id: str) -> dict:
        return get_adaptive_engine().get_recommendation_accuracy(user_id)


# Singleton
_session_service = None


def get_session_service() -> SessionService:
    global _session_service
    if _session_service is None:
        _session_service = SessionService()
    return _session_service
