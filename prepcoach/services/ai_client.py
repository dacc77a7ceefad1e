"""
AI Client - OpenAI-compatible chat API for interview content.

Used for exactly three things:
- generating practice questions for a role (cached in Mongo for reuse)
- evaluating an answer (feeds four of the eight scoring metrics)
- generating one follow-up question

All outputs are sanitized before they reach the scoring or session code.
"""
import json
from typing import List, Optional

from openai import OpenAI

from prepcoach.core.config import get_settings
from prepcoach.core.logging import get_logger

settings = get_settings()
logger = get_logger(__name__)

QUESTION_TYPES = {"behavioral", "technical", "situational"}
DIFFICULTIES = {"easy", "medium", "hard"}


def _clamp_score(value, default: int = 50) -> int:
    try:
        return max(0, min(100, int(round(float(value)))))
    except (TypeError, ValueError):
        return default


def validate_generated_questions(data, question_type: str, difficulty: str) -> List[dict]:
    """Keep well-formed questions only; normalize type, difficulty and time limits."""
    items = data.get("questions", []) if isinstance(data, dict) else data
    if not isinstance(items, list):
        return []

    questions = []
    for item in items:
        if not isinstance(item, dict):
            continue
        text = str(item.get("question", "")).strip()
        if not text:
            continue
        follow_up = item.get("follow_up", item.get("followUp", []))
        time_limit = item.get("time_limit", item.get("timeLimit", 180))
        try:
            time_limit = max(60, min(600, int(time_limit)))
        except (TypeError, ValueError):
            time_limit = 180
        questions.append({
            "type": item.get("type") if item.get("type") in QUESTION_TYPES else question_type,
            "difficulty": item.get("difficulty") if item.get("difficulty") in DIFFICULTIES else difficulty,
            "question": text,
            "follow_up": [str(f) for f in follow_up if str(f).strip()] if isinstance(follow_up, list) else [],
            "time_limit": time_limit,
        })
    return questions


def validate_feedback(data: dict) -> dict:
    """Normalize evaluation output to snake_case with 0-100 integer scores."""
    if not isinstance(data, dict):
        data = {}

    def listed(key):
        value = data.get(key, [])
        return [str(v) for v in value][:3] if isinstance(value, list) else []

    return {
        "overall_score": _clamp_score(data.get("overall_score", data.get("overallScore"))),
        "technical_accuracy": _clamp_score(data.get("technical_accuracy", data.get("technicalAccuracy"))),
        "communication": _clamp_score(data.get("communication")),
        "confidence": _clamp_score(data.get("confidence")),
        "relevance": _clamp_score(data.get("relevance")),
        "strengths": listed("strengths"),
        "improvements": listed("improvements"),
        "detailed_feedback": str(data.get("detailed_feedback", data.get("detailedFeedback", ""))),
    }


class AIClient:
    """
    Wrapper for the chat completions API.
    """

    def __init__(self, client: Optional[OpenAI] = None):
        self.client = client or OpenAI(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            timeout=settings.http_timeout_seconds * 3
        )
        self.model = settings.openai_model

    def _call_api(self, system_prompt: str, user_content: str,
                  max_tokens: int = 1000, temperature: float = 0.3) -> str:
        """
        Internal method to call the API.
        Returns raw text response.
        """
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content}
            ],
            max_tokens=max_tokens,
            temperature=temperature,
            response_format={"type": "json_object"}
        )
        return response.choices[0].message.content or "{}"

    def _extract_json(self, text: str) -> dict:
        """
        Extract JSON from API response.
        Handles cases where model wraps JSON in markdown code blocks.
        """
        text = text.strip()
        if text.startswith("```json"):
            text = text[7:]
        if text.startswith("```"):
            text = text[3:]
        if text.endswith("```"):
            text = text[:-3]

        return json.loads(text.strip())

    def generate_questions(self, role: str, question_type: str, difficulty: str,
                           count: int, existing_questions: Optional[List[str]] = None) -> List[dict]:
        system_prompt = (
            "You are an expert interview coach. Generate high-quality interview questions "
            "that help assess candidates effectively. Return ONLY valid JSON."
        )
        avoid = ", ".join(existing_questions or []) or "none"
        user_content = f"""Generate {count} {difficulty} {question_type} interview questions for a {role} position.

Requirements:
- Each question should be realistic and commonly asked
- Include 2-3 relevant follow-up questions for each
- Set appropriate time limits (60-300 seconds based on complexity)
- Avoid these questions: {avoid}

Output format:
{{"questions": [{{"question": "main question", "type": "{question_type}", "difficulty": "{difficulty}", "follow_up": ["follow-up 1", "follow-up 2"], "time_limit": 180}}]}}"""

        raw = self._call_api(system_prompt, user_content, max_tokens=1500, temperature=0.7)
        return validate_generated_questions(self._extract_json(raw), question_type, difficulty)

    def evaluate_response(self, question: str, response: str, role: str, duration: float) -> dict:
        system_prompt = (
            "You are an expert interview coach. Provide constructive, detailed feedback "
            "that helps candidates improve their interview performance. Return ONLY valid JSON."
        )
        user_content = f"""Evaluate this interview response for a {role} position:

Question: "{question}"
Response: "{response}"
Response Duration: {duration} seconds

Score 0-100: overall_score, technical_accuracy (if applicable), communication, confidence, relevance.
Also give 3 strengths, 3 improvements and 2-3 sentences of detailed_feedback.

Output format:
{{"overall_score": 85, "technical_accuracy": 80, "communication": 90, "confidence": 85, "relevance": 88,
  "strengths": ["..."], "improvements": ["..."], "detailed_feedback": "..."}}"""

        raw = self._call_api(system_prompt, user_content, max_tokens=800)
        return validate_feedback(self._extract_json(raw))

    def generate_follow_up(self, question: str, response: str, role: str) -> str:
        system_prompt = "You are an expert interviewer. Return ONLY valid JSON."
        user_content = f"""Based on this interview exchange for a {role} position, generate ONE follow-up question
that digs deeper into the response and explores practical application.

Original Question: "{question}"
Candidate Response: "{response}"

Output format: {{"follow_up": "question text"}}"""

        raw = self._call_api(system_prompt, user_content, max_tokens=200, temperature=0.7)
        return str(self._extract_json(raw).get("follow_up", "")).strip()


def is_ai_configured() -> bool:
    return bool(settings.openai_api_key)


# Singleton
_ai_client = None


def get_ai_client() -> AIClient:
    global _ai_client
    if _ai_client is None:
        _ai_client = AIClient()
    return _ai_client
