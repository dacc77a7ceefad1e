"""
Scoring Service Tests

Tests:
1. Individual metric heuristics
2. Weighted overall score and level assessment
3. Session aggregation
4. Per-user weights stored in SQL

Run with: pytest tests/test_scoring_service.py -v
"""
import pytest

from prepcoach.services.scoring_service import (
    ScoringService,
    METRICS,
    DEFAULT_WEIGHTS,
    PRESET_WEIGHTS,
    technical_score,
    communication_score,
    examples_score,
    structure_score,
    normalize_weights,
    get_preset_weights,
)

from prepcoach.schemas.schemas import LevelAssessment

from conftest import USER_ID


@pytest.fixture
def scoring():
    return ScoringService()


def test_technical_score_is_not_applicable_for_behavioral_questions():
    assert technical_score("I led the team through a rough quarter", "behavioral", "Backend Engineer") == 100.0


def test_technical_score_without_keyword_set_is_neutral():
    assert technical_score("short answer", "technical", "Astronaut") == 50.0


def test_technical_score_weights_keyword_hits():
    total = sum({
        "api": 3, "database": 3, "sql": 2, "python": 2, "java": 2,
        "microservices": 3, "scalability": 3, "security": 3, "docker": 2,
    }.values())
    score = technical_score("I would design the API around the database", "technical", "Backend Engineer")
    assert score == pytest.approx(6 / total * 100)


def test_communication_score_penalizes_filler_words():
    clean = "I planned the migration and shipped it on time."
    filler = "Um I planned the migration and um shipped it."
    # 9 words in 4 seconds is a good pace, one sentence of normal length
    assert communication_score(clean, 4) == 100.0
    assert communication_score(filler, 4) == 90.0


def test_examples_score_counts_company_names_and_dates():
    response = "For example at Acme Corp in 2021 we rebuilt billing"
    # one example phrase (20) + year and company (2 x 5), behavioral x1.2
    assert examples_score(response, "behavioral") == pytest.approx(36.0)
    assert examples_score(response, "technical") == pytest.approx(30.0)


def test_structure_score_rewards_star_coverage():
    star = "The situation was tense. My task was clear. I implemented a fix. The result was great."
    assert structure_score(star) == 100.0
    assert structure_score("Nothing here") == 0.0


def test_overall_score_uses_weights(scoring):
    breakdown = {m: 0.0 for m in METRICS}
    breakdown["technical_accuracy"] = 100.0

    assert scoring.calculate_overall_score(breakdown) == 15
    assert scoring.calculate_overall_score(breakdown, PRESET_WEIGHTS["technical"]) == 30


def test_uniform_breakdown_gives_same_overall_for_any_weights(scoring):
    breakdown = {m: 80.0 for m in METRICS}
    for weights in PRESET_WEIGHTS.values():
        assert scoring.calculate_overall_score(breakdown, weights) == 80


def test_assess_level_accounts_for_role_complexity(scoring):
    assert scoring.assess_level(85, "Backend Engineer") == "senior"
    assert scoring.assess_level(75, "Backend Engineer") == "mid"
    assert scoring.assess_level(75, "Senior Backend Engineer") == "senior"
    assert scoring.assess_level(40, "") == "junior"


def test_assessed_levels_match_response_enum(scoring):
    produced = {scoring.assess_level(score, role) for score in (0, 50, 70, 85, 100) for role in ("", "Senior Backend Engineer")}
    assert produced == {level.value for level in LevelAssessment}


def test_detailed_score_shape(scoring):
    result = scoring.calculate_detailed_score(
        "Tell me about a time you handled a difficult deadline",
        "In my experience the situation was a tight deadline. My task was to ship a release. "
        "First I analyzed the scope, then I implemented a plan with the team. "
        "The result was that we shipped on time and I learned to negotiate scope early.",
        30,
        {"question_type": "behavioral", "role": "Backend Engineer"},
    )

    assert set(result["breakdown"]) == set(METRICS)
    assert 0 <= result["overall_score"] <= 100
    assert result["level_assessment"] in ("junior", "mid", "senior")
    assert set(result["improvement_plan"]) == {"short_term", "long_term"}
    assert "Supports answers with concrete examples" in result["strengths"]


def test_ai_feedback_overrides_four_metrics(scoring):
    feedback = {"technical_accuracy": 91, "communication": 72, "confidence": 64, "relevance": 88}
    breakdown = scoring.calculate_breakdown(
        "Explain caching", "We cache reads.", 10, {"question_type": "technical"}, ai_feedback=feedback
    )
    assert breakdown["technical_accuracy"] == 91.0
    assert breakdown["communication_skills"] == 72.0
    assert breakdown["confidence"] == 64.0
    assert breakdown["relevance"] == 88.0


def test_brief_answers_are_flagged(scoring):
    result = scoring.calculate_detailed_score("Why us?", "Money.", 5, {"question_type": "behavioral"})
    assert "Responses are too brief and lack detail" in result["weaknesses"]


def test_aggregate_without_answers(scoring):
    result = scoring.aggregate_scores([], "Backend Engineer")
    assert result["overall_score"] == 0
    assert result["weaknesses"] == ["No questions were answered"]
    assert result["level_assessment"] == "junior"


def test_aggregate_averages_breakdowns(scoring):
    a = {"breakdown": {m: 60.0 for m in METRICS}, "strengths": ["x"], "weaknesses": ["w"]}
    b = {"breakdown": {m: 80.0 for m in METRICS}, "strengths": ["x", "y"], "weaknesses": []}

    result = scoring.aggregate_scores([a, b])

    assert result["breakdown"] == {m: 70.0 for m in METRICS}
    assert result["overall_score"] == 70
    assert result["strengths"] == ["x", "y"]
    assert result["weaknesses"] == ["w"]


def test_normalize_weights_fills_missing_metrics():
    weights = normalize_weights({"examples": 0.5, "not_a_metric": 1})
    assert weights["examples"] == 0.5
    assert weights["clarity"] == DEFAULT_WEIGHTS["clarity"]
    assert "not_a_metric" not in weights


def test_unknown_preset():
    assert get_preset_weights("astronaut") is None
    assert get_preset_weights("leadership") == PRESET_WEIGHTS["leadership"]


def test_user_weights_default_then_saved_then_reset(scoring):
    assert scoring.get_user_weights(USER_ID)["is_default"] is True

    scoring.save_user_weights(USER_ID, PRESET_WEIGHTS["behavioral"], preset_name="behavioral")
    saved = scoring.get_user_weights(USER_ID)
    assert saved["is_default"] is False
    assert saved["preset_name"] == "behavioral"
    assert saved["weights"]["examples"] == pytest.approx(0.15)

    scoring.reset_user_weights(USER_ID)
    assert scoring.get_user_weights(USER_ID)["weights"] == DEFAULT_WEIGHTS
