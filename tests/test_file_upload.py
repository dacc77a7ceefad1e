"""
Question Import Parsing Tests

Tests:
1. Record normalization and skipped rows
2. CSV rows through normalization

Run with: pytest tests/test_file_upload.py -v
"""
from prepcoach.utils.file_upload import normalize_question, parse_csv_questions


def test_normalize_defaults():
    question = normalize_question({"question": "  Why this team?  ", "type": "trivia", "time_limit": "-5"})

    assert question["question"] == "Why this team?"
    assert question["type"] == "behavioral"
    assert question["difficulty"] == "medium"
    assert question["time_limit"] == 180


def test_normalize_skips_empty_question():
    assert normalize_question({"question": "   "}) is None
    assert normalize_question({"type": "technical"}) is None


def test_csv_rows_without_text_are_skipped():
    text = "question,type,difficulty\nExplain indexing,technical,hard\n,technical,easy\n"

    questions = [q for q in map(normalize_question, parse_csv_questions(text)) if q]

    assert [q["question"] for q in questions] == ["Explain indexing"]
    assert questions[0]["difficulty"] == "hard"
