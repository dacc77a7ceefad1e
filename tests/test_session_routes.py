"""
Interview Session Route Tests

Tests:
1. Session creation from each question source (fallback, template, custom, banks)
2. Saving answers and status transitions
3. Stats, export and follow-up questions
4. Completion through /api/performance and the adaptive endpoints
5. Ownership and authentication

Run with: pytest tests/test_session_routes.py -v
"""
from datetime import timedelta

from prepcoach.db.postgres import utcnow
from prepcoach.services.analytics_service import AnalyticsService
from prepcoach.services.scoring_service import METRICS

from conftest import USER_ID, OTHER_USER_ID


CUSTOM_QUESTION = {
    "id": "custom-1",
    "type": "technical",
    "difficulty": "medium",
    "question": "How would you cache an expensive database query?",
    "follow_up": ["How do you invalidate it?"],
    "time_limit": 120,
}

STAR_ANSWER = (
    "In my experience the situation was a failing release at Acme Corp in 2022. "
    "My task was to stabilize the deployment. First I analyzed the logs, then I implemented "
    "a rollback plan with the team. The result was zero downtime and I learned to automate checks."
)


def create(client, headers, **body):
    response = client.post("/api/sessions", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_requires_authentication(client):
    assert client.post("/api/sessions", json={}).status_code == 401
    assert client.get("/api/sessions").status_code == 401


def test_create_session_from_fallback_pool(client, headers):
    session = create(client, headers, type="mixed", difficulty="medium")

    assert session["status"] == "setup"
    assert session["user_id"] == USER_ID
    assert session["question_sources"] == ["fallback"]
    assert [q["id"] for q in session["questions"]] == ["1", "2"]


def test_typed_fallback_relaxes_difficulty(client, headers):
    # no easy technical question in the pool
    session = create(client, headers, type="technical", difficulty="easy")
    assert [q["id"] for q in session["questions"]] == ["2", "5"]


def test_create_session_from_template(client, headers):
    session = create(client, headers, type="technical", template_id="backend-engineer-intermediate")

    assert session["question_sources"] == ["template"]
    assert [q["id"] for q in session["questions"]] == ["be-1", "be-2", "be-3"]


def test_unknown_template_falls_through_to_custom_questions(client, headers):
    session = create(client, headers, template_id="missing", custom_questions=[CUSTOM_QUESTION])

    assert session["question_sources"] == ["custom"]
    assert session["questions"][0]["question"] == CUSTOM_QUESTION["question"]


def test_create_session_from_question_bank(client, headers):
    bank = client.post("/api/question-banks", json={"name": "Mine"}, headers=headers).json()
    client.post(
        f"/api/question-banks/{bank['id']}/questions",
        json={"type": "behavioral", "question": "Why do you want this job?"},
        headers=headers,
    )

    session = create(
        client, headers, type="behavioral", difficulty="medium",
        question_set_ids=[bank["id"]], include_default_questions=True,
    )

    assert session["question_sources"] == ["question_bank", "default"]
    assert session["questions"][0]["question"] == "Why do you want this job?"
    assert session["questions"][1]["id"] == "1"


def test_list_sessions_only_returns_own(client, headers, other_headers):
    first = create(client, headers)
    second = create(client, headers)
    create(client, other_headers)

    body = client.get("/api/sessions", headers=headers).json()

    assert body["count"] == 2
    assert {s["session_id"] for s in body["data"]} == {first["session_id"], second["session_id"]}


def test_other_users_cannot_see_session(client, headers, other_headers):
    session = create(client, headers)

    response = client.get(f"/api/sessions/{session['session_id']}", headers=other_headers)

    assert response.status_code == 404
    assert response.json()["detail"] == "Session not found"


def test_save_response_replaces_previous_answer(client, headers):
    session = create(client, headers, custom_questions=[CUSTOM_QUESTION])
    url = f"/api/sessions/{session['session_id']}/responses"

    client.post(url, json={"question_id": "custom-1", "response": "first", "duration": 10}, headers=headers)
    updated = client.post(url, json={"question_id": "custom-1", "response": "second", "duration": 12}, headers=headers)

    assert updated.status_code == 200
    responses = updated.json()["responses"]
    assert len(responses) == 1
    assert responses[0]["response"] == "second"


def test_save_response_for_unknown_question(client, headers):
    session = create(client, headers)
    response = client.post(
        f"/api/sessions/{session['session_id']}/responses",
        json={"question_id": "nope", "response": "answer"},
        headers=headers,
    )
    assert response.status_code == 400


def test_status_transitions(client, headers):
    session = create(client, headers)
    url = f"/api/sessions/{session['session_id']}/status"

    active = client.patch(url, json={"status": "active"}, headers=headers).json()
    assert active["start_time"] is not None

    assert client.patch(url, json={"status": "paused"}, headers=headers).status_code == 200
    completed = client.patch(url, json={"status": "completed"}, headers=headers).json()
    assert completed["end_time"] is not None

    reopened = client.patch(url, json={"status": "active"}, headers=headers)
    assert reopened.status_code == 400
    assert "completed" in reopened.json()["detail"]


def test_invalid_status_value_is_rejected(client, headers):
    session = create(client, headers)
    response = client.patch(
        f"/api/sessions/{session['session_id']}/status", json={"status": "finished"}, headers=headers
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid request data"


def test_stats_and_export(client, headers):
    session = create(client, headers, type="mixed", difficulty="medium")
    client.post(
        f"/api/sessions/{session['session_id']}/responses",
        json={"question_id": "1", "response": STAR_ANSWER, "duration": 40},
        headers=headers,
    )

    stats = client.get(f"/api/sessions/{session['session_id']}/stats", headers=headers).json()
    assert stats == {
        "total_questions": 2,
        "answered_questions": 1,
        "average_response_time": 40.0,
        "completion_rate": 50.0,
    }

    export = client.get(f"/api/sessions/{session['session_id']}/export", headers=headers).json()
    assert export["stats"] == stats
    assert export["session"]["session_id"] == session["session_id"]
    assert "exported_at" in export


def test_follow_up_uses_question_list_without_ai(client, headers):
    session = create(client, headers, custom_questions=[CUSTOM_QUESTION])

    response = client.post(
        f"/api/sessions/{session['session_id']}/follow-up", json={"question_id": "custom-1"}, headers=headers
    )

    assert response.json() == {
        "question_id": "custom-1",
        "follow_up": "How do you invalidate it?",
        "source": "question",
    }


def test_delete_session(client, headers):
    session = create(client, headers)
    url = f"/api/sessions/{session['session_id']}"

    assert client.delete(url, headers=headers).status_code == 204
    assert client.get(url, headers=headers).status_code == 404
    assert client.delete(url, headers=headers).status_code == 404


def test_complete_session_scores_and_stores_metrics(client, headers):
    session = create(client, headers, type="mixed", difficulty="medium", role="Backend Engineer")
    client.post(
        f"/api/sessions/{session['session_id']}/responses",
        json={"question_id": "1", "response": STAR_ANSWER, "duration": 45},
        headers=headers,
    )

    response = client.post("/api/performance", json={"userId": USER_ID, "sessionId": session["session_id"]})

    assert response.status_code == 200
    body = response.json()
    assert 0 <= body["detailed_score"]["overall_score"] <= 100
    assert body["session_stats"]["answered_questions"] == 1

    stored = client.get(f"/api/sessions/{session['session_id']}", headers=headers).json()
    assert stored["status"] == "completed"

    summary = client.get("/api/performance", params={"userId": USER_ID}).json()
    assert summary["performance_summary"]["profile"]["total_sessions"] == 1


def test_completing_twice_returns_stored_score(client, headers):
    session = create(client, headers)
    payload = {"userId": USER_ID, "sessionId": session["session_id"]}

    first = client.post("/api/performance", json=payload).json()
    second = client.post("/api/performance", json=payload).json()

    assert first["detailed_score"] == second["detailed_score"]
    summary = client.get("/api/performance", params={"userId": USER_ID}).json()
    assert summary["performance_summary"]["profile"]["total_sessions"] == 1


def test_complete_requires_ids_and_known_session(client):
    assert client.post("/api/performance", json={"userId": USER_ID}).status_code == 400
    missing = client.post("/api/performance", json={"userId": OTHER_USER_ID, "sessionId": "missing"})
    assert missing.status_code == 404


def test_adaptive_session_follows_recommendation(client, headers):
    response = client.post("/api/sessions/adaptive", json={"duration": 30}, headers=headers)

    assert response.status_code == 201
    body = response.json()
    assert body["used_recommendation"] is True
    assert body["session"]["difficulty"] == body["recommendation"]["recommended_difficulty"]

    client.post("/api/performance", json={"userId": USER_ID, "sessionId": body["session"]["session_id"]})
    accuracy = client.get("/api/performance", params={"userId": USER_ID}).json()["recommendation_accuracy"]
    assert accuracy["total_recommendations"] == 1


def test_adaptive_session_with_own_choice(client, headers):
    response = client.post(
        "/api/sessions/adaptive",
        json={"user_choice": {"difficulty": "hard", "type": "technical"}},
        headers=headers,
    )

    body = response.json()
    assert body["used_recommendation"] is False
    assert body["session"]["type"] == "technical"


def test_adaptive_config_requires_user_id(client):
    assert client.get("/api/adaptive-config").json()["detail"] == "userId is required"
    assert client.post("/api/adaptive-config", json={}).status_code == 400


def test_adaptive_config_default_recommendation(client):
    body = client.get("/api/adaptive-config", params={"userId": USER_ID}).json()

    assert body["success"] is True
    assert body["recommendation"]["recommended_difficulty"] == "medium"
    assert body["recommendation"]["recommended_type"] == "mixed"


def test_adaptive_choice_is_recorded(client):
    response = client.post(
        "/api/adaptive-config",
        json={"userId": USER_ID, "userChoice": {"difficulty": "easy", "type": "behavioral"}},
    )

    body = response.json()
    assert body["recorded"] is True
    assert body["was_recommendation_followed"] is False

    without_choice = client.post("/api/adaptive-config", json={"userId": USER_ID}).json()
    assert without_choice["recorded"] is False
    assert without_choice["was_recommendation_followed"] is None


def test_choice_history_lists_recorded_choices(client):
    assert client.get("/api/adaptive-config/history").status_code == 400

    client.post(
        "/api/adaptive-config",
        json={"userId": USER_ID, "sessionId": "s-1", "userChoice": {"difficulty": "easy", "type": "behavioral"}},
    )
    client.post("/api/adaptive-config", json={"userId": USER_ID})

    body = client.get("/api/adaptive-config/history", params={"userId": USER_ID}).json()

    assert body["count"] == 1
    record = body["data"][0]
    assert record["session_id"] == "s-1"
    assert record["user_choice"] == {"difficulty": "easy", "type": "behavioral"}
    assert record["was_recommendation_followed"] is False
    assert record["session_outcome"] is None

    other = client.get("/api/adaptive-config/history", params={"userId": OTHER_USER_ID}).json()
    assert other["count"] == 0


def test_performance_summary_rounds_averages(client):
    analytics = AnalyticsService()
    for i, score in enumerate([84.84, 85]):
        analytics.store_performance_metrics(
            USER_ID, f"rounding-{i}",
            {"overall_score": score, "breakdown": {m: 75.0 for m in METRICS}},
            {"completion_rate": 100.0, "average_response_time": 30.0, "total_questions": 3, "answered_questions": 3},
            difficulty="medium", interview_type="behavioral",
            timestamp=utcnow() - timedelta(minutes=10 - i),
        )

    profile = client.get("/api/performance", params={"userId": USER_ID}).json()["performance_summary"]["profile"]

    assert profile["average_score"] == 84.9
    assert profile["performance_by_type"]["behavioral"]["average_score"] == 84.9
