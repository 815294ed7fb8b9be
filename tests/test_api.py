import pytest
from fastapi.testclient import TestClient

from app.common.deps import CurrentUser, get_current_user, get_optional_user
from app.DB.supabase import get_supabase
from app.features.chat.endpoints import get_keyword_extractor
from app.features.chat.keyword_extractor import KeywordExtractor
from app.main import app
from fakesupabase import FREE_USER, PS_101, passed_row


client = TestClient(app)


@pytest.fixture
def api(db):
    async def override_get_current_user():
        return CurrentUser(id=FREE_USER, email="learner@example.com")

    async def override_get_supabase():
        return db

    app.dependency_overrides[get_current_user] = override_get_current_user
    app.dependency_overrides[get_optional_user] = override_get_current_user
    app.dependency_overrides[get_supabase] = override_get_supabase
    app.dependency_overrides[get_keyword_extractor] = lambda: KeywordExtractor(api_key="")
    yield db
    app.dependency_overrides.clear()


def test_start_and_submit_round(api):
    started = client.post("/api/exercise/start", json={"practiceSetId": PS_101})
    assert started.status_code == 200
    body = started.json()
    assert body == {
        "success": True,
        "practiceResultId": body["practiceResultId"],
        "attemptNo": 1,
        "resumed": False,
    }

    resumed = client.get("/api/exercise/resume", params={"practiceSetId": PS_101})
    assert resumed.status_code == 200
    assert resumed.json()["practiceResult"]["id"] == body["practiceResultId"]

    submitted = client.post(
        "/api/exercise/submit",
        json={
            "practiceResultId": body["practiceResultId"],
            "practiceSetId": PS_101,
            "scorePercent": 90,
            "totalCorrect": 9,
            "totalIncorrect": 1,
            "timeSpentSeconds": 30,
            "passed": False,
            "attempts": [
                {
                    "questionId": "5",
                    "questionType": "tone",
                    "userAnswer": "má",
                    "timeSpentMs": 800,
                    "grade": {"isCorrect": True, "score": 1},
                }
            ],
        },
    )
    assert submitted.status_code == 200
    result = submitted.json()
    assert result["passed"] is True
    assert result["isFirstPass"] is True
    assert result["coinsEarned"] == 10
    assert result["xpEarned"] == 20
    assert result["passThreshold"] == 65.0
    assert result["lessonId"] == 101
    assert result["warnings"] == []

    again = client.post(
        "/api/exercise/submit",
        json={
            "practiceResultId": body["practiceResultId"],
            "practiceSetId": PS_101,
            "scorePercent": 90,
            "totalCorrect": 9,
            "totalIncorrect": 1,
        },
    )
    assert again.status_code == 400
    assert again.json() == {"success": False, "error": "practice_result_already_submitted"}


def test_unknown_practice_set_is_404(api):
    resp = client.post("/api/exercise/start", json={"practiceSetId": "a0000000-0000-4000-8000-0000000000ff"})
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "error": "practice_set_not_found"}


def test_invalid_body_is_400(api):
    resp = client.post("/api/exercise/submit", json={"practiceResultId": "x", "scorePercent": 140})
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["error"] == "invalid_request"
    assert "practiceSetId" in body["details"]["fields"]


def test_resume_requires_practice_set_id(api):
    resp = client.get("/api/exercise/resume")
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_request"


def test_malformed_ids_are_400(api):
    resp = client.post(
        "/api/exercise/submit",
        json={
            "practiceResultId": "abc",
            "practiceSetId": PS_101,
            "scorePercent": 90,
            "totalCorrect": 9,
            "totalIncorrect": 1,
        },
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_request"
    assert resp.json()["details"]["fields"] == ["practiceResultId"]
    assert api.calls == []

    start = client.post("/api/exercise/start", json={"practiceSetId": "ps-101"})
    assert start.status_code == 400
    assert start.json()["details"]["fields"] == ["practiceSetId"]

    resume = client.get("/api/exercise/resume", params={"practiceSetId": "nope"})
    assert resume.status_code == 400
    assert resume.json()["details"]["fields"] == ["query.practiceSetId"]


def test_storage_failure_is_500(api):
    api.fail_on.add(("practice_sets", "select"))
    resp = client.post("/api/exercise/start", json={"practiceSetId": PS_101})
    assert resp.status_code == 500
    assert resp.json() == {"success": False, "error": "persistence_failure"}


def test_unexpected_error_uses_envelope(api):
    api.tables["user_lesson_progress"].append(
        {"id": "broken", "user_id": FREE_USER, "lesson_id": 101, "topic_id": None, "status": "passed"}
    )
    lenient = TestClient(app, raise_server_exceptions=False)
    resp = lenient.get("/api/progress/lessons/101")
    assert resp.status_code == 500
    assert resp.json() == {"success": False, "error": "internal_error"}


def test_missing_token_is_401(db):
    async def override_get_supabase():
        return db

    app.dependency_overrides[get_supabase] = override_get_supabase
    try:
        resp = client.post("/api/exercise/start", json={"practiceSetId": PS_101})
    finally:
        app.dependency_overrides.clear()
    assert resp.status_code == 401
    assert resp.json() == {"success": False, "error": "unauthenticated"}


def test_anonymous_unlock_status(db):
    async def override_get_supabase():
        return db

    app.dependency_overrides[get_supabase] = override_get_supabase
    try:
        resp = client.get("/api/progress/lessons/201/unlock")
    finally:
        app.dependency_overrides.clear()
    assert resp.status_code == 200
    assert resp.json()["isLocked"] is True
    assert resp.json()["reason"] == "login_required"


def test_progress_routes(api):
    api.tables["user_lesson_progress"].append(passed_row(FREE_USER, 101, 10))

    lesson = client.get("/api/progress/lessons/101")
    assert lesson.status_code == 200
    assert lesson.json()["progress"]["status"] == "passed"

    unlock = client.get("/api/progress/lessons/201/unlock")
    assert unlock.json()["reason"] == "zone_locked"
    assert unlock.json()["totalTopicsInPrevZone"] == 2

    topic = client.get("/api/progress/topics/10")
    assert topic.json()["unlockedLessonIds"] == [101, 102]

    zone = client.get("/api/progress/zones/1")
    assert [p["lessonId"] for p in zone.json()["progress"]] == [101]

    completion = client.get("/api/progress/zones/4/completion")
    assert completion.json() == {"completed": 0, "total": 0, "percent": 0}


def test_unknown_lesson_is_404(api):
    resp = client.get("/api/progress/lessons/999/unlock")
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "error": "lesson_not_found"}


def test_chat_analyze(api):
    resp = client.post("/api/chat/analyze", json={"query": "Find a proverb about family", "contextualize": True})
    assert resp.status_code == 200
    body = resp.json()
    assert body["intent"]["searchType"] == "folklore"
    assert body["keywords"] == ["find", "proverb", "family"]
    assert body["contextualized"]["fallback"] is True
    assert body["contextualized"]["contextualizedQuery"] == "Find a proverb about family"
    assert body["contextualized"]["variations"] == []


def test_meta_routes():
    assert client.get("/").json()["status"] == "ok"
    health = client.get("/healthz").json()
    assert "database" in health["components"]
    assert health["counts"]["models"] >= 8
