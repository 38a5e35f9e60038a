import pytest
from fastapi.testclient import TestClient

from quiz_engine.db.session import get_db
from quiz_engine.main import app


SINGLE_MC = [
    {
        "id": "q1",
        "type": "multiple-choice",
        "options": {"a": "A", "b": "B"},
        "correctAnswer": "b",
        "scoring": {"type": "simple", "points": 100},
    }
]


@pytest.fixture()
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _start(client, quiz_id, **extra):
    body = {"quiz_id": quiz_id, "student_id": 7, "enrollment_id": 3, **extra}
    return client.post("/api/attempts/start", json=body)


def test_health(client):
    res = client.get("/api/health")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"
    assert res.json()["async_queue"]["enabled"] is False


def test_happy_path(client, make_quiz):
    quiz = make_quiz(SINGLE_MC)

    res = _start(client, quiz.id)
    assert res.status_code == 200
    body = res.json()
    assert body["error"] is None
    assert body["request_id"] == res.headers["X-Request-ID"]
    sub = body["data"]["submission"]
    assert sub["status"] == "in_progress"
    assert sub["attempt_number"] == 1
    assert body["data"]["auto_submit"] == {"scheduled": False, "reason": "untimed"}

    res = client.put(f"/api/attempts/{sub['id']}/answers/q1", json={"type": "multiple-choice", "value": "b"})
    assert res.status_code == 200
    assert res.json()["data"]["answers"] == [
        {"question_id": "q1", "question_type": "multiple-choice", "selected_answer": "b"}
    ]

    res = client.post(f"/api/attempts/{sub['id']}/complete")
    assert res.status_code == 200
    done = res.json()["data"]
    assert done["status"] == "completed"
    assert done["percentage"] == 100
    assert done["answers"][0]["selected_answer"] == "b"

    res = client.get(f"/api/quizzes/{quiz.id}/attempts", params={"student_id": 7})
    assert [s["id"] for s in res.json()["data"]] == [sub["id"]]


def test_attempt_number_defaults_to_next(client, make_quiz):
    quiz = make_quiz(SINGLE_MC)
    first = _start(client, quiz.id).json()["data"]["submission"]
    client.post(f"/api/attempts/{first['id']}/complete")

    second = _start(client, quiz.id).json()["data"]["submission"]
    assert second["attempt_number"] == 2


def test_request_id_is_echoed(client):
    res = client.get("/api/health", headers={"X-Request-ID": "req-123"})
    assert res.headers["X-Request-ID"] == "req-123"


@pytest.mark.parametrize(
    "method, path_tpl, body, status, code",
    [
        ("put", "/api/attempts/{id}/answers/q1", {"type": "choice", "value": ["b"]}, 422, "TYPE_MISMATCH"),
        ("put", "/api/attempts/{id}/answers/zz", {"type": "multiple-choice", "value": "b"}, 404, "NOT_FOUND"),
        ("put", "/api/attempts/{id}/answers/q1", {"type": "multiple-choice", "value": ["b"]}, 400, "VALIDATION_ERROR"),
        ("get", "/api/attempts/999", None, 404, "NOT_FOUND"),
    ],
)
def test_errors_map_to_status(client, make_quiz, method, path_tpl, body, status, code):
    quiz = make_quiz(SINGLE_MC)
    sub = _start(client, quiz.id).json()["data"]["submission"]

    kwargs = {"json": body} if body is not None else {}
    res = getattr(client, method)(path_tpl.format(id=sub["id"]), **kwargs)

    assert res.status_code == status
    payload = res.json()
    assert payload["data"] is None
    assert payload["error"]["code"] == code


def test_complete_twice_is_conflict(client, make_quiz):
    quiz = make_quiz(SINGLE_MC)
    sub = _start(client, quiz.id).json()["data"]["submission"]

    assert client.post(f"/api/attempts/{sub['id']}/complete").status_code == 200
    res = client.post(f"/api/attempts/{sub['id']}/complete")
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "INVALID_STATE"
    assert res.json()["error"]["message"] == "submission must be in-progress"


def test_flag_routes(client, make_quiz):
    quiz = make_quiz(SINGLE_MC)
    sub = _start(client, quiz.id).json()["data"]["submission"]

    res = client.post(f"/api/attempts/{sub['id']}/flags/q1")
    assert res.json()["data"]["flagged_questions"] == ["q1"]
    res = client.delete(f"/api/attempts/{sub['id']}/flags/q1")
    assert res.json()["data"]["flagged_questions"] == []


def test_bad_start_body_uses_envelope(client):
    res = client.post("/api/attempts/start", json={"quiz_id": 1})
    assert res.status_code == 422
    assert res.json()["error"]["code"] == "VALIDATION_ERROR"


def test_delete_attempt_route(client, make_quiz):
    quiz = make_quiz(SINGLE_MC)
    sub = _start(client, quiz.id).json()["data"]["submission"]

    res = client.delete(f"/api/attempts/{sub['id']}")
    assert res.status_code == 200
    assert res.json()["data"] == {"submission_id": sub["id"], "deleted": True}

    res = client.delete(f"/api/attempts/{sub['id']}")
    assert res.status_code == 404
    assert res.json()["error"]["code"] == "NOT_FOUND"


def test_report_routes(client, make_quiz):
    quiz = make_quiz(SINGLE_MC)
    sub = _start(client, quiz.id).json()["data"]["submission"]
    client.put(f"/api/attempts/{sub['id']}/answers/q1", json={"type": "multiple-choice", "value": "b"})
    client.post(f"/api/attempts/{sub['id']}/complete")

    res = client.get(f"/api/quizzes/{quiz.id}/grades-report")
    assert res.status_code == 200
    grades = res.json()["data"]
    assert grades["averages"]["overall_average"] == 100
    assert grades["attempts"][0]["question_scores"][0]["is_correct"] is True

    res = client.get(f"/api/quizzes/{quiz.id}/statistics")
    assert res.status_code == 200
    q1 = res.json()["data"]["question_statistics"][0]
    assert q1["difficulty"] == 100
    assert q1["response_distribution"][1] == {"option": "b", "count": 1, "percentage": 100}

    assert client.get("/api/quizzes/999/statistics").status_code == 404
