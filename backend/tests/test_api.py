import json

import pytest
from fastapi.testclient import TestClient

from interview_runtime.db import attempt_repo
from interview_runtime.db.database import async_session
from interview_runtime.main import app
from interview_runtime.storage.blob_store import get_blob_store


async def _seed():
    async with async_session() as db:
        await attempt_repo.create_interview(
            db,
            "iv-1",
            title="Backend Engineer",
            interviewer_role="Backend Engineer",
            duration_minutes=30,
            max_attempts=2,
        )
        await attempt_repo.create_interview(db, "iv-2", title="Support Lead", max_attempts=1)
        await attempt_repo.create_interview(
            db,
            "iv-3",
            title="Data Analyst",
            interviewer_role="Data Analyst",
            context="Marketing analytics team",
            description="SQL-heavy role",
        )
        for token, interview_id, candidate_id, max_attempts in [
            ("tok-session", "iv-1", "cand-session", None),
            ("tok-solo", "iv-1", "cand-solo", 1),
            ("tok-chat", "iv-1", "cand-chat", None),
            ("tok-photo", "iv-1", "cand-photo", None),
            ("tok-report", "iv-2", "cand-report", None),
        ]:
            await attempt_repo.create_invitation(db, token, interview_id, candidate_id, max_attempts=max_attempts)


@pytest.fixture(scope="module")
def client():
    with TestClient(app) as test_client:
        test_client.portal.call(_seed)
        yield test_client


def test_session_config_requires_a_valid_token(client):
    assert client.get("/api/candidate/session").status_code == 400
    assert client.get("/api/candidate/session", params={"token": "nope"}).status_code == 404

    response = client.get("/api/candidate/session", params={"token": "tok-session"})
    assert response.status_code == 200
    body = response.json()
    assert body["attemptsAllowed"] == 2
    assert body["attemptsUsed"] == 0
    assert body["attemptsExhausted"] is False
    assert body["interview"]["title"] == "Backend Engineer"
    assert body["interview"]["interactionMode"] == "VOICE"


def test_transcript_attempt_rules(client):
    history = [{"role": "assistant", "text": "Hi"}, {"role": "user", "text": "Hello there"}]

    first = client.post("/api/candidate/transcript", json={"token": "tok-solo", "history": history})
    assert first.json() == {"ok": True, "attemptNumber": 1}

    status = client.post("/api/candidate/status", json={"token": "tok-solo", "status": "completed"})
    assert status.status_code == 200
    assert status.json()["status"] == "COMPLETED"
    assert status.json()["completedAt"]

    locked = client.post("/api/candidate/transcript", json={"token": "tok-solo", "history": history})
    assert locked.status_code == 409

    exhausted = client.post(
        "/api/candidate/transcript",
        json={"token": "tok-solo", "history": history, "forceNewAttempt": True},
    )
    assert exhausted.status_code == 403

    config = client.get("/api/candidate/session", params={"token": "tok-solo"}).json()
    assert config["attemptsUsed"] == 1
    assert config["attemptsExhausted"] is True


def test_invalid_status_is_rejected(client):
    response = client.post("/api/candidate/status", json={"token": "tok-session", "status": "PAUSED"})
    assert response.status_code == 400


def test_chat_turn_persists_snapshot(client, monkeypatch: pytest.MonkeyPatch):
    from interview_runtime.api import chat

    seen = {}

    async def _fake_reply(history, user_text, **kwargs):
        seen.update(kwargs)
        return "Tell me about a recent project."

    monkeypatch.setattr(chat, "interviewer_reply", _fake_reply)

    response = client.post("/api/llm/chat", json={"token": "tok-chat", "userText": "", "history": []})
    assert response.status_code == 200
    assert response.json() == {"reply": "Tell me about a recent project."}
    assert seen["total_minutes"] == 30
    assert "Backend Expertise" in seen["skills"]

    config = client.get("/api/candidate/session", params={"token": "tok-chat"}).json()
    assert config["attemptsUsed"] == 1


def test_chat_turn_validation_and_llm_failure(client, monkeypatch: pytest.MonkeyPatch):
    from interview_runtime.api import chat

    missing = client.post(
        "/api/llm/chat",
        json={"interviewId": "iv-1", "userText": " ", "history": [{"role": "assistant", "content": "Hi"}]},
    )
    assert missing.status_code == 400

    async def _boom(*args, **kwargs):
        raise RuntimeError("llm down")

    monkeypatch.setattr(chat, "interviewer_reply", _boom)
    failed = client.post("/api/llm/chat", json={"interviewId": "iv-1", "userText": "hello", "history": []})
    assert failed.status_code == 502


def test_proctor_photo_creates_placeholder_reused_by_transcript(client):
    response = client.post(
        "/api/candidate/proctor-photo",
        params={"token": "tok-photo"},
        files={"photo": ("face.jpg", b"\xff\xd8jpeg-bytes", "image/jpeg")},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["attemptNumber"] == 1
    assert get_blob_store().exists(body["blobName"])

    saved = client.post(
        "/api/candidate/transcript",
        json={"token": "tok-photo", "history": [{"role": "user", "text": "ready"}]},
    )
    assert saved.json()["attemptNumber"] == 1

    assert client.post("/api/candidate/proctor-photo", params={"token": "tok-photo"}).status_code == 400


def test_record_chunk_stores_blob(client):
    assert client.post("/api/record/chunk", data={"seq": "1"}).status_code == 400

    response = client.post(
        "/api/record/chunk",
        data={"seq": "3", "ts": "1700000000000", "attemptId": "att-1", "interviewId": "iv-1"},
        files={"chunk": ("chunk-3.webm", b"webm-bytes", "video/webm")},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["blobName"] == "att-1/20231114_221320/chunk-00003.webm"
    assert get_blob_store().read(body["blobName"]) == b"webm-bytes"


def test_transcribe_relay(client, monkeypatch: pytest.MonkeyPatch):
    from interview_runtime.api import media

    assert client.post("/api/transcribe").status_code == 400

    async def _fake_transcribe(payload, filename="segment.webm"):
        return "hello world"

    monkeypatch.setattr(media, "transcribe_audio", _fake_transcribe)
    ok = client.post("/api/transcribe", files={"audio": ("segment.webm", b"audio", "audio/webm")})
    assert ok.json() == {"text": "hello world"}

    async def _boom(payload, filename="segment.webm"):
        raise RuntimeError("stt down")

    monkeypatch.setattr(media, "transcribe_audio", _boom)
    failed = client.post("/api/transcribe", files={"audio": ("segment.webm", b"audio", "audio/webm")})
    assert failed.status_code == 502


def test_rubric_default_then_saved(client):
    default = client.get("/api/interviews/iv-2/rubric").json()
    assert default["isDefault"] is True
    assert len(default["parameters"]) == 5

    saved = client.put(
        "/api/interviews/iv-2/rubric",
        json={
            "parameters": [
                {"name": "Communication", "weight": 60},
                {"name": "Ownership", "weight": 60, "scale": {"type": "percentage"}},
            ]
        },
    )
    assert saved.status_code == 200
    assert [p["weight"] for p in saved.json()["parameters"]] == [50.0, 50.0]

    stored = client.get("/api/interviews/iv-2/rubric").json()
    assert stored["isDefault"] is False
    assert [p["id"] for p in stored["parameters"]] == ["communication", "ownership"]
    assert stored["templateSummary"] is None

    assert client.put("/api/interviews/iv-2/rubric", json={"parameters": []}).status_code == 400


def test_generate_rubric_template_with_llm(client, fake_llm):
    template = {
        "parameters": [
            {"name": "SQL", "description": "Joins, windows", "weight": 30},
            {"name": "Storytelling", "weight": 30, "scale": {"type": "percentage"}},
        ],
        "includeOverall": True,
    }
    completions = fake_llm(json.dumps(template), json.dumps({"bullets": ["SQL first", "Storytelling second"]}))

    generated = client.post("/api/interviews/iv-3/rubric/generate")
    assert generated.status_code == 200
    body = generated.json()
    assert body["source"] == "llm"
    assert [p["id"] for p in body["parameters"]] == ["sql", "storytelling"]
    assert [p["weight"] for p in body["parameters"]] == [50.0, 50.0]
    assert body["templateSummary"] == "- SQL first\n- Storytelling second"
    assert "Role: Data Analyst" in completions.calls[0]["messages"][1]["content"]

    stored = client.get("/api/interviews/iv-3/rubric").json()
    assert stored["isDefault"] is False
    assert [p["name"] for p in stored["parameters"]] == ["SQL", "Storytelling"]
    assert stored["templateSummary"] == "- SQL first\n- Storytelling second"

    fake_llm(json.dumps({"bullets": ["Only SQL"]}))
    saved = client.put("/api/interviews/iv-3/rubric", json={"parameters": [{"name": "SQL", "weight": 100}]})
    assert saved.json()["templateSummary"] == "- Only SQL"
    assert client.get("/api/interviews/iv-3/rubric").json()["templateSummary"] == "- Only SQL"


def test_generate_rubric_template_falls_back_to_role_default(client, fake_llm):
    fake_llm("not json", json.dumps({"bullets": ["Role default"]}))

    body = client.post("/api/interviews/iv-3/rubric/generate").json()
    assert body["source"] == "fallback"
    assert "Data Expertise" in [p["name"] for p in body["parameters"]]
    assert body["templateSummary"] == "- Role default"

    assert client.post("/api/interviews/iv-missing/rubric/generate").status_code == 404


def test_stateless_scoring(client):
    response = client.post(
        "/api/reports/score",
        json={"transcript": [{"role": "assistant", "content": "Hello?"}], "mode": "fallback"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["scoringMode"] == "fallback"
    assert body["overall"] == 0
    assert len(body["parameters"]) == 5

    assert client.post("/api/reports/score", json={"transcript": [], "mode": "magic"}).status_code == 400


def test_report_get_or_generate_and_regenerate(client):
    missing = client.get("/api/interviews/iv-2/candidates/cand-report/report")
    assert missing.status_code == 404

    answer = "I resolved escalations by listening first and writing clear follow-up notes for the team. " * 3
    client.post(
        "/api/candidate/transcript",
        json={
            "token": "tok-report",
            "history": [
                {"role": "assistant", "text": "How do you handle escalations?"},
                {"role": "user", "text": answer},
            ],
        },
    )

    first = client.get("/api/interviews/iv-2/candidates/cand-report/report", params={"mode": "fallback"})
    assert first.status_code == 200
    report = first.json()
    assert report["attemptNumber"] == 1
    assert report["scoringMode"] == "fallback"
    assert 0 <= report["overall"] <= 100
    assert {p["id"] for p in report["parameters"]} == {"communication", "ownership"}

    cached = client.get("/api/interviews/iv-2/candidates/cand-report/report").json()
    assert cached["createdAt"] == report["createdAt"]

    regenerated = client.post("/api/interviews/iv-2/candidates/cand-report/report/regenerate", params={"mode": "fallback"})
    assert regenerated.status_code == 200
    assert regenerated.json()["parameters"] == report["parameters"]

    assert client.get("/api/interviews/iv-2/candidates/cand-report/report", params={"attempt": 4}).status_code == 404


def test_metrics_endpoint(client):
    body = client.get("/api/metrics").json()
    assert "sessions_active" in body
    assert "avg_upload_latency_ms" in body
