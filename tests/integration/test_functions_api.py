"""
Integration Tests for the Functions API

Drives the FastAPI app end to end over an in-memory database, with every
external provider replaced through dependency overrides.
"""
import asyncio
import base64
import inspect
import json
from datetime import date
from unittest.mock import MagicMock

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select

from common.config import AIGatewayConfig, AuthConfig, CalComConfig, SpeechConfig
from common.db.models import (
    PDI,
    Notification,
    Profile,
    Quiz,
    StrategicLead,
    StrategicSession,
    Task,
    Transcription,
)
from functions import deps
from functions.app import app
from functions.routers.tasks import task_cache
from modules.calendar.calcom import CalComClient, bookings_cache
from modules.copywriting.gateway import AIGatewayClient
from modules.transcription.model import ModelHandle
from modules.transcription.speech import SpeechToTextClient
from modules.users.auth_admin import AuthAdminClient
from tests.fixtures.hub import (
    CALCOM_BOOKING,
    QUALIFIED_ANSWERS,
    SPEECH_RESULT,
    add_task,
    add_user,
    make_token,
)


def mock(handler):
    return httpx.MockTransport(handler)


def on_event_loop() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


@pytest.fixture
def client(session_factory):
    task_cache.invalidate()
    bookings_cache.invalidate()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def override(dependency, value):
    app.dependency_overrides[dependency] = lambda: value


class TestHealthAndAuth:

    def test_health(self, client):
        body = client.get("/health").json()
        assert body["status"] == "healthy"
        assert body["service"] == "boranahobra-hub"

    def test_missing_token(self, client):
        resp = client.post("/functions/v1/lead-score", json={"extra_data": {}})
        assert resp.status_code == 401
        assert resp.json()["success"] is False

    def test_inactive_user_rejected(self, client, db):
        add_user(db, "gone-1", "gone@boranaobra.com.br", is_active=False)
        headers = {"Authorization": f"Bearer {make_token('gone-1')}"}
        resp = client.post("/functions/v1/lead-score", json={"extra_data": {}}, headers=headers)
        assert resp.status_code == 403

    def test_request_validation_uses_envelope(self, client, admin_headers):
        resp = client.post("/api/tasks/", json={"title": ""}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json()["error"].startswith("title:")


class TestUserFunctions:

    def test_create_user(self, client, db, admin_headers):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"id": "new-7", "email": "bia@boranaobra.com.br"})

        override(deps.get_auth_admin_client, AuthAdminClient(
            AuthConfig(admin_url="https://auth.test/auth/v1", service_role_key="svc"), mock(handler)))

        resp = client.post("/functions/v1/create-user", headers=admin_headers,
                           json={"email": "bia@boranaobra.com.br", "full_name": "Bia Lima"})

        assert resp.status_code == 200
        assert resp.json()["initial_password"] == "bia"
        db.expire_all()
        assert db.get(Profile, "new-7").must_change_password is True

    def test_collaborator_gets_400(self, client, collaborator_headers):
        override(deps.get_auth_admin_client, AuthAdminClient(
            AuthConfig(admin_url="https://auth.test/auth/v1", service_role_key="svc"),
            mock(lambda request: httpx.Response(200, json={"id": "x"}))))

        resp = client.post("/functions/v1/create-user", headers=collaborator_headers,
                           json={"email": "x@y.com", "full_name": "X"})

        assert resp.status_code == 400
        assert "not an admin" in resp.json()["error"]

    def test_reset_password_without_token_is_400(self, client):
        resp = client.post("/functions/v1/reset-password", json={"user_id": "collab-1"})
        assert resp.status_code == 400


class TestCopyFunctions:

    def test_rewrite(self, client, collaborator_headers):
        body = {"choices": [{"message": {"tool_calls": [{"function": {
            "name": "rewrite_copy", "arguments": json.dumps({"nova_copy": "Fundação primeiro."})}}]}}]}
        override(deps.get_ai_client, AIGatewayClient(
            AIGatewayConfig(api_key="k"), mock(lambda request: httpx.Response(200, json=body))))

        resp = client.post("/functions/v1/rewrite-copy", headers=collaborator_headers,
                           json={"texto": "Compre agora!"})

        assert resp.json() == {"nova_copy": "Fundação primeiro."}

    def test_rate_limit_status_passes_through(self, client, collaborator_headers):
        override(deps.get_ai_client, AIGatewayClient(
            AIGatewayConfig(api_key="k"), mock(lambda request: httpx.Response(429))))
        resp = client.post("/functions/v1/validate-copy", headers=collaborator_headers,
                           json={"texto": "Texto"})
        assert resp.status_code == 429

    def test_text_too_long(self, client, collaborator_headers):
        resp = client.post("/functions/v1/validate-copy", headers=collaborator_headers,
                           json={"texto": "a" * 10001})
        assert resp.status_code == 400


class TestQuizFunctions:

    QUIZ = {
        "title": "Gestão de Obras",
        "questions": [{"question_text": "Tem cronograma?", "question_type": "yes_no",
                       "options": [{"option_text": "Sim", "points": 10}]}],
        "diagnoses": [{"title": "No improviso", "min_score": 0, "max_score": 5}],
    }

    def gateway(self, response):
        override(deps.get_ai_client, AIGatewayClient(
            AIGatewayConfig(api_key="k"), mock(lambda request: response)))

    def test_generate_quiz(self, client, db, admin_headers):
        body = {"choices": [{"message": {"tool_calls": [{"function": {
            "name": "create_quiz", "arguments": json.dumps(self.QUIZ)}}]}}]}
        self.gateway(httpx.Response(200, json=body))

        resp = client.post("/functions/v1/generate-quiz-from-ai", headers=admin_headers,
                           json={"prompt": "gestão de obras"})

        assert resp.status_code == 200
        quiz = resp.json()["quiz"]
        assert quiz["status"] == "draft"
        assert quiz["created_by"] == "admin-1"
        assert quiz["slug"].startswith("gestao-de-obras-")
        stored = db.get(Quiz, quiz["id"])
        assert [q.is_required for q in stored.questions] == [True]
        assert stored.questions[0].options[0].points == 10
        assert stored.diagnoses[0].color == "#6366f1"

    @pytest.mark.parametrize("status", [429, 402])
    def test_limits_pass_through(self, client, db, admin_headers, status):
        self.gateway(httpx.Response(status))
        resp = client.post("/functions/v1/generate-quiz-from-ai", headers=admin_headers,
                           json={"prompt": "obras"})
        assert resp.status_code == status
        assert resp.json()["success"] is False
        assert db.scalars(select(Quiz)).first() is None

    def test_requires_login(self, client):
        resp = client.post("/functions/v1/generate-quiz-from-ai", json={"prompt": "obras"})
        assert resp.status_code == 401


class TestCalendarFunctions:

    def test_calcom_events(self, client, collaborator_headers):
        override(deps.get_calcom_client, CalComClient(
            CalComConfig(api_key="k"),
            mock(lambda request: httpx.Response(200, json={"data": [CALCOM_BOOKING]}))))

        resp = client.get("/functions/v1/fetch-calcom-events",
                          params={"date_from": "2026-03-01", "date_to": "2026-03-31"},
                          headers=collaborator_headers)

        events = resp.json()["data"]
        assert events[0]["id"] == "calcom-4411"
        assert events[0]["event_time"] == "13:00:00"

    def test_calcom_error_status(self, client, collaborator_headers):
        override(deps.get_calcom_client, CalComClient(
            CalComConfig(api_key="k"), mock(lambda request: httpx.Response(401, text="bad key"))))
        resp = client.get("/functions/v1/fetch-calcom-events", headers=collaborator_headers)
        assert resp.status_code == 401
        assert resp.json()["error"] == "Cal.com API error"

    def test_google_calendar_requires_id(self, client, collaborator_headers):
        override(deps.get_calendar, MagicMock())
        resp = client.post("/functions/v1/fetch-google-calendar-events",
                           headers=collaborator_headers, json={"date": "2026-03-10"})
        assert resp.status_code == 400

    def test_google_calendar_runs_off_the_event_loop(self, client, collaborator_headers):
        seen = []

        def execute():
            seen.append(on_event_loop())
            return {"items": []}

        service = MagicMock()
        service.events.return_value.list.return_value.execute.side_effect = execute
        override(deps.get_calendar, service)

        resp = client.post("/functions/v1/fetch-google-calendar-events", headers=collaborator_headers,
                           json={"calendar_id": "agenda@boranaobra.com.br", "date": "2026-03-10"})

        assert resp.json() == {"events": []}
        assert seen == [False]

    @pytest.mark.parametrize("path", [
        "/functions/v1/fetch-google-calendar-events",
        "/functions/v1/google-drive-download",
        "/functions/v1/sync-strategic-leads",
        "/functions/v1/cron-sync-strategic-leads",
    ])
    def test_google_api_routes_are_sync(self, path):
        route = next(r for r in app.routes if getattr(r, "path", None) == path)
        assert not inspect.iscoroutinefunction(route.endpoint)


class TestLeadFunctions:

    def test_lead_score(self, client, collaborator_headers):
        resp = client.post("/functions/v1/lead-score", headers=collaborator_headers,
                           json={"extra_data": QUALIFIED_ANSWERS})
        body = resp.json()
        assert resp.status_code == 200
        assert body["isQualified"] is True

    def test_lead_score_numeric_answers(self, client, collaborator_headers):
        resp = client.post("/functions/v1/lead-score", headers=collaborator_headers,
                           json={"extra_data": {"faturamento": 100000, "lucro": 50000, "empreita": None}})
        assert resp.status_code == 200
        assert resp.json()["breakdown"] == {"faturamento": 60, "lucro": 45, "empreita": 0}

    def test_sync_and_kanban(self, client, db, admin_headers):
        strategic = StrategicSession(
            name="Sessão Abril",
            google_sheet_url="https://docs.google.com/spreadsheets/d/sheet-42/edit",
        )
        db.add(strategic)
        db.commit()
        sheets = MagicMock()
        sheets.spreadsheets.return_value.values.return_value.get.return_value.execute.return_value = {
            "values": [["Nome", "Email", "utm_source"], ["Lia", "lia@example.com", "instagram"]]
        }
        override(deps.get_sheets, sheets)

        resp = client.post("/functions/v1/sync-strategic-leads", headers=admin_headers,
                           json={"session_id": strategic.id})
        assert resp.json() == {"created": 1, "updated": 0, "total": 1}

        board = client.get(f"/api/strategic-sessions/{strategic.id}/leads", headers=admin_headers).json()
        assert board["stages"][0]["key"] == "lead"
        lead = board["leads"][0]
        assert lead["name"] == "Lia"

        moved = client.post(f"/api/strategic-sessions/leads/{lead['id']}/stage",
                            headers=admin_headers, json={"stage": "agendado"})
        assert moved.json()["stage"] == "agendado"

    def test_unknown_session(self, client, admin_headers):
        resp = client.get("/api/strategic-sessions/missing/leads", headers=admin_headers)
        assert resp.status_code == 404

    def test_cron_sync_requires_service_role(self, client, admin_headers):
        override(deps.get_sheets, MagicMock())
        resp = client.post("/functions/v1/cron-sync-strategic-leads", headers=admin_headers)
        assert resp.status_code == 401


class TestSweeps:

    def test_task_recurrence(self, client, db, service_headers):
        add_task(db, due=date(2026, 3, 6), recurrence="weekly", completed=True)

        resp = client.post("/functions/v1/process-task-recurrence", headers=service_headers,
                           json={"date": "2026-03-06"})

        body = resp.json()
        assert body["tasksCreated"] == 1
        created = db.get(Task, body["createdTaskIds"][0])
        assert created.due_date == date(2026, 3, 13)

    def test_pdi_deadlines(self, client, db, service_headers):
        db.add(PDI(title="Negociação", collaborator_id="collab-1", deadline=date(2026, 3, 10)))
        db.commit()

        resp = client.post("/functions/v1/check-pdi-deadlines", headers=service_headers,
                           json={"date": "2026-03-10"})

        assert len(resp.json()["pdi_ids"]) == 1
        assert db.scalars(select(Notification)).one().type == "alert"

    def test_invalid_date_is_400(self, client, service_headers):
        resp = client.post("/functions/v1/process-task-recurrence", headers=service_headers,
                           json={"date": "2026-13-45"})
        assert resp.status_code == 400
        assert resp.json()["success"] is False
        assert resp.json()["error"].startswith("date:")

    def test_recurrence_refreshes_cached_task_list(self, client, db, service_headers, admin_headers):
        add_task(db, due=date(2026, 3, 6), recurrence="weekly", completed=True)
        assert len(client.get("/api/tasks/", headers=admin_headers).json()) == 1

        client.post("/functions/v1/process-task-recurrence", headers=service_headers,
                    json={"date": "2026-03-06"})

        listed = client.get("/api/tasks/", headers=admin_headers).json()
        assert len(listed) == 2
        assert any(t["is_recurring_instance"] for t in listed)

    def test_sweeps_reject_user_tokens(self, client, admin_headers):
        resp = client.post("/functions/v1/check-pdi-deadlines", headers=admin_headers)
        assert resp.status_code == 401


class TestMediaFunctions:

    @pytest.fixture
    def transcription(self, db):
        row = Transcription(title="Reunião semanal", status="pending")
        db.add(row)
        db.commit()
        return row

    def test_transcribe_base64(self, client, db, collaborator_headers, transcription):
        override(deps.get_speech_client, SpeechToTextClient(
            SpeechConfig(api_key="k"), mock(lambda request: httpx.Response(200, json=SPEECH_RESULT))))

        resp = client.post("/functions/v1/transcribe-video", headers=collaborator_headers, json={
            "transcription_id": transcription.id,
            "file_base64": base64.b64encode(b"audio-bytes").decode(),
            "language": "pt",
        })

        assert resp.status_code == 200
        assert resp.json()["speakers_count"] == 2
        db.expire_all()
        assert db.get(Transcription, transcription.id).status == "completed"

    def test_transcribe_multipart(self, client, collaborator_headers, transcription):
        override(deps.get_speech_client, SpeechToTextClient(
            SpeechConfig(api_key="k"), mock(lambda request: httpx.Response(200, json=SPEECH_RESULT))))

        resp = client.post("/functions/v1/transcribe-video", headers=collaborator_headers,
                           data={"transcription_id": transcription.id, "language": "pt"},
                           files={"file": ("reuniao.mp4", b"video-bytes", "video/mp4")})

        assert resp.json()["duration_seconds"] == 4

    def test_failed_transcription_is_persisted(self, client, db, collaborator_headers, transcription):
        override(deps.get_speech_client, SpeechToTextClient(
            SpeechConfig(api_key="k"), mock(lambda request: httpx.Response(500, text="down"))))

        resp = client.post("/functions/v1/transcribe-video", headers=collaborator_headers, json={
            "transcription_id": transcription.id,
            "file_base64": base64.b64encode(b"audio").decode(),
        })

        assert resp.status_code == 500
        db.expire_all()
        assert db.get(Transcription, transcription.id).status == "failed"

    def test_transcribe_without_file(self, client, collaborator_headers, transcription):
        resp = client.post("/functions/v1/transcribe-video", headers=collaborator_headers,
                           json={"transcription_id": transcription.id})
        assert resp.status_code == 400

    def test_provider_client_error_is_502(self, client, db, collaborator_headers, transcription):
        override(deps.get_speech_client, SpeechToTextClient(
            SpeechConfig(api_key="k"), mock(lambda request: httpx.Response(422, text="bad audio"))))

        resp = client.post("/functions/v1/transcribe-video", headers=collaborator_headers, json={
            "transcription_id": transcription.id,
            "file_base64": base64.b64encode(b"audio").decode(),
        })

        assert resp.status_code == 502
        assert resp.json()["error"].startswith("ElevenLabs API error: 422")
        db.expire_all()
        assert db.get(Transcription, transcription.id).error_message == "ElevenLabs API error: 422"

    def test_unexpected_failure_is_persisted(self, client, db, collaborator_headers, transcription):
        def broken(report):
            raise OSError("model files missing")

        override(deps.get_model_handle, ModelHandle(broken, name="modelo Whisper"))

        with TestClient(app, raise_server_exceptions=False) as tolerant:
            resp = tolerant.post("/functions/v1/transcribe-video", headers=collaborator_headers, json={
                "transcription_id": transcription.id,
                "file_base64": base64.b64encode(b"audio").decode(),
                "engine": "local",
            })

        assert resp.status_code == 500
        db.expire_all()
        stored = db.get(Transcription, transcription.id)
        assert stored.status == "failed"
        assert "model files missing" in stored.error_message

    def test_local_engine(self, client, db, collaborator_headers, transcription):
        received = []

        def pipeline(audio, **kwargs):
            received.append(audio)
            return {"text": "Bom dia, equipe.",
                    "chunks": [{"text": "Bom dia, equipe.", "timestamp": (0.0, 3.2)}]}

        override(deps.get_model_handle, ModelHandle(lambda report: pipeline, name="test"))

        resp = client.post("/functions/v1/transcribe-video", headers=collaborator_headers,
                           data={"transcription_id": transcription.id, "engine": "local"},
                           files={"file": ("aula.wav", b"wav-bytes", "audio/wav")})

        assert resp.status_code == 200
        assert resp.json()["speakers_count"] == 1
        assert received == [b"wav-bytes"]
        db.expire_all()
        stored = db.get(Transcription, transcription.id)
        assert stored.status == "completed"
        assert stored.speakers_count == 1
        assert stored.transcript_segments[0]["speaker"] == "Transcrição"

    def test_local_fallback_without_provider_key(self, client, db, collaborator_headers, transcription):
        override(deps.get_speech_client, SpeechToTextClient(SpeechConfig(api_key="")))
        override(deps.get_model_handle, ModelHandle(lambda report: (lambda audio, **kw: {"text": "Oi"}),
                                                    name="test"))

        resp = client.post("/functions/v1/transcribe-video", headers=collaborator_headers, json={
            "transcription_id": transcription.id,
            "file_base64": base64.b64encode(b"audio").decode(),
        })

        assert resp.json()["text"] == "Oi"
        db.expire_all()
        assert db.get(Transcription, transcription.id).status == "completed"

    def test_unknown_engine(self, client, collaborator_headers, transcription):
        resp = client.post("/functions/v1/transcribe-video", headers=collaborator_headers, json={
            "transcription_id": transcription.id,
            "file_base64": base64.b64encode(b"audio").decode(),
            "engine": "cloud",
        })
        assert resp.status_code == 400


class TestDataRoutes:

    def test_collaborator_sees_only_own_tasks(self, client, db, collaborator_headers):
        add_task(db, title="Minha", assigned_to_id="collab-1", completed=False)
        add_task(db, title="De outro", assigned_to_id="collab-2", completed=False)

        titles = [t["title"] for t in client.get("/api/tasks/", headers=collaborator_headers).json()]

        assert titles == ["Minha"]

    def test_task_lifecycle(self, client, admin_headers):
        created = client.post("/api/tasks/", headers=admin_headers,
                              json={"title": "Checklist de obra", "recurrence": "monthly"})
        assert created.status_code == 201
        task_id = created.json()["id"]

        listed = client.get("/api/tasks/", headers=admin_headers).json()
        assert [t["id"] for t in listed] == [task_id]

        done = client.post(f"/api/tasks/{task_id}/complete", headers=admin_headers).json()
        assert done["completed"] is True

        actions = [h["action"] for h in client.get(f"/api/tasks/{task_id}/history",
                                                   headers=admin_headers).json()]
        assert sorted(actions) == ["completed", "created"]

        assert client.delete(f"/api/tasks/{task_id}", headers=admin_headers).json() == {"success": True}
        assert client.get("/api/tasks/", headers=admin_headers).json() == []

    def test_unknown_task(self, client, admin_headers):
        resp = client.patch("/api/tasks/missing", headers=admin_headers, json={"title": "x"})
        assert resp.status_code == 404

    def test_notifications(self, client, admin, collaborator, admin_headers, collaborator_headers):
        sent = client.post("/api/notifications/send", headers=admin_headers, json={
            "recipient_ids": [collaborator.id], "title": "Reunião", "message": "Amanhã às 9h"})
        assert sent.json() == {"success": True, "sent": 1}

        assert client.get("/api/notifications/unread-count",
                          headers=collaborator_headers).json() == {"count": 1}
        inbox = client.get("/api/notifications/", headers=collaborator_headers).json()
        assert inbox[0]["sender_id"] == admin.id

        client.post(f"/api/notifications/{inbox[0]['id']}/read", headers=collaborator_headers)
        assert client.get("/api/notifications/unread-count",
                          headers=collaborator_headers).json() == {"count": 0}

    def test_only_admins_send_notifications(self, client, collaborator_headers):
        resp = client.post("/api/notifications/send", headers=collaborator_headers, json={
            "recipient_ids": ["admin-1"], "title": "Oi", "message": "Oi"})
        assert resp.status_code == 403

    def test_sponsor_kanban(self, client, admin_headers):
        created = client.post("/api/sponsors/", headers=admin_headers, json={
            "name": "Cimentos Sul", "city": "Curitiba", "state": "PR", "segment": "Cimento"})
        assert created.status_code == 201
        sponsor_id = created.json()["id"]

        client.post(f"/api/sponsors/{sponsor_id}/stage", headers=admin_headers,
                    json={"stage": "agendamento"})

        columns = {c["id"]: c["sponsors"] for c in
                   client.get("/api/sponsors/kanban", headers=admin_headers).json()}
        assert [s["name"] for s in columns["agendamento"]] == ["Cimentos Sul"]
        history = client.get(f"/api/sponsors/{sponsor_id}/history", headers=admin_headers).json()
        assert {h["changed_by_name"] for h in history} == {"Rafa Admin"}

    def test_report_relay_without_webhook(self, client, collaborator_headers):
        resp = client.post("/functions/v1/funnel-daily-report-webhook", headers=collaborator_headers,
                           json={"funnel_id": "f1", "funnel_name": "Sessão", "report_date": "2026-03-10"})
        assert resp.json() == {"success": True, "message": "Report received but no webhook configured"}
