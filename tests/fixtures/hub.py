"""Hub test data: tokens, users, tasks, leads and provider payloads."""
from datetime import date

from jose import jwt

from common.db.models import Profile, Task, UserRole

JWT_SECRET = "test-jwt-secret"
SERVICE_KEY = "test-service-role-key"


def make_token(user_id: str, email: str = "user@test.com", secret: str = JWT_SECRET) -> str:
    return jwt.encode(
        {"sub": user_id, "email": email, "aud": "authenticated", "role": "authenticated"},
        secret,
        algorithm="HS256",
    )


def add_user(db, user_id: str, email: str, role: str = "collaborator",
             is_active: bool = True, full_name: str = "Test User") -> Profile:
    profile = Profile(id=user_id, email=email, full_name=full_name, is_active=is_active)
    db.add(profile)
    db.add(UserRole(user_id=user_id, role=role))
    db.commit()
    return profile


def add_task(db, title: str = "Relatório semanal", due: date = date(2026, 3, 6),
             recurrence: str = "weekly", completed: bool = True, **extra) -> Task:
    task = Task(title=title, due_date=due, recurrence=recurrence, completed=completed, **extra)
    db.add(task)
    db.commit()
    return task


# Survey answers as they arrive from the lead form
QUALIFIED_ANSWERS = {
    "faturamento": "Acima de R$ 100.000",
    "lucro": "De R$ 15.000 a R$ 30.000",
    "empreita": "Não",
}

UNQUALIFIED_ANSWERS = {
    "Faturamento": "De R$ 5.000 a R$ 10.000",
    "Lucro": "De R$ 3.000 a R$ 5.000",
    "Empreita": "Sim",
}

CALCOM_BOOKING = {
    "id": 4411,
    "title": "Sessão estratégica - Joana",
    "start": "2026-03-10T13:00:00.000Z",
    "end": "2026-03-10T13:45:00.000Z",
    "status": "accepted",
    "meetingUrl": "https://meet.google.com/abc-defg-hij",
    "attendees": [
        {"name": "Joana Silva", "email": " Joana@Example.com ", "phone": "+5511999990000"},
        {"email": "socio@example.com"},
    ],
    "createdAt": "2026-03-01T10:00:00.000Z",
}

SPEECH_RESULT = {
    "text": "Bom dia pessoal. Bom dia. Vamos começar.",
    "words": [
        {"text": "Bom", "start": 0.0, "end": 0.3, "speaker": "speaker_0"},
        {"text": "dia", "start": 0.3, "end": 0.6, "speaker": "speaker_0"},
        {"text": "pessoal.", "start": 0.6, "end": 1.1, "speaker": "speaker_0"},
        {"text": "Bom", "start": 1.5, "end": 1.8, "speaker": "speaker_1"},
        {"text": "dia.", "start": 1.8, "end": 2.1, "speaker": "speaker_1"},
        {"text": "Vamos", "start": 2.5, "end": 2.9, "speaker": "speaker_0"},
        {"text": "começar.", "start": 2.9, "end": 3.4, "speaker": "speaker_0"},
    ],
}
