"""
Unit Tests for Notifications

Sending, listing, unread counts and read state per recipient.
"""
from datetime import datetime, timedelta, timezone

import pytest

from common.errors import NotFound, ValidationError
from modules.notifications.service import (
    list_notifications,
    mark_all_read,
    mark_read,
    recently_notified,
    send_notification,
    unread_count,
)


@pytest.fixture
def inbox(db):
    notes = [
        send_notification(db, "collab-1", "Bem-vindo", "Seu acesso foi criado", "success", "admin-1"),
        send_notification(db, "collab-1", "⏰ PDI próximo do vencimento", 'O PDI "Vendas" vence em 2 dia(s).', "warning"),
        send_notification(db, "collab-2", "Reunião", "Amanhã às 10h"),
    ]
    db.commit()
    return notes


class TestNotifications:

    def test_send_validates(self, db):
        with pytest.raises(ValidationError):
            send_notification(db, "collab-1", "", "mensagem")
        with pytest.raises(ValidationError):
            send_notification(db, "collab-1", "Título", "mensagem", type="urgent")

    def test_list_is_per_recipient(self, db, inbox):
        titles = {n.title for n in list_notifications(db, "collab-1")}
        assert titles == {"Bem-vindo", "⏰ PDI próximo do vencimento"}
        assert unread_count(db, "collab-1") == 2
        assert unread_count(db, "collab-2") == 1

    def test_mark_read(self, db, inbox):
        note = mark_read(db, inbox[0].id, "collab-1")
        db.flush()
        assert note.read is True
        assert note.read_at is not None
        assert unread_count(db, "collab-1") == 1
        assert [n.id for n in list_notifications(db, "collab-1", unread_only=True)] == [inbox[1].id]

    def test_cannot_read_someone_elses(self, db, inbox):
        with pytest.raises(NotFound):
            mark_read(db, inbox[2].id, "collab-1")

    def test_mark_all_read(self, db, inbox):
        assert mark_all_read(db, "collab-1") == 2
        assert unread_count(db, "collab-1") == 0
        assert unread_count(db, "collab-2") == 1

    def test_recently_notified(self, db, inbox):
        since = datetime.now(timezone.utc) - timedelta(hours=24)
        assert recently_notified(db, "collab-1", "PDI", "Vendas", since)
        assert not recently_notified(db, "collab-1", "PDI", "Liderança", since)
        assert not recently_notified(db, "collab-2", "PDI", "Vendas", since)
