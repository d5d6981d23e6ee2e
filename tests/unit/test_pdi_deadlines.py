"""
Unit Tests for the PDI Deadline Sweep

Notice bands (overdue, today, within the warning window), skipping of
finished PDIs and the 24h dedupe.
"""
from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy import select, text

from common.config import ScheduleConfig
from common.db.models import PDI, Notification
from modules.notifications.service import send_notification
from modules.pdi.deadlines import check_pdi_deadlines, deadline_notice

TODAY = date(2026, 3, 10)


def add_pdi(db, title, deadline, status="em_andamento", collaborator_id="collab-1"):
    pdi = PDI(title=title, deadline=deadline, status=status, collaborator_id=collaborator_id)
    db.add(pdi)
    db.commit()
    return pdi


class TestDeadlineNotice:

    def test_overdue(self):
        notice = deadline_notice("Liderança", date(2026, 3, 8), TODAY)
        assert notice.type == "alert"
        assert notice.title == "⚠️ PDI Atrasado"
        assert "atrasado há 2 dia(s)" in notice.message

    def test_due_today(self):
        notice = deadline_notice("Liderança", TODAY, TODAY)
        assert (notice.type, notice.title) == ("alert", "🔴 PDI vence HOJE")

    @pytest.mark.parametrize("days", [1, 2, 3])
    def test_within_window(self, days):
        notice = deadline_notice("Liderança", TODAY + timedelta(days=days), TODAY)
        assert notice.type == "warning"
        assert f"vence em {days} dia(s)" in notice.message

    def test_outside_window(self):
        assert deadline_notice("Liderança", TODAY + timedelta(days=4), TODAY) is None

    def test_custom_window(self):
        assert deadline_notice("Liderança", TODAY + timedelta(days=5), TODAY, warning_days=7).type == "warning"


class TestCheckPdiDeadlines:

    def test_notifies_relevant_open_pdis(self, db):
        late = add_pdi(db, "Comunicação", date(2026, 3, 1))
        soon = add_pdi(db, "Orçamentos", date(2026, 3, 12), collaborator_id="collab-2")
        add_pdi(db, "Finalizado", date(2026, 3, 1), status="finalizado")
        add_pdi(db, "Distante", date(2026, 4, 30))

        result = check_pdi_deadlines(db, TODAY)

        assert result["success"] is True
        assert sorted(result["pdi_ids"]) == sorted([late.id, soon.id])
        assert result["message"] == "Verificação concluída. 2 notificações enviadas."
        by_recipient = {n.recipient_id: n for n in db.scalars(select(Notification))}
        assert by_recipient["collab-1"].type == "alert"
        assert by_recipient["collab-2"].type == "warning"
        assert by_recipient["collab-2"].sender_id is None

    def test_second_run_is_deduplicated(self, db):
        add_pdi(db, "Comunicação", date(2026, 3, 1))

        check_pdi_deadlines(db, TODAY)
        again = check_pdi_deadlines(db, TODAY)

        assert again["pdi_ids"] == []
        assert len(db.scalars(select(Notification)).all()) == 1

    def test_old_notification_does_not_block(self, db):
        add_pdi(db, "Comunicação", date(2026, 3, 1))
        old = send_notification(db, "collab-1", "⚠️ PDI Atrasado", 'O PDI "Comunicação" está atrasado.')
        old.created_at = datetime.now(timezone.utc) - timedelta(hours=30)
        db.commit()

        result = check_pdi_deadlines(db, TODAY)

        assert len(result["pdi_ids"]) == 1

    def test_custom_window(self, db):
        add_pdi(db, "Longo prazo", date(2026, 3, 17))
        assert check_pdi_deadlines(db, TODAY)["pdi_ids"] == []
        wide = check_pdi_deadlines(db, TODAY, ScheduleConfig(pdi_warning_days=7))
        assert len(wide["pdi_ids"]) == 1

    def test_reads_the_portuguese_columns(self, db):
        db.execute(text(
            "INSERT INTO pdis (id, titulo, colaborador_id, data_limite, status, created_at) "
            "VALUES ('pdi-raw', 'Negociação', 'collab-3', '2026-03-10', 'em_andamento', '2026-01-01 00:00:00')"
        ))
        db.commit()

        result = check_pdi_deadlines(db, TODAY)

        assert result["pdi_ids"] == ["pdi-raw"]
        notice = db.scalars(select(Notification)).one()
        assert notice.recipient_id == "collab-3"
        assert '"Negociação"' in notice.message
