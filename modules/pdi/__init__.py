"""Individual development plans (PDI): deadline sweep.

Usage:
    from modules.pdi.deadlines import check_pdi_deadlines

    with get_session() as session:
        check_pdi_deadlines(session, today=date(2026, 3, 6))
"""
