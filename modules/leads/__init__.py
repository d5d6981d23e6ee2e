"""Strategic leads: scoring heuristic, sheet import, kanban and UTM analytics.

Usage:
    from modules.leads.scoring import compute_lead_score

    result = compute_lead_score({"faturamento": "Acima de R$ 100.000", "lucro": "R$ 30.000"})
    result.is_qualified  # True
"""
