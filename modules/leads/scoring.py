"""Lead scoring from free-text survey answers.

Revenue (faturamento) and profit (lucro) answers are Portuguese bracket
phrases such as "De R$ 30.000 a R$ 50.000". Each is mapped to points by
substring rules, checked from the highest bracket down. A lead is
qualified when both its revenue and its profit brackets qualify.
"""
import re
from dataclasses import dataclass, field
from typing import Mapping, NamedTuple, Optional


class BracketScore(NamedTuple):
    points: int
    qualifies: bool


ZERO = BracketScore(0, False)

# (needles, revenue score, profit score), highest bracket first
_BRACKETS = [
    (("100.000", "100000", "acima de r$100", "acima de 100"), BracketScore(60, True), BracketScore(60, True)),
    (("50.000", "50000"), BracketScore(45, True), BracketScore(45, True)),
    (("30.000", "30000"), BracketScore(35, True), BracketScore(35, True)),
    (("15.000", "15000"), BracketScore(25, True), BracketScore(25, True)),
    (("10.000", "10000"), BracketScore(15, False), BracketScore(20, True)),
]
_FIVE_K = ("5.000", "5000")
_THREE_K = ("3.000", "3000")


def _normalize(text) -> str:
    return re.sub(r"\s+", " ", str(text or "").lower()).strip()


def _has(t: str, needles) -> bool:
    return any(n in t for n in needles)


def _score_bracket(text: Optional[str], column: int) -> BracketScore:
    t = _normalize(text)
    if not t:
        return ZERO
    for needles, revenue, profit in _BRACKETS:
        if _has(t, needles):
            return (revenue, profit)[column]
    if _has(t, _FIVE_K):
        # "R$3k-R$5k" is the lower bracket, "R$5k-R$10k" the upper one
        return BracketScore(5, False) if _has(t, _THREE_K) else BracketScore(10, False)
    if _has(t, _THREE_K):
        return BracketScore(5, False)
    return ZERO


def score_faturamento(text: Optional[str]) -> BracketScore:
    """Monthly revenue bracket."""
    return _score_bracket(text, 0)


def score_lucro(text: Optional[str]) -> BracketScore:
    """Monthly profit bracket. From 10k up every bracket qualifies."""
    return _score_bracket(text, 1)


def score_empreita(text: Optional[str]) -> int:
    """10 points for a plain 'no' to working by contract labour."""
    t = str(text or "").lower().strip()
    return 10 if t in ("não", "nao") else 0


@dataclass
class LeadScore:
    score: int
    is_qualified: bool
    faturamento_qualifies: bool
    lucro_qualifies: bool
    breakdown: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "isQualified": self.is_qualified,
            "breakdown": self.breakdown,
            "faturamentoQualifies": self.faturamento_qualifies,
            "lucroQualifies": self.lucro_qualifies,
        }


def _answer(extra: Mapping, key: str) -> str:
    # sheet imports and API callers may send numbers
    value = extra.get(key) or extra.get(key.capitalize())
    return "" if value is None else str(value)


def compute_lead_score(extra_data: Optional[Mapping]) -> LeadScore:
    """Score a lead from its survey answers (lead.extra_data)."""
    extra = extra_data or {}
    fat = score_faturamento(_answer(extra, "faturamento"))
    luc = score_lucro(_answer(extra, "lucro"))
    emp = score_empreita(_answer(extra, "empreita"))

    return LeadScore(
        score=fat.points + luc.points + emp,
        is_qualified=fat.qualifies and luc.qualifies,
        faturamento_qualifies=fat.qualifies,
        lucro_qualifies=luc.qualifies,
        breakdown={"faturamento": fat.points, "lucro": luc.points, "empreita": emp},
    )


def is_qualified(extra_data: Optional[Mapping]) -> bool:
    return compute_lead_score(extra_data).is_qualified
