"""Generate a complete draft quiz from a topic.

The AI gateway returns the quiz structure through a forced tool call; the
quiz, its questions with their options, and its diagnoses are then stored
as a draft for the owner to review before publishing.
"""
import logging
import re
import secrets
import string
import unicodedata
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader
from sqlalchemy.orm import Session

from common.db.models import Quiz, QuizDiagnosis, QuizOption, QuizQuestion
from common.errors import ValidationError
from modules.copywriting.gateway import AIGatewayClient

logger = logging.getLogger(__name__)
TEMPLATE_DIR = Path(__file__).parent / "templates"

QUESTION_TYPES = ["single_choice", "multiple_choice", "scale", "text", "number", "yes_no"]
DIAGNOSIS_TYPES = ["score", "tags", "ai"]

DEFAULT_CTA = "Começar diagnóstico"
DEFAULT_COLOR = "#6366f1"

SLUG_SUFFIX_ALPHABET = string.digits + string.ascii_lowercase
SLUG_SUFFIX_LENGTH = 6

_string_list = {"type": "array", "items": {"type": "string"}}

QUIZ_TOOL = {
    "type": "function",
    "function": {
        "name": "create_quiz",
        "description": "Retorna o quiz completo com perguntas, opções e diagnósticos",
        "parameters": {
            "type": "object",
            "properties": {
                "title": {"type": "string", "description": "Título do quiz"},
                "description": {"type": "string", "description": "Descrição breve do quiz"},
                "intro_title": {"type": "string", "description": "Título da página de introdução"},
                "intro_subtitle": {"type": "string"},
                "intro_text": {"type": "string", "description": "Texto explicativo sobre o quiz"},
                "intro_cta_text": {"type": "string", "description": "Texto do botão de iniciar"},
                "questions": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "question_text": {"type": "string"},
                            "question_type": {"type": "string", "enum": QUESTION_TYPES},
                            "helper_text": {"type": "string"},
                            "is_required": {"type": "boolean"},
                            "options": {
                                "type": "array",
                                "items": {
                                    "type": "object",
                                    "properties": {
                                        "option_text": {"type": "string"},
                                        "points": {"type": "number"},
                                        "tags": _string_list,
                                    },
                                    "required": ["option_text", "points"],
                                },
                            },
                        },
                        "required": ["question_text", "question_type"],
                    },
                },
                "diagnoses": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "title": {"type": "string"},
                            "description": {"type": "string"},
                            "min_score": {"type": "number"},
                            "max_score": {"type": "number"},
                            "insights": _string_list,
                            "action_plan": {"type": "string"},
                            "color": {"type": "string", "description": "Cor hexadecimal, ex. #6366f1"},
                        },
                        "required": ["title", "min_score", "max_score"],
                    },
                },
                "diagnosis_type": {"type": "string", "enum": DIAGNOSIS_TYPES},
                "primary_color": {"type": "string"},
            },
            "required": ["title", "questions", "diagnoses"],
        },
    },
}

_env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
)


def render_prompt(name: str, **context) -> str:
    return _env.get_template(f"{name}.md.j2").render(**context)


def slugify(title: str, suffix: Optional[str] = None) -> str:
    """URL slug for a quiz title, accents stripped, with a random suffix.

    >>> slugify("Diagnóstico de Gestão!", suffix="abc123")
    'diagnostico-de-gestao-abc123'
    """
    decomposed = unicodedata.normalize("NFD", title.lower())
    ascii_title = "".join(c for c in decomposed if not unicodedata.combining(c))
    base = re.sub(r"[^a-z0-9]+", "-", ascii_title).strip("-")
    if suffix is None:
        suffix = "".join(secrets.choice(SLUG_SUFFIX_ALPHABET) for _ in range(SLUG_SUFFIX_LENGTH))
    return f"{base}-{suffix}"


def _int(value, default=None):
    if value is None:
        return default
    try:
        return int(round(float(value)))
    except (TypeError, ValueError):
        return default


def _list(value) -> list:
    return [str(v) for v in value] if isinstance(value, list) else []


def _build_question(data: dict, position: int) -> Optional[QuizQuestion]:
    text = data.get("question_text")
    if not text:
        logger.warning(f"Skipping question {position}: missing question_text")
        return None
    question_type = data.get("question_type") or "single_choice"
    if question_type not in QUESTION_TYPES:
        question_type = "single_choice"
    question = QuizQuestion(
        question_text=text,
        question_type=question_type,
        helper_text=data.get("helper_text"),
        is_required=data.get("is_required", True) is not False,
        position=position,
    )
    for j, option in enumerate(o for o in data.get("options") or [] if isinstance(o, dict)):
        if not option.get("option_text"):
            continue
        question.options.append(QuizOption(
            option_text=option["option_text"],
            points=_int(option.get("points"), 0),
            tags=_list(option.get("tags")),
            position=j,
        ))
    return question


def _build_diagnosis(data: dict, priority: int) -> Optional[QuizDiagnosis]:
    if not data.get("title"):
        logger.warning(f"Skipping diagnosis {priority}: missing title")
        return None
    return QuizDiagnosis(
        title=data["title"],
        description=data.get("description"),
        min_score=_int(data.get("min_score")),
        max_score=_int(data.get("max_score")),
        insights=_list(data.get("insights")),
        action_plan=data.get("action_plan"),
        color=data.get("color") or DEFAULT_COLOR,
        priority=priority,
    )


def build_quiz(data: dict, created_by: Optional[str]) -> Quiz:
    """Draft quiz rows from the generated structure."""
    title = data.get("title") or "Novo quiz"
    diagnosis_type = data.get("diagnosis_type") or "score"
    if diagnosis_type not in DIAGNOSIS_TYPES:
        diagnosis_type = "score"
    quiz = Quiz(
        title=title,
        slug=slugify(title),
        description=data.get("description"),
        created_by=created_by,
        intro_title=data.get("intro_title") or title,
        intro_subtitle=data.get("intro_subtitle"),
        intro_text=data.get("intro_text"),
        intro_cta_text=data.get("intro_cta_text") or DEFAULT_CTA,
        diagnosis_type=diagnosis_type,
        primary_color=data.get("primary_color") or DEFAULT_COLOR,
        status="draft",
    )
    questions = [q for q in data.get("questions") or [] if isinstance(q, dict)]
    for i, item in enumerate(questions):
        question = _build_question(item, i)
        if question is not None:
            quiz.questions.append(question)
    diagnoses = [d for d in data.get("diagnoses") or [] if isinstance(d, dict)]
    for i, item in enumerate(diagnoses):
        diagnosis = _build_diagnosis(item, i)
        if diagnosis is not None:
            quiz.diagnoses.append(diagnosis)
    return quiz


async def generate_quiz(session: Session, prompt, user_id: Optional[str],
                        client: Optional[AIGatewayClient] = None) -> Quiz:
    """Ask the gateway for a quiz about `prompt` and store it as a draft."""
    if not prompt or not isinstance(prompt, str) or not prompt.strip():
        raise ValidationError("Prompt é obrigatório")
    client = client or AIGatewayClient()

    data = await client.call_tool(
        render_prompt(
            "quiz_system",
            tool_name=QUIZ_TOOL["function"]["name"],
            question_types=QUESTION_TYPES,
            min_questions=5, max_questions=10,
            min_diagnoses=3, max_diagnoses=4,
        ),
        render_prompt("quiz_user", prompt=prompt.strip()),
        QUIZ_TOOL,
        failure_message="Erro ao gerar quiz",
    )

    quiz = build_quiz(data, user_id)
    session.add(quiz)
    session.flush()
    logger.info(f"Generated quiz '{quiz.title}' ({quiz.slug}) with "
                f"{len(quiz.questions)} questions and {len(quiz.diagnoses)} diagnoses")
    return quiz


def quiz_to_dict(quiz: Quiz) -> dict:
    return {
        "id": quiz.id,
        "title": quiz.title,
        "slug": quiz.slug,
        "description": quiz.description,
        "status": quiz.status,
        "created_by": quiz.created_by,
        "intro_title": quiz.intro_title,
        "intro_subtitle": quiz.intro_subtitle,
        "intro_text": quiz.intro_text,
        "intro_cta_text": quiz.intro_cta_text,
        "diagnosis_type": quiz.diagnosis_type,
        "primary_color": quiz.primary_color,
        "questions_count": len(quiz.questions),
        "diagnoses_count": len(quiz.diagnoses),
        "created_at": quiz.created_at.isoformat() if quiz.created_at else None,
    }
