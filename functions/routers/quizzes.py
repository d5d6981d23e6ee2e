"""Quiz functions: generate-quiz-from-ai."""
from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from common.auth.tokens import AuthContext
from modules.copywriting.gateway import AIGatewayClient
from modules.quizzes.generator import generate_quiz, quiz_to_dict

from ..deps import get_ai_client, get_auth_context, get_db

router = APIRouter()


class GenerateQuizRequest(BaseModel):
    prompt: Optional[Any] = None


@router.post("/generate-quiz-from-ai")
async def generate_quiz_from_ai(
    body: GenerateQuizRequest,
    caller: AuthContext = Depends(get_auth_context),
    client: AIGatewayClient = Depends(get_ai_client),
    db: Session = Depends(get_db),
):
    quiz = await generate_quiz(db, body.prompt, caller.user_id, client=client)
    return {"quiz": quiz_to_dict(quiz)}
