"""AI copy functions: rewrite-copy, validate-copy."""
from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from common.auth.tokens import AuthContext
from modules.copywriting import service
from modules.copywriting.gateway import AIGatewayClient

from ..deps import get_ai_client, get_auth_context

router = APIRouter()


class RewriteRequest(BaseModel):
    texto: Optional[Any] = None
    problemas: list[dict] = []
    sugestoes: list[str] = []


class ValidateRequest(BaseModel):
    texto: Optional[Any] = None


@router.post("/rewrite-copy")
async def rewrite_copy(
    body: RewriteRequest,
    caller: AuthContext = Depends(get_auth_context),
    client: AIGatewayClient = Depends(get_ai_client),
):
    return await service.rewrite_copy(body.texto, body.problemas, body.sugestoes, client=client)


@router.post("/validate-copy")
async def validate_copy(
    body: ValidateRequest,
    caller: AuthContext = Depends(get_auth_context),
    client: AIGatewayClient = Depends(get_ai_client),
):
    return await service.validate_copy(body.texto, client=client)
