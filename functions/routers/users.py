"""User administration functions: create-user, reset-password.

Every failure, including a rejected caller, answers 400 with the error
envelope.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from common.errors import HubError, ValidationError
from modules.users import admin
from modules.users.auth_admin import AuthAdminClient

from ..deps import get_auth_admin_client, get_db, resolve_caller

logger = logging.getLogger(__name__)
router = APIRouter()


class CreateUserRequest(BaseModel):
    email: Optional[str] = Field(default=None, max_length=255)
    full_name: Optional[str] = Field(default=None, max_length=255)
    display_name: Optional[str] = Field(default=None, max_length=255)
    department: Optional[str] = None
    job_title: Optional[str] = Field(default=None, max_length=255)
    role: str = "collaborator"


class ResetPasswordRequest(BaseModel):
    user_id: Optional[str] = None


def _bad_request(e: HubError) -> HubError:
    return ValidationError(e.message, **e.extra)


@router.post("/create-user")
async def create_user(
    body: CreateUserRequest,
    authorization: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
    client: AuthAdminClient = Depends(get_auth_admin_client),
):
    try:
        caller = resolve_caller(db, authorization)
        return await admin.create_user(
            db, caller, client,
            email=body.email,
            full_name=body.full_name,
            display_name=body.display_name,
            department=body.department,
            job_title=body.job_title,
            role=body.role,
        )
    except HubError as e:
        logger.error(f"Error in create-user: {e.message}")
        raise _bad_request(e)


@router.post("/reset-password")
async def reset_password(
    body: ResetPasswordRequest,
    authorization: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
    client: AuthAdminClient = Depends(get_auth_admin_client),
):
    try:
        caller = resolve_caller(db, authorization)
        return await admin.reset_password(db, caller, client, body.user_id)
    except HubError as e:
        logger.error(f"Error in reset-password: {e.message}")
        raise _bad_request(e)
