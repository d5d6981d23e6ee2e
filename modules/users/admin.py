"""Admin-only user operations: create user, reset password.

The initial (and reset) password is the local part of the user's e-mail;
the profile is flagged so the user must change it on first login.
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from common.auth.tokens import AuthContext, require_active_admin
from common.db.models import ActivityLog, Profile, UserRole
from common.errors import NotFound, ValidationError

from .auth_admin import AuthAdminClient

logger = logging.getLogger(__name__)

ROLES = {"admin", "collaborator"}


def initial_password(email: str) -> str:
    return email.split("@")[0]


def log_activity(session: Session, user_id: str, action: str,
                 entity_type: str, entity_id: str) -> None:
    """Best-effort audit row; failures are logged and ignored."""
    try:
        with session.begin_nested():
            session.add(ActivityLog(
                user_id=user_id,
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
            ))
    except Exception as e:
        logger.error(f"Failed to log activity: {e}")


async def create_user(session: Session, caller: AuthContext, client: AuthAdminClient,
                      email: str, full_name: str, display_name: Optional[str] = None,
                      department: Optional[str] = None, job_title: Optional[str] = None,
                      role: str = "collaborator") -> dict:
    require_active_admin(caller)
    if not email or not full_name:
        raise ValidationError("Email and full_name are required")
    if role not in ROLES:
        raise ValidationError(f"Invalid role: {role}")

    password = initial_password(email)
    display_name = display_name or full_name
    user = await client.create_user(
        email, password, {"full_name": full_name, "display_name": display_name}
    )
    user_id = user["id"]

    session.merge(Profile(
        id=user_id,
        email=email,
        full_name=full_name,
        display_name=display_name,
        department_id=department or None,
        job_title=job_title or None,
        must_change_password=True,
        is_active=True,
    ))
    session.merge(UserRole(user_id=user_id, role=role))
    session.flush()
    log_activity(session, caller.user_id, "user_created", "user", user_id)

    logger.info(f"User created by {caller.email}: {email} ({role})")
    return {
        "success": True,
        "user": {"id": user_id, "email": user.get("email", email)},
        "initial_password": password,
        "message": "User created successfully",
    }


async def reset_password(session: Session, caller: AuthContext, client: AuthAdminClient,
                         user_id: str) -> dict:
    require_active_admin(caller)
    if not user_id:
        raise ValidationError("user_id is required")
    target = session.get(Profile, user_id)
    if target is None:
        raise NotFound("User not found")

    password = initial_password(target.email)
    await client.update_password(user_id, password)
    target.must_change_password = True
    session.flush()
    log_activity(session, caller.user_id, "password_reset", "user", user_id)

    logger.info(f"Password reset by {caller.email} for {target.email}")
    return {
        "success": True,
        "new_password": password,
        "message": "Password reset successfully",
    }
