"""Hosted database models and session helpers."""

from .database import close_db, get_engine, get_session, get_session_factory, init_db
from .models import (
    PDI,
    ActivityLog,
    Base,
    Notification,
    Profile,
    QualificationCriterion,
    Sponsor,
    SponsorStageHistory,
    StrategicLead,
    StrategicLeadHistory,
    StrategicSession,
    StrategicSyncLog,
    Task,
    TaskHistory,
    Transcription,
    UserRole,
)

__all__ = [
    'Base', 'get_engine', 'get_session', 'get_session_factory', 'init_db', 'close_db',
    'Profile', 'UserRole', 'ActivityLog',
    'Task', 'TaskHistory', 'Notification', 'PDI',
    'Sponsor', 'SponsorStageHistory',
    'StrategicSession', 'QualificationCriterion', 'StrategicLead',
    'StrategicLeadHistory', 'StrategicSyncLog',
    'Transcription',
]
