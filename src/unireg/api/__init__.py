"""REST API for UniReg."""

from unireg.api.app import create_app
from unireg.api.events import Event, EventManager, EventType
from unireg.api.models import (
    AddCourseRequest,
    APIResponse,
    RegisterRequest,
    RegistrationResponse,
    RejectRequest,
)

__all__ = [
    "APIResponse",
    "AddCourseRequest",
    "Event",
    "EventManager",
    "EventType",
    "RegisterRequest",
    "RegistrationResponse",
    "RejectRequest",
    "create_app",
]
