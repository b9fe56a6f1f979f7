from app.schemas.auth import AdminLogin, Token
from app.schemas.event import EventCreate, EventUpdate, EventResponse, EventListResponse
from app.schemas.registration import (
    RegistrationCreate,
    RegistrationResponse,
    RegistrationCreatedResponse,
    RegistrationDeleteResponse,
)

__all__ = [
    "AdminLogin", "Token",
    "EventCreate", "EventUpdate", "EventResponse", "EventListResponse",
    "RegistrationCreate", "RegistrationResponse",
    "RegistrationCreatedResponse", "RegistrationDeleteResponse",
]
