from app.models.admin import AdminUser
from app.models.event import Event
from app.models.registration import Registration, PaymentStatus

__all__ = ["AdminUser", "Event", "Registration", "PaymentStatus"]
