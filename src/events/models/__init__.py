from .event import Event, EventQuerySet, MerchandiseVariant
from .registration import Registration, RegistrationQuerySet

__all__ = [
    "Event",
    "EventQuerySet",
    "MerchandiseVariant",
    "Registration",
    "RegistrationQuerySet",
]
