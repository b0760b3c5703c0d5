import pytest

from accounts.models import FelicityUser
from events.models import Event, MerchandiseVariant, Registration
from events.schema import PaymentProofSchema, RegistrationIntentSchema
from events.service import payment_service
from events.service.registration_service import RegistrationService


@pytest.fixture
def confirmed_registration(event: Event, participant: FelicityUser) -> Registration:
    """The participant's confirmed registration (with QR code) for the normal event."""
    registration = RegistrationService(event=event, participant=participant).register(RegistrationIntentSchema())
    registration.refresh_from_db()
    return registration


@pytest.fixture
def pending_order(merch_event: Event, variant: MerchandiseVariant, participant: FelicityUser) -> Registration:
    """Two "Black M" T-shirts ordered by the participant, no payment proof yet."""
    return RegistrationService(event=merch_event, participant=participant).register(
        RegistrationIntentSchema(variant_id=variant.id, quantity=2)
    )


@pytest.fixture
def awaiting_order(pending_order: Registration) -> Registration:
    """The pending order with its payment proof uploaded."""
    return payment_service.upload_payment_proof(
        pending_order, PaymentProofSchema(image_url="https://pay.example.com/receipt.png", note="UPI ref 42")
    )
