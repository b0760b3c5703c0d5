"""QR ticket credentials.

The QR code printed on a ticket carries a small JSON document::

    {"ticketId": ..., "eventId": ..., "participantId": ..., "eventName": ..., "participantName": ..., "timestamp": ...}

It is not signed. The scanner only uses it to look the registration up and re-validates everything against
the database.
"""

import base64
import typing as t
from datetime import datetime
from io import BytesIO

import orjson
import qrcode
from django.conf import settings
from django.utils import timezone
from PIL import Image
from pydantic import BaseModel, ConfigDict, Field, StringConstraints
from pydantic import ValidationError as PydanticValidationError

from events.exceptions import InvalidCredentialError

if t.TYPE_CHECKING:
    from events.models import Registration

RequiredString = t.Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]

QR_FILL_COLOR = "#1f2937"
QR_BACK_COLOR = "white"


class TicketCredential(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    ticket_id: RequiredString = Field(alias="ticketId")
    event_id: RequiredString = Field(alias="eventId")
    participant_id: RequiredString = Field(alias="participantId")
    event_name: RequiredString = Field(alias="eventName")
    participant_name: RequiredString = Field(alias="participantName")
    timestamp: str | None = None


def build_credential(registration: "Registration", now: datetime | None = None) -> TicketCredential:
    """Build the credential for a registration."""
    now = now or timezone.now()
    return TicketCredential(
        ticket_id=registration.ticket_id,
        event_id=str(registration.event_id),
        participant_id=str(registration.participant_id),
        event_name=registration.event.name,
        participant_name=registration.participant.get_display_name(),
        timestamp=now.isoformat(),
    )


def encode_credential(credential: TicketCredential) -> str:
    """Serialize a credential to the JSON text embedded in the QR code."""
    return orjson.dumps(credential.model_dump(by_alias=True)).decode()


def decode_credential(raw: str | bytes) -> TicketCredential:
    """Parse a scanned QR payload.

    Raises:
        InvalidCredentialError: if the payload is not JSON or misses one of the identifying fields.
    """
    try:
        data = orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        raise InvalidCredentialError("Invalid QR code format.") from e
    if not isinstance(data, dict):
        raise InvalidCredentialError("Invalid QR code format.")
    try:
        return TicketCredential.model_validate(data)
    except PydanticValidationError as e:
        raise InvalidCredentialError("Invalid QR code data.") from e


def render_qr_data_url(data: str, size: int | None = None) -> str:
    """Render ``data`` as a square PNG QR code with high error correction and return it as a data URL."""
    size = size or settings.QR_CODE_SIZE
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_H,
        box_size=10,
        border=1,
    )
    qr.add_data(data)
    qr.make(fit=True)
    image = qr.make_image(fill_color=QR_FILL_COLOR, back_color=QR_BACK_COLOR).get_image()
    image = image.convert("RGB").resize((size, size), Image.Resampling.NEAREST)
    buffered = BytesIO()
    image.save(buffered, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffered.getvalue()).decode("utf-8")


def generate_ticket_qr(registration: "Registration") -> str:
    """Render the QR code for a registration's ticket."""
    return render_qr_data_url(encode_credential(build_credential(registration)))


def data_url_to_png(data_url: str) -> bytes:
    """Extract the PNG bytes from a data URL produced by :func:`render_qr_data_url`."""
    _, _, encoded = data_url.partition("base64,")
    return base64.b64decode(encoded)
