import base64

import orjson
import pytest

from accounts.models import FelicityUser
from events.exceptions import InvalidCredentialError
from events.models import Event, Registration
from events.service.qr_codec import (
    TicketCredential,
    build_credential,
    data_url_to_png,
    decode_credential,
    encode_credential,
    generate_ticket_qr,
    render_qr_data_url,
)

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"


@pytest.fixture
def credential() -> TicketCredential:
    return TicketCredential(
        ticket_id="FELABC1234",
        event_id="e1",
        participant_id="p1",
        event_name="Robo Wars",
        participant_name="Ada Lovelace",
        timestamp="2025-01-01T00:00:00+00:00",
    )


def test_encode_credential_uses_camel_case_keys(credential: TicketCredential) -> None:
    data = orjson.loads(encode_credential(credential))

    assert data == {
        "ticketId": "FELABC1234",
        "eventId": "e1",
        "participantId": "p1",
        "eventName": "Robo Wars",
        "participantName": "Ada Lovelace",
        "timestamp": "2025-01-01T00:00:00+00:00",
    }


def test_decode_credential_reads_encoded_payload(credential: TicketCredential) -> None:
    assert decode_credential(encode_credential(credential)) == credential


def test_decode_credential_timestamp_is_optional() -> None:
    raw = orjson.dumps(
        {"ticketId": "T", "eventId": "E", "participantId": "P", "eventName": "N", "participantName": "X"}
    )
    assert decode_credential(raw).timestamp is None


@pytest.mark.parametrize("raw", ["not json", "{", "[1, 2]", '"just a string"'])
def test_decode_credential_rejects_malformed_payloads(raw: str) -> None:
    with pytest.raises(InvalidCredentialError) as exc_info:
        decode_credential(raw)
    assert exc_info.value.detail == "Invalid QR code format."


@pytest.mark.parametrize("missing", ["ticketId", "eventId", "participantId", "eventName", "participantName"])
def test_decode_credential_rejects_missing_fields(credential: TicketCredential, missing: str) -> None:
    data = orjson.loads(encode_credential(credential))
    del data[missing]

    with pytest.raises(InvalidCredentialError) as exc_info:
        decode_credential(orjson.dumps(data))
    assert exc_info.value.detail == "Invalid QR code data."


def test_decode_credential_rejects_blank_ticket_id(credential: TicketCredential) -> None:
    data = orjson.loads(encode_credential(credential)) | {"ticketId": "   "}
    with pytest.raises(InvalidCredentialError):
        decode_credential(orjson.dumps(data))


def test_render_qr_data_url_is_a_png() -> None:
    data_url = render_qr_data_url("hello", size=120)

    assert data_url.startswith("data:image/png;base64,")
    png = data_url_to_png(data_url)
    assert png.startswith(PNG_MAGIC)
    assert base64.b64encode(png).decode() == data_url.removeprefix("data:image/png;base64,")


@pytest.mark.django_db
def test_build_credential_from_registration(event: Event, participant: FelicityUser) -> None:
    registration = Registration.objects.create(ticket_id="FELQR0001", event=event, participant=participant)

    credential = build_credential(registration)

    assert credential.ticket_id == "FELQR0001"
    assert credential.event_id == str(event.id)
    assert credential.participant_id == str(participant.id)
    assert credential.event_name == event.name
    assert credential.participant_name == participant.get_display_name()
    assert credential.timestamp is not None


@pytest.mark.django_db
def test_generate_ticket_qr(event: Event, participant: FelicityUser) -> None:
    registration = Registration.objects.create(ticket_id="FELQR0002", event=event, participant=participant)

    assert generate_ticket_qr(registration).startswith("data:image/png;base64,")
