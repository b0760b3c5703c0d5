import typing as t
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from ninja import ModelSchema, Schema
from pydantic import AwareDatetime, Field, HttpUrl, StringConstraints, field_validator, model_validator

from accounts.schema import MinimalUserSchema
from common.schema import OneToTwoHundredString, StrippedString
from events.models import Event, MerchandiseVariant, Registration
from events.service import eligibility

FieldType = t.Literal["text", "email", "number", "textarea", "select", "radio", "checkbox"]
ChoiceFieldTypes = ("select", "radio", "checkbox")
Description = t.Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=5000)]

# ---- Custom form ----


class FormFieldValidationSchema(Schema):
    min: float | None = None
    max: float | None = None
    pattern: str | None = None


class FormFieldSchema(Schema):
    label: OneToTwoHundredString
    field_type: FieldType = "text"
    placeholder: StrippedString = ""
    options: list[StrippedString] = Field(default_factory=list)
    required: bool = False
    validation: FormFieldValidationSchema | None = None

    @model_validator(mode="after")
    def check_options(self) -> t.Self:
        """Choice fields need options to choose from."""
        if self.field_type in ("select", "radio") and not self.options:
            raise ValueError(f"Field '{self.label}' of type {self.field_type} needs at least one option.")
        return self


# ---- Merchandise ----


class VariantCreateSchema(Schema):
    name: t.Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
    size: StrippedString = ""
    color: StrippedString = ""
    additional_info: StrippedString = ""
    stock: int = Field(0, ge=0)
    price_modifier: Decimal = Decimal("0")


class VariantSchema(ModelSchema):
    class Meta:
        model = MerchandiseVariant
        fields = ["id", "name", "size", "color", "additional_info", "stock", "price_modifier"]


# ---- Events ----


class EventEditSchema(Schema):
    """Every field is optional. Only the fields present in the payload are applied."""

    name: OneToTwoHundredString | None = None
    description: Description | None = None
    event_type: Event.EventType | None = None
    eligibility: Event.Eligibility | None = None
    registration_deadline: AwareDatetime | None = None
    event_start_date: AwareDatetime | None = None
    event_end_date: AwareDatetime | None = None
    registration_limit: int | None = Field(None, ge=1)
    registration_fee: Decimal | None = Field(None, ge=0)
    tags: list[StrippedString] | None = None
    custom_form: list[FormFieldSchema] | None = None
    item_details: StrippedString | None = None
    purchase_limit: int | None = Field(None, ge=1)
    variants: list[VariantCreateSchema] | None = None
    status: Event.EventStatus | None = None
    venue: StrippedString | None = None
    image_url: HttpUrl | None = None
    external_links: list[HttpUrl] | None = None


class EventCreateSchema(EventEditSchema):
    name: OneToTwoHundredString
    description: Description
    event_type: Event.EventType = Event.EventType.NORMAL
    eligibility: Event.Eligibility = Event.Eligibility.ALL
    status: Event.EventStatus = Event.EventStatus.DRAFT

    @field_validator("status")
    @classmethod
    def check_initial_status(cls, value: Event.EventStatus) -> Event.EventStatus:
        """New events start as drafts or get published right away."""
        if value not in (Event.EventStatus.DRAFT, Event.EventStatus.PUBLISHED):
            raise ValueError("New events must be draft or published.")
        return value


class EventBaseSchema(ModelSchema):
    organizer_id: UUID
    organizer_name: str
    variants: list[VariantSchema] = Field(default_factory=list)
    is_registration_open: bool
    has_capacity: bool
    has_merchandise_stock: bool | None = None
    is_ongoing: bool

    class Meta:
        model = Event
        fields = [
            "id",
            "name",
            "description",
            "event_type",
            "eligibility",
            "tags",
            "registration_deadline",
            "event_start_date",
            "event_end_date",
            "registration_limit",
            "current_registrations",
            "registration_fee",
            "custom_form",
            "item_details",
            "purchase_limit",
            "total_stock",
            "status",
            "venue",
            "image_url",
            "external_links",
            "created_at",
            "updated_at",
        ]

    @staticmethod
    def resolve_organizer_name(obj: Event) -> str:
        return obj.organizer.get_display_name()

    @staticmethod
    def resolve_variants(obj: Event) -> list[MerchandiseVariant]:
        return list(obj.variants.all())

    @staticmethod
    def resolve_is_registration_open(obj: Event) -> bool:
        return eligibility.is_registration_open(obj)

    @staticmethod
    def resolve_has_capacity(obj: Event) -> bool:
        return eligibility.has_capacity(obj)

    @staticmethod
    def resolve_has_merchandise_stock(obj: Event) -> bool | None:
        return eligibility.has_merchandise_stock(obj)

    @staticmethod
    def resolve_is_ongoing(obj: Event) -> bool:
        return obj.is_ongoing()


class EventInListSchema(EventBaseSchema):
    pass


class EventDetailSchema(EventBaseSchema):
    """Adds the viewer's own eligibility and registration state for logged-in participants."""

    is_eligible: bool | None = None
    is_registered: bool | None = None

    @staticmethod
    def resolve_is_eligible(obj: Event, context: dict[str, t.Any]) -> bool | None:
        user = context["request"].user
        if not user.is_authenticated or user.role != user.Role.PARTICIPANT:
            return None
        return eligibility.is_eligible(user.participant_type, obj.eligibility)

    @staticmethod
    def resolve_is_registered(obj: Event, context: dict[str, t.Any]) -> bool | None:
        user = context["request"].user
        if not user.is_authenticated or user.role != user.Role.PARTICIPANT:
            return None
        return obj.registrations.active().filter(participant=user).exists()


class OrganizerEventSchema(EventBaseSchema):
    active_registrations: int

    @staticmethod
    def resolve_active_registrations(obj: Event) -> int:
        return obj.registrations.active().count()


class MinimalEventSchema(ModelSchema):
    class Meta:
        model = Event
        fields = ["id", "name", "event_type", "status", "event_start_date", "event_end_date", "venue"]


class CalendarLinksSchema(Schema):
    google_calendar_url: str
    outlook_url: str


# ---- Registrations ----


class RegistrationIntentSchema(Schema):
    form_responses: dict[str, t.Any] | None = None
    variant_id: UUID | None = None
    quantity: int = Field(1, ge=1)


class RegistrationSchema(ModelSchema):
    event: MinimalEventSchema

    class Meta:
        model = Registration
        fields = [
            "id",
            "ticket_id",
            "status",
            "payment_status",
            "payment_amount",
            "form_responses",
            "variant",
            "variant_name",
            "quantity",
            "total_price",
            "payment_proof_url",
            "payment_proof_uploaded_at",
            "payment_proof_note",
            "approval_status",
            "reviewed_at",
            "review_comment",
            "qr_code",
            "attended",
            "attended_at",
            "cancelled_at",
            "cancellation_reason",
            "created_at",
        ]


class RegistrationCreatedSchema(Schema):
    message: str
    registration: RegistrationSchema


class AdminRegistrationSchema(ModelSchema):
    participant: MinimalUserSchema
    participant_type: str | None = None
    reviewed_by_id: UUID | None = None
    checked_in_by_id: UUID | None = None

    class Meta:
        model = Registration
        fields = [
            "id",
            "ticket_id",
            "status",
            "payment_status",
            "payment_amount",
            "form_responses",
            "variant",
            "variant_name",
            "quantity",
            "total_price",
            "payment_proof_url",
            "payment_proof_uploaded_at",
            "payment_proof_note",
            "approval_status",
            "reviewed_at",
            "review_comment",
            "attended",
            "attended_at",
            "cancelled_at",
            "cancellation_reason",
            "created_at",
        ]

    @staticmethod
    def resolve_participant_type(obj: Registration) -> str | None:
        return obj.participant.participant_type


class CancelRegistrationSchema(Schema):
    reason: StrippedString = ""


class PaymentProofSchema(Schema):
    image_url: HttpUrl
    note: StrippedString = ""


class PaymentReviewSchema(Schema):
    action: StrippedString = Field(..., description="Either 'approve' or 'reject'.")
    comment: StrippedString = ""


# ---- Check-in ----


class CheckInRequestSchema(Schema):
    """Either the raw QR payload or a manually entered ticket id. The ticket id wins if both are sent."""

    qr_data: str | None = None
    ticket_id: str | None = None


class CheckInResponseSchema(Schema):
    message: str
    already_checked_in: bool
    checked_in_at: datetime | None
    registration: AdminRegistrationSchema


class AttendanceStatsSchema(Schema):
    total: int
    attended: int
    not_attended: int
    attendance_rate: int
    registrations: list[AdminRegistrationSchema]
