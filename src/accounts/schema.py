"""Schema for accounts module."""

import typing as t

from ninja import ModelSchema, Schema
from pydantic import UUID4, EmailStr, Field, model_validator

from common.schema import OneToTwoHundredString, StrippedString

from .models import FelicityUser, OrganizerProfile


class FelicityUserSchema(ModelSchema):
    id: UUID4
    display_name: str

    class Meta:
        model = FelicityUser
        fields = [
            "email",
            "first_name",
            "last_name",
            "role",
            "participant_type",
            "contact_number",
            "college_name",
            "is_active",
        ]


class MinimalUserSchema(ModelSchema):
    id: UUID4
    display_name: str

    class Meta:
        model = FelicityUser
        fields = ["email", "first_name", "last_name"]


class ParticipantRegisterSchema(Schema):
    email: EmailStr
    password1: str = Field(..., min_length=8)
    password2: str
    first_name: OneToTwoHundredString
    last_name: StrippedString = ""
    contact_number: StrippedString = ""
    college_name: StrippedString = ""

    @model_validator(mode="after")
    def check_passwords_match(self) -> t.Self:
        """Both password fields must match."""
        if self.password1 != self.password2:
            raise ValueError("Passwords do not match.")
        return self


class OrganizerCreateSchema(Schema):
    login_email: EmailStr
    password: str = Field(..., min_length=8)
    name: OneToTwoHundredString
    category: OrganizerProfile.Category = OrganizerProfile.Category.OTHER
    description: StrippedString = ""
    contact_email: EmailStr | None = None
    contact_number: StrippedString = ""
    discord_webhook: str = ""


class OrganizerProfileSchema(ModelSchema):
    id: UUID4
    user: MinimalUserSchema

    class Meta:
        model = OrganizerProfile
        fields = ["name", "category", "description", "contact_email", "contact_number", "is_active", "created_at"]


class OrganizerActiveSchema(Schema):
    is_active: bool
