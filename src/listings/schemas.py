"""Validated payloads for administrative listing writes."""

from __future__ import annotations

import re
from datetime import date
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field, HttpUrl, model_validator
from pydantic.alias_generators import to_camel

from src.listings.classification import Category

_PHONE_PATTERN = r"^[\d\s\-\+\(\)]+$"
_IMAGE_URL = re.compile(r"^https?://.+\.(jpg|jpeg|png|gif|webp)$", re.IGNORECASE)


class _Payload(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        str_strip_whitespace=True,
    )


class ManagerInfoPayload(_Payload):
    manager_name: str | None = Field(default=None, max_length=100)
    manager_name_amh: str | None = Field(default=None, max_length=100)
    phone: str | None = Field(default=None, pattern=_PHONE_PATTERN)
    email: EmailStr | None = None


class RegistrationInfoPayload(_Payload):
    license_number: str | None = Field(default=None, max_length=50)
    registration_number: str | None = Field(default=None, max_length=50)
    tin: str | None = Field(default=None, max_length=30)
    legal_status: str | None = Field(default=None, max_length=80)
    registered_date: date | None = None
    renewed_from: str | None = Field(default=None, max_length=20)
    region: str | None = Field(default=None, max_length=80)
    zone: str | None = Field(default=None, max_length=80)
    subcity_woreda: str | None = Field(default=None, max_length=80)
    kebele: str | None = Field(default=None, max_length=40)
    house_no: str | None = Field(default=None, max_length=20)


class CoordinatesPayload(_Payload):
    latitude: Decimal = Field(ge=-90, le=90)
    longitude: Decimal = Field(ge=-180, le=180)


class _ListingFields(_Payload):
    description: str | None = Field(default=None, max_length=500)
    coordinates: CoordinatesPayload | None = None
    phone: str | None = Field(default=None, pattern=_PHONE_PATTERN)
    email: EmailStr | None = None
    website: HttpUrl | None = None
    special_offers: str | None = Field(default=None, max_length=200)
    images: list[str] | None = None
    paid_up_capital: Decimal | None = Field(default=None, ge=0)
    manager_info: ManagerInfoPayload | None = None
    registration_info: RegistrationInfoPayload | None = None
    meta_description: str | None = Field(default=None, max_length=200)

    @model_validator(mode="after")
    def _validate_images(self) -> "_ListingFields":
        for url in self.images or []:
            if not _IMAGE_URL.match(url):
                raise ValueError(
                    "Image must be a valid image URL (jpg, jpeg, png, gif, webp)"
                )
        return self

    def to_values(self) -> dict[str, Any]:
        """Flatten into listing column values, keeping only provided fields."""

        provided = self.model_dump(exclude_unset=True)
        values: dict[str, Any] = {}
        for key, value in provided.items():
            if key == "coordinates":
                values["latitude"] = value["latitude"] if value else None
                values["longitude"] = value["longitude"] if value else None
            elif key == "registration_info":
                values.update(value or {})
            elif key == "website":
                values["website"] = str(self.website) if value else None
            elif key == "email":
                values["email"] = str(value).lower() if value else None
            elif key == "manager_info":
                values["manager_info"] = (
                    {k: v for k, v in value.items() if v is not None}
                    if value
                    else None
                )
            else:
                values[key] = value
        return values


class ListingCreate(_ListingFields):
    """Payload for creating a listing. Category is inferred when omitted."""

    name: str = Field(min_length=2, max_length=100)
    category: Category | None = None
    location: str = Field(min_length=5)

    def to_values(self) -> dict[str, Any]:
        values = super().to_values()
        values["name"] = self.name
        values["location"] = self.location
        values["category"] = self.category.value if self.category else None
        return values


class ListingUpdate(_ListingFields):
    """Partial update; every field is optional."""

    name: str | None = Field(default=None, min_length=2, max_length=100)
    category: Category | None = None
    location: str | None = Field(default=None, min_length=5)
    is_active: bool | None = None

    def to_values(self) -> dict[str, Any]:
        values = super().to_values()
        if "category" in values and values["category"] is not None:
            values["category"] = Category(values["category"]).value
        for required in ("name", "location", "category", "is_active"):
            if required in values and values[required] is None:
                values.pop(required)
        return values
