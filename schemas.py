"""Request payload schemas.

Every write endpoint validates its JSON body here before touching the
database. Field names are camelCase on the wire; the models expose them as
snake_case attributes.
"""
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from database import (
    AppointmentStatus,
    BloodType,
    DonationStatus,
    InventoryStatus,
    RequestStatus,
    RequestUrgency,
    Role,
)


def _naive_utc(value):
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class Payload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra='ignore')

    @field_validator('*', mode='after')
    @classmethod
    def _store_naive_utc(cls, value):
        return _naive_utc(value)

    def provided(self):
        """Fields the client actually sent, keyed by attribute name."""
        return self.model_dump(exclude_unset=True)


class RegisterPayload(Payload):
    name: str = Field(min_length=2)
    email: EmailStr
    password: str = Field(min_length=8)
    role: Role

    @field_validator('role')
    @classmethod
    def _self_service_roles(cls, value):
        if value == Role.ADMIN:
            raise ValueError('Role must be DONOR or RECIPIENT')
        return value


class LoginPayload(Payload):
    email: EmailStr
    password: str = Field(min_length=1)


class UserUpdatePayload(Payload):
    name: Optional[str] = Field(default=None, min_length=2)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=8)
    role: Optional[Role] = None


class InventoryCreatePayload(Payload):
    blood_type: BloodType
    quantity: int = Field(gt=0)
    expiry_date: datetime
    status: InventoryStatus = InventoryStatus.AVAILABLE


class InventoryUpdatePayload(Payload):
    blood_type: Optional[BloodType] = None
    quantity: Optional[int] = Field(default=None, gt=0)
    expiry_date: Optional[datetime] = None
    status: Optional[InventoryStatus] = None


class InventoryFilter(Payload):
    blood_type: Optional[BloodType] = None
    status: Optional[InventoryStatus] = None


class DonationCreatePayload(Payload):
    donor_id: Optional[str] = None
    donation_date: datetime
    quantity: int = Field(default=1, gt=0)
    blood_type: Optional[BloodType] = None
    status: DonationStatus = DonationStatus.COMPLETED
    notes: Optional[str] = None


class DonationUpdatePayload(Payload):
    blood_type: Optional[BloodType] = None
    quantity: Optional[int] = Field(default=None, gt=0)
    donation_date: Optional[datetime] = None
    status: Optional[DonationStatus] = None
    notes: Optional[str] = None


class AppointmentCreatePayload(Payload):
    appointment_date: datetime
    notes: Optional[str] = None


class AppointmentUpdatePayload(Payload):
    appointment_date: Optional[datetime] = None
    status: Optional[AppointmentStatus] = None
    notes: Optional[str] = None


class BloodRequestCreatePayload(Payload):
    blood_type: BloodType
    quantity: int = Field(default=1, gt=0)
    urgency: RequestUrgency = RequestUrgency.NORMAL
    notes: Optional[str] = None


class BloodRequestUpdatePayload(Payload):
    blood_type: Optional[BloodType] = None
    quantity: Optional[int] = Field(default=None, gt=0)
    urgency: Optional[RequestUrgency] = None
    status: Optional[RequestStatus] = None
    notes: Optional[str] = None
    blood_inventory_id: Optional[str] = None
    fulfilled_date: Optional[datetime] = None


def validation_messages(exc: ValidationError):
    """Flatten a pydantic error into field-level messages for the client."""
    messages = []
    for err in exc.errors():
        messages.append({
            'field': '.'.join(str(part) for part in err['loc']) or None,
            'message': err['msg'],
            'type': err['type'],
        })
    return messages
