"""
Pharmacy Record Schema
======================
Pydantic models for the pharmacy document. Field constraints mirror the
public API: camelCase names on the wire, snake_case attributes in Python.

    validate_create(body)  -> full document, defaults applied
    validate_update(body)  -> allow-listed subset for PUT
    validate_patch(body)   -> any submitted fields for PATCH
"""
import re
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from .errors import ValidationFailure


DISTRICTS = (
    'Colombo', 'Gampaha', 'Kalutara', 'Kandy', 'Galle',
    'Matara', 'Jaffna', 'Kurunegala', 'Badulla',
)

PHONE_PATTERN = re.compile(r'^0\d{9}$')
EMAIL_PATTERN = re.compile(r'^\S+@\S+\.\S+$')
TIME_PATTERN = re.compile(r'^([01]?[0-9]|2[0-3]):[0-5][0-9]$')

# Fields a full update (PUT) is allowed to touch
UPDATABLE_FIELDS = (
    'name', 'district', 'location', 'contactNumber',
    'email', 'operatingHours', 'pharmacistName',
)

# Maintained by the store, never taken from a request body
STORE_MANAGED_FIELDS = ('id', 'createdAt', 'updatedAt')

REQUIRED_MESSAGES = {
    'name': 'Pharmacy name is required',
    'district': 'District is required',
    'location': 'Location is required',
    'location.coordinates': 'Coordinates are required',
    'contactNumber': 'Contact number is required',
    'email': 'Email is required',
    'operatingHours': 'Operating hours are required',
    'operatingHours.open': 'Opening time is required',
    'operatingHours.close': 'Closing time is required',
    'pharmacistName': 'Pharmacist name is required',
}


class Location(BaseModel):
    """GeoJSON point, coordinates are [longitude, latitude]."""

    type: Literal['Point'] = 'Point'
    coordinates: List[float]

    @field_validator('coordinates')
    @classmethod
    def check_coordinates(cls, coords):
        if (len(coords) != 2
                or not -180 <= coords[0] <= 180
                or not -90 <= coords[1] <= 90):
            raise ValueError('Invalid coordinates')
        return coords


class OperatingHours(BaseModel):
    open: str
    close: str

    @field_validator('open')
    @classmethod
    def check_open(cls, value):
        if not TIME_PATTERN.match(value):
            raise ValueError('Use format HH:mm (e.g., 08:00)')
        return value

    @field_validator('close')
    @classmethod
    def check_close(cls, value):
        if not TIME_PATTERN.match(value):
            raise ValueError('Use format HH:mm (e.g., 22:00)')
        return value


class _PharmacyFieldRules(BaseModel):
    """Per-field rules shared by the create and update models."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra='ignore')

    @field_validator('name', check_fields=False)
    @classmethod
    def check_name(cls, value):
        if value is None or not value.strip():
            raise ValueError(REQUIRED_MESSAGES['name'])
        value = value.strip()
        if len(value) < 3:
            raise ValueError('Name must be at least 3 characters')
        return value

    @field_validator('district', check_fields=False)
    @classmethod
    def check_district(cls, value):
        if value is None:
            raise ValueError(REQUIRED_MESSAGES['district'])
        if value not in DISTRICTS:
            raise ValueError(f"`{value}` is not a valid district")
        return value

    @field_validator('contact_number', check_fields=False)
    @classmethod
    def check_contact_number(cls, value):
        if value is None:
            raise ValueError(REQUIRED_MESSAGES['contactNumber'])
        if not PHONE_PATTERN.match(value):
            raise ValueError('Please enter a valid Sri Lankan phone number (10 digits starting with 0)')
        return value

    @field_validator('email', check_fields=False)
    @classmethod
    def check_email(cls, value):
        if value is None:
            raise ValueError(REQUIRED_MESSAGES['email'])
        value = value.strip().lower()
        if not EMAIL_PATTERN.match(value):
            raise ValueError('Please enter a valid email')
        return value

    @field_validator('pharmacist_name', check_fields=False)
    @classmethod
    def check_pharmacist_name(cls, value):
        if value is None or not value.strip():
            raise ValueError(REQUIRED_MESSAGES['pharmacistName'])
        return value

    @field_validator('location', 'operating_hours', check_fields=False)
    @classmethod
    def check_present(cls, value, info):
        if value is None:
            raise ValueError(REQUIRED_MESSAGES[to_camel(info.field_name)])
        return value


class PharmacyCreate(_PharmacyFieldRules):
    name: str
    district: str
    location: Location
    contact_number: str
    email: str
    operating_hours: OperatingHours
    is_active: bool = True
    pharmacist_name: str


class PharmacyUpdate(_PharmacyFieldRules):
    """Every field optional; only the submitted ones are validated."""

    name: Optional[str] = None
    district: Optional[str] = None
    location: Optional[Location] = None
    contact_number: Optional[str] = None
    email: Optional[str] = None
    operating_hours: Optional[OperatingHours] = None
    pharmacist_name: Optional[str] = None


class PharmacyPatch(PharmacyUpdate):
    """Known fields are validated, anything else is kept as submitted."""

    model_config = ConfigDict(extra='allow')

    is_active: Optional[bool] = None

    @field_validator('is_active')
    @classmethod
    def check_is_active(cls, value):
        if value is None:
            raise ValueError('isActive must be true or false')
        return value


def validation_messages(exc):
    """Flatten a pydantic ValidationError into human readable messages."""
    messages = []
    for error in exc.errors():
        field = '.'.join(str(part) for part in error['loc'])
        missing = error['type'] == 'missing' or (error.get('input', '') is None and field in REQUIRED_MESSAGES)
        if missing:
            messages.append(REQUIRED_MESSAGES.get(field, f"{field} is required"))
        elif error['type'] == 'value_error':
            messages.append(str(error['ctx']['error']))
        else:
            messages.append(f"{field}: {error['msg']}")
    return messages


def _ensure_object(body):
    if not isinstance(body, dict):
        raise ValidationFailure('Request body must be a JSON object')
    return body


def _validate(model, body):
    try:
        return model.model_validate(body)
    except ValidationError as exc:
        raise ValidationFailure(validation_messages(exc)) from exc


def _dump_submitted(instance):
    """Top-level fields the client actually sent, nested defaults included."""
    fields = type(instance).model_fields
    submitted = {fields[name].alias or name for name in instance.model_fields_set if name in fields}
    document = instance.model_dump(by_alias=True)
    return {key: value for key, value in document.items() if key in submitted}


def validate_create(body):
    """Validate a create payload and return the document to store."""
    return _validate(PharmacyCreate, _ensure_object(body)).model_dump(by_alias=True)


def validate_update(body):
    """Validate a full update: unknown fields are silently dropped."""
    body = _ensure_object(body)
    allowed = {key: value for key, value in body.items() if key in UPDATABLE_FIELDS}
    return _dump_submitted(_validate(PharmacyUpdate, allowed))


def validate_patch(body):
    """Validate a partial update: unknown fields pass through untouched."""
    body = _ensure_object(body)
    changes = {key: value for key, value in body.items() if key not in STORE_MANAGED_FIELDS}
    patch = _validate(PharmacyPatch, changes)
    result = _dump_submitted(patch)
    result.update(patch.model_extra or {})
    return result
