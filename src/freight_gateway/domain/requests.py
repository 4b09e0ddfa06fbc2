"""Request DTOs for the trip and payment routes.

Each model coerces the loosely-typed JSON body the browser sends (strings are
trimmed, blank optional values become ``None``, numeric strings are parsed)
and enforces the length, range and enum rules before any remote call is made.
``parse_request`` turns a pydantic ``ValidationError`` into ``InvalidInputError``
with one readable message per failed rule.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from typing import Annotated, Any, ClassVar, TypeVar

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from freight_gateway.domain.models import PAYMENT_STATUSES, PAYMENT_TYPES, TRIP_STAGES
from freight_gateway.errors import InvalidInputError

MAX_AMOUNT = 1_000_000_000_000
LOCATION_MAX_LENGTH = 120
VEHICLE_TYPE_MAX_LENGTH = 120
VEHICLE_LENGTH_MAX_LENGTH = 40
INTERNAL_NOTES_MAX_LENGTH = 500
MAX_WEIGHT = 99_999
MAX_DISTANCE_KM = 999_999
MAX_TEXT = 120
MAX_NOTES = 500
MAX_UPI_ID = 120
MAX_UPI_QR_SIZE_BYTES = 10 * 1024 * 1024
MAX_PAYMENT_PROOF_SIZE_BYTES = 15 * 1024 * 1024
QUEUE_DEFAULT_LIMIT = 100
QUEUE_MAX_LIMIT = 200
TRIP_LIST_DEFAULT_LIMIT = 50
TRIP_LIST_MAX_LIMIT = 500
VEHICLE_LIST_DEFAULT_LIMIT = 50
VEHICLE_LIST_MAX_LIMIT = 200

IFSC_PATTERN = re.compile(r"^[A-Z]{4}0[A-Z0-9]{6}$")
ACCOUNT_NUMBER_PATTERN = re.compile(r"^\d{6,34}$")
UPI_ID_PATTERN = re.compile(r"^[a-zA-Z0-9.\-_]{2,64}@[a-zA-Z]{2,64}$")
ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

PAYMENT_PROOF_MIME_TYPES = frozenset(
    {"image/jpeg", "image/jpg", "image/png", "image/webp", "application/pdf"}
)
PAYMENT_PROOF_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "webp", "pdf"})

_FILE_EXT_RE = re.compile(r"(?:\.([^.]+))?$")

M = TypeVar("M", bound=BaseModel)


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------

def _trimmed_text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _optional_text(value: Any) -> str | None:
    return _trimmed_text(value) or None


def _optional_number(value: Any) -> int | float | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError("must be a number")
    if isinstance(value, (int, float)):
        try:
            parsed = float(value)
        except OverflowError:
            raise ValueError("must be a number") from None
    elif isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            raise ValueError("must be a number") from None
    else:
        raise ValueError("must be a number")
    if not math.isfinite(parsed):
        raise ValueError("must be a number")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and parsed.is_integer():
        return int(parsed)
    return parsed


def _paging_number(value: Any, default: int) -> int | float:
    """Paging value from a query string. Blank counts as 0, garbage as ``default``."""
    if value is None:
        return default
    if isinstance(value, str) and not value.strip():
        return 0
    try:
        parsed = _optional_number(value)
    except ValueError:
        return default
    return default if parsed is None else parsed


TrimmedText = Annotated[str, BeforeValidator(_trimmed_text)]
OptionalText = Annotated[str | None, BeforeValidator(_optional_text)]
OptionalNumber = Annotated[int | float | None, BeforeValidator(_optional_number)]


def extract_file_ext(file_name: str) -> str | None:
    """Lower-cased extension after the last dot, or None."""
    match = _FILE_EXT_RE.search(file_name)
    ext = (match.group(1) or "").lower() if match else ""
    return ext or None


def _max_length(value: str | None, limit: int) -> str | None:
    if value and len(value) > limit:
        raise ValueError(f"must be at most {limit} characters")
    return value


def _in_range(value: int | float | None, low: float, high: float) -> int | float | None:
    if value is not None and (value < low or value > high):
        raise ValueError("is out of range")
    return value


def _required_message(missing: list[str]) -> str:
    verb = "is" if len(missing) == 1 else "are"
    return f"{', '.join(missing)} {verb} required"


def _format_error(error: Mapping[str, Any]) -> str:
    ctx = error.get("ctx") or {}
    cause = ctx.get("error")
    message = str(cause) if cause is not None else str(error.get("msg", "Invalid input"))
    loc = ".".join(str(part) for part in error.get("loc", ()))
    return f"{loc} {message}" if loc else message


def parse_request(model: type[M], payload: object) -> M:
    """Validate ``payload`` into ``model`` or raise ``InvalidInputError``."""
    data = payload if isinstance(payload, Mapping) else {}
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise InvalidInputError(errors=[_format_error(e) for e in exc.errors()]) from exc


class RequestModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_default=True,
        frozen=True,
    )


# ---------------------------------------------------------------------------
# Trips
# ---------------------------------------------------------------------------

class TripUpdateRequest(RequestModel):
    """Editable fields of a trip request. Blank values keep the stored ones."""

    pickup_location: OptionalText = None
    drop_location: OptionalText = None
    vehicle_type: OptionalText = None
    vehicle_length: OptionalText = None
    weight_estimate: OptionalNumber = None
    planned_km: OptionalNumber = None
    schedule_date: OptionalText = None
    trip_amount: OptionalNumber = None
    internal_notes: OptionalText = None

    @field_validator("pickup_location", "drop_location")
    @classmethod
    def _location_length(cls, value: str | None) -> str | None:
        return _max_length(value, LOCATION_MAX_LENGTH)

    @field_validator("vehicle_type")
    @classmethod
    def _vehicle_type_length(cls, value: str | None) -> str | None:
        return _max_length(value, VEHICLE_TYPE_MAX_LENGTH)

    @field_validator("vehicle_length")
    @classmethod
    def _vehicle_length_length(cls, value: str | None) -> str | None:
        return _max_length(value, VEHICLE_LENGTH_MAX_LENGTH)

    @field_validator("internal_notes")
    @classmethod
    def _notes_length(cls, value: str | None) -> str | None:
        return _max_length(value, INTERNAL_NOTES_MAX_LENGTH)

    @field_validator("weight_estimate")
    @classmethod
    def _weight_range(cls, value: int | float | None) -> int | float | None:
        return _in_range(value, 0, MAX_WEIGHT)

    @field_validator("planned_km")
    @classmethod
    def _distance_range(cls, value: int | float | None) -> int | float | None:
        return _in_range(value, 0, MAX_DISTANCE_KM)

    @field_validator("trip_amount")
    @classmethod
    def _amount_range(cls, value: int | float | None) -> int | float | None:
        return _in_range(value, 0, MAX_AMOUNT)

    def to_params(self) -> dict[str, object]:
        return {
            "p_pickup_location": self.pickup_location,
            "p_drop_location": self.drop_location,
            "p_vehicle_type": self.vehicle_type,
            "p_vehicle_length": self.vehicle_length,
            "p_weight_estimate": self.weight_estimate,
            "p_planned_km": self.planned_km,
            "p_schedule_date": self.schedule_date,
            "p_trip_amount": self.trip_amount,
            "p_internal_notes": self.internal_notes,
        }


class TripConfirmRequest(TripUpdateRequest):
    """Quote details fixed when a quoted trip is confirmed."""

    ops_vehicles_owner_id: OptionalText = None

    @model_validator(mode="after")
    def _require_quote(self) -> "TripConfirmRequest":
        required = {
            "pickupLocation": self.pickup_location,
            "dropLocation": self.drop_location,
            "vehicleType": self.vehicle_type,
            "vehicleLength": self.vehicle_length,
            "scheduleDate": self.schedule_date,
            "tripAmount": self.trip_amount,
        }
        missing = [name for name, value in required.items() if value is None]
        if missing:
            raise ValueError(_required_message(missing))
        return self

    def to_params(self) -> dict[str, object]:
        params = super().to_params()
        params["p_ops_vehicles_owner_id"] = self.ops_vehicles_owner_id
        return params


class TripCreateRequest(TripUpdateRequest):
    """A new trip request. It enters the workflow at ``request_received``."""

    customer_id: OptionalText = None

    @model_validator(mode="after")
    def _require_customer(self) -> "TripCreateRequest":
        if self.customer_id is None:
            raise ValueError("Customer is required")
        return self

    def to_params(self) -> dict[str, object]:
        return {"p_customer_id": self.customer_id, **super().to_params()}


class AssignVehicleRequest(RequestModel):
    vehicle_id: OptionalText = None
    driver_id: OptionalText = None

    @model_validator(mode="after")
    def _require_vehicle(self) -> "AssignVehicleRequest":
        if self.vehicle_id is None:
            raise ValueError("Vehicle is required")
        return self


class FileMetadata(RequestModel):
    file_name: TrimmedText = ""
    mime_type: TrimmedText = ""
    file_size_bytes: OptionalNumber = None

    @property
    def file_ext(self) -> str | None:
        return extract_file_ext(self.file_name) if self.file_name else None


class UploadPrepareRequest(FileMetadata):
    """File announced before the presigned upload URL is issued."""

    @model_validator(mode="after")
    def _require_file(self) -> "UploadPrepareRequest":
        if (
            not self.file_name
            or not self.mime_type
            or self.file_size_bytes is None
            or not self.file_ext
        ):
            raise ValueError("fileName, mimeType, fileSizeBytes are required")
        return self


class UploadConfirmRequest(FileMetadata):
    """A finished upload, identified by the object key the server issued."""

    object_key: TrimmedText = ""

    @model_validator(mode="after")
    def _require_upload(self) -> "UploadConfirmRequest":
        if (
            not self.object_key
            or not self.file_name
            or not self.mime_type
            or self.file_size_bytes is None
        ):
            raise ValueError("objectKey, fileName, mimeType, fileSizeBytes are required")
        return self

    def to_params(self) -> dict[str, object]:
        return {
            "p_object_key": self.object_key,
            "p_file_name": self.file_name,
            "p_mime_type": self.mime_type,
            "p_file_size_bytes": self.file_size_bytes,
        }


class AdvanceRequestCreate(RequestModel):
    amount: OptionalNumber = None
    beneficiary: TrimmedText = ""
    notes: TrimmedText = ""
    payment_method: TrimmedText = ""
    bank_account_holder: TrimmedText = ""
    bank_account_number: TrimmedText = ""
    bank_ifsc: TrimmedText = ""
    bank_name: TrimmedText = ""
    upi_id: TrimmedText = ""
    upi_qr_object_key: TrimmedText = ""
    upi_qr_file_name: TrimmedText = ""
    upi_qr_mime_type: TrimmedText = ""
    upi_qr_size_bytes: OptionalNumber = None

    @field_validator("amount")
    @classmethod
    def _amount_range(cls, value: int | float | None) -> int | float | None:
        if value is None or value <= 0 or value > MAX_AMOUNT:
            raise ValueError("is out of range")
        return value

    @field_validator("beneficiary")
    @classmethod
    def _beneficiary_length(cls, value: str) -> str:
        if len(value) > MAX_TEXT:
            raise ValueError("is too long")
        return value

    @field_validator("notes")
    @classmethod
    def _notes_length(cls, value: str) -> str:
        if len(value) > MAX_NOTES:
            raise ValueError("is too long")
        return value

    @field_validator("payment_method")
    @classmethod
    def _known_method(cls, value: str) -> str:
        value = value.lower()
        if value not in ("bank", "upi"):
            raise ValueError("must be bank or upi")
        return value

    @field_validator("bank_ifsc")
    @classmethod
    def _upper_ifsc(cls, value: str) -> str:
        return value.upper()

    @model_validator(mode="after")
    def _payout_details(self) -> "AdvanceRequestCreate":
        if self.payment_method == "bank":
            if not (
                self.bank_account_holder
                and self.bank_account_number
                and self.bank_ifsc
                and self.bank_name
            ):
                raise ValueError("Bank details are required")
            if not ACCOUNT_NUMBER_PATTERN.match(self.bank_account_number):
                raise ValueError("Invalid bank account number")
            if not IFSC_PATTERN.match(self.bank_ifsc):
                raise ValueError("Invalid IFSC code")
            return self

        if not self.upi_id and not self.upi_qr_object_key:
            raise ValueError("Provide UPI ID or upload QR")
        if self.upi_id and (
            len(self.upi_id) > MAX_UPI_ID or not UPI_ID_PATTERN.match(self.upi_id)
        ):
            raise ValueError("Invalid UPI ID")
        if self.upi_qr_object_key:
            if not self.upi_qr_file_name or not self.upi_qr_mime_type:
                raise ValueError("UPI QR file metadata is required for uploaded QR")
            if not self.upi_qr_mime_type.startswith("image/"):
                raise ValueError("UPI QR must be an image file")
            size = self.upi_qr_size_bytes
            if size is None or size <= 0 or size > MAX_UPI_QR_SIZE_BYTES:
                raise ValueError("UPI QR size is out of range")
        return self

    def to_params(self) -> dict[str, object]:
        return {
            "p_amount": self.amount,
            "p_beneficiary": self.beneficiary or None,
            "p_notes": self.notes or None,
            "p_payment_method": self.payment_method,
            "p_bank_account_holder": self.bank_account_holder or None,
            "p_bank_account_number": self.bank_account_number or None,
            "p_bank_ifsc": self.bank_ifsc or None,
            "p_bank_name": self.bank_name or None,
            "p_upi_id": self.upi_id or None,
            "p_upi_qr_object_key": self.upi_qr_object_key or None,
            "p_upi_qr_file_name": self.upi_qr_file_name or None,
            "p_upi_qr_mime_type": self.upi_qr_mime_type or None,
            "p_upi_qr_size_bytes": self.upi_qr_size_bytes,
        }


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------

class PagedQuery(RequestModel):
    """Listing query with ``limit`` and ``offset`` clamped to the route's bounds."""

    default_limit: ClassVar[int] = TRIP_LIST_DEFAULT_LIMIT
    max_limit: ClassVar[int] = TRIP_LIST_MAX_LIMIT

    search: OptionalText = None
    limit: Any = None
    offset: Any = None

    @field_validator("limit", mode="before")
    @classmethod
    def _clamp_limit(cls, value: Any) -> int:
        return int(max(1, min(_paging_number(value, cls.default_limit), cls.max_limit)))

    @field_validator("offset", mode="before")
    @classmethod
    def _clamp_offset(cls, value: Any) -> int:
        return int(max(0, _paging_number(value, 0)))


class TripListQuery(PagedQuery):
    stage: OptionalText = None

    @field_validator("stage")
    @classmethod
    def _known_stage(cls, value: str | None) -> str | None:
        if value is not None and value not in TRIP_STAGES:
            raise ValueError("is not a valid trip stage")
        return value

    def to_params(self) -> dict[str, object]:
        return {
            "p_search": self.search,
            "p_stage": self.stage,
            "p_limit": self.limit,
            "p_offset": self.offset,
        }


class TripHistoryQuery(PagedQuery):
    """Closed trips, optionally bounded by ``YYYY-MM-DD`` dates."""

    from_date: OptionalText = None
    to_date: OptionalText = None

    @model_validator(mode="after")
    def _iso_dates(self) -> "TripHistoryQuery":
        if self.from_date and not ISO_DATE_PATTERN.match(self.from_date):
            raise ValueError("Invalid fromDate")
        if self.to_date and not ISO_DATE_PATTERN.match(self.to_date):
            raise ValueError("Invalid toDate")
        return self

    def to_params(self) -> dict[str, object]:
        return {
            "p_search": self.search,
            "p_limit": self.limit,
            "p_offset": self.offset,
            "p_from_date": self.from_date,
            "p_to_date": self.to_date,
        }


class AvailableVehiclesQuery(PagedQuery):
    default_limit: ClassVar[int] = VEHICLE_LIST_DEFAULT_LIMIT
    max_limit: ClassVar[int] = VEHICLE_LIST_MAX_LIMIT

    vehicle_type: OptionalText = None

    def to_params(self) -> dict[str, object]:
        return {
            "p_vehicle_type": self.vehicle_type,
            "p_search": self.search,
            "p_limit": self.limit,
            "p_offset": self.offset,
        }


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------

class PaymentQueueQuery(PagedQuery):
    default_limit: ClassVar[int] = QUEUE_DEFAULT_LIMIT
    max_limit: ClassVar[int] = QUEUE_MAX_LIMIT

    status: OptionalText = None
    type: OptionalText = None

    @field_validator("status")
    @classmethod
    def _known_status(cls, value: str | None) -> str | None:
        if value is not None and value not in PAYMENT_STATUSES:
            raise ValueError("is not a valid payment status filter")
        return value

    @field_validator("type")
    @classmethod
    def _known_type(cls, value: str | None) -> str | None:
        if value is not None and value not in PAYMENT_TYPES:
            raise ValueError("is not a valid payment type filter")
        return value

    def to_params(self) -> dict[str, object]:
        return {
            "p_status": self.status,
            "p_type": self.type,
            "p_search": self.search,
            "p_limit": self.limit,
            "p_offset": self.offset,
        }


class PaymentProofPrepareRequest(UploadPrepareRequest):
    @model_validator(mode="after")
    def _proof_file_rules(self) -> "PaymentProofPrepareRequest":
        if self.mime_type.lower() not in PAYMENT_PROOF_MIME_TYPES:
            raise ValueError("Payment proof must be JPG, PNG, WEBP, or PDF")
        if self.file_ext not in PAYMENT_PROOF_EXTENSIONS:
            raise ValueError(
                "Payment proof file extension must be jpg, jpeg, png, webp, or pdf"
            )
        size = self.file_size_bytes or 0
        if size <= 0 or size > MAX_PAYMENT_PROOF_SIZE_BYTES:
            raise ValueError("Payment proof size must be between 1 byte and 15 MB")
        return self


class MarkPaidRequest(UploadConfirmRequest):
    payment_reference: TrimmedText = ""
    paid_amount: OptionalNumber = None
    notes: TrimmedText = ""

    @field_validator("payment_reference")
    @classmethod
    def _reference_length(cls, value: str) -> str:
        if len(value) > MAX_TEXT:
            raise ValueError("is too long")
        return value

    @field_validator("notes")
    @classmethod
    def _notes_length(cls, value: str) -> str:
        if len(value) > MAX_NOTES:
            raise ValueError("is too long")
        return value

    @field_validator("paid_amount")
    @classmethod
    def _paid_amount_range(cls, value: int | float | None) -> int | float | None:
        if value is not None and (value <= 0 or value > MAX_AMOUNT):
            raise ValueError("is out of range")
        return value

    def to_params(self) -> dict[str, object]:
        params = super().to_params()
        params.update(
            {
                "p_payment_reference": self.payment_reference or None,
                "p_paid_amount": self.paid_amount,
                "p_notes": self.notes or None,
            }
        )
        return params


class ObjectViewUrlRequest(RequestModel):
    object_key: TrimmedText = ""

    @model_validator(mode="after")
    def _require_key(self) -> "ObjectViewUrlRequest":
        if not self.object_key:
            raise ValueError("objectKey is required")
        return self
