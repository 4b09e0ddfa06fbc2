"""Row normalization from remote snake_case rows to the public camelCase shape."""

from __future__ import annotations

import math
from typing import Any

Row = dict[str, Any]


def first_row(data: Any) -> Row | None:
    """Single row from an object or a one-element array result."""
    if isinstance(data, list):
        data = data[0] if data else None
    return data if isinstance(data, dict) and data else None


def rows(data: Any) -> list[Row]:
    if not isinstance(data, list):
        return []
    return [row for row in data if isinstance(row, dict)]


def to_nullable_number(value: Any) -> int | float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(parsed):
        return None
    if isinstance(value, str) and parsed.is_integer():
        return int(parsed)
    return parsed


def to_number(value: Any) -> int | float:
    parsed = to_nullable_number(value)
    return 0 if parsed is None else parsed


def _text(row: Row, key: str, default: str = "") -> str:
    value = row.get(key)
    return default if value is None else str(value)


def normalize_trip(row: Row) -> dict[str, Any]:
    return {
        "id": row.get("id"),
        "tripCode": row.get("trip_code"),
        "customerId": row.get("customer_id"),
        "customerName": _text(row, "customer_name"),
        "pickupLocation": _text(row, "pickup_location"),
        "dropLocation": _text(row, "drop_location"),
        "route": _text(row, "route"),
        "currentStage": row.get("current_stage"),
        "leasedFlag": bool(row.get("leased_flag")),
        "vehicleType": _text(row, "vehicle_type"),
        "vehicleLength": _text(row, "vehicle_length"),
        "weightEstimate": to_number(row.get("weight_estimate")),
        "plannedKm": to_number(row.get("planned_km")),
        "scheduleDate": _text(row, "schedule_date"),
        "tripAmount": to_nullable_number(row.get("trip_amount")),
        "requestedById": _text(row, "requested_by_id"),
        "requestedByName": _text(row, "requested_by_name", "Unknown"),
        "salesOwnerId": _text(row, "sales_consigner_owner_id"),
        "salesOwnerName": _text(row, "sales_consigner_owner_name"),
        "opsOwnerId": _text(row, "operations_consigner_owner_id"),
        "opsOwnerName": _text(row, "operations_consigner_owner_name"),
        "opsVehiclesOwnerId": _text(row, "operations_vehicles_owner_id"),
        "opsVehiclesOwnerName": _text(row, "operations_vehicles_owner_name"),
        "accountsOwnerId": _text(row, "accounts_owner_id"),
        "accountsOwnerName": _text(row, "accounts_owner_name"),
        "vehicleId": row.get("vehicle_id"),
        "vehicleNumber": row.get("vehicle_number"),
        "driverName": row.get("driver_name"),
        "driverPhone": row.get("driver_phone"),
        "vendorId": row.get("vendor_id"),
        "vendorName": row.get("vendor_name"),
        "vendorPhone": row.get("vendor_phone"),
        "startedAt": row.get("started_at"),
        "startedById": row.get("started_by_id"),
        "completedAt": row.get("completed_at"),
        "completedById": row.get("completed_by_id"),
        "createdAt": row.get("created_at"),
        "updatedAt": row.get("updated_at"),
        "internalNotes": _text(row, "internal_notes"),
    }


def normalize_trip_ref(row: Row) -> dict[str, Any]:
    return {"tripId": row.get("trip_id"), "tripCode": row.get("trip_code")}


def normalize_loading_proof(row: Row) -> dict[str, Any]:
    return {
        "id": row.get("id"),
        "tripId": row.get("trip_id"),
        "proofType": row.get("proof_type"),
        "objectKey": row.get("object_key"),
        "fileName": row.get("file_name"),
        "mimeType": row.get("mime_type"),
        "fileSizeBytes": to_number(row.get("file_size_bytes")),
        "uploadedById": row.get("uploaded_by_id"),
        "uploadedByName": row.get("uploaded_by_name"),
        "createdAt": row.get("created_at"),
    }


def normalize_payment_request(row: Row) -> dict[str, Any]:
    return {
        "id": row.get("id"),
        "tripId": row.get("trip_id"),
        "type": row.get("type"),
        "amount": to_number(row.get("amount")),
        "beneficiary": row.get("beneficiary"),
        "status": row.get("status"),
        "notes": _text(row, "notes"),
        "requestedById": row.get("requested_by_id"),
        "requestedByName": _text(row, "requested_by_name"),
        "reviewedById": row.get("reviewed_by_id"),
        "reviewedByName": _text(row, "reviewed_by_name"),
        "reviewedAt": row.get("reviewed_at"),
        "createdAt": row.get("created_at"),
        "paymentMethod": row.get("payment_method"),
        "upiId": row.get("upi_id"),
        "upiQrObjectKey": row.get("upi_qr_object_key"),
    }


def normalize_advance_request(row: Row) -> dict[str, Any]:
    return {
        "id": row.get("id"),
        "tripId": row.get("trip_id"),
        "tripCode": row.get("trip_code"),
        "amount": to_number(row.get("amount")),
        "beneficiary": _text(row, "beneficiary"),
        "status": row.get("status"),
        "paymentMethod": row.get("payment_method"),
    }


def normalize_payment_summary(row: Row) -> dict[str, Any]:
    return {
        "tripId": row.get("trip_id"),
        "tripCode": row.get("trip_code"),
        "tripAmount": to_number(row.get("trip_amount")),
        "currentStage": row.get("current_stage"),
        "paidAdvanceTotal": to_number(row.get("paid_advance_total")),
        "pendingAdvanceTotal": to_number(row.get("pending_advance_total")),
        "suggestedFinalAmount": to_number(row.get("suggested_final_amount")),
        "paidBalanceTotal": to_number(row.get("paid_balance_total")),
        "isTripCompleted": bool(row.get("is_trip_completed")),
    }


def normalize_timeline_entry(row: Row) -> dict[str, Any]:
    return {
        "id": row.get("id"),
        "entity": row.get("entity"),
        "entityId": row.get("entity_id"),
        "action": row.get("action"),
        "actorName": row.get("actor_name") or "Unknown",
        "timestamp": row.get("event_at"),
        "details": row.get("details") or "Updated",
    }


def normalize_queue_row(row: Row) -> dict[str, Any]:
    return {
        "id": row.get("id"),
        "tripId": row.get("trip_id"),
        "tripCode": row.get("trip_code"),
        "tripCurrentStage": row.get("trip_current_stage"),
        "type": row.get("type"),
        "status": row.get("status"),
        "amount": to_number(row.get("amount")),
        "paidAmount": to_nullable_number(row.get("paid_amount")),
        "tripAmount": to_nullable_number(row.get("trip_amount")),
        "beneficiary": _text(row, "beneficiary"),
        "paymentMethod": row.get("payment_method"),
        "bankAccountHolder": row.get("bank_account_holder"),
        "bankAccountNumber": row.get("bank_account_number"),
        "bankIfsc": row.get("bank_ifsc"),
        "bankName": row.get("bank_name"),
        "upiId": row.get("upi_id"),
        "upiQrObjectKey": row.get("upi_qr_object_key"),
        "paidProofObjectKey": row.get("paid_proof_object_key"),
        "paymentReference": row.get("payment_reference"),
        "notes": _text(row, "notes"),
        "requestedById": row.get("requested_by_id"),
        "requestedByName": _text(row, "requested_by_name"),
        "reviewedById": row.get("reviewed_by_id"),
        "reviewedByName": _text(row, "reviewed_by_name"),
        "reviewedAt": row.get("reviewed_at"),
        "createdAt": row.get("created_at"),
    }


def normalize_profile(row: Row) -> dict[str, Any]:
    return {
        "id": row.get("id"),
        "fullName": row.get("full_name"),
        "email": row.get("email"),
        "role": row.get("role"),
        "active": row.get("active"),
    }


def normalize_available_vehicle(row: Row) -> dict[str, Any]:
    return {
        "id": row.get("id"),
        "number": row.get("number"),
        "type": row.get("type"),
        "vehicleLength": _text(row, "vehicle_length"),
        "ownershipType": row.get("ownership_type"),
        "vendorId": row.get("vendor_id"),
        "vendorName": row.get("vendor_name"),
        "isOwnerDriver": bool(row.get("is_owner_driver")),
        "currentDriverId": row.get("current_driver_id"),
        "currentDriverName": _text(row, "current_driver_name"),
        "leasedDriverName": row.get("leased_driver_name"),
        "leasedDriverPhone": row.get("leased_driver_phone"),
    }


def normalize_user_option(row: Row) -> dict[str, Any]:
    return {"id": row.get("id"), "fullName": row.get("full_name")}
