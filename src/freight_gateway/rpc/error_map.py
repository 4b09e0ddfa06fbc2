"""Central mapping from remote procedure errors to gateway errors."""

from __future__ import annotations

from dataclasses import dataclass

from freight_gateway.errors import (
    ConflictError,
    ForbiddenError,
    GatewayError,
    InvalidInputError,
    MissingRemoteProcedureError,
    NotFoundError,
    RemoteFailureError,
    UnauthorizedError,
)
from freight_gateway.rpc.client import (
    RemoteErrorDetail,
    RemoteProcedureError,
    is_missing_procedure_error,
)


@dataclass(frozen=True)
class TaxonomyRule:
    """A row of the error taxonomy.

    Matches when every populated key matches: ``code`` exactly, ``substring``
    anywhere in the remote message. A ``None`` message keeps the remote one.
    """

    status: int
    code: str | None = None
    substring: str | None = None
    message: str | None = None

    def matches(self, error: RemoteErrorDetail) -> bool:
        if self.code is not None and error.code != self.code:
            return False
        if self.substring is not None and self.substring not in (error.message or ""):
            return False
        return self.code is not None or self.substring is not None


def _rule(substring: str, status: int, message: str) -> TaxonomyRule:
    return TaxonomyRule(status=status, substring=substring, message=message)


# Evaluated top to bottom, first match wins. Specific business codes come
# before the generic code/substring fallbacks.
ERROR_TAXONOMY: tuple[TaxonomyRule, ...] = (
    _rule("permission_denied", 403, "Forbidden"),
    _rule("not_customer_owner", 403, "You can only create requests for your own customers"),
    _rule("not_request_owner", 403, "You can only edit your own trip requests"),
    _rule("not_trip_ops_vehicle_owner", 403, "Only assigned vehicle ops owner can perform this action"),
    _rule("actor_not_found", 401, "User not found"),
    _rule("actor_inactive", 403, "User account is inactive"),
    _rule("vehicle_type_required", 400, "Vehicle type is required"),
    _rule("unknown_vehicle_type", 400, "Please select a valid vehicle type from Vehicle Master"),
    _rule("unknown_vehicle_length", 400, "Please select a valid vehicle length for selected type"),
    _rule("customer_not_found", 404, "Customer not found"),
    _rule("payment_request_not_found", 404, "Payment request not found"),
    _rule("ops_vehicles_user_not_found", 400, "Selected vehicle ops user not found or inactive"),
    _rule("ops_vehicles_user_wrong_role", 400, "Selected user is not a vehicle ops role"),
    _rule("trip_not_found", 404, "Trip not found"),
    _rule("trip_not_editable", 400, "Trip can only be edited while in Request Received stage"),
    _rule("trip_not_pending", 400, "Trip is not in Request Received stage"),
    _rule("trip_not_quoted", 400, "Trip must be in Quoted stage to confirm"),
    _rule("trip_not_confirmed", 400, "Trip must be in Confirmed stage to assign vehicle"),
    _rule("trip_not_vehicle_assigned", 400, "Trip is not ready for this operation yet"),
    _rule("trip_already_completed", 409, "Trip is already completed"),
    _rule("trip_amount_missing", 400, "Trip amount is missing. Set trip amount before final payment request."),
    _rule("vehicle_not_found", 404, "Vehicle not found"),
    _rule("vehicle_not_available", 400, "Vehicle is not available"),
    _rule("vehicle_vendor_missing", 400, "Vendor data missing for this vehicle"),
    _rule("driver_not_found", 404, "Driver not found"),
    _rule("driver_inactive", 400, "Selected driver is inactive"),
    _rule("driver_vendor_mismatch", 400, "Selected driver does not belong to this vendor"),
    _rule("owner_driver_required_for_owner_vehicle", 400, "Owner driver vehicle must use its owner driver"),
    _rule("driver_required_for_vendor_vehicle", 400, "Vendor vehicle requires a driver from the same vendor"),
    _rule("active_advance_exists", 409, "An active advance request already exists for this trip"),
    _rule("active_final_payment_exists", 409, "An active final payment request already exists for this trip"),
    _rule("advance_not_paid_yet", 400, "Final payment can be requested only after advance is paid"),
    _rule("final_amount_invalid", 400, "Final payment amount is invalid"),
    _rule("amount_invalid", 400, "Amount is invalid"),
    _rule("invalid_payment_method", 400, "Payment method is required"),
    _rule("bank_details_required", 400, "Bank details are required for bank payout"),
    _rule("upi_details_required", 400, "Provide UPI ID or upload UPI QR"),
    _rule("file_name_required", 400, "File name is required"),
    _rule("file_too_large", 400, "File size is too large"),
    _rule("invalid_file_type", 400, "Unsupported file type"),
    _rule("invalid_object_key", 400, "Invalid upload object key"),
    _rule("invalid_payment_status", 400, "Invalid payment status filter"),
    _rule("invalid_payment_type", 400, "Invalid payment type filter"),
    _rule("payment_request_not_payable", 400, "Payment request is not payable in current status"),
    _rule("payment_request_already_paid", 409, "Payment request is already marked paid"),
    TaxonomyRule(status=409, code="23505", message="Duplicate record"),
    TaxonomyRule(status=400, code="22023"),
    TaxonomyRule(status=400, code="22P02"),
    TaxonomyRule(status=400, substring="invalid_"),
    TaxonomyRule(status=403, code="42501", message="Forbidden"),
    TaxonomyRule(status=403, substring="forbidden", message="Forbidden"),
    TaxonomyRule(status=404, code="P0002"),
    TaxonomyRule(status=404, substring="not_found"),
)

_ERROR_CLASSES: dict[int, type[GatewayError]] = {
    400: InvalidInputError,
    401: UnauthorizedError,
    403: ForbiddenError,
    404: NotFoundError,
    409: ConflictError,
}


def classify_remote_error(
    error: RemoteErrorDetail,
    fallback_message: str = "Remote procedure failed",
) -> tuple[int, str]:
    """Return ``(status, message)`` for a remote error. Total: unmatched is 500."""
    remote_message = error.message or fallback_message
    for rule in ERROR_TAXONOMY:
        if rule.matches(error):
            return rule.status, rule.message or remote_message
    return 500, remote_message


def map_remote_error(
    error: RemoteErrorDetail | RemoteProcedureError,
    fallback_message: str = "Remote procedure failed",
    *,
    procedure: str | None = None,
) -> GatewayError:
    """Translate a remote error into the gateway exception to raise."""
    if isinstance(error, RemoteProcedureError):
        procedure = procedure or error.procedure
        error = error.error

    if is_missing_procedure_error(error):
        return MissingRemoteProcedureError([procedure or "unknown"])

    status, message = classify_remote_error(error, fallback_message)
    error_cls = _ERROR_CLASSES.get(status)
    if error_cls is None:
        return RemoteFailureError(message)
    return error_cls(message)
