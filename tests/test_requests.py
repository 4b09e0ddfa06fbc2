from __future__ import annotations

import pytest

from freight_gateway.domain.requests import (
    AdvanceRequestCreate,
    AssignVehicleRequest,
    MarkPaidRequest,
    ObjectViewUrlRequest,
    PaymentProofPrepareRequest,
    PaymentQueueQuery,
    TripConfirmRequest,
    TripUpdateRequest,
    UploadConfirmRequest,
    UploadPrepareRequest,
    extract_file_ext,
    parse_request,
)
from freight_gateway.errors import InvalidInputError

_UPLOADED = {
    "objectKey": "trips/t-1/payment-proof/abc.pdf",
    "fileName": "receipt.pdf",
    "mimeType": "application/pdf",
    "fileSizeBytes": 2048,
}


def _errors(model, payload) -> list[str]:
    with pytest.raises(InvalidInputError) as exc_info:
        parse_request(model, payload)
    return exc_info.value.errors


@pytest.mark.parametrize(
    ("file_name", "expected"),
    [
        ("Proof.PDF", "pdf"),
        ("archive.tar.gz", "gz"),
        ("noext", None),
        ("trailing.", None),
    ],
)
def test_extract_file_ext(file_name: str, expected: str | None) -> None:
    assert extract_file_ext(file_name) == expected


def test_non_object_payload_is_treated_as_empty() -> None:
    assert _errors(AssignVehicleRequest, ["veh-1"]) == ["Vehicle is required"]
    assert _errors(AssignVehicleRequest, None) == ["Vehicle is required"]


def test_trip_update_coerces_loose_values() -> None:
    body = parse_request(
        TripUpdateRequest,
        {
            "pickupLocation": "  Pune ",
            "dropLocation": "",
            "weightEstimate": "12.5",
            "plannedKm": "1200",
            "tripAmount": 45000,
        },
    )

    assert body.pickup_location == "Pune"
    assert body.drop_location is None
    assert body.weight_estimate == 12.5
    assert body.planned_km == 1200
    params = body.to_params()
    assert params["p_pickup_location"] == "Pune"
    assert params["p_trip_amount"] == 45000
    assert params["p_internal_notes"] is None


def test_trip_update_rejects_bad_numbers_and_lengths() -> None:
    errors = _errors(
        TripUpdateRequest,
        {"weightEstimate": "heavy", "plannedKm": -1, "pickupLocation": "x" * 121},
    )

    assert "weightEstimate must be a number" in errors
    assert "plannedKm is out of range" in errors
    assert "pickupLocation must be at most 120 characters" in errors


def test_trip_confirm_requires_quote_fields() -> None:
    assert _errors(TripConfirmRequest, {"pickupLocation": "Pune"}) == [
        "dropLocation, vehicleType, vehicleLength, scheduleDate, tripAmount are required"
    ]


def test_trip_confirm_params_include_vehicle_ops_owner() -> None:
    body = parse_request(
        TripConfirmRequest,
        {
            "pickupLocation": "Pune",
            "dropLocation": "Mumbai",
            "vehicleType": "Container",
            "vehicleLength": "32 ft",
            "scheduleDate": "2026-10-20",
            "tripAmount": "52000",
            "opsVehiclesOwnerId": "user-9",
        },
    )

    params = body.to_params()
    assert params["p_trip_amount"] == 52000
    assert params["p_ops_vehicles_owner_id"] == "user-9"


def test_assign_vehicle_accepts_optional_driver() -> None:
    body = parse_request(AssignVehicleRequest, {"vehicleId": " veh-1 ", "driverId": ""})
    assert body.vehicle_id == "veh-1"
    assert body.driver_id is None


def test_upload_prepare_requires_file_metadata() -> None:
    expected = ["fileName, mimeType, fileSizeBytes are required"]
    assert (
        _errors(UploadPrepareRequest, {"fileName": "photo.jpg", "mimeType": "image/jpeg"})
        == expected
    )
    assert _errors(
        UploadPrepareRequest,
        {"fileName": "photo", "mimeType": "image/jpeg", "fileSizeBytes": 10},
    ) == expected

    body = parse_request(
        UploadPrepareRequest,
        {"fileName": "Photo.JPG", "mimeType": "image/jpeg", "fileSizeBytes": "2048"},
    )
    assert body.file_ext == "jpg"
    assert body.file_size_bytes == 2048


def test_upload_confirm_params() -> None:
    assert _errors(UploadConfirmRequest, {"fileName": "a.pdf"}) == [
        "objectKey, fileName, mimeType, fileSizeBytes are required"
    ]
    assert parse_request(UploadConfirmRequest, _UPLOADED).to_params() == {
        "p_object_key": "trips/t-1/payment-proof/abc.pdf",
        "p_file_name": "receipt.pdf",
        "p_mime_type": "application/pdf",
        "p_file_size_bytes": 2048,
    }


def test_advance_request_field_errors() -> None:
    errors = _errors(
        AdvanceRequestCreate,
        {"amount": 0, "beneficiary": "b" * 121, "paymentMethod": "cash"},
    )

    assert errors == [
        "amount is out of range",
        "beneficiary is too long",
        "paymentMethod must be bank or upi",
    ]


def test_advance_request_bank_rules() -> None:
    base = {
        "amount": 5000,
        "paymentMethod": "BANK",
        "bankAccountHolder": "Ravi Transport",
        "bankAccountNumber": "123456789012",
        "bankIfsc": "hdfc0001234",
        "bankName": "HDFC",
    }

    body = parse_request(AdvanceRequestCreate, base)
    assert body.payment_method == "bank"
    assert body.bank_ifsc == "HDFC0001234"
    assert body.to_params()["p_upi_id"] is None

    assert _errors(AdvanceRequestCreate, {**base, "bankName": ""}) == ["Bank details are required"]
    assert _errors(AdvanceRequestCreate, {**base, "bankAccountNumber": "12345"}) == [
        "Invalid bank account number"
    ]
    assert _errors(AdvanceRequestCreate, {**base, "bankIfsc": "HDFC1234567"}) == [
        "Invalid IFSC code"
    ]


def test_advance_request_upi_rules() -> None:
    base = {"amount": "2500", "paymentMethod": "upi"}

    assert parse_request(AdvanceRequestCreate, {**base, "upiId": "ravi.t@okaxis"}).upi_id == (
        "ravi.t@okaxis"
    )
    assert _errors(AdvanceRequestCreate, base) == ["Provide UPI ID or upload QR"]
    assert _errors(AdvanceRequestCreate, {**base, "upiId": "not a upi"}) == ["Invalid UPI ID"]

    qr = {
        **base,
        "upiQrObjectKey": "trips/t-1/upi-qr/qr.png",
        "upiQrFileName": "qr.png",
        "upiQrMimeType": "image/png",
        "upiQrSizeBytes": 5120,
    }
    assert parse_request(AdvanceRequestCreate, qr).to_params()["p_upi_qr_size_bytes"] == 5120
    assert _errors(AdvanceRequestCreate, {**qr, "upiQrFileName": ""}) == [
        "UPI QR file metadata is required for uploaded QR"
    ]
    assert _errors(AdvanceRequestCreate, {**qr, "upiQrMimeType": "application/pdf"}) == [
        "UPI QR must be an image file"
    ]
    assert _errors(AdvanceRequestCreate, {**qr, "upiQrSizeBytes": 11 * 1024 * 1024}) == [
        "UPI QR size is out of range"
    ]


def test_payment_queue_clamps_paging() -> None:
    query = parse_request(PaymentQueueQuery, {"limit": "500", "offset": "-5"})
    assert (query.limit, query.offset) == (200, 0)

    query = parse_request(PaymentQueueQuery, {"limit": "0"})
    assert query.limit == 1

    query = parse_request(PaymentQueueQuery, {"limit": "lots", "offset": "20"})
    assert (query.limit, query.offset) == (100, 20)


def test_payment_queue_filters_are_validated() -> None:
    query = parse_request(
        PaymentQueueQuery, {"status": "pending", "type": "advance", "search": " TR-1 "}
    )
    assert query.to_params() == {
        "p_status": "pending",
        "p_type": "advance",
        "p_search": "TR-1",
        "p_limit": 100,
        "p_offset": 0,
    }

    assert _errors(PaymentQueueQuery, {"status": "lost"}) == [
        "status is not a valid payment status filter"
    ]
    assert _errors(PaymentQueueQuery, {"type": "refund"}) == [
        "type is not a valid payment type filter"
    ]


@pytest.mark.parametrize(
    ("payload", "message"),
    [
        (
            {"fileName": "proof.gif", "mimeType": "image/gif", "fileSizeBytes": 100},
            "Payment proof must be JPG, PNG, WEBP, or PDF",
        ),
        (
            {"fileName": "proof.txt", "mimeType": "application/pdf", "fileSizeBytes": 100},
            "Payment proof file extension must be jpg, jpeg, png, webp, or pdf",
        ),
        (
            {
                "fileName": "proof.pdf",
                "mimeType": "application/pdf",
                "fileSizeBytes": 16 * 1024 * 1024,
            },
            "Payment proof size must be between 1 byte and 15 MB",
        ),
    ],
)
def test_payment_proof_file_rules(payload: dict[str, object], message: str) -> None:
    assert _errors(PaymentProofPrepareRequest, payload) == [message]


def test_mark_paid_amount_bounds() -> None:
    assert parse_request(MarkPaidRequest, {**_UPLOADED, "paidAmount": 1e12}).paid_amount == 1e12
    assert parse_request(MarkPaidRequest, _UPLOADED).paid_amount is None

    assert _errors(MarkPaidRequest, {**_UPLOADED, "paidAmount": 0}) == [
        "paidAmount is out of range"
    ]
    assert _errors(MarkPaidRequest, {**_UPLOADED, "paidAmount": 1000000000000.01}) == [
        "paidAmount is out of range"
    ]


def test_mark_paid_params() -> None:
    body = parse_request(
        MarkPaidRequest,
        {**_UPLOADED, "paymentReference": " UTR123 ", "paidAmount": "4500.50", "notes": ""},
    )

    params = body.to_params()
    assert params["p_payment_reference"] == "UTR123"
    assert params["p_paid_amount"] == 4500.5
    assert params["p_notes"] is None
    assert params["p_object_key"] == _UPLOADED["objectKey"]


def test_object_view_url_requires_key() -> None:
    assert _errors(ObjectViewUrlRequest, {"objectKey": "  "}) == ["objectKey is required"]
    assert parse_request(ObjectViewUrlRequest, {"objectKey": "a/b.png"}).object_key == "a/b.png"


def test_invalid_input_message_is_first_error() -> None:
    with pytest.raises(InvalidInputError) as exc_info:
        parse_request(ObjectViewUrlRequest, {})

    payload = exc_info.value.to_payload()
    assert payload["ok"] is False
    assert payload["message"] == "objectKey is required"
    assert payload["errors"] == ["objectKey is required"]
    assert exc_info.value.status_code == 400


@pytest.mark.parametrize(
    ("model", "payload", "message"),
    [
        (MarkPaidRequest, {**_UPLOADED, "paidAmount": 10**400}, "paidAmount must be a number"),
        (TripUpdateRequest, {"tripAmount": 10**400}, "tripAmount must be a number"),
        (TripUpdateRequest, {"plannedKm": "9" * 400}, "plannedKm must be a number"),
        (
            UploadPrepareRequest,
            {"fileName": "a.pdf", "mimeType": "application/pdf", "fileSizeBytes": -(10**400)},
            "fileSizeBytes must be a number",
        ),
    ],
)
def test_oversized_numbers_are_invalid_input(model, payload, message: str) -> None:
    assert _errors(model, payload) == [message]


def test_large_integers_keep_their_value() -> None:
    body = parse_request(TripUpdateRequest, {"tripAmount": 999_999_999_999})
    assert body.trip_amount == 999_999_999_999
    assert isinstance(body.trip_amount, int)


def test_payment_queue_blank_paging_counts_as_zero() -> None:
    query = parse_request(PaymentQueueQuery, {"limit": "", "offset": " "})
    assert (query.limit, query.offset) == (1, 0)

    query = parse_request(PaymentQueueQuery, {})
    assert (query.limit, query.offset) == (100, 0)

    query = parse_request(PaymentQueueQuery, {"limit": str(10**400)})
    assert query.limit == 100
