"""Accounts payment queue routes: listing, proof upload, mark-paid and file views."""

from __future__ import annotations

import logging

from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Route

from freight_gateway.domain.normalize import first_row, normalize_queue_row, rows
from freight_gateway.domain.requests import (
    MarkPaidRequest,
    ObjectViewUrlRequest,
    PaymentProofPrepareRequest,
    PaymentQueueQuery,
    parse_request,
)
from freight_gateway.errors import RemoteFailureError, UpstreamServiceError
from freight_gateway.routes._shared import (
    authorize,
    gateway_route,
    get_services,
    ok,
    read_json,
    session_token,
)

logger = logging.getLogger(__name__)

PAYMENTS_POLICY_GROUP = "payments"
PAYMENT_PROOF_DOC_TYPE = "payment-proof"


@gateway_route
async def list_payment_queue(request: Request) -> Response:
    token = session_token(request)
    query = parse_request(PaymentQueueQuery, dict(request.query_params))
    route = await authorize(request, PAYMENTS_POLICY_GROUP, token)

    data = await route.call(
        "trip_payment_queue_list_v1",
        route.params(**query.to_params()),
        "Unable to fetch payment queue",
    )
    return ok([normalize_queue_row(row) for row in rows(data)])


@gateway_route
async def prepare_payment_proof(request: Request) -> Response:
    token = session_token(request)
    body = parse_request(PaymentProofPrepareRequest, await read_json(request))
    route = await authorize(request, PAYMENTS_POLICY_GROUP, token)
    payment_request_id = request.path_params["payment_request_id"]

    data = await route.call(
        "trip_payment_proof_prepare_v1",
        route.params(
            p_payment_request_id=payment_request_id,
            p_file_name=body.file_name,
            p_mime_type=body.mime_type,
            p_file_size_bytes=body.file_size_bytes,
        ),
        "Unable to prepare payment proof upload",
    )
    prepared = first_row(data) or {}
    trip_id = prepared.get("trip_id")
    object_key = prepared.get("object_key")
    if not trip_id or not object_key:
        raise RemoteFailureError("Unable to prepare payment proof upload")

    try:
        upload = await get_services(request).presign.presign_put(
            trip_id=str(trip_id),
            doc_type=PAYMENT_PROOF_DOC_TYPE,
            file_ext=body.file_ext,
            object_key=str(object_key),
            access_token=token,
        )
    except UpstreamServiceError as exc:
        logger.warning("Payment proof presign failed for %s: %s", payment_request_id, exc.message)
        raise UpstreamServiceError(
            "Unable to prepare upload URL from worker for payment proof"
        ) from exc
    return ok(
        {
            "uploadUrl": upload.upload_url,
            "objectKey": upload.object_key,
            "expiresIn": upload.expires_in,
        }
    )


@gateway_route
async def mark_payment_paid(request: Request) -> Response:
    token = session_token(request)
    body = parse_request(MarkPaidRequest, await read_json(request))
    route = await authorize(request, PAYMENTS_POLICY_GROUP, token)
    payment_request_id = request.path_params["payment_request_id"]

    data = await route.call(
        "trip_payment_mark_paid_v1",
        route.params(p_payment_request_id=payment_request_id, **body.to_params()),
        "Unable to mark payment request as paid",
    )
    logger.info("Payment request %s marked paid", payment_request_id)
    return ok(data)


@gateway_route
async def create_object_view_url(request: Request) -> Response:
    token = session_token(request)
    body = parse_request(ObjectViewUrlRequest, await read_json(request))
    await authorize(request, PAYMENTS_POLICY_GROUP, token)

    view = await get_services(request).presign.presign_get(
        object_key=body.object_key,
        access_token=token,
    )
    return ok({"viewUrl": view.view_url, "expiresIn": view.expires_in})


routes = [
    Route("/api/payments/queue", endpoint=list_payment_queue, methods=["GET"]),
    Route(
        "/api/payments/object-view-url",
        endpoint=create_object_view_url,
        methods=["POST"],
    ),
    Route(
        "/api/payments/{payment_request_id}/proof/prepare",
        endpoint=prepare_payment_proof,
        methods=["POST"],
    ),
    Route(
        "/api/payments/{payment_request_id}/mark-paid",
        endpoint=mark_payment_paid,
        methods=["POST"],
    ),
]
