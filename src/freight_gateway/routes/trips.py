"""Trip workflow routes: listings, creation, edits, stage transitions, proofs and payments."""

from __future__ import annotations

import logging

from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Route

from freight_gateway.domain.normalize import (
    first_row,
    normalize_advance_request,
    normalize_available_vehicle,
    normalize_loading_proof,
    normalize_payment_request,
    normalize_payment_summary,
    normalize_timeline_entry,
    normalize_trip,
    normalize_trip_ref,
    normalize_user_option,
    rows,
)
from freight_gateway.domain.requests import (
    AdvanceRequestCreate,
    AssignVehicleRequest,
    AvailableVehiclesQuery,
    TripConfirmRequest,
    TripCreateRequest,
    TripHistoryQuery,
    TripListQuery,
    TripUpdateRequest,
    UploadConfirmRequest,
    UploadPrepareRequest,
    parse_request,
)
from freight_gateway.errors import NotFoundError, RemoteFailureError
from freight_gateway.routes._shared import (
    authorize,
    gateway_route,
    get_services,
    ok,
    read_json,
    require_row,
    session_token,
)
from freight_gateway.rpc.fallback import ProcedureAdapter, ProcedureChain

logger = logging.getLogger(__name__)

TRIPS_POLICY_GROUP = "trips"
LOADING_PROOF_DOC_TYPE = "loading"
TIMELINE_LIMIT = 200


def assign_vehicle_chain(
    actor_id: str,
    trip_id: str,
    vehicle_id: str,
    driver_id: str | None,
) -> ProcedureChain:
    """Newest first. Older versions predate driver assignment."""
    with_driver = {
        "p_actor_user_id": actor_id,
        "p_trip_id": trip_id,
        "p_vehicle_id": vehicle_id,
        "p_driver_id": driver_id,
    }
    without_driver = {
        "p_actor_user_id": actor_id,
        "p_trip_id": trip_id,
        "p_vehicle_id": vehicle_id,
    }
    return ProcedureChain(
        [
            ProcedureAdapter("trip_assign_vehicle_v3", with_driver),
            ProcedureAdapter("trip_assign_vehicle_v2", with_driver),
            ProcedureAdapter(
                "trip_assign_vehicle_v2",
                without_driver,
                label="trip_assign_vehicle_v2 (legacy)",
            ),
            ProcedureAdapter("trip_assign_vehicle_v1", without_driver),
        ]
    )


def available_vehicles_chain(actor_id: str, query: AvailableVehiclesQuery) -> ProcedureChain:
    """Newest first. Every version takes the same filters."""
    params = {"p_actor_user_id": actor_id, **query.to_params()}
    return ProcedureChain(
        [
            ProcedureAdapter("trip_available_vehicles_v3", params),
            ProcedureAdapter("trip_available_vehicles_v2", params),
            ProcedureAdapter("trip_available_vehicles_v1", params),
        ]
    )


@gateway_route
async def list_trips(request: Request) -> Response:
    token = session_token(request)
    query = parse_request(TripListQuery, dict(request.query_params))
    route = await authorize(request, TRIPS_POLICY_GROUP, token)

    data = await route.call(
        "trip_list_active_v1",
        route.params(**query.to_params()),
        "Unable to fetch trips",
    )
    return ok([normalize_trip(row) for row in rows(data)])


@gateway_route
async def create_trip(request: Request) -> Response:
    token = session_token(request)
    body = parse_request(TripCreateRequest, await read_json(request))
    route = await authorize(request, TRIPS_POLICY_GROUP, token)

    data = await route.call(
        "trip_request_create_v1",
        route.params(**body.to_params()),
        "Unable to create trip request",
    )
    row = require_row(data, "Unable to create trip request")
    logger.info("Trip request %s created by %s", row.get("trip_code"), route.actor.id)
    return ok(normalize_trip_ref(row), status_code=201)


@gateway_route
async def list_trip_history(request: Request) -> Response:
    token = session_token(request)
    query = parse_request(TripHistoryQuery, dict(request.query_params))
    route = await authorize(request, TRIPS_POLICY_GROUP, token)

    data = await route.call(
        "trip_list_history_v1",
        route.params(**query.to_params()),
        "Unable to fetch trip history",
    )
    return ok([normalize_trip(row) for row in rows(data)])


@gateway_route
async def list_ops_vehicles_users(request: Request) -> Response:
    token = session_token(request)
    route = await authorize(request, TRIPS_POLICY_GROUP, token)

    data = await route.call(
        "trip_list_ops_vehicles_users_v1",
        route.params(),
        "Unable to fetch users",
    )
    return ok([normalize_user_option(row) for row in rows(data)])


@gateway_route
async def list_available_vehicles(request: Request) -> Response:
    token = session_token(request)
    query = parse_request(AvailableVehiclesQuery, dict(request.query_params))
    route = await authorize(request, TRIPS_POLICY_GROUP, token)

    chain = available_vehicles_chain(route.actor.id, query)
    data = await route.invoke(chain, "Unable to fetch available vehicles")
    return ok([normalize_available_vehicle(row) for row in rows(data)])


@gateway_route
async def get_trip(request: Request) -> Response:
    token = session_token(request)
    route = await authorize(request, TRIPS_POLICY_GROUP, token)
    trip_id = request.path_params["trip_id"]

    data = await route.call(
        "trip_get_v1",
        route.params(p_trip_id=trip_id),
        "Unable to fetch trip",
    )
    row = first_row(data)
    if row is None:
        raise NotFoundError("Trip not found")
    return ok(normalize_trip(row))


@gateway_route
async def update_trip(request: Request) -> Response:
    token = session_token(request)
    body = parse_request(TripUpdateRequest, await read_json(request))
    route = await authorize(request, TRIPS_POLICY_GROUP, token)
    trip_id = request.path_params["trip_id"]

    data = await route.call(
        "trip_request_update_v1",
        route.params(p_trip_id=trip_id, **body.to_params()),
        "Unable to update trip request",
    )
    row = require_row(data, "Unable to update trip request")
    return ok(normalize_trip_ref(row))


@gateway_route
async def accept_trip(request: Request) -> Response:
    token = session_token(request)
    route = await authorize(request, TRIPS_POLICY_GROUP, token)
    trip_id = request.path_params["trip_id"]

    data = await route.call(
        "trip_request_accept_v1",
        route.params(p_trip_id=trip_id),
        "Unable to accept trip request",
    )
    row = require_row(data, "Unable to accept trip request")
    return ok({**normalize_trip_ref(row), "opsOwnerId": row.get("ops_owner_id")})


@gateway_route
async def confirm_trip(request: Request) -> Response:
    token = session_token(request)
    body = parse_request(TripConfirmRequest, await read_json(request))
    route = await authorize(request, TRIPS_POLICY_GROUP, token)
    trip_id = request.path_params["trip_id"]

    data = await route.call(
        "trip_confirm_v1",
        route.params(p_trip_id=trip_id, **body.to_params()),
        "Unable to confirm trip",
    )
    row = require_row(data, "Unable to confirm trip")
    return ok(normalize_trip_ref(row))


@gateway_route
async def assign_vehicle(request: Request) -> Response:
    token = session_token(request)
    body = parse_request(AssignVehicleRequest, await read_json(request))
    route = await authorize(request, TRIPS_POLICY_GROUP, token)
    trip_id = request.path_params["trip_id"]

    chain = assign_vehicle_chain(route.actor.id, trip_id, body.vehicle_id, body.driver_id)
    data = await route.invoke(chain, "Unable to assign vehicle")
    row = require_row(data, "Unable to assign vehicle")
    return ok(
        {
            **normalize_trip_ref(row),
            "vehicleNumber": row.get("vehicle_number"),
            "opsVehiclesOwnerId": row.get("ops_vehicles_owner_id"),
        }
    )


@gateway_route
async def list_loading_proofs(request: Request) -> Response:
    token = session_token(request)
    route = await authorize(request, TRIPS_POLICY_GROUP, token)
    trip_id = request.path_params["trip_id"]

    data = await route.call(
        "trip_loading_proofs_list_v1",
        route.params(p_trip_id=trip_id),
        "Unable to fetch loading proofs",
    )
    return ok([normalize_loading_proof(row) for row in rows(data)])


@gateway_route
async def prepare_loading_proof(request: Request) -> Response:
    token = session_token(request)
    body = parse_request(UploadPrepareRequest, await read_json(request))
    route = await authorize(request, TRIPS_POLICY_GROUP, token)
    trip_id = request.path_params["trip_id"]

    data = await route.call(
        "trip_loading_proof_prepare_v1",
        route.params(
            p_trip_id=trip_id,
            p_file_name=body.file_name,
            p_mime_type=body.mime_type,
            p_file_size_bytes=body.file_size_bytes,
        ),
        "Unable to prepare loading proof upload",
    )
    prepared = first_row(data) or {}
    object_key = prepared.get("object_key")
    if not isinstance(object_key, str) or not object_key:
        raise RemoteFailureError("Unable to prepare loading proof upload")

    upload = await get_services(request).presign.presign_put(
        trip_id=trip_id,
        doc_type=LOADING_PROOF_DOC_TYPE,
        file_ext=body.file_ext,
        object_key=object_key,
        access_token=token,
    )
    return ok(
        {
            "uploadUrl": upload.upload_url,
            "objectKey": upload.object_key,
            "expiresIn": upload.expires_in,
        }
    )


@gateway_route
async def confirm_loading_proof(request: Request) -> Response:
    token = session_token(request)
    body = parse_request(UploadConfirmRequest, await read_json(request))
    route = await authorize(request, TRIPS_POLICY_GROUP, token)
    trip_id = request.path_params["trip_id"]

    data = await route.call(
        "trip_loading_proof_confirm_v1",
        route.params(p_trip_id=trip_id, **body.to_params()),
        "Unable to confirm loading proof upload",
    )
    return ok(data, status_code=201)


@gateway_route
async def create_advance_request(request: Request) -> Response:
    token = session_token(request)
    body = parse_request(AdvanceRequestCreate, await read_json(request))
    route = await authorize(request, TRIPS_POLICY_GROUP, token)
    trip_id = request.path_params["trip_id"]

    data = await route.call(
        "trip_advance_request_create_v1",
        route.params(p_trip_id=trip_id, **body.to_params()),
        "Unable to create advance request",
    )
    row = require_row(data, "Unable to create advance request")
    logger.info("Advance request %s created for trip %s", row.get("id"), trip_id)
    return ok(normalize_advance_request(row), status_code=201)


@gateway_route
async def list_payment_requests(request: Request) -> Response:
    token = session_token(request)
    route = await authorize(request, TRIPS_POLICY_GROUP, token)
    trip_id = request.path_params["trip_id"]

    data = await route.call(
        "trip_payment_requests_list_v1",
        route.params(p_trip_id=trip_id),
        "Unable to fetch payment requests",
    )
    return ok([normalize_payment_request(row) for row in rows(data)])


@gateway_route
async def get_payment_summary(request: Request) -> Response:
    token = session_token(request)
    route = await authorize(request, TRIPS_POLICY_GROUP, token)
    trip_id = request.path_params["trip_id"]

    data = await route.call(
        "trip_payment_summary_v1",
        route.params(p_trip_id=trip_id),
        "Unable to fetch trip payment summary",
    )
    row = first_row(data)
    if row is None:
        raise NotFoundError("Trip payment summary not found")
    return ok(normalize_payment_summary(row))


@gateway_route
async def list_timeline(request: Request) -> Response:
    token = session_token(request)
    route = await authorize(request, TRIPS_POLICY_GROUP, token)
    trip_id = request.path_params["trip_id"]

    data = await route.call(
        "trip_timeline_list_v1",
        route.params(p_trip_id=trip_id, p_limit=TIMELINE_LIMIT, p_offset=0),
        "Unable to fetch trip timeline",
    )
    return ok([normalize_timeline_entry(row) for row in rows(data)])


routes = [
    Route("/api/trips", endpoint=list_trips, methods=["GET"]),
    Route("/api/trips", endpoint=create_trip, methods=["POST"]),
    Route("/api/trips/history", endpoint=list_trip_history, methods=["GET"]),
    Route(
        "/api/trips/ops-vehicles-users",
        endpoint=list_ops_vehicles_users,
        methods=["GET"],
    ),
    Route(
        "/api/trips/available-vehicles",
        endpoint=list_available_vehicles,
        methods=["GET"],
    ),
    Route("/api/trips/{trip_id}", endpoint=get_trip, methods=["GET"]),
    Route("/api/trips/{trip_id}", endpoint=update_trip, methods=["PATCH"]),
    Route("/api/trips/{trip_id}/accept", endpoint=accept_trip, methods=["POST"]),
    Route("/api/trips/{trip_id}/confirm", endpoint=confirm_trip, methods=["POST"]),
    Route("/api/trips/{trip_id}/assign-vehicle", endpoint=assign_vehicle, methods=["POST"]),
    Route("/api/trips/{trip_id}/loading-proof", endpoint=list_loading_proofs, methods=["GET"]),
    Route(
        "/api/trips/{trip_id}/loading-proof/prepare",
        endpoint=prepare_loading_proof,
        methods=["POST"],
    ),
    Route(
        "/api/trips/{trip_id}/loading-proof/confirm",
        endpoint=confirm_loading_proof,
        methods=["POST"],
    ),
    Route(
        "/api/trips/{trip_id}/advance-request",
        endpoint=create_advance_request,
        methods=["POST"],
    ),
    Route(
        "/api/trips/{trip_id}/payment-requests",
        endpoint=list_payment_requests,
        methods=["GET"],
    ),
    Route(
        "/api/trips/{trip_id}/payment-summary",
        endpoint=get_payment_summary,
        methods=["GET"],
    ),
    Route("/api/trips/{trip_id}/timeline", endpoint=list_timeline, methods=["GET"]),
]
