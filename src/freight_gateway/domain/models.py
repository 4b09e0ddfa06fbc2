"""Domain vocabulary shared by the trip and payment routes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, get_args

Role = Literal[
    "super_admin",
    "admin",
    "operations_consigner",
    "operations_vehicles",
    "sales_vehicles",
    "sales_consigner",
    "accounts",
    "support",
]

TripStage = Literal[
    "request_received",
    "quoted",
    "confirmed",
    "vehicle_assigned",
    "at_loading",
    "loaded_docs_ok",
    "advance_paid",
    "in_transit",
    "delivered",
    "pod_soft_received",
    "vendor_settled",
    "customer_collected",
    "closed",
]

PaymentType = Literal["advance", "balance", "other", "vendor_settlement"]
PaymentStatus = Literal["pending", "approved", "on_hold", "rejected", "paid"]
PaymentMethod = Literal["bank", "upi"]

ROLE_VALUES: tuple[str, ...] = get_args(Role)
PAYMENT_TYPES: tuple[str, ...] = get_args(PaymentType)
PAYMENT_STATUSES: tuple[str, ...] = get_args(PaymentStatus)
TRIP_STAGES: tuple[str, ...] = get_args(TripStage)


@dataclass(frozen=True)
class Actor:
    """Authenticated user performing an operation."""

    id: str
    role: str
