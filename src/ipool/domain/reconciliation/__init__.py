"""Reconcilers driving pools and address requests towards their desired state."""

from __future__ import annotations

from .address import (
    AddressReconciler,
    choose_address,
    free_addresses,
    needs_move,
    plan_allocation,
    plan_deallocation,
    plan_failure,
)
from .pool import PoolReconciler, plan_pool
from .state import (
    FINALIZER,
    Clock,
    Effect,
    ReconcileResult,
    UpdatePool,
    UpdateRequest,
    apply_effects,
    stamp,
    utcnow,
)

__all__ = [
    "FINALIZER",
    "AddressReconciler",
    "Clock",
    "Effect",
    "PoolReconciler",
    "ReconcileResult",
    "UpdatePool",
    "UpdateRequest",
    "apply_effects",
    "choose_address",
    "free_addresses",
    "needs_move",
    "plan_allocation",
    "plan_deallocation",
    "plan_failure",
    "plan_pool",
    "stamp",
    "utcnow",
]
