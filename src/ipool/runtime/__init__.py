"""Reconciliation driver: work queues, controllers and the operator loop."""

from __future__ import annotations

from .controller import Controller, Reconciler
from .operator import Operator
from .queue import RateLimitingQueue

__all__ = ["Controller", "Operator", "RateLimitingQueue", "Reconciler"]
