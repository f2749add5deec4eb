"""Callback delivery: outcome reporting with bounded retries."""
from .base import CallbackSender
from .dispatcher import CallbackDispatcher, DeliveryResult, linear_backoff
from .http import HttpCallbackSender
from .memory import InMemoryCallbackSender

__all__ = [
    "CallbackDispatcher",
    "CallbackSender",
    "DeliveryResult",
    "HttpCallbackSender",
    "InMemoryCallbackSender",
    "linear_backoff",
]
