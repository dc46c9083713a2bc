"""Shared primitives: errors, logging, settings and clocks."""

from payspine.core.errors import (
    AdmissionTimeout,
    AttemptsExhausted,
    BodyDecodeError,
    ErrorCategory,
    ErrorContext,
    PaymentError,
    RetriableProviderError,
    TerminalProviderError,
    TransportTimeout,
)
from payspine.core.settings import ProviderAccountSettings, get_settings
from payspine.core.timestamps import Clock, SystemClock

__all__ = [
    "AdmissionTimeout",
    "AttemptsExhausted",
    "BodyDecodeError",
    "Clock",
    "ErrorCategory",
    "ErrorContext",
    "PaymentError",
    "ProviderAccountSettings",
    "RetriableProviderError",
    "SystemClock",
    "TerminalProviderError",
    "TransportTimeout",
    "get_settings",
]
