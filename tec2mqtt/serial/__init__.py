"""Serial communication module for the TC-720 protocol."""

from .connection import SerialTransport
from .buffer import ResponseBuffer
from .correlator import RequestCorrelator, ResponseSlot

__all__ = ["SerialTransport", "ResponseBuffer", "RequestCorrelator", "ResponseSlot"]
