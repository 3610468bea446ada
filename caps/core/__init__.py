"""Core package exposing primary interfaces for the CAPS Voice client."""

from .caps_client import CapsAPIClient, caps_client
from .data_models import CommandResponse, HistoryItem, HistoryKind, MerchantScoreData
from .errors import CapsError, ConnectivityError

__all__ = [
    "CapsAPIClient",
    "caps_client",
    "CommandResponse",
    "HistoryItem",
    "HistoryKind",
    "MerchantScoreData",
    "CapsError",
    "ConnectivityError",
]
