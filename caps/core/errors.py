"""Error taxonomy of the CAPS Voice session core."""
from __future__ import annotations


class CapsError(Exception):
    """Base class for errors raised by the session core."""


class ConnectivityError(CapsError):
    """The command service could not be reached or answered with garbage."""


class InputValidationError(CapsError, ValueError):
    """User input rejected locally before any remote call."""


class DispatchInProgressError(CapsError):
    """A command is already being processed for this session."""


class AggregationFetchError(CapsError):
    """Merchant scores or fraud stats could not be fetched."""


class ReportSubmissionError(CapsError):
    """A merchant report was not accepted by the fraud intelligence service."""
