"""Error taxonomy shared by the service, the pipeline and the HTTP layer.

Every error carries the HTTP status code the API answers with, so routes can
let them propagate to the single handler installed in ``create_app``.
"""
from __future__ import annotations

from typing import Any


class CommissionError(Exception):
    """Base class for expected failures of a commission calculation."""

    status_code: int = 500

    def __init__(self, message: str, *, status_code: int | None = None, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details


class InputValidationError(CommissionError):
    """Missing or invalid caller input, detected before any network call."""

    status_code = 400


class ModelNotConfiguredError(CommissionError):
    """No chat-completion backend credentials are available."""

    status_code = 500


class ModelTransportError(CommissionError):
    """The model provider answered with a non-2xx status or was unreachable."""

    status_code = 502


class ModelResponseError(CommissionError):
    """The model reply held no usable JSON object or failed validation."""

    status_code = 502


class ModelReportedError(CommissionError):
    """The model itself flagged the request, e.g. ambiguous rules."""

    status_code = 400


__all__ = [
    "CommissionError",
    "InputValidationError",
    "ModelNotConfiguredError",
    "ModelReportedError",
    "ModelResponseError",
    "ModelTransportError",
]
