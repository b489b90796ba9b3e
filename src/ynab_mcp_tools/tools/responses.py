"""Error response helpers shared by tool modules."""

from typing import Any

from ..errors import ConfigurationError, ValidationError, YnabApiError


def error_response(default_code: str, error: Exception) -> dict[str, Any]:
    """Translate an exception into the tool error payload.

    Known error types get stable codes; everything else uses ``default_code``.
    """
    if isinstance(error, ValidationError):
        return {"error": {"code": "INVALID_INPUT", "message": str(error)}}

    if isinstance(error, ConfigurationError):
        return {"error": {"code": "CONFIGURATION_ERROR", "message": str(error)}}

    if isinstance(error, YnabApiError):
        payload: dict[str, Any] = {
            "code": "YNAB_API_ERROR",
            "message": error.message,
            "status_code": error.status_code,
        }
        if error.detail:
            payload["detail"] = error.detail
        return {"error": payload}

    return {"error": {"code": default_code, "message": str(error)}}
