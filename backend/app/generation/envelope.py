"""
The {code, message, data} response envelope.

Code 1000 means success. Any other code is an application-level failure,
even when the HTTP layer reports 200.
"""
import enum
from typing import Any, Optional

from app.generation.errors import ApiError


class ResponseCode(enum.IntEnum):
    SUCCESS = 1000
    INVALID_REQUEST = 1001
    INSUFFICIENT_CREDITS = 1002
    PROVIDER_ERROR = 1003
    UNAUTHORIZED = 1004


def respond_ok(data: Any = None, message: str = "ok") -> dict:
    return {"code": int(ResponseCode.SUCCESS), "message": message, "data": data}


def respond_error(code: ResponseCode, message: str, data: Optional[Any] = None) -> dict:
    return {"code": int(code), "message": message, "data": data}


def unwrap(payload: Any) -> Any:
    """
    Return the data of a success envelope.

    Raises:
        ApiError: If the payload is not an envelope or carries a failure code
    """
    if not isinstance(payload, dict) or "code" not in payload:
        raise ApiError(int(ResponseCode.INVALID_REQUEST), "Malformed response envelope")

    code = payload.get("code")
    if code != ResponseCode.SUCCESS:
        raise ApiError(code, payload.get("message") or "Request failed")

    return payload.get("data")
