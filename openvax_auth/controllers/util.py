"""Helpers for :mod:`openvax_auth.controllers`."""

from typing import Any, Callable, Dict, List, Tuple, Type
from functools import wraps
from http import HTTPStatus as status
import logging

from ..exceptions import AuthenticationError, AuthorizationError, \
    ConflictError, ExpiredError, NotFoundError, TransportError, \
    ValidationError

logger = logging.getLogger(__name__)

ResponseData = Tuple[dict, int, dict]

ERROR_STATUS: List[Tuple[Type[Exception], int]] = [
    (AuthenticationError, status.UNAUTHORIZED),
    (AuthorizationError, status.FORBIDDEN),
    (ValidationError, status.BAD_REQUEST),
    (NotFoundError, status.NOT_FOUND),
    (ExpiredError, status.BAD_REQUEST),
    (ConflictError, status.CONFLICT),
    (TransportError, status.INTERNAL_SERVER_ERROR),
]
"""Status code for each handled error, most specific first."""

HANDLED = tuple(error for error, _ in ERROR_STATUS)


def status_for(error: Exception) -> int:
    """Get the response status code for a handled error."""
    for error_type, code in ERROR_STATUS:
        if isinstance(error, error_type):
            return code
    return status.INTERNAL_SERVER_ERROR


def success(code: int = status.OK, **data: Any) -> ResponseData:
    """Generate a successful JSON response."""
    response_data: Dict[str, Any] = {'success': True}
    response_data.update(data)
    return response_data, code, {}


def failure(message: str, code: int) -> ResponseData:
    """Generate a failed JSON response with a short message."""
    return {'success': False, 'message': message}, code, {}


def handle_errors(func: Callable[..., ResponseData]) \
        -> Callable[..., ResponseData]:
    """Turn handled errors raised by a controller into failed responses."""
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> ResponseData:
        try:
            return func(*args, **kwargs)
        except HANDLED as e:
            code = status_for(e)
            if code >= status.INTERNAL_SERVER_ERROR:
                logger.error('%s failed: %s', func.__name__, e)
            else:
                logger.debug('%s rejected: %s', func.__name__, e)
            return failure(str(e), code)
    return wrapper


def as_bool(value: Any) -> bool:
    """Read a JSON or form flag; strings such as ``"false"`` are false."""
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)
