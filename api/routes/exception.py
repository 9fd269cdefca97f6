"""
Centralized exception handling decorator for API route functions.

The :func:`handle_exceptions` decorator wraps an endpoint handler and turns
engine errors into :class:`fastapi.HTTPException` responses. HTTPExceptions
raised by the handler pass through untouched. Known domain errors map to
their own status codes (see ``_STATUS``); anything else becomes a ``500``
with the exception message as the detail.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import inspect
import logging
from functools import wraps
from typing import Any, Callable, Tuple, Type, TypeVar, cast

from fastapi import HTTPException

from engine.exceptions import (
    InvalidSignalError,
    InvalidTransitionError,
    UnknownIncidentError,
    UnknownServiceError,
    UpstreamUnavailableError,
)

log = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

_STATUS: Tuple[Tuple[Type[Exception], int], ...] = (
    (UnknownIncidentError, 404),
    (UnknownServiceError, 404),
    (InvalidTransitionError, 409),
    (InvalidSignalError, 422),
    (UpstreamUnavailableError, 503),
)


def _to_http(exc: Exception) -> HTTPException:
    for exc_type, status_code in _STATUS:
        if isinstance(exc, exc_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    log.exception("Unhandled error in route handler")
    return HTTPException(status_code=500, detail=str(exc))


def handle_exceptions(func: F) -> F:
    """Decorator that converts uncaught exceptions to HTTP errors.

    Works with both regular and async handlers.
    """

    if inspect.iscoroutinefunction(func):
        @wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return await func(*args, **kwargs)
            except HTTPException:
                raise
            except Exception as exc:
                raise _to_http(exc) from exc

        return cast(F, async_wrapper)

    @wraps(func)
    def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except HTTPException:
            raise
        except Exception as exc:
            raise _to_http(exc) from exc

    return cast(F, sync_wrapper)
