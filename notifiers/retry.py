"""
Retry decorator for outbound notifier calls.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import asyncio
import logging
from functools import wraps
from typing import Any, Awaitable, Callable, Tuple, Type, TypeVar, cast

log = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Awaitable[Any]])


def retry(
    *,
    attempts: int | Callable[[Any], int] = 3,
    delay: float | Callable[[Any], float] = 0.5,
    backoff: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
) -> Callable[[F], F]:
    """Retry an async method on the listed exceptions.

    ``attempts`` and ``delay`` may be callables taking ``self`` so a notifier
    instance can carry its own retry policy.
    """

    def decorator(func: F) -> F:
        @wraps(func)
        async def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
            max_attempts = max(1, int(attempts(self) if callable(attempts) else attempts))
            wait = float(delay(self) if callable(delay) else delay)
            attempt = 0
            while True:
                try:
                    return await func(self, *args, **kwargs)
                except exceptions as exc:
                    attempt += 1
                    if attempt >= max_attempts:
                        raise
                    log.debug("%s failed (attempt %d/%d): %s", func.__qualname__, attempt, max_attempts, exc)
                    await asyncio.sleep(wait)
                    wait *= backoff

        return cast(F, wrapper)

    return decorator
