"""
Provider call helper: per-attempt timeout plus bounded retry.

Sync provider callables run in a worker thread so the event loop is never
blocked; coroutine callables are awaited directly. On timeout the worker
thread is abandoned, not interrupted.
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, Optional, Type

from econrag.errors import CoreError

logger = logging.getLogger(__name__)


async def invoke(fn: Callable[..., Any], *args: Any) -> Any:
    if inspect.iscoroutinefunction(fn) or asyncio.iscoroutinefunction(fn):
        return await fn(*args)
    result = await asyncio.to_thread(fn, *args)
    if inspect.isawaitable(result):
        result = await result
    return result


async def call_with_retry(
    fn: Callable[..., Any],
    args: tuple,
    *,
    timeout: float,
    max_retries: int,
    error_cls: Type[CoreError],
    label: str,
    validate: Optional[Callable[[Any], Any]] = None,
) -> Any:
    """
    Call fn(*args) with a timeout, retrying up to max_retries extra times.

    validate() may transform the result or raise; a raise counts as a
    failed attempt. Exhaustion raises error_cls with the last cause.
    CancelledError is never caught.
    """
    attempts = 1 + max(0, max_retries)
    last_exc: Optional[BaseException] = None
    for attempt in range(1, attempts + 1):
        try:
            result = await asyncio.wait_for(invoke(fn, *args), timeout=timeout)
            return validate(result) if validate is not None else result
        except asyncio.TimeoutError as exc:
            last_exc = exc
            logger.warning(
                "[providers] %s timed out after %.1fs (attempt %d/%d)", label, timeout, attempt, attempts
            )
        except Exception as exc:
            last_exc = exc
            logger.warning(
                "[providers] %s failed (attempt %d/%d): %s", label, attempt, attempts, exc
            )
    raise error_cls(f"{label} failed after {attempts} attempt(s): {last_exc!r}", cause=last_exc)
