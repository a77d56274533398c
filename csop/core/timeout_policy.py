from __future__ import annotations

"""
timeout_policy.py

Timeout + retry helper for capability operations.

Wraps a single operation invocation with:

- a per-attempt timeout
- bounded retries with exponential backoff
- an optional timing callback for observability

Callers provide:
    - fn(payload), sync or async, performing the actual work
    - a label string (usually the action, e.g. "storage.save")
    - timeout and retry parameters (usually from MessageOptions)
    - an optional timing_cb(label, duration_ms, status, error_text)

Status values passed to timing_cb:

- "ok"      -> fn completed successfully
- "timeout" -> attempt hit the timeout
- "error"   -> fn raised an exception
- "give_up" -> final failure after exhausting retries (same error value)

IMPORTANT:

- A timed-out attempt is abandoned, not cancelled. The underlying task keeps
  running and its eventual outcome is only logged. Pass cancel_on_timeout=True
  to cancel it instead.
- timeout_ms=None disables the timer; 0 times out as soon as the loop turns.
- A handler that raises CancelledError itself fails with EXECUTION_FAILED.
- Every failure is retried the same way; timeouts and raised errors are
  not distinguished.
"""

import asyncio
import inspect
import time
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from csop.core.config import BASE_DELAY_MS
from csop.core.errors import CapabilityError, ErrorCode, OperationTimeout
from csop.core.observability import get_logger

logger = get_logger("retry")

TimingCallback = Callable[[str, int, str, Optional[str]], None]
SleepFn = Callable[[float], Awaitable[Any]]


def backoff_delay_ms(attempt: int, base_delay_ms: int = BASE_DELAY_MS) -> int:
    """Delay before the attempt after `attempt` (0-based): base * 2 ** attempt."""
    return base_delay_ms * (2 ** attempt)


async def _invoke(fn: Callable[[Dict[str, Any]], Any], payload: Dict[str, Any]) -> Any:
    result = fn(payload)
    if inspect.isawaitable(result):
        result = await result
    return result


def _observe_abandoned(task: "asyncio.Future[Any]") -> None:
    # Retrieve the outcome so the loop does not report it as never retrieved.
    if task.cancelled():
        logger.debug("Abandoned operation was cancelled")
        return
    exc = task.exception()
    if exc is not None:
        logger.debug("Abandoned operation failed after timeout: %r", exc)
    else:
        logger.debug("Abandoned operation completed after timeout")


async def run_with_timeout(
    fn: Callable[[Dict[str, Any]], Any],
    payload: Dict[str, Any],
    timeout_ms: Optional[float],
    cancel_on_timeout: bool = False,
) -> Any:
    """
    Run fn(payload), waiting at most timeout_ms.

    timeout_ms=None means no timeout. Zero arms an immediate timer.

    Raises:
        OperationTimeout: if the timer fires first.
        CapabilityError(EXECUTION_FAILED): if fn cancelled itself.
        Whatever fn raises, otherwise.
    """
    task = asyncio.ensure_future(_invoke(fn, payload))

    timeout_s = None if timeout_ms is None else max(timeout_ms, 0) / 1000.0
    done, _ = await asyncio.wait({task}, timeout=timeout_s)
    if task in done:
        if task.cancelled():
            # Nothing here cancelled it, so fn raised CancelledError itself.
            raise CapabilityError(ErrorCode.EXECUTION_FAILED, "Operation was cancelled")
        return task.result()

    if cancel_on_timeout:
        task.cancel()
    task.add_done_callback(_observe_abandoned)
    raise OperationTimeout(timeout_ms)


def _report(timing_cb: Optional[TimingCallback], label: str, duration_ms: int,
            status: str, error_text: Optional[str]) -> None:
    if not timing_cb:
        return
    try:
        timing_cb(label, duration_ms, status, error_text)
    except Exception:
        # Timing must not interfere with main flow.
        logger.debug("timing_cb raised for %s", label, exc_info=True)


async def run_with_retries(
    fn: Callable[[Dict[str, Any]], Any],
    payload: Dict[str, Any],
    timeout_ms: Optional[float],
    max_retries: int,
    label: str = "operation",
    sleep: SleepFn = asyncio.sleep,
    timing_cb: Optional[TimingCallback] = None,
    cancel_on_timeout: bool = False,
) -> Tuple[Any, int]:
    """
    Run fn with timeout + retry semantics.

    Parameters:
        max_retries:
            Number of retries AFTER the initial attempt.
            Total attempts = max_retries + 1.

        sleep:
            Cooperative sleep taking seconds. Injected by tests.

    Returns:
        (result, duration_ms) where duration_ms covers only the
        successful attempt.

    Raises:
        The last exception (or OperationTimeout) if all attempts fail.
    """
    if max_retries < 0:
        max_retries = 0

    last_exc: Optional[BaseException] = None

    for attempt in range(max_retries + 1):
        start = time.monotonic()
        try:
            result = await run_with_timeout(fn, payload, timeout_ms, cancel_on_timeout)
        except OperationTimeout as exc:
            last_exc = exc
            status = "timeout"
        except Exception as exc:
            last_exc = exc
            status = "error"
        else:
            duration_ms = int(round((time.monotonic() - start) * 1000))
            _report(timing_cb, label, duration_ms, "ok", None)
            return result, duration_ms

        error_text = str(last_exc) or last_exc.__class__.__name__
        _report(timing_cb, label, int(round((time.monotonic() - start) * 1000)), status, error_text)

        if attempt < max_retries:
            wait_ms = backoff_delay_ms(attempt)
            logger.warning(
                "Retry %d/%d for %s after %dms (%s)",
                attempt + 1, max_retries, label, wait_ms, error_text,
            )
            await sleep(wait_ms / 1000.0)

    _report(timing_cb, label, 0, "give_up", str(last_exc))
    if last_exc is None:
        raise RuntimeError(f"{label}: run_with_retries failed with unknown error state")
    raise last_exc
