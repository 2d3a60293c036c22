"""
Persistent event loop for function invocations.

Lambda entry points are synchronous while the services are async. Each
process keeps a single event loop on a background thread so that AWS clients
and stores created on a cold start are reused by warm invocations.

Usage:
    from unicorn_properties.runtime.loop import run_async

    # Instead of: result = asyncio.run(service.create_contract(request))
    # Use:        result = run_async(service.create_contract(request))
"""

import asyncio
import threading
from collections.abc import Coroutine
from typing import Any, TypeVar

T = TypeVar("T")

_loop: asyncio.AbstractEventLoop | None = None
_loop_lock = threading.Lock()
_loop_thread: threading.Thread | None = None


def _run_loop_forever(loop: asyncio.AbstractEventLoop) -> None:
    asyncio.set_event_loop(loop)
    loop.run_forever()


def get_loop() -> asyncio.AbstractEventLoop:
    """
    Get the persistent event loop for this process, starting it if needed.

    Returns:
        The process event loop
    """
    global _loop, _loop_thread

    with _loop_lock:
        if _loop is None or _loop.is_closed():
            _loop = asyncio.new_event_loop()
            _loop_thread = threading.Thread(
                target=_run_loop_forever,
                args=(_loop,),
                daemon=True,
                name="unicorn-event-loop",
            )
            _loop_thread.start()
        return _loop


def close_loop() -> None:
    """Stop and close the persistent event loop."""
    global _loop, _loop_thread

    with _loop_lock:
        if _loop is None or _loop.is_closed():
            return
        _loop.call_soon_threadsafe(_loop.stop)
        if _loop_thread is not None:
            _loop_thread.join(timeout=5.0)
        if not _loop.is_closed():
            _loop.close()
        _loop = None
        _loop_thread = None


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """
    Run a coroutine on the persistent event loop and wait for its result.

    Thread-safe: the coroutine is submitted with
    asyncio.run_coroutine_threadsafe(). Exceptions raised by the coroutine
    propagate to the caller.

    Args:
        coro: The coroutine to run

    Returns:
        The result of the coroutine
    """
    future = asyncio.run_coroutine_threadsafe(coro, get_loop())
    return future.result()


def is_loop_running() -> bool:
    """Check if the loop exists and is not closed."""
    return _loop is not None and not _loop.is_closed()
