"""Process-level failure handling for the long-running MCP server."""

from __future__ import annotations

import asyncio
import sys
import threading
import time
from types import TracebackType
from typing import Any

from imagegen.config.logging_config import get_logger

log = get_logger(__name__)

EXIT_GRACE_PERIOD = 0.5


def _handle_uncaught(
    exc_type: type[BaseException],
    exc: BaseException,
    tb: TracebackType | None,
) -> None:
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc, tb)
        return
    log.critical("Uncaught exception, exiting", exc_info=(exc_type, exc, tb))
    # Give log handlers time to flush before the interpreter exits with status 1
    time.sleep(EXIT_GRACE_PERIOD)


def _handle_thread_exception(args: threading.ExceptHookArgs) -> None:
    log.error(
        f"Unhandled exception in thread {args.thread.name if args.thread else '?'}",
        exc_info=(args.exc_type, args.exc_value, args.exc_traceback),  # type: ignore[arg-type]
    )


def loop_exception_handler(loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
    """Log failures of background tasks instead of crashing the server."""
    exc = context.get("exception")
    message = context.get("message", "Unhandled asynchronous error")
    if exc is not None:
        log.error(f"Unhandled asynchronous error: {message}", exc_info=exc)
    else:
        log.error(f"Unhandled asynchronous error: {message}")


def install_process_hooks() -> None:
    sys.excepthook = _handle_uncaught
    threading.excepthook = _handle_thread_exception


def install_loop_exception_handler() -> None:
    asyncio.get_running_loop().set_exception_handler(loop_exception_handler)
