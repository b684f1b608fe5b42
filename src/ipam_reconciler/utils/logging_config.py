"""Logging setup and timing helpers.

Three destinations:
- console, at IPAM_RECONCILER_LOG_LEVEL (default INFO)
- the main log file, everything from DEBUG up, rotated
- a perf log next to it with one line per timed request or lifecycle call

Environment Variables:
    IPAM_RECONCILER_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    IPAM_RECONCILER_LOG_FILE: Main log file (default: ~/.ipam-reconciler/ipam-reconciler.log)
    IPAM_RECONCILER_LOG_MAX_SIZE: Rotation size in MB (default: 10)
    IPAM_RECONCILER_LOG_BACKUPS: Rotated files kept (default: 5)
"""
import asyncio
import functools
import logging
import os
import time
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Callable, Optional

main_logger = logging.getLogger("ipam_reconciler")
# Not propagated: perf lines only go to their own file
perf_logger = logging.getLogger("ipam_reconciler.perf")

LINE_FORMAT = "%(asctime)s.%(msecs)03d | %(name)-35s | %(levelname)-7s | %(message)s"
PERF_FORMAT = "%(asctime)s.%(msecs)03d | PERF | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Marks handlers installed here so setup_logging can be called again
_OWNED = "_ipam_reconciler_handler"


def get_log_level() -> int:
    """Console log level from the environment."""
    name = os.environ.get("IPAM_RECONCILER_LOG_LEVEL", "INFO").upper()
    return getattr(logging, name, logging.INFO)


def get_log_file() -> Path:
    """Main log file from the environment."""
    default = Path.home() / ".ipam-reconciler" / "ipam-reconciler.log"
    return Path(os.environ.get("IPAM_RECONCILER_LOG_FILE", str(default)))


def _rotating(path: Path, fmt: str) -> RotatingFileHandler:
    max_mb = int(os.environ.get("IPAM_RECONCILER_LOG_MAX_SIZE", "10"))
    backups = int(os.environ.get("IPAM_RECONCILER_LOG_BACKUPS", "5"))
    handler = RotatingFileHandler(
        path, maxBytes=max_mb * 1024 * 1024, backupCount=backups, encoding="utf-8"
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(fmt, datefmt=DATE_FORMAT))
    return handler


def _replace_handlers(logger: logging.Logger, *handlers: logging.Handler) -> None:
    for old in [h for h in logger.handlers if getattr(h, _OWNED, False)]:
        logger.removeHandler(old)
        old.close()
    for handler in handlers:
        setattr(handler, _OWNED, True)
        logger.addHandler(handler)


def setup_logging() -> None:
    """Install console, file and perf handlers. Safe to call more than once."""
    level = get_log_level()
    log_file = get_log_file()
    log_file.parent.mkdir(parents=True, exist_ok=True)
    perf_file = log_file.parent / "ipam-reconciler-perf.log"

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter(LINE_FORMAT, datefmt=DATE_FORMAT))

    main_logger.setLevel(logging.DEBUG)  # handlers filter
    _replace_handlers(main_logger, console, _rotating(log_file, LINE_FORMAT))

    perf_logger.setLevel(logging.DEBUG)
    perf_logger.propagate = False
    _replace_handlers(perf_logger, _rotating(perf_file, PERF_FORMAT))

    main_logger.info(
        f"Logging initialized: level={logging.getLevelName(level)}, "
        f"file={log_file}, perf={perf_file}"
    )


def _report(
    operation: str,
    appliance_id: Optional[str],
    start: float,
    error: Optional[BaseException] = None,
    extra: Optional[dict] = None,
) -> None:
    elapsed = (time.perf_counter() - start) * 1000
    status = "OK" if error is None else f"FAIL: {error}"
    msg = f"{operation:20s} | {appliance_id or 'N/A':15s} | {elapsed:8.2f}ms | {status}"
    if extra:
        msg += " | " + " | ".join(f"{k}={v}" for k, v in extra.items())
    if error is None:
        perf_logger.info(msg)
    else:
        perf_logger.warning(msg)


def timed(operation: str, appliance_id: Optional[str] = None):
    """Record the duration of every call in the perf log.

    The appliance is taken from ``self.appliance_id`` when not given.

    Usage:
        @timed("request")
        async def request(self, verb, endpoint, parameters):
            ...
    """
    def decorator(func: Callable) -> Callable:
        def owner(args: tuple) -> Optional[str]:
            if appliance_id is None and args:
                return getattr(args[0], "appliance_id", None)
            return appliance_id

        if asyncio.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs) -> Any:
                start = time.perf_counter()
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _report(operation, owner(args), start, e)
                    raise
                _report(operation, owner(args), start)
                return result

            return async_wrapper

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs) -> Any:
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _report(operation, owner(args), start, e)
                raise
            _report(operation, owner(args), start)
            return result

        return sync_wrapper

    return decorator


@asynccontextmanager
async def timed_section(operation: str, appliance_id: Optional[str] = None, **extra):
    """Time an async block; keyword arguments are appended to the perf line.

    Usage:
        async with timed_section("delete", appliance_id="sds-prod", oid="123"):
            ...
    """
    start = time.perf_counter()
    try:
        yield
    except Exception as e:
        _report(operation, appliance_id, start, e, extra)
        raise
    _report(operation, appliance_id, start, extra=extra)
