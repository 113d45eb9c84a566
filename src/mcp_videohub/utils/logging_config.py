"""Logging configuration for the Videohub preset manager.

Provides configurable logging with:
- File-based logging with rotation
- Console output for real-time debugging
- Performance timing decorators for hub round-trips

Environment Variables:
    VIDEOHUB_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    VIDEOHUB_LOG_FILE: Path to log file (default: ~/.videohub/videohub.log)
    VIDEOHUB_LOG_MAX_SIZE: Max log file size in MB (default: 10)
    VIDEOHUB_LOG_BACKUPS: Number of backup files to keep (default: 5)

Usage:
    from mcp_videohub.utils.logging_config import setup_logging, timed

    setup_logging()  # Call once at startup

    @timed("fetch_state")
    async def fetch(self):
        ...

    async with timed_section("apply_preset", hub_id="videohub-40x40"):
        ...
"""
import asyncio
import functools
import logging
import os
import time
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Callable, Any

# Performance logger - separate from main logger for easy filtering
perf_logger = logging.getLogger("videohub.perf")


def get_log_level() -> int:
    """Get log level from environment."""
    level_str = os.environ.get("VIDEOHUB_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_str, logging.INFO)


def get_log_file() -> Path:
    """Get log file path from environment."""
    default_path = Path.home() / ".videohub" / "videohub.log"
    path_str = os.environ.get("VIDEOHUB_LOG_FILE", str(default_path))
    return Path(path_str)


def _rotating_handler(path: Path, max_bytes: int, backups: int, fmt: logging.Formatter) -> RotatingFileHandler:
    handler = RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backups, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(fmt)
    return handler


def setup_logging() -> None:
    """Configure logging for the application.

    Sets up:
    - Console handler on stderr (INFO+ by default, respects VIDEOHUB_LOG_LEVEL)
    - Rotating file handler at DEBUG for the package loggers
    - A separate rotating perf log (videohub-perf.log) for timing lines

    Calling it again is a no-op.
    """
    package_logger = logging.getLogger("mcp_videohub")
    if package_logger.handlers:
        return

    log_level = get_log_level()
    log_file = get_log_file()
    max_bytes = int(os.environ.get("VIDEOHUB_LOG_MAX_SIZE", "10")) * 1024 * 1024
    backups = int(os.environ.get("VIDEOHUB_LOG_BACKUPS", "5"))

    log_file.parent.mkdir(parents=True, exist_ok=True)
    perf_log_file = log_file.parent / "videohub-perf.log"

    datefmt = "%Y-%m-%d %H:%M:%S"
    main_format = logging.Formatter(
        "%(asctime)s.%(msecs)03d | %(name)-32s | %(levelname)-7s | %(message)s", datefmt=datefmt
    )
    perf_format = logging.Formatter("%(asctime)s.%(msecs)03d | PERF | %(message)s", datefmt=datefmt)

    # stdout belongs to the MCP stdio transport
    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(main_format)

    package_logger.setLevel(logging.DEBUG)  # handlers filter
    package_logger.addHandler(console_handler)
    package_logger.addHandler(_rotating_handler(log_file, max_bytes, backups, main_format))

    perf_logger.setLevel(logging.DEBUG)
    perf_logger.addHandler(_rotating_handler(perf_log_file, max_bytes, backups, perf_format))
    perf_logger.addHandler(console_handler)

    package_logger.info(
        f"Logging initialized: level={logging.getLevelName(log_level)}, file={log_file}, perf={perf_log_file}"
    )


def _report(
    operation: str,
    hub_id: Optional[str],
    start: float,
    error: Optional[BaseException] = None,
    extra: Optional[dict] = None,
) -> None:
    """Write one timing line; failures are logged at WARNING."""
    elapsed = (time.perf_counter() - start) * 1000  # ms
    status = "OK" if error is None else f"FAIL: {error}"
    msg = f"{operation:20s} | {hub_id or 'N/A':15s} | {elapsed:8.2f}ms | {status}"
    if extra:
        msg += " | " + " | ".join(f"{k}={v}" for k, v in extra.items())
    perf_logger.log(logging.INFO if error is None else logging.WARNING, msg)


def timed(operation: str, hub_id: Optional[str] = None):
    """Decorator to log execution time of sync/async functions.

    Args:
        operation: Name of the operation (e.g., "connect", "fetch_state")
        hub_id: Optional hub identifier (can also be inferred from self.hub_id)
    """
    def decorator(func: Callable) -> Callable:
        def resolve_hub(args) -> Optional[str]:
            if hub_id is None and args and hasattr(args[0], "hub_id"):
                return args[0].hub_id
            return hub_id

        if asyncio.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs) -> Any:
                start = time.perf_counter()
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _report(operation, resolve_hub(args), start, error=e)
                    raise
                _report(operation, resolve_hub(args), start)
                return result

            return async_wrapper

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs) -> Any:
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _report(operation, resolve_hub(args), start, error=e)
                raise
            _report(operation, resolve_hub(args), start)
            return result

        return sync_wrapper

    return decorator


@asynccontextmanager
async def timed_section(operation: str, hub_id: Optional[str] = None, **extra):
    """Async context manager for timing code sections.

    Usage:
        async with timed_section("tool:apply_preset", hub_id="videohub-12x12", preset="show"):
            await session.apply_preset()
    """
    start = time.perf_counter()
    try:
        yield
    except Exception as e:
        _report(operation, hub_id, start, error=e, extra=extra)
        raise
    _report(operation, hub_id, start, extra=extra)
