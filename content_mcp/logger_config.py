import asyncio
import functools
import json
import logging
import traceback
from datetime import datetime
from datetime import timezone
from enum import Enum
from logging.handlers import RotatingFileHandler
from pathlib import Path

# Import metrics functionality (will gracefully handle if not available)
try:
    from .metrics_config import record_tool_call_error
    from .metrics_config import record_tool_call_start
    from .metrics_config import record_tool_call_success

    METRICS_AVAILABLE = True
except ImportError:
    METRICS_AVAILABLE = False

_MAX_BYTES = 10 * 1024 * 1024  # 10MB
_BACKUP_COUNT = 5

_STANDARD_RECORD_ATTRS = set(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {"message", "asctime"}


class ErrorCategory(Enum):
    """Severity buckets for structured error logging."""

    CRITICAL = "CRITICAL"
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"


_CATEGORY_LEVELS = {
    ErrorCategory.CRITICAL: logging.CRITICAL,
    ErrorCategory.ERROR: logging.ERROR,
    ErrorCategory.WARNING: logging.WARNING,
    ErrorCategory.INFO: logging.INFO,
}


class StructuredLogFormatter(logging.Formatter):
    """Render records as one JSON object per line, including ``extra`` fields."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }
        for key, value in record.__dict__.items():
            if key not in _STANDARD_RECORD_ATTRS and not key.startswith("_"):
                entry[key] = value

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, exc_tb = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": traceback.format_exception(exc_type, exc_value, exc_tb),
            }
        return json.dumps(entry, default=str)


# --- Logging Setup ---
_log_dir = Path(__file__).resolve().parent

mcp_call_logger = logging.getLogger("mcp_call_logger")
mcp_call_logger.setLevel(logging.INFO)
# delay=True: the file is only created on first write
_call_handler = RotatingFileHandler(
    _log_dir / "mcp_calls.log", maxBytes=_MAX_BYTES, backupCount=_BACKUP_COUNT, delay=True
)
_call_handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
mcp_call_logger.addHandler(_call_handler)
mcp_call_logger.propagate = False

error_logger = logging.getLogger("error_logger")
error_logger.setLevel(logging.INFO)
_error_handler = RotatingFileHandler(
    _log_dir / "errors.log", maxBytes=_MAX_BYTES, backupCount=_BACKUP_COUNT, delay=True
)
_error_handler.setFormatter(StructuredLogFormatter())
error_logger.addHandler(_error_handler)
error_logger.propagate = False


def configure_logging(log_file: str | None = None, level: str = "INFO") -> None:
    """Point the call/error logs at ``log_file`` (``errors`` gets a sibling file) and set the root level."""
    global _call_handler, _error_handler

    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO))
    if not log_file:
        return

    call_path = Path(log_file).expanduser().resolve()
    call_path.parent.mkdir(parents=True, exist_ok=True)
    error_path = call_path.with_name(f"{call_path.stem}.errors{call_path.suffix or '.log'}")

    new_call = RotatingFileHandler(call_path, maxBytes=_MAX_BYTES, backupCount=_BACKUP_COUNT)
    new_call.setFormatter(_call_handler.formatter)
    new_error = RotatingFileHandler(error_path, maxBytes=_MAX_BYTES, backupCount=_BACKUP_COUNT)
    new_error.setFormatter(StructuredLogFormatter())

    mcp_call_logger.removeHandler(_call_handler)
    error_logger.removeHandler(_error_handler)
    _call_handler.close()
    _error_handler.close()
    _call_handler, _error_handler = new_call, new_error
    mcp_call_logger.addHandler(new_call)
    error_logger.addHandler(new_error)


def log_structured_error(
    category: ErrorCategory,
    message: str,
    exception: Exception | None = None,
    context: dict | None = None,
    operation: str | None = None,
    **kwargs,
):
    """Log an error with its category, operation and arbitrary context as structured fields."""
    extra = {"error_category": category.value}
    if operation:
        extra["operation"] = operation
    if context:
        extra.update(context)
    extra.update(kwargs)
    if exception is not None:
        extra.setdefault("error_type", type(exception).__name__)
        error_code = getattr(exception, "error_code", None)
        if error_code:
            extra.setdefault("error_code", error_code)

    error_logger.log(
        _CATEGORY_LEVELS.get(category, logging.ERROR),
        message,
        exc_info=exception is not None,
        extra=extra,
    )


def _compact(value) -> str:
    if hasattr(value, "model_dump_json"):  # Pydantic v2 model
        return value.model_dump_json(indent=None, exclude_none=True)
    if isinstance(value, list) and value and hasattr(value[0], "model_dump_json"):
        return "[" + ", ".join(_compact(item) for item in value) + "]"
    return repr(value)


def _result_size(result) -> int:
    try:
        if isinstance(result, str):
            return len(result.encode("utf-8"))
        return len(_compact(result))
    except Exception:
        return 0


def _log_call_start(func_name, args, kwargs):
    start_time = None
    if METRICS_AVAILABLE:
        try:
            start_time = record_tool_call_start(func_name, args, kwargs)
        except Exception as e:
            # Don't let metrics errors break the function call
            mcp_call_logger.warning(f"Metrics recording failed for {func_name}: {e}")

    try:
        arg_str = f"args={[_compact(arg) for arg in args]}, kwargs={ {k: _compact(v) for k, v in kwargs.items()} }"
    except Exception as e:
        arg_str = f"args/kwargs logging error: {e}"
    mcp_call_logger.info(f"Calling tool: {func_name} with {arg_str}")
    return start_time


def _log_call_success(func_name, start_time, result):
    if METRICS_AVAILABLE:
        try:
            record_tool_call_success(func_name, start_time, _result_size(result))
        except Exception as e:
            mcp_call_logger.warning(f"Metrics success recording failed for {func_name}: {e}")

    try:
        result_str = _compact(result)
    except Exception as e:
        result_str = f"Result logging error: {e}"
    mcp_call_logger.info(f"Tool {func_name} returned: {result_str}")


def _log_call_error(func_name, start_time, error):
    if METRICS_AVAILABLE:
        try:
            record_tool_call_error(func_name, start_time, error)
        except Exception as metrics_error:
            mcp_call_logger.warning(f"Metrics error recording failed for {func_name}: {metrics_error}")

    mcp_call_logger.error(f"Tool {func_name} raised exception: {error}", exc_info=True)
    log_structured_error(
        category=ErrorCategory.ERROR,
        message=f"Tool {func_name} raised {type(error).__name__}: {error}",
        exception=error,
        operation="tool_execution",
        function=func_name,
    )


# --- Decorator for Logging MCP Calls with Metrics ---
def log_mcp_call(func):
    """Log arguments, results and failures of a tool (sync or async) and feed tool-call metrics."""
    func_name = getattr(func, "__name__", "unknown_function")

    if asyncio.iscoroutinefunction(func):

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            start_time = _log_call_start(func_name, args, kwargs)
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                _log_call_error(func_name, start_time, e)
                raise
            _log_call_success(func_name, start_time, result)
            return result

        return async_wrapper

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start_time = _log_call_start(func_name, args, kwargs)
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            _log_call_error(func_name, start_time, e)
            raise
        _log_call_success(func_name, start_time, result)
        return result

    return wrapper
