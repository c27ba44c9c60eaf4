"""
Grading Engine Logging

Every module logs through a child of the ``gradebook`` logger. Lines about a
particular attempt carry the ids of the submission, test and user involved as
structured context, which the JSON formatter merges into the emitted object:

    log = grading_logger(logger, submission=submission)
    log.info("Submitted")   # data={"submission_id": ..., "test_id": ..., "user_id": ...}

The root logger reads GRADEBOOK_LOG_LEVEL, GRADEBOOK_LOG_JSON and
GRADEBOOK_LOG_FILE at import; ``config.apply_logging_config`` reconfigures it
from the loaded settings.
"""

import os
import sys
import json
import time
import logging
import datetime
import functools
import inspect
from typing import Dict, Any, List, Optional, Union, Callable, TypeVar

DEFAULT_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-30s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

APP_LOGGER_NAME = "gradebook"

F = TypeVar('F', bound=Callable[..., Any])

__all__ = [
    'configure_logger',
    'ContextAdapter',
    'grading_logger',
    'JsonFormatter',
    'app_logger',
    'log_execution_time'
]


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line; the ``data`` context of a record is merged in at
    the top level so grading events can be filtered by id.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "time": datetime.datetime.fromtimestamp(record.created, tz=datetime.timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        context = getattr(record, 'data', None)
        if isinstance(context, dict):
            entry.update(context)
        return json.dumps(entry, default=str)


def _handlers(formatter: logging.Formatter, log_file: Optional[str]) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        directory = os.path.dirname(log_file)
        try:
            if directory:
                os.makedirs(directory, exist_ok=True)
            handlers.append(logging.FileHandler(log_file))
        except OSError as e:
            logging.getLogger(APP_LOGGER_NAME).warning(f"Could not open log file {log_file}: {e}")

    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def configure_logger(
    name: str = APP_LOGGER_NAME,
    level: Union[str, int] = logging.INFO,
    format_string: str = DEFAULT_LOG_FORMAT,
    use_json: bool = False,
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    (Re)configure a logger: console output, plus a file when ``log_file`` is set.

    Existing handlers are replaced, so calling this twice does not duplicate
    lines. A log file that cannot be opened is reported and skipped.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())

    formatter = JsonFormatter() if use_json else logging.Formatter(format_string, DEFAULT_DATE_FORMAT)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers = []
    for handler in _handlers(formatter, log_file):
        logger.addHandler(handler)
    return logger


class ContextAdapter(logging.LoggerAdapter):
    """
    Adds a fixed context to every record as the ``data`` extra.

    Context passed per call through ``extra={"data": ...}`` is kept; the
    adapter's own values win on conflicts. None values are never stored.
    """

    def __init__(self, logger: logging.Logger, context: Optional[Dict[str, Any]] = None):
        super().__init__(logger, {k: v for k, v in (context or {}).items() if v is not None})

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        extra = dict(kwargs.get('extra') or {})
        extra['data'] = {**(extra.get('data') or {}), **self.extra}
        kwargs['extra'] = extra
        return msg, kwargs

    def bind(self, **context) -> 'ContextAdapter':
        """A new adapter with this context plus ``context``."""
        return ContextAdapter(self.logger, {**self.extra, **context})


def grading_logger(logger: logging.Logger,
                   *,
                   submission: Any = None,
                   test: Any = None,
                   **context) -> ContextAdapter:
    """
    Adapter tagged with the attempt or test a log line is about.

    Args:
        logger: Module logger
        submission: Submission whose id, test id and user id are attached
        test: Test definition whose id and classroom id are attached
        **context: Further ids, e.g. ``grader_id`` or ``template_id``

    Returns:
        A ContextAdapter
    """
    ids: Dict[str, Any] = {}
    if test is not None:
        ids.update(test_id=test.id, classroom_id=test.classroom_id)
    if submission is not None:
        ids.update(submission_id=submission.id, test_id=submission.test_id, user_id=submission.user_id)
    ids.update(context)
    return ContextAdapter(logger, ids)


def _app_logger() -> logging.Logger:
    logger = logging.getLogger(APP_LOGGER_NAME)
    if logger.handlers:
        return logger
    return configure_logger(
        level=os.environ.get("GRADEBOOK_LOG_LEVEL", "INFO"),
        use_json=os.environ.get("GRADEBOOK_LOG_JSON", "false").lower() == "true",
        log_file=os.environ.get("GRADEBOOK_LOG_FILE"),
    )


app_logger = _app_logger()


def log_execution_time(logger: Optional[logging.Logger] = None) -> Callable[[F], F]:
    """
    Decorator logging how long a function or coroutine function took.

    Durations are logged at DEBUG; a failure is logged at ERROR with the
    elapsed time and re-raised.

    Args:
        logger: Logger to use (the application logger if None)
    """
    log = logger or app_logger

    def decorator(func: F) -> F:
        def report(started: float, error: Optional[Exception] = None) -> None:
            elapsed = time.perf_counter() - started
            if error is None:
                log.debug(f"{func.__name__} executed in {elapsed:.3f} seconds")
            else:
                log.error(f"{func.__name__} failed after {elapsed:.3f} seconds: {error}")

        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                started = time.perf_counter()
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    report(started, e)
                    raise
                report(started)
                return result
            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                report(started, e)
                raise
            report(started)
            return result
        return wrapper
    return decorator
