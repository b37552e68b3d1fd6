"""
Logging helpers for cutover runs

Every activation run writes a timestamped, append-only run log. The logger
returned by ``open_run_log`` is the run's log sink and is handed explicitly
to the orchestrator and the process manager.
"""
import logging
import os
import time
from contextlib import contextmanager
from datetime import datetime
from typing import Optional, TextIO, Tuple

app_logger = logging.getLogger('cutover')

RUN_LOG_PREFIX = 'gg_activate_fallback'
RUN_LOG_FORMAT = '%(asctime)s %(levelname)-7s %(message)s'


def log_with_context(logger, level, message, **context):
    """
    Log a message with additional context fields

    Args:
        logger: The logger instance to use
        level: Log level (INFO, ERROR, WARNING, etc.)
        message: The log message
        **context: Additional context fields (unit, action, outcome, ...)

    Example:
        log_with_context(
            run_logger,
            'WARNING',
            'Unexpected response to reposition',
            unit='Extract EXB2A23A',
            http_status=200,
        )
    """
    extra = {k: v for k, v in context.items() if v is not None}
    if extra:
        message = f"{message} [" + ' '.join(f"{k}={v}" for k, v in extra.items()) + ']'
    logger.log(getattr(logging, level.upper()), message, extra=extra)


@contextmanager
def log_operation(logger, operation_name, **context):
    """
    Context manager to log the start, end, and duration of an operation

    Example:
        with log_operation(run_logger, 'fallback_activation', extract='EXB2A23A'):
            orchestrator.run()
    """
    start_time = time.time()

    log_with_context(
        logger,
        'DEBUG',
        f'{operation_name} started',
        operation=operation_name,
        **context
    )

    try:
        yield

        duration = time.time() - start_time
        log_with_context(
            logger,
            'DEBUG',
            f'{operation_name} completed in {duration:.1f}s',
            operation=operation_name,
            duration=duration,
            status='success',
            **context
        )

    except Exception as e:
        duration = time.time() - start_time
        log_with_context(
            logger,
            'ERROR',
            f'{operation_name} failed: {str(e)}',
            operation=operation_name,
            duration=duration,
            status='failed',
            error_type=type(e).__name__,
            error_message=str(e),
            **context
        )
        raise


def run_log_filename(started_at: datetime) -> str:
    """gg_activate_fallback_YYYYmmdd_HHMMSS.log for the given run start time"""
    return f"{RUN_LOG_PREFIX}_{started_at.strftime('%Y%m%d_%H%M%S')}.log"


def open_run_log(
    log_dir: str,
    started_at: datetime,
    stream: Optional[TextIO] = None,
) -> Tuple[logging.Logger, str]:
    """
    Create the per-run logger.

    The file receives everything (DEBUG and up: request/response pairs and
    step narration). ``stream``, usually the command's stdout, receives the
    narration only (INFO and up).

    Args:
        log_dir: Directory for the run log file
        started_at: Run start time; determines the file name
        stream: Optional terminal stream to tee narration to

    Returns:
        Tuple[logging.Logger, str]: (run logger, log file path)
    """
    os.makedirs(log_dir, exist_ok=True)
    path = os.path.join(log_dir, run_log_filename(started_at))

    run_logger = logging.getLogger(f"cutover.run.{started_at.strftime('%Y%m%d_%H%M%S_%f')}")
    run_logger.setLevel(logging.DEBUG)
    run_logger.propagate = False

    file_handler = logging.FileHandler(path, mode='a', encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(RUN_LOG_FORMAT))
    run_logger.addHandler(file_handler)

    if stream is not None:
        stream_handler = logging.StreamHandler(stream)
        stream_handler.setLevel(logging.INFO)
        stream_handler.setFormatter(logging.Formatter('%(message)s'))
        run_logger.addHandler(stream_handler)

    app_logger.debug(f"Run log opened: {path}")
    return run_logger, path


def close_run_log(run_logger: logging.Logger):
    """Flush and detach all handlers of a run logger"""
    for handler in list(run_logger.handlers):
        handler.flush()
        handler.close()
        run_logger.removeHandler(handler)
