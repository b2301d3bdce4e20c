import json
import logging
import sys
import traceback

import loguru
from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<bold><white>{message}</white></bold> | <dim>{extra}</dim> {stacktrace}"
)


# Loggers configuration runs at the start of the application -- src/staffing_api/__init__.py
# and again from create_app() with the configured level
def configure_logger(level: str = "INFO", log_file: str | None = None):
    """
    Configure loguru logger.

    Args:
        level: Minimum level written to stdout
        log_file: Optional path of a rotating log file (same format as stdout)
    """
    # Suppress verbose driver logging
    logging.getLogger("asyncpg").setLevel(logging.WARNING)

    logger.remove()  # remove the default logger

    logger.add(
        sink=sys.stdout,
        level=level.upper(),
        diagnose=False,
        format=LOG_FORMAT,
        filter=process_log_record,
    )

    if log_file:
        logger.add(
            sink=log_file,
            level=level.upper(),
            diagnose=False,
            format=LOG_FORMAT,
            filter=process_log_record,
            rotation="50 MB",
            retention=5,
            enqueue=True,
        )


def process_log_record(record: "loguru.Record") -> "loguru.Record":
    r"""
    Inject transformed metadata into each log record before they are passed to the formatter.

    1. Serialize the "extra" field to JSON so that it renders on one line in log aggregators.
    2. For error logs, add a traceback with \r instead of \n so that the aggregator does not
       split the traceback into multiple log events.
    """
    extra = record["extra"]

    if extra and not isinstance(extra, str):
        record["extra"] = json.dumps(extra, default=str)

    record["stacktrace"] = ""
    if record["exception"]:
        record["stacktrace"] = get_formatted_stacktrace(
            record["exception"], replace_newline_character_with_carriage_return=True
        )

    return record


def get_formatted_stacktrace(loguru_record_exception, replace_newline_character_with_carriage_return: bool) -> str:
    """Get the formatted stacktrace for the current exception."""
    exc_type, exc_value, exc_traceback = loguru_record_exception
    stacktrace_: list[str] = traceback.format_exception(exc_type, exc_value, exc_traceback)
    stacktrace: str = "".join(stacktrace_)
    if replace_newline_character_with_carriage_return:
        stacktrace = stacktrace.replace("\n", "\r")
    return stacktrace
