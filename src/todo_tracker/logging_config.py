import sys
from pathlib import Path

from loguru import logger

from todo_tracker.settings import Settings


def setup_logging(settings: Settings) -> None:
    """
    Configure logging for the application.

    stdout belongs to the MCP stdio transport, so the console sink writes to
    stderr. A rotating file sink under ``<app_data_dir>/logs`` is added when
    ``logging_to_file`` is enabled.
    """

    logger.remove()

    logger.add(
        sys.stderr,
        level=settings.logging_level,
        format=settings.logging_format,
        colorize=False,
        backtrace=True,
        diagnose=False,
        enqueue=True,
        catch=True,
    )

    if settings.logging_to_file:
        log_dir = Path(settings.app_data_dir).expanduser() / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_dir / f"{settings.app_name}.log",
            level=settings.logging_level,
            format=settings.logging_format,
            rotation=settings.logging_rotation,
            retention=settings.logging_retention,
            compression=settings.logging_compression,
            enqueue=True,
            catch=True,
        )

    # Common context for every record; modules add their own via keyword args.
    logger.configure(extra={"app": settings.app_name, "version": settings.app_version})

    logger.info(
        "Logging system initialized",
        log_level=settings.logging_level,
        log_to_file=settings.logging_to_file,
    )
