# logging_config.py
# Description: Loguru sink setup, with interception of standard logging from third-party libraries.
#
# Imports
import logging
import sys
from pathlib import Path
from typing import Optional, Union
#
# 3rd-party Libraries
from loguru import logger
#
# Local Imports
#
#######################################################################################################################
#
# Functions:

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)

# Standard-library loggers routed into loguru
LOGGERS_TO_INTERCEPT = ["urllib3", "requests"]


class InterceptHandler(logging.Handler):
    def emit(self, record):
        # Get corresponding Loguru level if it exists
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message
        frame, depth = logging.currentframe(), 2
        while frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def configure_logging(
    level: str = "INFO",
    log_file: Optional[Union[str, Path]] = None,
    file_level: str = "DEBUG",
    rotation: str = "10 MB",
    retention: int = 5,
) -> None:
    """Replaces loguru's default sink with the package's stderr sink and an optional rotating file sink."""
    logger.remove()
    logger.add(sys.stderr, level=level, format=LOG_FORMAT, colorize=True)

    if log_file is not None:
        logger.add(
            str(log_file),
            level=file_level,
            format=LOG_FORMAT,
            rotation=rotation,
            retention=retention,
            encoding="utf-8",
        )

    for logger_name in LOGGERS_TO_INTERCEPT:
        mod_logger = logging.getLogger(logger_name)
        mod_logger.handlers = [InterceptHandler()]
        mod_logger.propagate = False

    logger.debug(f"Loguru configured (level={level}, file={log_file})")


def configure_logging_from_config() -> None:
    """Configures logging from the loaded TOML configuration."""
    from media_catalog.config import get_setting, get_log_file_path

    configure_logging(
        level=get_setting("general", "log_level", "INFO"),
        log_file=get_log_file_path(),
        file_level=get_setting("logging", "file_log_level", "DEBUG"),
        rotation=get_setting("logging", "log_rotation", "10 MB"),
        retention=int(get_setting("logging", "log_retention", 5)),
    )

#
# End of logging_config.py
#######################################################################################################################
