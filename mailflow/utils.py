from datetime import datetime, timezone
from enum import StrEnum
from typing import Union

from loguru import logger
from result import Err

from mailflow.errors import EngineError


class LogLevel(StrEnum):
    info = "INFO"
    debug = "DEBUG"
    warning = "WARNING"
    error = "ERROR"


LOG_FUNC = {
    LogLevel.info: logger.info,
    LogLevel.debug: logger.debug,
    LogLevel.warning: logger.warning,
    LogLevel.error: logger.error,
}


def return_error_and_log(
    error: Union[EngineError, str], level: LogLevel = LogLevel.error
) -> Err:
    LOG_FUNC[level](str(error))
    return Err(error)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
