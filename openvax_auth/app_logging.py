"""Structured (JSON) logging for the OpenVax services."""

from typing import Union
import logging

from pythonjsonlogger import jsonlogger


def setup_logger(level: Union[int, str] = logging.INFO) -> logging.Logger:
    logger = logging.getLogger()
    if not logger.handlers:
        logHandler = logging.StreamHandler()
        formatter = jsonlogger.JsonFormatter('%(asctime)s %(levelname)s %(name)s %(message)s',
                                             rename_fields={'levelname': 'level', 'asctime': 'timestamp'})
        logHandler.setFormatter(formatter)
        logger.addHandler(logHandler)
    logger.setLevel(int(level) if str(level).isdigit() else level)
    return logger
