import logging

from pythonjsonlogger import jsonlogger

from config import Settings


def setup_logging(settings: Settings) -> None:
    logHandler = logging.StreamHandler()
    if settings.log_json:
        formatter = jsonlogger.JsonFormatter('%(asctime)s %(levelname)s %(name)s %(message)s',
                                             rename_fields={'levelname': 'level', 'asctime': 'timestamp'})
    else:
        formatter = logging.Formatter('%(asctime)s %(levelname)s %(name)s %(message)s')
    logHandler.setFormatter(formatter)
    logger = logging.getLogger()
    logger.addHandler(logHandler)
    logger.setLevel(settings.log_level.upper())
