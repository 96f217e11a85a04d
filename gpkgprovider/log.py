import logging

LOGGER_NAME = 'gpkgprovider'
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(level='INFO', handler=None):
    """
    Configure the ``gpkgprovider`` logger and return it.

    Calling it again only updates the level; handlers are added once.
    """
    logger = logging.getLogger(LOGGER_NAME)

    numeric_level = getattr(logging, str(level).upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f'Invalid log level: {level}')
    logger.setLevel(numeric_level)

    if not logger.handlers:
        handler = handler or logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    return logger
