import logging

ROOT_LOGGER_NAME = "eqsolver"

_FORMAT = "[EQSOLVER] [%(levelname)s] %(name)s: %(message)s"


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    return logging.getLogger(name)


def enable_console_logging(level=logging.INFO) -> logging.Logger:
    """Attach a console handler to the ``eqsolver`` logger.

    Safe to call more than once; only one handler is ever installed.
    """
    logger = get_logger()
    logger.setLevel(level)

    # Prevent double handlers on repeated calls
    if not any(getattr(h, "_eqsolver_console", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._eqsolver_console = True
        logger.addHandler(handler)

    logger.propagate = False
    return logger
