import logging, json, sys, time, os


def get_logger(name="robes", level=None, to_file=None, stream=None):
    """Unified structured logger for all robes components."""
    logger = logging.getLogger(name)
    if level is None:
        level = os.getenv("ROBES_LOG_LEVEL", "INFO").upper()
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler(stream or sys.stdout)
        formatter = logging.Formatter(
            fmt=json.dumps({
                "ts": "%(asctime)s",
                "level": "%(levelname)s",
                "name": "%(name)s",
                "msg": "%(message)s"
            }, ensure_ascii=False),
            datefmt="%Y-%m-%dT%H:%M:%SZ",
        )
        formatter.converter = time.gmtime  # UTC timestamps
        handler.setFormatter(formatter)
        logger.addHandler(handler)

        if to_file:
            os.makedirs(os.path.dirname(to_file) or ".", exist_ok=True)
            file_handler = logging.FileHandler(to_file, encoding="utf-8")
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger


def route_logs(stream, prefix="robes"):
    """Point the console handler of every ``prefix`` logger at ``stream``."""
    for name, logger in list(logging.root.manager.loggerDict.items()):
        if not isinstance(logger, logging.Logger):
            continue
        if name != prefix and not name.startswith(prefix + "."):
            continue
        for handler in logger.handlers:
            if type(handler) is logging.StreamHandler:
                handler.setStream(stream)
