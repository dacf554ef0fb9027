import logging
import sys

from loguru import logger

LOG_FORMAT = (
    '<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | '
    '<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level> | {extra}'
)


class _InterceptHandler(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1
        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(
        sys.stdout,
        level=level,
        format=LOG_FORMAT,
        enqueue=True,
        backtrace=True,
        diagnose=False,
    )
    logging.root.handlers = [_InterceptHandler()]
    logging.root.setLevel(level)
    for name in ('uvicorn', 'uvicorn.error', 'uvicorn.access', 'sqlalchemy.engine'):
        logging.getLogger(name).handlers = []
        logging.getLogger(name).propagate = True


def mask_token(token: str) -> str:
    if len(token) <= 8:
        return '***'
    return f'{token[:6]}...'
