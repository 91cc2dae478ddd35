import logging
import sys
import time
from typing import Optional

import click


_LEVEL_STYLES = {
    logging.DEBUG: ("debug", "cyan"),
    logging.INFO: ("info", "yellow"),
    logging.WARNING: ("WARN", "red"),
    logging.ERROR: ("ERROR", "red"),
    logging.CRITICAL: ("FATAL", "red"),
}


_handler: Optional[logging.Handler] = None


class KitFormatter(logging.Formatter):
    """
    `[app] [level] [YYYYmmdd-HHMMSS] message` 형식의 포매터.
    터미널일 때만 app 이름과 레벨에 색을 입힌다.
    """

    def __init__(self, app_name: str, *, colour: bool = False) -> None:
        super().__init__()
        self.app_name = app_name
        self.colour = colour

    def _style(self, text: str, fg: str) -> str:
        if not self.colour:
            return text
        return click.style(text, fg=fg, bold=True)

    def format(self, record: logging.LogRecord) -> str:
        label, fg = _LEVEL_STYLES.get(record.levelno, (record.levelname, "white"))
        stamp = time.strftime("%Y%m%d-%H%M%S", time.localtime(record.created))
        line = "[{}] [{}] [{}] {}".format(
            self._style(self.app_name, "blue"),
            self._style(label, fg),
            stamp,
            record.getMessage(),
        )
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(verbosity: int = 1, app_name: str = "gcloud-kit") -> None:
    """
    verbosity: 0 = WARNING 이상만, 1 = INFO, 2 이상 = DEBUG (실행 명령까지 출력)
    """
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    global _handler
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(KitFormatter(app_name, colour=sys.stderr.isatty()))

    root = logging.getLogger()
    if _handler is not None:
        root.removeHandler(_handler)
    root.addHandler(handler)
    root.setLevel(level)
    _handler = handler


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
