import sys
from typing import Optional

from loguru import logger as _logger

FORMAT = "<green>[{time:YYYY-MM-DD HH:mm:ss}]</green> <level>[{level}]</level> <yellow>[{name}:{function}:{line}]</yellow>: <level>{message}</level>"


class Logger:
    def __init__(
        self,
    ):
        self._logger = _logger.opt(depth=1)
        self._debug = False
        self._handler: Optional[int] = None
        self.setup()

    def setup(
        self,
        debug: bool = False,
    ):
        self._debug = debug
        if self._handler is None:
            _logger.remove()
        else:
            _logger.remove(self._handler)
        self._handler = _logger.add(
            sys.stderr,
            format=FORMAT,
            level="DEBUG" if debug else "INFO",
            colorize=True,
        )

    def debug(self, *values):
        self._logger.debug(self._join(values))

    def info(self, *values):
        self._logger.info(self._join(values))

    def success(self, *values):
        self._logger.success(self._join(values))

    def warning(self, *values):
        self._logger.warning(self._join(values))

    def error(self, *values):
        self._logger.error(self._join(values))

    def traceback(self, *values, exc: Optional[BaseException] = None):
        # without exc, the exception being handled is logged
        _logger.opt(depth=1, exception=exc or True).error(self._join(values))

    def debug_traceback(self, *values, exc: Optional[BaseException] = None):
        if not self._debug:
            return
        _logger.opt(depth=1, exception=exc or True).debug(self._join(values))

    def _join(self, values):
        return " ".join(str(value) for value in values)


logger = Logger()
__all__ = ['logger', 'Logger']
