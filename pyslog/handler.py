# pyslog/handler.py

import logging

from .constants import LogLevel


def _to_level(levelno):
    if levelno >= logging.CRITICAL:
        return LogLevel.FATAL
    if levelno >= logging.ERROR:
        return LogLevel.ERROR
    if levelno >= logging.WARNING:
        return LogLevel.WARN
    if levelno >= logging.INFO:
        return LogLevel.INFO
    return LogLevel.DEBUG


class SlogHandler(logging.Handler):
    """
    一个将标准 logging 记录转发给 pyslog `Logger` 的 Handler。

    用法:
        slog = Logger("app", "web")
        logging.getLogger().addHandler(SlogHandler(slog))

    pyslog 自身的诊断日志 (logger 名以 "pyslog" 开头) 不会被转发，避免循环。
    """
    def __init__(self, slog, level=logging.NOTSET):
        super().__init__(level)
        self.slog = slog

    def emit(self, record):
        if record.name == "pyslog" or record.name.startswith("pyslog."):
            return
        try:
            if self.formatter is not None:
                message, data = self.format(record), None
            else:
                message = record.getMessage()
                data = record.exc_info[1] if record.exc_info else None
            self.slog.emit(_to_level(record.levelno), message, data)
        except Exception:
            self.handleError(record)

