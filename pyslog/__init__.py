# pyslog/__init__.py

__version__ = "0.1.0"

from .constants import LogLevel, SplitBy, Strategy, Provider
from .settings import LoggerSettings, FormatSettings, StorageSettings, WebhookSettings
from .buckets import bucket_paths, log_file_paths
from .formatter import LogRecord, RenderedRecord, RecordFormatter, format_date
from .console import ConsoleWriter
from .writer import SlogFileSink, append_to_file
from .webhook import SlogWebhookSink, post_json
from .logger import Logger, LoggerState
from .hooks import install_exit_hooks
from .handler import SlogHandler
from .exceptions import (
    SlogError,
    ConfigurationError,
    InvalidSplitError,
    SlogWriteError,
    WebhookDeliveryError
)

__all__ = [
    "Logger",
    "LoggerState",
    "LogLevel",
    "SplitBy",
    "Strategy",
    "Provider",
    "LoggerSettings",
    "FormatSettings",
    "StorageSettings",
    "WebhookSettings",
    "bucket_paths",
    "log_file_paths",
    "LogRecord",
    "RenderedRecord",
    "RecordFormatter",
    "format_date",
    "ConsoleWriter",
    "SlogFileSink",
    "append_to_file",
    "SlogWebhookSink",
    "post_json",
    "install_exit_hooks",
    "SlogHandler",
    "SlogError",
    "ConfigurationError",
    "InvalidSplitError",
    "SlogWriteError",
    "WebhookDeliveryError",
]
