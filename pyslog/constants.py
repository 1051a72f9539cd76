# pyslog/constants.py

from enum import Enum


class LogLevel(str, Enum):
    """日志级别。FATAL_RATE_LIMITED 仅供内部报告 webhook 投递问题，永远不会再进入 webhook。"""
    FATAL = "FATAL"
    FATAL_RATE_LIMITED = "FATAL_RATE_LIMITED"
    ERROR = "ERROR"
    WARN = "WARN"
    SUCCESS = "SUCCESS"
    INFO = "INFO"
    DEBUG = "DEBUG"

    def __str__(self):
        return self.value


class SplitBy(str, Enum):
    """按日期划分日志文件的粒度"""
    NONE = "none"
    YEAR = "year"
    MONTH = "month"
    DAY = "day"
    HOUR = "hour"
    MINUTE = "minute"
    SECOND = "second"


class Strategy(str, Enum):
    """文件写入策略: 逐条写入或批量写入"""
    SINGLE = "single"
    BATCH = "batch"


class Provider(str, Enum):
    NONE = "none"
    DISCORD = "discord"


# 日志文件名后缀
TEXT_FILE_SUFFIX = "txt.log"
JSON_FILE_SUFFIX = "json.log"
NO_SPLIT_STEM = "logs."

# Webhook 批量参数
WEBHOOK_BATCH_LIMIT = 8  # 每个请求最多 8 个 embed
WEBHOOK_DATA_LIMIT = 4000  # 超过此长度的数据不嵌入 webhook
WEBHOOK_TITLE_LIMIT = 256
WEBHOOK_SUCCESS_STATUS = 204
WEBHOOK_TIMEOUT = 10  # 秒
WEBHOOK_DATA_PLACEHOLDER = "日志数据过长，请查看文件日志或标准输出。"

DEFAULT_SHUTDOWN_TIMEOUT = 5.0  # 秒
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S.%f %z"
DEFAULT_LOG_PATH = "./logs"

DATATYPE_ERROR_TEXT = "Datatype error"
LOG_DATA_HEADER = "\nLog Data:\n"

# 控制台颜色 (rich 样式)
LEVEL_STYLES = {
    LogLevel.FATAL: "bold white on bright_red",
    LogLevel.FATAL_RATE_LIMITED: "bold white on bright_red",
    LogLevel.ERROR: "red",
    LogLevel.WARN: "yellow",
    LogLevel.SUCCESS: "green",
    LogLevel.INFO: "blue",
    LogLevel.DEBUG: "magenta",
}

# Webhook embed 颜色 (十进制 RGB)
LEVEL_EMBED_COLOURS = {
    LogLevel.FATAL: 0xFF5555,
    LogLevel.FATAL_RATE_LIMITED: 0xFF5555,
    LogLevel.ERROR: 0xCC0000,
    LogLevel.WARN: 0xFFCC00,
    LogLevel.SUCCESS: 0x00CC66,
    LogLevel.INFO: 0x3399FF,
    LogLevel.DEBUG: 0xCC66CC,
}
