# pyslog/formatter.py

"""
此模块负责将日志记录渲染为文本行和 JSON 行。

渲染结果 (`RenderedRecord`) 由 `LogRecord` 与 `FormatSettings` 唯一确定，
文本行用于控制台和 txt 日志，JSON 行用于 json 日志 (JSON Lines)。
"""

import dataclasses
import json
import numbers
import traceback
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum

from .constants import LogLevel, DATATYPE_ERROR_TEXT, LOG_DATA_HEADER


@dataclass(frozen=True)
class LogRecord:
    """一条日志事件，创建后不可修改。"""
    timestamp: datetime
    level: LogLevel
    main_process: str
    sub_process: str
    message: object
    data: object = None


@dataclass(frozen=True)
class RenderedRecord:
    record: LogRecord
    text_line: str
    json_line: str
    formatted_date: str
    message: str
    data: str


def format_date(timestamp, pattern):
    """按 strftime 模式格式化时间戳"""
    return timestamp.strftime(pattern)


def iso_instant(timestamp):
    """返回 UTC 的 ISO-8601 时刻，精确到毫秒，例如 2024-06-20T10:00:00.000Z"""
    if timestamp.tzinfo is None:
        timestamp = timestamp.astimezone()
    utc = timestamp.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _json_default(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset)):
        return list(value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if _has_own_str(value):
        return str(value)
    if hasattr(value, "__dict__") and not callable(value):
        return vars(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _has_own_str(value):
    return type(value).__str__ is not object.__str__


def _is_structured(value):
    if isinstance(value, (Mapping, list, tuple, set, frozenset)):
        return True
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


class RecordFormatter:
    """
    将 `LogRecord` 渲染为 `RenderedRecord`。

    非字符串的消息和数据会被转换为字符串:
    - 数字、布尔值以及可调用对象使用 `str()`;
    - 字典、列表等结构化数据使用缩进为 4 的 JSON;
    - 异常对象使用完整的 traceback 文本;
    - 自定义了 `__str__` 的对象 (Path、UUID 等) 使用 `str()`;
    - 其他普通对象按其属性 (`vars()`) 转换为 JSON;
    - bytes 以及无法归类的对象替换为 "Datatype error"。

    转换失败不会抛出异常，而是通过 `report` 回调报告一条 ERROR 记录。
    """

    def __init__(self, settings, date_formatter=None, report=None):
        """
        Args:
            settings (FormatSettings): 显示配置。
            date_formatter (callable, optional): `(timestamp, pattern) -> str`，默认为 `format_date`。
            report (callable, optional): `(level, message, data)`，用于报告转换错误。
        """
        self.settings = settings
        self.date_formatter = date_formatter or format_date
        self.report = report

    def _report(self, message, value):
        if self.report is not None:
            self.report(LogLevel.ERROR, message, {
                "dataType": type(value).__name__,
                "data": repr(value),
            })

    def stringify(self, value):
        """
        将任意值转换为日志字符串。None 转换为空字符串。
        """
        if value is None:
            return ""
        if isinstance(value, str):
            return value
        if isinstance(value, Enum):
            return str(value.value)
        if isinstance(value, numbers.Number):
            return str(value)
        if isinstance(value, BaseException):
            return "".join(traceback.format_exception(type(value), value, value.__traceback__)).rstrip("\n")
        if _is_structured(value):
            try:
                return json.dumps(value, indent=4, ensure_ascii=False, default=_json_default)
            except (TypeError, ValueError):
                self._report("日志数据无法转换为 JSON", value)
                return ""
        if isinstance(value, (bytes, bytearray, memoryview)):
            self._report("Datatype error", value)
            return DATATYPE_ERROR_TEXT
        if callable(value) or _has_own_str(value):
            return str(value)
        if hasattr(value, "__dict__"):
            try:
                return json.dumps(vars(value), indent=4, ensure_ascii=False, default=_json_default)
            except (TypeError, ValueError):
                self._report("日志数据无法转换为 JSON", value)
                return ""
        self._report("Datatype error", value)
        return DATATYPE_ERROR_TEXT

    def text_line(self, formatted_date, level, main_process, sub_process, message, data):
        s = self.settings
        out = ""
        if s.show_date:
            out += f"[{formatted_date}] "
        if s.show_main_process or s.show_sub_process:
            out += "<"
            if s.show_main_process:
                out += main_process
            if s.show_main_process and s.show_sub_process:
                out += "."
            if s.show_sub_process:
                out += sub_process
            out += "> "
        if s.show_level:
            out += f"[{level}] "
        out += message
        if data != "":
            out += LOG_DATA_HEADER + data
        return out

    def render(self, record):
        formatted_date = self.date_formatter(record.timestamp, self.settings.date_format)
        message = self.stringify(record.message)
        data = self.stringify(record.data)

        text_line = self.text_line(formatted_date, record.level, record.main_process,
                                   record.sub_process, message, data)
        json_line = json.dumps({
            "date": iso_instant(record.timestamp),
            "formattedDate": formatted_date,
            "mainProcess": record.main_process,
            "subProcess": record.sub_process,
            "logLevel": str(record.level),
            "logMessage": message,
            "logData": data,
        }, ensure_ascii=False)

        return RenderedRecord(
            record=record,
            text_line=text_line,
            json_line=json_line,
            formatted_date=formatted_date,
            message=message,
            data=data,
        )
