# pyslog/writer.py

"""
此模块提供 `SlogFileSink` 类，用于将渲染后的日志记录写入按日期划分的 txt 和 json 日志文件。
它支持逐条写入 (single) 和批量写入 (batch) 两种策略。
"""

import os
import threading
from datetime import datetime

from .buckets import bucket_paths, log_file_paths
from .constants import LogLevel, SplitBy
from .exceptions import InvalidSplitError, SlogWriteError


def append_to_file(path, text):
    """
    以 UTF-8 追加写入文本，必要时递归创建父目录 (目录已存在不视为错误)。

    Raises:
        SlogWriteError: 如果创建目录或写入失败。
    """
    directory = os.path.dirname(path)
    if directory:
        try:
            os.makedirs(directory, exist_ok=True)
        except OSError as e:
            raise SlogWriteError(directory, "创建目录", e)
    try:
        with open(path, "a", encoding="utf-8") as f:
            f.write(text)
    except OSError as e:
        raise SlogWriteError(path, "追加写入", e)


class SlogFileSink:
    """
    将日志记录写入文件的 Sink。

    - single 策略: 每条记录立即写入，每种启用的格式各追加一次。
    - batch 策略: 记录先进入缓冲区，缓冲区长度达到 `batch_size` 时一次性写出，
      时间桶由触发刷新的那条记录的时间戳决定。

    缓冲区的追加、长度检查以及写出并清空都在同一把锁内完成，
    因此多线程提交时不会重复或丢失记录。写出时先取出缓冲区再写入，
    如果进程在两者之间被强制终止，最多丢失一个批次。

    写入失败不会抛出异常，而是通过 `report` 回调报告一条 ERROR 记录，
    一种格式写入失败不会影响另一种格式。
    """
    def __init__(self, settings, appender=None, report=None, clock=None):
        """
        初始化 SlogFileSink。

        Args:
            settings (StorageSettings): 存储配置。
            appender (callable, optional): `(path, text)`，追加写入原语，默认为 `append_to_file`。
            report (callable, optional): `(level, message, data)`，用于报告写入错误。
            clock (callable, optional): 返回当前时间，用于 `force_drain` 计算时间桶。
        """
        self.settings = settings
        self.appender = appender or append_to_file
        self.report = report
        self.clock = clock or (lambda: datetime.now().astimezone())
        self.buffer = []
        self.flush_count = 0
        self.lock = threading.RLock()
        self._reported_splits = set()

    @property
    def enabled(self):
        return self.settings.write_text or self.settings.write_json

    def submit(self, timestamp, rendered, level):
        """
        提交一条渲染后的记录。

        Args:
            timestamp (datetime): 记录的时间戳。
            rendered (RenderedRecord): 渲染结果。
            level (LogLevel): 日志级别。
        """
        if level in self.settings.ignore_levels or not self.enabled:
            return

        with self.lock:
            if not self.settings.batched:
                errors = self._write(timestamp, [rendered])
            else:
                self.buffer.append(rendered)
                if len(self.buffer) < self.settings.batch_size:
                    return
                errors = self._drain(timestamp)
        self._report_errors(errors)

    def force_drain(self, timestamp=None):
        """
        立即写出缓冲区中剩余的记录 (即使不足一个批次)。关闭时调用。
        """
        with self.lock:
            if not self.buffer:
                return
            if timestamp is None:
                timestamp = self.clock()
            errors = self._drain(timestamp)
        self._report_errors(errors)

    def _drain(self, timestamp):
        """
        取出并清空缓冲区，然后写出。调用者必须持有锁。
        """
        pending = self.buffer
        self.buffer = []
        return self._write(timestamp, pending)

    def _resolve_paths(self, timestamp, errors):
        try:
            return bucket_paths(self.settings.base_path, timestamp, self.settings.split_by)
        except InvalidSplitError as e:
            # 同一个无效值只报告一次，回退到不划分
            if e.split_by not in self._reported_splits:
                self._reported_splits.add(e.split_by)
                errors.append((str(e), {"splitBy": str(e.split_by), "fallback": SplitBy.NONE.value}))
            return bucket_paths(self.settings.base_path, timestamp, SplitBy.NONE)

    def _write(self, timestamp, records):
        """
        将记录写入对应时间桶的文件。txt 和 json 各写一次，互不影响。

        Returns:
            list: (message, data) 形式的错误列表。
        """
        errors = []
        dir_path, stem = self._resolve_paths(timestamp, errors)
        text_path, json_path = log_file_paths(dir_path, stem)

        outputs = []
        if self.settings.write_text:
            outputs.append((text_path, "\n".join(r.text_line for r in records) + "\n"))
        if self.settings.write_json:
            outputs.append((json_path, "\n".join(r.json_line for r in records) + "\n"))

        for path, text in outputs:
            try:
                self.appender(path, text)
            except SlogWriteError as e:
                errors.append(("写入日志文件失败", {
                    "path": e.path, "operation": e.operation, "error": str(e.cause),
                }))
            except OSError as e:
                errors.append(("写入日志文件失败", {
                    "path": path, "operation": "追加写入", "error": str(e),
                }))
        self.flush_count += 1
        return errors

    def _report_errors(self, errors):
        if self.report is None:
            return
        for message, data in errors:
            self.report(LogLevel.ERROR, message, data)
