# pyslog/logger.py

"""
此模块提供 `Logger` 类，pyslog 的公共入口。

每次调用级别方法 (fatal/error/warn/success/info/debug) 都会创建一条 `LogRecord`，
渲染一次，然后分别交给控制台、文件 Sink 和 webhook Sink，三者各自按配置过滤。
`shutdown()` 会在进程退出前把两个 Sink 中缓冲的记录全部写出。
"""

import json
import logging
import threading
from datetime import datetime
from enum import Enum

from .console import ConsoleWriter
from .constants import LogLevel, Provider, DEFAULT_SHUTDOWN_TIMEOUT
from .formatter import LogRecord, RecordFormatter
from .hooks import install_exit_hooks
from .settings import LoggerSettings
from .webhook import SlogWebhookSink
from .writer import SlogFileSink

_log = logging.getLogger(__name__)


class LoggerState(Enum):
    ACTIVE = "active"
    DRAINING = "draining"
    STOPPED = "stopped"


def _now():
    return datetime.now().astimezone()


class Logger:
    """
    结构化日志记录器。

    用法:
        logger = Logger("api", "worker", {"logStorage": {"splitBy": "hour"}})
        logger.info("started", {"port": 8080})
        logger.shutdown("done")

    Args:
        main_process (str): 主进程名。
        sub_process (str): 子进程名。
        settings (LoggerSettings | dict, optional): 配置，dict 形式会与默认值合并。
        clock (callable, optional): 返回当前时间 (带时区的 datetime)。
        date_formatter (callable, optional): `(timestamp, pattern) -> str`。
        console (ConsoleWriter, optional): 控制台输出。
        appender (callable, optional): 文件追加写入原语 `(path, text)`。
        transport (callable, optional): webhook 传输 `(url, payload) -> status_code`。
        webhook_async (bool): webhook 是否在后台线程投递。默认 True。
        exit_hooks (bool): 是否注册 atexit/信号/未处理异常钩子。默认 True。
        shutdown_timeout (float): 关闭时等待 webhook 投递的最长秒数。
        announce (bool): 是否在初始化完成后记录一条 SUCCESS "Initialised Logger" 记录。默认 False。

    Raises:
        ConfigurationError: 配置无效或互相矛盾 (例如 batch 策略但 batch <= 1)。
    """
    def __init__(self, main_process, sub_process, settings=None, clock=None, date_formatter=None,
                 console=None, appender=None, transport=None, webhook_async=True, exit_hooks=True,
                 shutdown_timeout=DEFAULT_SHUTDOWN_TIMEOUT, announce=False):
        if not isinstance(settings, LoggerSettings):
            settings = LoggerSettings.from_dict(settings)
        self.settings = settings
        self.main_process = main_process
        self.sub_process = sub_process
        self.clock = clock or _now
        self.shutdown_timeout = shutdown_timeout
        self.console = console or ConsoleWriter()

        self.formatter = RecordFormatter(
            settings.show, date_formatter,
            report=lambda level, message, data: self._report(level, message, data),
        )
        self.file_sink = SlogFileSink(
            settings.storage, appender,
            report=lambda level, message, data: self._report(level, message, data, to_file=False),
            clock=self.clock,
        )
        self.webhook_sink = SlogWebhookSink(
            settings.webhook, main_process, sub_process, transport,
            report=lambda level, message, data: self._report(level, message, data, to_webhook=False),
            asynchronous=webhook_async,
        )

        self._state = LoggerState.ACTIVE
        self._state_lock = threading.RLock()
        self._stopped = threading.Event()
        self._uninstall_hooks = install_exit_hooks(self) if exit_hooks else None

        _log.debug("Logger %s.%s 已初始化, 配置:\n%s", main_process, sub_process,
                   json.dumps(settings.describe(), indent=4, ensure_ascii=False))
        self._check_webhook_settings()
        if announce:
            self.success(f"Initialised Logger {main_process}.{sub_process}")

    def _check_webhook_settings(self):
        webhook = self.settings.webhook
        if not webhook.enabled:
            return
        if not webhook.provider_supported:
            self.error("不支持的 webhook provider，webhook 已禁用", {"provider": webhook.provider})
        elif webhook.provider == Provider.NONE.value:
            self.warn("webhook 已启用但未指定 provider，webhook 已禁用")
        elif not webhook.url:
            self.warn("webhook 已启用但未提供 url，webhook 已禁用")

    @property
    def state(self):
        return self._state

    # Print methods
    def fatal(self, message, data=None):
        self._send(LogLevel.FATAL, message, data)

    def error(self, message, data=None):
        self._send(LogLevel.ERROR, message, data)

    err = error

    def warn(self, message, data=None):
        self._send(LogLevel.WARN, message, data)

    warning = warn

    def success(self, message, data=None):
        self._send(LogLevel.SUCCESS, message, data)

    def info(self, message, data=None):
        self._send(LogLevel.INFO, message, data)

    log = info

    def debug(self, message, data=None):
        self._send(LogLevel.DEBUG, message, data)

    def emit(self, level, message, data=None):
        """
        以指定级别记录一条日志。FATAL_RATE_LIMITED 仅供内部使用，会被当作 FATAL。
        """
        level = LogLevel(str(level).upper())
        if level is LogLevel.FATAL_RATE_LIMITED:
            level = LogLevel.FATAL
        self._send(level, message, data)

    def _send(self, level, message, data):
        if self._state is not LoggerState.ACTIVE:
            _log.debug("Logger 已关闭，丢弃记录: [%s] %s", level, message)
            return
        self._dispatch(level, message, data)

    def _dispatch(self, level, message, data, to_file=True, to_webhook=True):
        record = LogRecord(self.clock(), level, self.main_process, self.sub_process, message, data)
        rendered = self.formatter.render(record)

        self._print(level, rendered.text_line)
        if to_file:
            self.file_sink.submit(record.timestamp, rendered, level)
        if to_webhook:
            self.webhook_sink.submit(record.timestamp, rendered, level)

    def _print(self, level, text_line):
        show = self.settings.show
        if not show.console_enabled or level in show.ignore_levels:
            return
        try:
            self.console.write(level, text_line)
        except (OSError, ValueError) as e:
            _log.warning("控制台输出失败: %s", e)

    def _report(self, level, message, data, to_file=True, to_webhook=True):
        """
        报告 pipeline 内部产生的问题。关闭过程中只输出到控制台，不再进入任何 Sink。
        """
        if self._state is not LoggerState.ACTIVE:
            to_file = to_webhook = False
        self._dispatch(level, message, data, to_file=to_file, to_webhook=to_webhook)

    def shutdown(self, reason=None, timeout=None):
        """
        关闭 Logger: 停止接收新记录，强制写出文件缓冲区并投递 webhook 剩余批次。

        重复调用不会重复写出或投递。

        Args:
            reason (str, optional): 关闭原因，会作为一条 INFO 记录写入各 Sink。
            timeout (float, optional): 等待 webhook 投递的最长秒数，默认使用构造时的 `shutdown_timeout`。

        Returns:
            bool: 本次调用是否执行了关闭流程。
        """
        with self._state_lock:
            if self._state is not LoggerState.ACTIVE:
                return False
            # 先进入 DRAINING，同一线程重入的 shutdown 会直接返回
            self._state = LoggerState.DRAINING
            if reason:
                self._dispatch(LogLevel.INFO, f"Logger 正在关闭: {reason}", None)

        if timeout is None:
            timeout = self.shutdown_timeout
        try:
            self.webhook_sink.force_flush(timeout)
        except Exception as e:
            self._dispatch(LogLevel.ERROR, "关闭时投递 webhook 失败", e, to_file=False, to_webhook=False)
        try:
            self.file_sink.force_drain()
        except Exception as e:
            self._dispatch(LogLevel.ERROR, "关闭时写出日志文件失败", e, to_file=False, to_webhook=False)

        self._state = LoggerState.STOPPED
        self._stopped.set()
        if self._uninstall_hooks is not None:
            self._uninstall_hooks()
            self._uninstall_hooks = None
        return True

    close = shutdown

    def wait_stopped(self, timeout=None):
        """等待 Logger 进入 STOPPED 状态，返回是否已停止。"""
        return self._stopped.wait(timeout)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown()
