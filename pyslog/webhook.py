# pyslog/webhook.py

"""
此模块提供 `SlogWebhookSink` 类，用于将日志记录以 embed 的形式批量投递到 webhook (Discord)。

投递是尽力而为的: 失败只报告一次 (FATAL_RATE_LIMITED)，不会自动重试，
也不会重新进入 webhook，避免对可能正在限流的服务端造成失败循环。
"""

import queue
import threading
from collections import deque

import requests

from .constants import (
    LogLevel, LEVEL_EMBED_COLOURS, WEBHOOK_BATCH_LIMIT, WEBHOOK_DATA_LIMIT,
    WEBHOOK_DATA_PLACEHOLDER, WEBHOOK_SUCCESS_STATUS, WEBHOOK_TIMEOUT, WEBHOOK_TITLE_LIMIT,
    DEFAULT_SHUTDOWN_TIMEOUT,
)
from .exceptions import WebhookDeliveryError

USER_AGENT = "pyslog-webhook/0.1.0"

_STOP = object()


def post_json(url, payload):
    """默认传输: 以 JSON 请求体 POST 到 url，返回 HTTP 状态码。"""
    response = requests.post(url, json=payload, headers={"User-Agent": USER_AGENT}, timeout=WEBHOOK_TIMEOUT)
    return response.status_code


def describe_data(data):
    if not data:
        return None
    if len(data) > WEBHOOK_DATA_LIMIT:
        return WEBHOOK_DATA_PLACEHOLDER
    return f"```\n{data}\n```"


def build_embed(rendered, level):
    record = rendered.record
    title = f"<{record.main_process}.{record.sub_process}> [{level}] {rendered.message}"
    if len(title) > WEBHOOK_TITLE_LIMIT:
        title = title[:WEBHOOK_TITLE_LIMIT - 3] + "..."
    embed = {
        "title": title,
        "color": LEVEL_EMBED_COLOURS.get(level, 0),
        "footer": {"text": rendered.formatted_date},
    }
    description = describe_data(rendered.data)
    if description is not None:
        embed["description"] = description
    return embed


class SlogWebhookSink:
    """
    webhook 批量投递 Sink。

    embed 先进入批次 (最多 `batch_limit` 个)，批次刚好满时作为一个请求投递并清空；
    如果批次超过上限，则视为积压溢出，报告后直接丢弃，不会发送超大的请求。

    投递可以同步执行，也可以由后台线程执行 (`asynchronous=True`)，
    这样网络 I/O 不会阻塞调用日志方法的线程。

    投递永远不在 `lock` 内进行: 满的批次先按顺序进入待投递队列，再由持有 `send_lock`
    的线程依次发送。投递失败的报告可能再次调用 `submit`，此时新批次只会入队，
    由正在发送的线程负责投递。
    """
    def __init__(self, settings, main_process, sub_process, transport=None, report=None,
                 asynchronous=True, batch_limit=WEBHOOK_BATCH_LIMIT):
        """
        初始化 SlogWebhookSink。

        Args:
            settings (WebhookSettings): webhook 配置。
            main_process (str): 主进程名，用于请求的 username。
            sub_process (str): 子进程名。
            transport (callable, optional): `(url, payload) -> status_code`，默认为 `post_json`。
            report (callable, optional): `(level, message, data)`，用于报告投递失败。
            asynchronous (bool): 是否在后台线程中投递。默认 True。
            batch_limit (int): 单个请求的 embed 数量上限。默认 8。
        """
        self.settings = settings
        self.username = f"{main_process}.{sub_process}"
        self.transport = transport or post_json
        self.report = report
        self.asynchronous = asynchronous
        self.batch_limit = batch_limit
        self.batch = []
        self.lock = threading.Lock()
        self.send_lock = threading.Lock()
        self.pending = deque()
        self._sender = None
        self.delivery_queue = None
        self.worker = None
        self.closed = False

    def accepts(self, level):
        return self.settings.deliverable and level != LogLevel.FATAL_RATE_LIMITED

    def submit(self, timestamp, rendered, level):
        """
        提交一条渲染后的记录。批次达到上限时触发一次投递。
        """
        if not self.accepts(level):
            return

        embed = build_embed(rendered, level)
        overflow = 0
        items = None
        with self.lock:
            if self.closed:
                return
            self.batch.append(embed)
            if len(self.batch) > self.batch_limit:
                overflow = len(self.batch)
                self.batch = []
            elif len(self.batch) == self.batch_limit:
                items = self.batch
                self.batch = []
            if items is not None:
                self._dispatch(items)

        if items is not None and not self.asynchronous:
            self._pump()
        if overflow:
            self._report("Webhook 积压溢出，已丢弃", {"size": overflow, "limit": self.batch_limit})

    def force_flush(self, timeout=DEFAULT_SHUTDOWN_TIMEOUT):
        """
        投递批次中剩余的 embed (即使不足上限)，并等待后台投递完成 (最多 `timeout` 秒)。
        关闭时调用，只会生效一次。

        Returns:
            bool: 所有投递是否在超时前完成。
        """
        with self.lock:
            if self.closed:
                return True
            self.closed = True
            items, self.batch = self.batch, []
            if items:
                self._dispatch(items)
            worker = self.worker
            if worker is not None:
                self.delivery_queue.put(_STOP)

        if not self.asynchronous:
            # 当前线程正在发送时 (投递失败的报告又触发了关闭) 不能等待自己
            wait = None if self._sender == threading.get_ident() else timeout
            if not self._pump(wait):
                self._report("等待 webhook 投递超时", {"timeout": timeout})
                return False
            return True
        if worker is None:
            return True
        worker.join(timeout)
        if worker.is_alive():
            self._report("等待 webhook 投递超时", {"timeout": timeout})
            return False
        return True

    def _dispatch(self, items):
        """调用者必须持有锁，保证批次按顺序进入投递队列。"""
        if not self.asynchronous:
            self.pending.append(items)
            return
        if self.worker is None:
            self.delivery_queue = queue.Queue()
            self.worker = threading.Thread(target=self._run, name="pyslog-webhook", daemon=True)
            self.worker.start()
        self.delivery_queue.put(items)

    def _pump(self, timeout=None):
        """
        按顺序发送待投递队列中的批次。

        Args:
            timeout (float, optional): 等待其他发送线程的最长秒数。None 表示不等待，
                                       由已经在发送的线程负责投递。

        Returns:
            bool: 是否在超时前拿到了发送权 (或无需等待)。
        """
        while True:
            if timeout is None:
                acquired = self.send_lock.acquire(blocking=False)
            else:
                acquired = self.send_lock.acquire(timeout=timeout)
            if not acquired:
                return timeout is None
            self._sender = threading.get_ident()
            try:
                while True:
                    with self.lock:
                        if not self.pending:
                            break
                        items = self.pending.popleft()
                    self.deliver(items)
            finally:
                self._sender = None
                self.send_lock.release()
            # 释放 send_lock 之后可能有其他线程刚刚入队
            with self.lock:
                if not self.pending:
                    return True

    def _run(self):
        while True:
            items = self.delivery_queue.get()
            if items is _STOP:
                break
            self.deliver(items)

    def payload(self, items):
        return {
            "username": self.username,
            "content": None,
            "embeds": items,
            "attachments": [],
        }

    def deliver(self, items):
        """
        将 embed 作为一个请求投递。失败时报告，不重试。

        Returns:
            bool: 是否投递成功。
        """
        try:
            status = self.transport(self.settings.url, self.payload(items))
            if status != WEBHOOK_SUCCESS_STATUS:
                raise WebhookDeliveryError(f"Webhook 返回了非预期的状态码: {status}", status, len(items))
        except WebhookDeliveryError as e:
            self._report(str(e), {"status": e.status, "items": e.item_count})
            return False
        except Exception as e:
            self._report("Webhook 传输失败", {"error": f"{type(e).__name__}: {e}", "items": len(items)})
            return False
        return True

    def _report(self, message, data):
        if self.report is not None:
            self.report(LogLevel.FATAL_RATE_LIMITED, message, data)
