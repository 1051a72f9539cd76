# pyslog/exceptions.py


class SlogError(Exception):
    """pyslog 所有异常的基类"""


class ConfigurationError(SlogError):
    """配置互相矛盾或无法识别时抛出，Logger 不能在这种状态下运行。"""


class InvalidSplitError(SlogError):
    """无法识别的日期划分粒度"""

    def __init__(self, split_by):
        self.split_by = split_by
        super().__init__(f"无效的日志划分粒度: {split_by!r}")


class SlogWriteError(SlogError):
    """写入日志文件失败"""

    def __init__(self, path, operation, cause):
        self.path = path
        self.operation = operation
        self.cause = cause
        super().__init__(f"{operation} 失败 ({path}): {cause}")


class WebhookDeliveryError(SlogError):
    """Webhook 投递失败 (非 204 状态码或传输异常)"""

    def __init__(self, message, status=None, item_count=0):
        self.status = status
        self.item_count = item_count
        super().__init__(message)
