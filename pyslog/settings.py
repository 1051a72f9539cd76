# pyslog/settings.py

"""
此模块定义 Logger 的配置对象。

配置分为三组: 显示 (`show`)、文件存储 (`logStorage`) 和 webhook (`logWebhook`)。
每组都由默认值与用户覆盖值合并而成，构造完成后即不可变。
"""

from dataclasses import dataclass, field, asdict
from enum import Enum

from .constants import (
    LogLevel, Strategy, Provider, DEFAULT_DATE_FORMAT, DEFAULT_LOG_PATH,
)
from .exceptions import ConfigurationError


def _parse_levels(values, group):
    levels = set()
    for value in values or ():
        try:
            levels.add(LogLevel(str(value).upper()))
        except ValueError:
            raise ConfigurationError(f"{group}.ignoreLevels 中存在未知的日志级别: {value!r}")
    return frozenset(levels)


def _merge(group, defaults, overrides, aliases=None):
    """
    将用户覆盖值合并到默认值上。

    Args:
        group (str): 配置组名称，仅用于错误信息。
        defaults (dict): 默认值 (使用配置界面的键名)。
        overrides (dict): 用户提供的值，可以为 None。
        aliases (dict, optional): 旧键名 -> 新键名。

    Raises:
        ConfigurationError: 如果存在未知的键。
    """
    merged = dict(defaults)
    aliases = aliases or {}
    for key, value in (overrides or {}).items():
        key = aliases.get(key, key)
        if key not in defaults:
            name = f"{group}.{key}" if group else key
            raise ConfigurationError(f"未知的配置项: {name}")
        merged[key] = value
    return merged


@dataclass(frozen=True)
class FormatSettings:
    show_main_process: bool = True
    show_sub_process: bool = True
    show_date: bool = True
    date_format: str = DEFAULT_DATE_FORMAT
    show_level: bool = True
    console_enabled: bool = True
    ignore_levels: frozenset = frozenset({LogLevel.DEBUG})

    DEFAULTS = {
        "stdoutEnable": True,
        "mainProgram": True,
        "subProgram": True,
        "date": True,
        "dateformat": DEFAULT_DATE_FORMAT,
        "level": True,
        "ignoreLevels": ["DEBUG"],
    }

    @classmethod
    def from_dict(cls, overrides=None):
        values = _merge("show", cls.DEFAULTS, overrides)
        return cls(
            show_main_process=bool(values["mainProgram"]),
            show_sub_process=bool(values["subProgram"]),
            show_date=bool(values["date"]),
            date_format=str(values["dateformat"]),
            show_level=bool(values["level"]),
            console_enabled=bool(values["stdoutEnable"]),
            ignore_levels=_parse_levels(values["ignoreLevels"], "show"),
        )


@dataclass(frozen=True)
class StorageSettings:
    """
    文件存储配置。

    `split_by` 保留原始字符串: 无法识别的粒度不会在构造时报错，
    而是在写入时报告并回退到不划分 (见 `buckets.bucket_paths`)。
    """
    base_path: str = DEFAULT_LOG_PATH
    write_text: bool = True
    write_json: bool = True
    split_by: str = "day"
    strategy: Strategy = Strategy.SINGLE
    batch_size: int = 1
    ignore_levels: frozenset = frozenset({LogLevel.DEBUG})

    DEFAULTS = {
        "path": DEFAULT_LOG_PATH,
        "json": True,
        "txt": True,
        "splitBy": "day",
        "strategy": "single",
        "batch": 1,
        "ignoreLevels": ["DEBUG"],
    }
    ALIASES = {"stratagy": "strategy", "batchSize": "batch"}

    def __post_init__(self):
        if isinstance(self.batch_size, bool) or not isinstance(self.batch_size, int) or self.batch_size < 1:
            raise ConfigurationError(f"logStorage.batch 必须是大于等于 1 的整数: {self.batch_size!r}")
        if self.strategy == Strategy.BATCH and self.batch_size <= 1:
            raise ConfigurationError("logStorage.strategy 为 'batch' 时 logStorage.batch 必须大于 1")

    @property
    def batched(self):
        return self.strategy == Strategy.BATCH

    @classmethod
    def from_dict(cls, overrides=None):
        values = _merge("logStorage", cls.DEFAULTS, overrides, cls.ALIASES)
        try:
            strategy = Strategy(str(values["strategy"]).lower())
        except ValueError:
            raise ConfigurationError(f"未知的写入策略: {values['strategy']!r}")
        split_by = values["splitBy"]
        split_by = split_by.value if isinstance(split_by, Enum) else str(split_by)
        # JSON 风格的配置里 "don't split" 与 none 等价
        if split_by in ("", "don't split"):
            split_by = "none"
        return cls(
            base_path=str(values["path"]),
            write_text=bool(values["txt"]),
            write_json=bool(values["json"]),
            split_by=split_by,
            strategy=strategy,
            batch_size=values["batch"],
            ignore_levels=_parse_levels(values["ignoreLevels"], "logStorage"),
        )


@dataclass(frozen=True)
class WebhookSettings:
    enabled: bool = False
    url: str = None
    provider: str = Provider.NONE.value

    DEFAULTS = {
        "enable": False,
        "url": None,
        "provider": "none",
    }
    ALIASES = {"form": "provider"}

    @property
    def provider_supported(self):
        return self.provider in (p.value for p in Provider)

    @property
    def deliverable(self):
        """只有启用、提供了 URL 且 provider 可识别 (非 none) 时才会投递"""
        return bool(self.enabled and self.url and self.provider == Provider.DISCORD.value)

    @classmethod
    def from_dict(cls, overrides=None):
        values = _merge("logWebhook", cls.DEFAULTS, overrides, cls.ALIASES)
        provider = values["provider"]
        provider = provider.value if isinstance(provider, Enum) else str(provider or "none").lower()
        url = values["url"]
        return cls(
            enabled=bool(values["enable"]),
            url=str(url) if url else None,
            provider=provider,
        )


@dataclass(frozen=True)
class LoggerSettings:
    show: FormatSettings = field(default_factory=FormatSettings)
    storage: StorageSettings = field(default_factory=StorageSettings)
    webhook: WebhookSettings = field(default_factory=WebhookSettings)

    ALIASES = {"logWebook": "logWebhook"}

    @classmethod
    def from_dict(cls, overrides=None):
        """
        从配置字典构造 LoggerSettings。

        字典的顶层键为 `show`、`logStorage`、`logWebhook`，每组内未提供的键使用默认值。

        Raises:
            ConfigurationError: 配置无效或互相矛盾。
        """
        groups = _merge("", {"show": None, "logStorage": None, "logWebhook": None},
                        overrides, cls.ALIASES)
        return cls(
            show=FormatSettings.from_dict(groups["show"]),
            storage=StorageSettings.from_dict(groups["logStorage"]),
            webhook=WebhookSettings.from_dict(groups["logWebhook"]),
        )

    def describe(self):
        """返回可 JSON 序列化的配置快照，用于调试输出。"""
        snapshot = asdict(self)
        for group in ("show", "storage"):
            snapshot[group]["ignore_levels"] = sorted(str(l) for l in snapshot[group]["ignore_levels"])
        snapshot["storage"]["strategy"] = self.storage.strategy.value
        return snapshot
