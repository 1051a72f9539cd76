# pyslog/console.py

import sys

from rich.console import Console
from rich.text import Text

from .constants import LEVEL_STYLES


class ConsoleWriter:
    """
    将渲染后的文本行按级别着色输出到标准输出 (不使用标准错误)。

    用法:
        console = ConsoleWriter()
        console.write(LogLevel.INFO, "hello")
    """
    def __init__(self, stream=None, styles=None, color_system="auto"):
        """
        Args:
            stream (file-like, optional): 输出流。默认为 None，即每次输出时使用当前的 sys.stdout。
            styles (dict, optional): 级别 -> rich 样式，覆盖默认颜色。
            color_system (str, optional): 传给 rich Console，None 表示不输出颜色。
        """
        self.stream = stream
        self.styles = dict(LEVEL_STYLES)
        self.styles.update(styles or {})
        self.color_system = color_system

    def decorate(self, level, text):
        return Text(text, style=self.styles.get(level, ""))

    def _console(self):
        # rich Console 绑定到具体的文件对象，sys.stdout 可能被替换，所以每次创建
        return Console(
            file=self.stream or sys.stdout,
            color_system=self.color_system,
            highlight=False,
            markup=False,
            emoji=False,
            soft_wrap=True,
        )

    def write(self, level, text):
        self._console().print(self.decorate(level, text))
