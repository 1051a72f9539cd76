# pyslog/buckets.py

"""
根据时间戳和划分粒度计算日志文件所在目录及文件名前缀。
同一个时间桶内的记录写入同一对文件 (`{stem}txt.log` 与 `{stem}json.log`)。
"""

import os

from .constants import SplitBy, NO_SPLIT_STEM, TEXT_FILE_SUFFIX, JSON_FILE_SUFFIX
from .exceptions import InvalidSplitError

# 粒度 -> (目录层级数, 文件名字段)
_LAYOUT = {
    SplitBy.NONE: (0, None),
    SplitBy.YEAR: (0, "%Y"),
    SplitBy.MONTH: (1, "%m"),
    SplitBy.DAY: (2, "%d"),
    SplitBy.HOUR: (3, "%H"),
    SplitBy.MINUTE: (4, "%M"),
    SplitBy.SECOND: (5, "%S"),
}
_DIR_PARTS = ("%Y", "%m", "%d", "%H", "%M")


def bucket_paths(base_path, timestamp, split_by):
    """
    计算时间桶的目录和文件名前缀。

    Args:
        base_path (str): 日志根目录。
        timestamp (datetime): 记录的时间戳 (使用其本地字段)。
        split_by (str | SplitBy): 划分粒度。

    Returns:
        tuple: (dir_path, file_stem)，例如 ("logs/2024/06", "20.")。

    Raises:
        InvalidSplitError: 如果粒度无法识别。
    """
    try:
        split = SplitBy(split_by)
    except ValueError:
        raise InvalidSplitError(split_by) from None

    depth, stem_field = _LAYOUT[split]
    parts = [timestamp.strftime(part) for part in _DIR_PARTS[:depth]]
    dir_path = os.path.join(base_path, *parts)
    stem = f"{timestamp.strftime(stem_field)}." if stem_field else NO_SPLIT_STEM
    return dir_path, stem


def log_file_paths(dir_path, file_stem):
    """返回 (文本日志路径, JSON 日志路径)"""
    return (
        os.path.join(dir_path, f"{file_stem}{TEXT_FILE_SUFFIX}"),
        os.path.join(dir_path, f"{file_stem}{JSON_FILE_SUFFIX}"),
    )
