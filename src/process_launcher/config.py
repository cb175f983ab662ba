"""PL 环境变量配置管理。

环境变量:
    PL_DEBUG: 跟踪模式
        - true/1/yes = 开启 (输出/错误流监听器包装为 TracingStreamListener，
          并输出 trace 日志)
        - false/0/no = 关闭 (默认)

    PL_LOG_DEBUG: 日志调试模式
        - true/1/yes = 开启 (日志输出到临时文件)
        - false/0/no = 关闭 (默认，日志输出到 stderr)

    PL_POLL_INTERVAL: 同步等待循环的最大轮询间隔（秒）
        - 默认 0.05 秒，限制在 0.01-1.0 秒范围

    PL_TERM_TIMEOUT: SIGTERM 后等待进程退出的时间（秒），默认 2.0
    PL_KILL_TIMEOUT: SIGKILL 后等待进程退出的时间（秒），默认 1.0
    PL_DRAIN_TIMEOUT: 进程退出后等待输出流读完的时间（秒），默认 2.0

    PL_ENCODING: 子进程输出的文本编码，默认 utf-8
"""

from __future__ import annotations

import codecs
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

__all__ = ["LauncherConfig", "load_config", "get_config", "reload_config"]

DEFAULT_POLL_INTERVAL = 0.05
DEFAULT_TERM_TIMEOUT = 2.0
DEFAULT_KILL_TIMEOUT = 1.0
DEFAULT_DRAIN_TIMEOUT = 2.0
DEFAULT_ENCODING = "utf-8"


def _parse_bool(value: str | None, default: bool = False) -> bool:
    """解析布尔值环境变量。"""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _parse_float(
    value: str | None,
    default: float,
    minimum: float | None = None,
    maximum: float | None = None,
) -> float:
    """解析浮点数环境变量。

    Args:
        value: 环境变量值
        default: 未设置或无效时的默认值
        minimum: 下限（可选）
        maximum: 上限（可选）

    Returns:
        解析后的值，超出范围时被截断
    """
    if not value:
        return default
    try:
        result = float(value)
    except ValueError:
        return default
    if result < 0:
        return default
    if minimum is not None:
        result = max(minimum, result)
    if maximum is not None:
        result = min(maximum, result)
    return result


def _parse_encoding(value: str | None) -> str:
    """解析编码名称，未知编码回退到 utf-8。"""
    if not value or not value.strip():
        return DEFAULT_ENCODING
    try:
        return codecs.lookup(value.strip()).name
    except LookupError:
        return DEFAULT_ENCODING


@dataclass
class LauncherConfig:
    """启动器配置。

    Attributes:
        debug: 跟踪模式（包装监听器并输出 trace 日志）
        log_debug: 日志调试模式（输出到临时文件）
        log_file: 日志文件路径（当 log_debug=True 时自动设置）
        poll_interval: 同步等待循环的最大轮询间隔（秒）
        term_timeout: SIGTERM 后的等待时间（秒）
        kill_timeout: SIGKILL 后的等待时间（秒）
        drain_timeout: 进程退出后等待输出流读完的时间（秒）
        encoding: 子进程输出的文本编码
    """

    debug: bool = False
    log_debug: bool = False
    log_file: str | None = None
    poll_interval: float = DEFAULT_POLL_INTERVAL
    term_timeout: float = DEFAULT_TERM_TIMEOUT
    kill_timeout: float = DEFAULT_KILL_TIMEOUT
    drain_timeout: float = DEFAULT_DRAIN_TIMEOUT
    encoding: str = DEFAULT_ENCODING

    def __repr__(self) -> str:
        return (
            f"LauncherConfig(debug={self.debug}, "
            f"log_debug={self.log_debug}, "
            f"log_file={self.log_file}, "
            f"poll_interval={self.poll_interval}, "
            f"term_timeout={self.term_timeout}, "
            f"kill_timeout={self.kill_timeout}, "
            f"drain_timeout={self.drain_timeout}, "
            f"encoding={self.encoding})"
        )


def _generate_log_file_path() -> str:
    """生成日志文件路径。

    Returns:
        临时目录下的日志文件绝对路径
    """
    log_dir = Path(tempfile.gettempdir()) / "process-launcher"
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"pl_debug_{timestamp}.log"

    return str(log_file.resolve())


def load_config() -> LauncherConfig:
    """从环境变量加载配置。"""
    log_debug = _parse_bool(os.environ.get("PL_LOG_DEBUG"), default=False)
    log_file = _generate_log_file_path() if log_debug else None

    return LauncherConfig(
        debug=_parse_bool(os.environ.get("PL_DEBUG"), default=False),
        log_debug=log_debug,
        log_file=log_file,
        poll_interval=_parse_float(
            os.environ.get("PL_POLL_INTERVAL"),
            DEFAULT_POLL_INTERVAL,
            minimum=0.01,
            maximum=1.0,
        ),
        term_timeout=_parse_float(os.environ.get("PL_TERM_TIMEOUT"), DEFAULT_TERM_TIMEOUT),
        kill_timeout=_parse_float(os.environ.get("PL_KILL_TIMEOUT"), DEFAULT_KILL_TIMEOUT),
        drain_timeout=_parse_float(os.environ.get("PL_DRAIN_TIMEOUT"), DEFAULT_DRAIN_TIMEOUT),
        encoding=_parse_encoding(os.environ.get("PL_ENCODING")),
    )


# 全局配置实例（延迟加载）
_config: LauncherConfig | None = None


def get_config() -> LauncherConfig:
    """获取全局配置实例。"""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> LauncherConfig:
    """重新加载配置（用于测试）。"""
    global _config
    _config = load_config()
    return _config
