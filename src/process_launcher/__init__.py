"""Process Launcher - 外部进程启动工具。

支持以命令行字符串或参数数组启动外部进程，异步（不等待）或同步
（等待退出并返回退出码，支持取消）。

环境变量:
    PL_DEBUG: 跟踪模式 (默认 false)
    PL_LOG_DEBUG: 日志输出到临时文件 (默认 false)
    PL_POLL_INTERVAL: 同步等待的最大轮询间隔 (默认 0.05s)

用法:
    python -m process_launcher 'echo "hello world"'
"""

__version__ = "0.1.0"

from .cancellation import CancellationToken, CancelMonitor, NullMonitor
from .config import LauncherConfig, get_config
from .errors import CoreError, InvalidArgumentError, LauncherError, Severity
from .launch_config import PROCESS_LABEL_ATTR, LaunchConfiguration
from .launcher import ProcessLauncher
from .process import ManagedProcess, ProcessAttributes
from .registry import LaunchRecord, LaunchRegistry, get_launch_registry
from .tokenizer import parse_arguments, render_command_line

__all__ = [
    "__version__",
    "CancellationToken",
    "CancelMonitor",
    "CoreError",
    "InvalidArgumentError",
    "LaunchConfiguration",
    "LaunchRecord",
    "LaunchRegistry",
    "LauncherConfig",
    "LauncherError",
    "ManagedProcess",
    "NullMonitor",
    "PROCESS_LABEL_ATTR",
    "ProcessAttributes",
    "ProcessLauncher",
    "Severity",
    "get_config",
    "get_launch_registry",
    "parse_arguments",
    "render_command_line",
]
