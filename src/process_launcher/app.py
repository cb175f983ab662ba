"""Process Launcher 命令行入口。

启动一个外部进程，把它的输出/错误流转发到当前终端，并以子进程的退出码退出。
SIGINT (Ctrl+C) 取消等待并终止子进程。

用法:
    python -m process_launcher [--cwd DIR] [--env KEY=VALUE]... [--debug] COMMAND...

    只给出一个 COMMAND 时按命令行字符串解析，多个时作为参数数组使用。
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import signal
import sys
import threading
from typing import IO, Callable, Sequence

from .cancellation import CancellationToken
from .config import LauncherConfig, get_config
from .errors import CoreError, InvalidArgumentError
from .launch_config import PROCESS_LABEL_ATTR, LaunchConfiguration
from .launcher import ProcessLauncher

__all__ = ["build_parser", "run_command", "main"]

logger = logging.getLogger(__name__)

# 参数错误的退出码（与 argparse 一致）
EXIT_USAGE = 2
EXIT_FAILURE = 1


def build_parser() -> argparse.ArgumentParser:
    """构建命令行解析器。"""
    parser = argparse.ArgumentParser(
        prog="process-launcher",
        description="Launch an external process and wait for it to exit.",
    )
    parser.add_argument("--cwd", default=None, help="Working directory for the process")
    parser.add_argument(
        "--env",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Environment variable for the process (repeatable, merged over the current environment)",
    )
    parser.add_argument("--label", default=None, help="Display label for the process")
    parser.add_argument("--debug", action="store_true", help="Trace process output")
    parser.add_argument("command", nargs="+", help="Command line, or executable and arguments")
    return parser


def _parse_env(values: Sequence[str]) -> dict[str, str]:
    """解析 KEY=VALUE 列表。

    Raises:
        InvalidArgumentError: 格式不正确时
    """
    env: dict[str, str] = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise InvalidArgumentError(f"Invalid --env value: {item!r} (expected KEY=VALUE)")
        env[key] = value
    return env


def _write_to(stream: IO[str]) -> Callable[[str], None]:
    """创建把文本写到指定流的监听器。"""
    def listener(text: str) -> None:
        stream.write(text)
        stream.flush()
    return listener


def run_command(args: argparse.Namespace, config: LauncherConfig | None = None) -> int:
    """执行解析后的命令。

    Args:
        args: build_parser() 解析的参数
        config: 启动器配置（默认读取全局配置）

    Returns:
        进程退出码；参数错误返回 2，启动失败返回 1
    """
    config = config if config is not None else get_config()
    if args.debug:
        config = dataclasses.replace(config, debug=True)

    command: str | list[str] = args.command[0] if len(args.command) == 1 else list(args.command)

    token = CancellationToken()
    previous_handler = None
    if threading.current_thread() is threading.main_thread():
        def handle_sigint(signum, frame) -> None:
            if token.cancel():
                logger.info("SIGINT received, terminating process")

        previous_handler = signal.signal(signal.SIGINT, handle_sigint)

    try:
        env = _parse_env(args.env)
        launch_configuration = None
        if env or args.label:
            launch_configuration = LaunchConfiguration(
                name=args.label or "cli",
                attributes={PROCESS_LABEL_ATTR: args.label} if args.label else {},
                environment=env,
            )

        launcher = ProcessLauncher(config=config)
        exit_code = launcher.launch_sync(
            command,
            working_directory=args.cwd,
            out_listener=_write_to(sys.stdout),
            err_listener=_write_to(sys.stderr),
            monitor=token,
            launch_configuration=launch_configuration,
        )
        logger.debug(f"Process exited with code {exit_code}")
        return exit_code

    except InvalidArgumentError as e:
        print(f"process-launcher: {e}", file=sys.stderr)
        return EXIT_USAGE
    except CoreError as e:
        cause = f" ({e.cause})" if e.cause is not None else ""
        print(f"process-launcher: {e.message}{cause}", file=sys.stderr)
        return EXIT_FAILURE
    finally:
        if previous_handler is not None:
            signal.signal(signal.SIGINT, previous_handler)


def _configure_logging(config: LauncherConfig) -> None:
    """配置日志输出。"""
    log_handlers: list[logging.Handler] = []

    if config.log_debug and config.log_file:
        # LOG_DEBUG 模式：输出到临时文件
        file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
        log_handlers.append(file_handler)
        log_level = logging.DEBUG
    else:
        # 默认模式：输出到 stderr
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
        log_handlers.append(stderr_handler)
        log_level = logging.DEBUG if config.debug else logging.INFO

    # 配置 root logger（第三方库）为 WARNING，减少噪音
    logging.basicConfig(
        level=logging.WARNING,
        handlers=log_handlers,
    )
    # 只对 process_launcher 命名空间启用详细日志
    logging.getLogger("process_launcher").setLevel(log_level)


def main(argv: Sequence[str] | None = None) -> None:
    """主入口点。"""
    args = build_parser().parse_args(argv)
    config = get_config()
    if args.debug:
        config = dataclasses.replace(config, debug=True)

    _configure_logging(config)
    logger.debug(f"Starting process launcher: {config}")

    sys.exit(run_command(args, config))


if __name__ == "__main__":
    main()
