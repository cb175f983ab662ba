"""Pytest 配置和 fixtures。"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable

import pytest

# 项目根目录
PROJECT_ROOT = Path(__file__).parent.parent

# 添加 src 目录到 Python 路径
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from process_launcher.config import LauncherConfig  # noqa: E402
from process_launcher.launcher import ProcessLauncher  # noqa: E402
from process_launcher.registry import LaunchRegistry  # noqa: E402

# 假 CLI 脚本路径
FAKE_CLI_PATH = PROJECT_ROOT / "tests" / "fixtures" / "fake_cli.py"


@pytest.fixture
def fake_cli() -> Callable[..., list[str]]:
    """构建运行假 CLI 的参数数组。"""
    def build(*args: str) -> list[str]:
        return [sys.executable, str(FAKE_CLI_PATH), *args]
    return build


@pytest.fixture
def temp_workspace(tmp_path: Path) -> Path:
    """临时工作目录。"""
    workspace = tmp_path / "workspace"
    workspace.mkdir()
    return workspace


@pytest.fixture
def fast_config() -> LauncherConfig:
    """短超时的测试配置。"""
    return LauncherConfig(
        poll_interval=0.02,
        term_timeout=1.0,
        kill_timeout=1.0,
        drain_timeout=1.0,
    )


@pytest.fixture
def registry() -> LaunchRegistry:
    """独立的启动注册表（不污染全局实例）。"""
    return LaunchRegistry()


@pytest.fixture
def launcher(fast_config: LauncherConfig, registry: LaunchRegistry) -> ProcessLauncher:
    """使用真实进程的启动器。"""
    return ProcessLauncher(config=fast_config, registry=registry)
