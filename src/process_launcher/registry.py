"""启动记录与注册表模块。

提供已启动进程的登记和管理，包括：
- LaunchRecord: 一次启动（可能匿名）的记录
- LaunchRegistry: 启动记录的登记、查询和批量终止

启动器在进程创建并挂好监听器之后调用 register()，之后启动记录
由注册表持有，启动器不再保留引用。

注册表不会自动移除已结束的启动：进程句柄及其完整的输出/错误缓冲
会一直保留，直到调用 cleanup_terminated() 或 unregister()。长期运行的
调用方需要定期清理。
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from .process import ManagedProcess

__all__ = ["LaunchRecord", "LaunchRegistry", "get_launch_registry"]

logger = logging.getLogger(__name__)


def generate_launch_id() -> str:
    """生成唯一的启动 ID（UUID4 格式）。"""
    return str(uuid.uuid4())


@dataclass
class LaunchRecord:
    """一次启动的记录。

    Attributes:
        configuration: 启动配置（匿名启动时为 None）
        mode: 启动模式，固定为 "run"
        launch_id: 唯一启动标识符
        processes: 本次启动创建的进程
        created_at: 创建时间
    """

    configuration: Any = None
    mode: str = "run"
    launch_id: str = field(default_factory=generate_launch_id)
    processes: list[ManagedProcess] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)

    def add_process(self, process: ManagedProcess) -> None:
        """添加进程到本次启动。"""
        self.processes.append(process)

    @property
    def is_terminated(self) -> bool:
        """所有进程是否都已结束。"""
        return all(process.is_terminated() for process in self.processes)

    def terminate(self) -> int:
        """终止所有仍在运行的进程。

        Returns:
            发起终止的进程数量
        """
        count = 0
        for process in self.processes:
            if not process.is_terminated():
                process.terminate()
                count += 1
        return count

    def __repr__(self) -> str:
        elapsed = (datetime.now() - self.created_at).total_seconds()
        status = "terminated" if self.is_terminated else "running"
        name = getattr(self.configuration, "name", None) or "anonymous"
        return (
            f"LaunchRecord(id={self.launch_id[:8]}..., "
            f"config={name}, "
            f"processes={len(self.processes)}, "
            f"status={status}, "
            f"elapsed={elapsed:.1f}s)"
        )


class LaunchRegistry:
    """启动记录注册表。

    管理所有已登记的启动，提供：
    - 启动登记和注销
    - 批量终止
    - 活动状态查询

    线程安全：内部使用锁保护，可以在任意线程调用。

    Example:
        ```python
        registry = LaunchRegistry()

        # 登记启动（通常由 ProcessLauncher 完成）
        registry.register(launch)

        # 检查状态
        if registry.has_active_launches():
            print(f"Active: {registry.active_count}")

        # 终止所有进程
        terminated = registry.terminate_all()

        # 清理已结束的启动
        registry.cleanup_terminated()
        ```
    """

    def __init__(self) -> None:
        """初始化注册表。"""
        self._lock = threading.Lock()
        self._launches: Dict[str, LaunchRecord] = {}

    def register(self, launch: LaunchRecord) -> None:
        """登记启动。

        Args:
            launch: 启动记录

        Raises:
            ValueError: 如果 launch_id 已存在
        """
        with self._lock:
            if launch.launch_id in self._launches:
                raise ValueError(f"Launch {launch.launch_id} already registered")
            self._launches[launch.launch_id] = launch
        logger.debug(f"Registered launch: {launch}")

    def unregister(self, launch_id: str) -> bool:
        """注销启动。

        Args:
            launch_id: 启动标识符

        Returns:
            是否成功注销（存在则返回 True）
        """
        with self._lock:
            launch = self._launches.pop(launch_id, None)
        if launch is None:
            return False
        logger.debug(f"Unregistered launch: {launch}")
        return True

    def get(self, launch_id: str) -> Optional[LaunchRecord]:
        """获取启动记录，不存在则返回 None。"""
        with self._lock:
            return self._launches.get(launch_id)

    def terminate_all(self) -> int:
        """终止所有活动启动中的进程。

        Returns:
            发起终止的进程数量
        """
        terminated = 0
        for launch in self.list_active():
            count = launch.terminate()
            if count:
                logger.info(f"Terminated launch: {launch}")
            terminated += count

        if terminated > 0:
            logger.info(f"Terminated {terminated} process(es)")

        return terminated

    def has_active_launches(self) -> bool:
        """是否存在未结束的启动。"""
        return self.active_count > 0

    @property
    def active_count(self) -> int:
        """未结束的启动数量。"""
        return len(self.list_active())

    @property
    def total_count(self) -> int:
        """启动总数（包括已结束但未注销的）。"""
        with self._lock:
            return len(self._launches)

    def list_all(self) -> list[LaunchRecord]:
        """列出所有启动（按创建时间排序）。"""
        with self._lock:
            launches = list(self._launches.values())
        return sorted(launches, key=lambda x: x.created_at)

    def list_active(self) -> list[LaunchRecord]:
        """列出所有活动启动（按创建时间排序）。"""
        with self._lock:
            launches = list(self._launches.values())
        active = [launch for launch in launches if not launch.is_terminated]
        return sorted(active, key=lambda x: x.created_at)

    def cleanup_terminated(self) -> int:
        """清理已结束但未注销的启动。

        Returns:
            清理的启动数量
        """
        with self._lock:
            done_ids = [
                launch_id
                for launch_id, launch in self._launches.items()
                if launch.is_terminated
            ]

        for launch_id in done_ids:
            self.unregister(launch_id)

        if done_ids:
            logger.debug(f"Cleaned up {len(done_ids)} terminated launch(es)")

        return len(done_ids)

    def __len__(self) -> int:
        """返回注册表中的启动数量。"""
        return self.total_count

    def __contains__(self, launch_id: str) -> bool:
        """检查启动是否在注册表中。"""
        with self._lock:
            return launch_id in self._launches


# 全局注册表实例（延迟创建）
_registry: LaunchRegistry | None = None
_registry_lock = threading.Lock()


def get_launch_registry() -> LaunchRegistry:
    """获取全局启动注册表。"""
    global _registry
    with _registry_lock:
        if _registry is None:
            _registry = LaunchRegistry()
        return _registry
