"""LaunchRegistry 模块测试。

测试启动注册表的基本功能：
- 启动登记和注销
- 批量终止
- 活动状态查询
"""

from __future__ import annotations

from unittest import mock

import pytest

from process_launcher.process import ManagedProcess
from process_launcher.registry import LaunchRecord, LaunchRegistry, get_launch_registry


def make_process(terminated: bool) -> mock.MagicMock:
    """创建模拟进程。"""
    process = mock.MagicMock(spec=ManagedProcess)
    process.is_terminated.return_value = terminated
    return process


def make_launch(*processes) -> LaunchRecord:
    """创建包含指定进程的启动记录。"""
    launch = LaunchRecord()
    for process in processes:
        launch.add_process(process)
    return launch


class TestLaunchRecord:
    """LaunchRecord 测试。"""

    def test_defaults(self):
        """默认值。"""
        launch = LaunchRecord()
        assert launch.configuration is None
        assert launch.mode == "run"
        assert len(launch.launch_id) == 36  # UUID4 格式
        assert launch.processes == []

    def test_unique_ids(self):
        """每个启动记录 ID 唯一。"""
        assert LaunchRecord().launch_id != LaunchRecord().launch_id

    def test_is_terminated(self):
        """所有进程结束才算结束。"""
        running = make_process(False)
        done = make_process(True)
        launch = make_launch(running, done)
        assert launch.is_terminated is False

        running.is_terminated.return_value = True
        assert launch.is_terminated is True

    def test_terminate_only_running(self):
        """只终止仍在运行的进程。"""
        running = make_process(False)
        done = make_process(True)
        launch = make_launch(running, done)

        assert launch.terminate() == 1
        running.terminate.assert_called_once()
        done.terminate.assert_not_called()

    def test_repr_anonymous(self):
        """匿名启动的 repr。"""
        launch = make_launch(make_process(False))
        text = repr(launch)
        assert "config=anonymous" in text
        assert "status=running" in text


class TestLaunchRegistry:
    """LaunchRegistry 基本功能测试。"""

    def test_register_and_unregister(self):
        """登记和注销启动。"""
        registry = LaunchRegistry()
        launch = make_launch(make_process(False))

        registry.register(launch)
        assert launch.launch_id in registry
        assert registry.total_count == 1
        assert registry.get(launch.launch_id) is launch

        assert registry.unregister(launch.launch_id) is True
        assert launch.launch_id not in registry
        assert len(registry) == 0

    def test_register_duplicate_raises_error(self):
        """登记重复启动时抛出错误。"""
        registry = LaunchRegistry()
        launch = make_launch()
        registry.register(launch)

        with pytest.raises(ValueError, match="already registered"):
            registry.register(launch)

    def test_unregister_nonexistent_returns_false(self):
        """注销不存在的启动返回 False。"""
        registry = LaunchRegistry()
        assert registry.unregister("nonexistent") is False

    def test_get_nonexistent(self):
        """获取不存在的启动返回 None。"""
        assert LaunchRegistry().get("nonexistent") is None


class TestLaunchRegistryStatus:
    """LaunchRegistry 状态查询测试。"""

    def test_has_active_launches(self):
        """检查是否有活动启动。"""
        registry = LaunchRegistry()
        assert registry.has_active_launches() is False

        process = make_process(False)
        registry.register(make_launch(process))
        assert registry.has_active_launches() is True

        process.is_terminated.return_value = True
        assert registry.has_active_launches() is False

    def test_active_count(self):
        """获取活动启动数量。"""
        registry = LaunchRegistry()
        registry.register(make_launch(make_process(False)))
        registry.register(make_launch(make_process(True)))

        assert registry.active_count == 1
        assert registry.total_count == 2

    def test_list_active_sorted(self):
        """活动启动按创建时间排序。"""
        registry = LaunchRegistry()
        first = make_launch(make_process(False))
        second = make_launch(make_process(False))
        registry.register(second)
        registry.register(first)

        assert registry.list_active() == sorted([first, second], key=lambda x: x.created_at)

    def test_list_all_includes_terminated(self):
        """list_all 包含已结束的启动。"""
        registry = LaunchRegistry()
        active = make_launch(make_process(False))
        done = make_launch(make_process(True))
        registry.register(active)
        registry.register(done)

        assert registry.list_active() == [active]
        assert set(x.launch_id for x in registry.list_all()) == {active.launch_id, done.launch_id}


class TestLaunchRegistryTermination:
    """LaunchRegistry 终止和清理测试。"""

    def test_terminate_all(self):
        """终止所有活动进程。"""
        registry = LaunchRegistry()
        p1 = make_process(False)
        p2 = make_process(False)
        p3 = make_process(True)
        registry.register(make_launch(p1))
        registry.register(make_launch(p2, p3))

        assert registry.terminate_all() == 2
        p1.terminate.assert_called_once()
        p2.terminate.assert_called_once()
        p3.terminate.assert_not_called()

    def test_cleanup_terminated(self):
        """清理已结束的启动。"""
        registry = LaunchRegistry()
        active = make_launch(make_process(False))
        done = make_launch(make_process(True))
        registry.register(active)
        registry.register(done)

        assert registry.cleanup_terminated() == 1
        assert active.launch_id in registry
        assert done.launch_id not in registry


def test_global_registry_is_shared():
    """全局注册表是单例。"""
    assert get_launch_registry() is get_launch_registry()
