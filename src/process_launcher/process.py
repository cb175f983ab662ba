"""Managed process wrapper.

ManagedProcess is the launcher's handle on a spawned subprocess: it owns the
stdout/stderr monitors, a waiter thread that records the exit, and the
display attributes recorded for audit.
"""

from __future__ import annotations

import logging
import subprocess
import threading
from typing import TYPE_CHECKING, Callable

from pydantic import BaseModel, ConfigDict

from .errors import CoreError
from .runtime.process_runner import ProcessRunner
from .runtime.streams import StreamMonitor

if TYPE_CHECKING:
    from .registry import LaunchRecord

__all__ = [
    "ManagedProcess",
    "ProcessAttributes",
    "create_managed_process",
]

logger = logging.getLogger(__name__)

DEFAULT_DRAIN_TIMEOUT = 2.0


class ProcessAttributes(BaseModel):
    """Display/audit attributes of a launched process.

    Attributes:
        process_type: Executable name (command[0])
        command_line: Rendered command line
        label: Label from the launch configuration, if one was given
    """

    model_config = ConfigDict(frozen=True)

    process_type: str
    command_line: str
    label: str | None = None


class ManagedProcess:
    """Handle on a spawned subprocess.

    The process counts as terminated once it has exited and both output
    streams have been drained (or the drain timeout expired), so listeners
    have seen all output by the time ``is_terminated()`` returns True.

    Attributes:
        launch: Launch record the process belongs to
        label: Display label
        attributes: Display/audit attributes
        output_stream: Monitor for stdout
        error_stream: Monitor for stderr
    """

    def __init__(
        self,
        launch: LaunchRecord,
        popen: subprocess.Popen[bytes],
        label: str,
        attributes: ProcessAttributes,
        *,
        runner: ProcessRunner,
        encoding: str = "utf-8",
        drain_timeout: float = DEFAULT_DRAIN_TIMEOUT,
    ) -> None:
        self.launch = launch
        self.label = label
        self.attributes = attributes
        self._popen = popen
        self._runner = runner
        self._drain_timeout = drain_timeout

        self._lock = threading.Lock()
        self._exited = threading.Event()
        self._terminated = threading.Event()
        self._callbacks: list[Callable[[], None]] = []

        self.output_stream = StreamMonitor(popen.stdout, "stdout", encoding)
        self.error_stream = StreamMonitor(popen.stderr, "stderr", encoding)
        self.output_stream.start()
        self.error_stream.start()

        self._waiter = threading.Thread(
            target=self._wait_for_exit,
            name=f"process-waiter-{popen.pid}",
            daemon=True,
        )
        self._waiter.start()

    @property
    def pid(self) -> int:
        return self._popen.pid

    def is_terminated(self) -> bool:
        return self._terminated.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the process is terminated.

        Returns:
            True if the process terminated within the timeout
        """
        return self._terminated.wait(timeout)

    @property
    def exit_value(self) -> int:
        """Exit code of the process (negative signal number if killed on POSIX).

        Raises:
            CoreError: If the process has not exited yet
        """
        if not self._exited.is_set():
            raise CoreError(f"Process has not terminated pid={self.pid}")
        returncode = self._popen.returncode
        if returncode is None:
            raise CoreError(f"No exit code recorded pid={self.pid}")
        return returncode

    def add_termination_callback(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` once the process is terminated (immediately if it is)."""
        with self._lock:
            if not self._terminated.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def terminate(self) -> None:
        """Terminate the process gracefully, then forcefully if needed.

        Termination strategy:
        1. Send SIGTERM (or CTRL_BREAK_EVENT on Windows)
        2. Wait up to term_timeout for graceful exit
        3. If still running, send SIGKILL (or kill() on Windows)
        4. Wait up to kill_timeout for forced exit

        Failures are logged, never raised.
        """
        if self._exited.is_set():
            return

        pid = self.pid
        logger.debug(f"Terminating subprocess pid={pid}")

        try:
            self._runner.terminate(self._popen)
            if self._exited.wait(self._runner.term_timeout):
                logger.debug(
                    f"Subprocess terminated gracefully pid={pid} "
                    f"returncode={self._popen.returncode}"
                )
                return

            logger.debug(f"Force killing subprocess pid={pid}")
            self._runner.kill(self._popen)
            if self._exited.wait(self._runner.kill_timeout):
                logger.debug(
                    f"Subprocess killed pid={pid} "
                    f"returncode={self._popen.returncode}"
                )
                return

            logger.warning(f"Subprocess did not exit after kill pid={pid}")

        except ProcessLookupError:
            logger.debug(f"Subprocess already exited pid={pid}")
        except OSError as e:
            logger.warning(f"Error terminating subprocess pid={pid}: {e}")

    def _wait_for_exit(self) -> None:
        returncode = self._popen.wait()
        self._exited.set()
        logger.debug(f"Subprocess exited pid={self.pid} returncode={returncode}")

        for stream in (self.output_stream, self.error_stream):
            if not stream.wait_closed(self._drain_timeout):
                logger.warning(
                    f"Stream {stream.name} still open {self._drain_timeout}s "
                    f"after exit pid={self.pid}"
                )

        with self._lock:
            self._terminated.set()
            callbacks = list(self._callbacks)
            self._callbacks.clear()

        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.warning(f"Error in termination callback: {e}")

    def __repr__(self) -> str:
        status = "terminated" if self.is_terminated() else "running"
        return (
            f"ManagedProcess(pid={self.pid}, "
            f"label={self.label}, "
            f"status={status})"
        )


def create_managed_process(
    launch: LaunchRecord,
    popen: subprocess.Popen[bytes],
    label: str,
    attributes: ProcessAttributes,
    *,
    runner: ProcessRunner,
    encoding: str = "utf-8",
    drain_timeout: float = DEFAULT_DRAIN_TIMEOUT,
) -> ManagedProcess:
    """Wrap a spawned process and add it to its launch record."""
    process = ManagedProcess(
        launch,
        popen,
        label,
        attributes,
        runner=runner,
        encoding=encoding,
        drain_timeout=drain_timeout,
    )
    launch.add_process(process)
    return process
