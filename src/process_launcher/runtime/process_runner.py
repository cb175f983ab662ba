"""Process runner with subprocess isolation and reliable termination.

process-launcher runtime module v0.1.0

This module provides:
- The OS process-launch primitive used by the launcher (spawn)
- Cross-platform subprocess isolation (new session/process group)
- Termination signals for graceful and forced shutdown

Key design points:
- POSIX: start_new_session=True to create new process group
- Windows: CREATE_NEW_PROCESS_GROUP for signal isolation
- Termination signals the process group, not just the main process
- stdin is DEVNULL so children never inherit the parent's stdin
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..errors import CoreError

__all__ = [
    "IS_WINDOWS",
    "ProcessRunner",
]

logger = logging.getLogger(__name__)

# Platform detection
IS_WINDOWS = sys.platform == "win32"

# Default timeouts
DEFAULT_TERM_TIMEOUT = 2.0  # seconds to wait after SIGTERM
DEFAULT_KILL_TIMEOUT = 1.0  # seconds to wait after SIGKILL


@dataclass
class ProcessRunner:
    """Cross-platform process spawner.

    spawn() starts the process with piped stdout/stderr in an isolated
    process group/session. terminate()/kill() signal the whole group and fall
    back to the single process when the group cannot be signalled.

    Example:
        runner = ProcessRunner()
        popen = runner.spawn(["make", "all"], Path("/workspace"), None)
    """

    term_timeout: float = DEFAULT_TERM_TIMEOUT
    kill_timeout: float = DEFAULT_KILL_TIMEOUT

    def spawn(
        self,
        argv: Sequence[str],
        cwd: str | os.PathLike[str] | None = None,
        env: Mapping[str, str] | None = None,
    ) -> subprocess.Popen[bytes]:
        """Start a subprocess.

        Args:
            argv: Command line arguments (first element is the executable)
            cwd: Working directory (None = current directory)
            env: Complete environment for the child (None = inherit parent)

        Returns:
            The running process with stdout/stderr pipes

        Raises:
            CoreError: If the process cannot be started
        """
        kwargs = self._build_subprocess_kwargs(env)

        try:
            process = subprocess.Popen(
                list(argv),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                cwd=Path(cwd) if cwd is not None else None,
                **kwargs,
            )
        except (OSError, ValueError) as e:
            raise CoreError("Exception occurred executing command line.", cause=e) from e

        logger.debug(
            f"Started subprocess pid={process.pid} "
            f"argv={argv[0]} cwd={cwd}"
        )
        return process

    def _build_subprocess_kwargs(self, env: Mapping[str, str] | None) -> dict[str, Any]:
        """Build platform-specific subprocess kwargs.

        Args:
            env: Environment for the child, if any

        Returns:
            Dict of kwargs for subprocess.Popen
        """
        kwargs: dict[str, Any] = {}

        # Environment
        if env is not None:
            kwargs["env"] = dict(env)

        # Platform-specific isolation
        if IS_WINDOWS:
            kwargs["creationflags"] = subprocess.CREATE_NEW_PROCESS_GROUP
        else:
            kwargs["start_new_session"] = True

        return kwargs

    def terminate(self, process: subprocess.Popen[bytes]) -> None:
        """Ask the process to stop (SIGTERM / CTRL_BREAK_EVENT)."""
        if IS_WINDOWS:
            self._windows_terminate(process)
        else:
            self._posix_terminate(process)

    def kill(self, process: subprocess.Popen[bytes]) -> None:
        """Force the process to stop (SIGKILL / TerminateProcess)."""
        if IS_WINDOWS:
            self._windows_kill(process)
        else:
            self._posix_kill(process)

    def _posix_terminate(self, process: subprocess.Popen[bytes]) -> None:
        """Send SIGTERM to process group on POSIX systems."""
        try:
            # Same as pid due to start_new_session
            pgid = os.getpgid(process.pid)
            os.killpg(pgid, signal.SIGTERM)
            logger.debug(f"Sent SIGTERM to process group pgid={pgid}")
        except ProcessLookupError:
            pass
        except OSError as e:
            logger.debug(f"killpg failed, falling back to terminate: {e}")
            process.terminate()

    def _posix_kill(self, process: subprocess.Popen[bytes]) -> None:
        """Send SIGKILL to process group on POSIX systems."""
        try:
            pgid = os.getpgid(process.pid)
            os.killpg(pgid, signal.SIGKILL)
            logger.debug(f"Sent SIGKILL to process group pgid={pgid}")
        except ProcessLookupError:
            pass
        except OSError as e:
            logger.debug(f"killpg failed, falling back to kill: {e}")
            process.kill()

    def _windows_terminate(self, process: subprocess.Popen[bytes]) -> None:
        """Send CTRL_BREAK_EVENT on Windows."""
        try:
            # Works because we used CREATE_NEW_PROCESS_GROUP
            os.kill(process.pid, signal.CTRL_BREAK_EVENT)
            logger.debug(f"Sent CTRL_BREAK_EVENT to pid={process.pid}")
        except (ProcessLookupError, OSError) as e:
            logger.debug(f"CTRL_BREAK_EVENT failed, falling back: {e}")
            process.terminate()

    def _windows_kill(self, process: subprocess.Popen[bytes]) -> None:
        """Force kill on Windows."""
        try:
            process.kill()
            logger.debug(f"Called kill() on pid={process.pid}")
        except ProcessLookupError:
            pass
