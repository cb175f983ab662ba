"""Process launcher.

Launches external processes from a command line or an argument array, either
fire-and-forget (launch_async) or blocking until exit (launch_sync), with
cooperative cancellation while waiting.

Launch steps:
1. Validate the command and the working directory
2. Resolve the environment from the launch configuration if none was given
3. Return None without spawning if the monitor is already canceled
4. Build the process attributes, then spawn
5. Wrap into a ManagedProcess, attach listeners (replaying output produced
   before attachment), register the launch; the child is killed if any of
   this fails

Every launch stays in the registry, together with its buffered output,
until the owner calls LaunchRegistry.cleanup_terminated() or unregister().
"""

from __future__ import annotations

import functools
import logging
import os
import threading
from collections.abc import Mapping, Sequence
from typing import Any, Callable, Union

import anyio
from pydantic import ValidationError

from .cancellation import CancelMonitor, CancellationToken, NullMonitor, subscribe_cancel
from .config import LauncherConfig, get_config
from .errors import CoreError, InvalidArgumentError
from .launch_config import PROCESS_LABEL_ATTR, LaunchConfigurationLike
from .process import ManagedProcess, ProcessAttributes, create_managed_process
from .registry import LaunchRecord, LaunchRegistry, get_launch_registry
from .runtime.process_runner import ProcessRunner
from .runtime.streams import StreamListener
from .tokenizer import parse_arguments, render_command_line
from .tracing import TraceSink, TracingStreamListener

__all__ = ["ProcessLauncher", "Command"]

logger = logging.getLogger(__name__)

# A command line string or a pre-split argument array
Command = Union[str, Sequence[str]]

ProcessFactory = Callable[..., ManagedProcess]


class ProcessLauncher:
    """Launches external processes and optionally waits for them.

    Example:
        launcher = ProcessLauncher()
        exit_code = launcher.launch_sync(
            'git commit -m "initial import"',
            working_directory=repo,
            out_listener=print,
        )

    Attributes:
        config: Launcher configuration (debug flag, timeouts, encoding)
        runner: OS process-launch primitive
        registry: Registry receiving every launch
        trace_sink: Diagnostic trace/log sink
    """

    def __init__(
        self,
        config: LauncherConfig | None = None,
        runner: ProcessRunner | None = None,
        registry: LaunchRegistry | None = None,
        trace_sink: TraceSink | None = None,
        process_factory: ProcessFactory = create_managed_process,
    ) -> None:
        self.config = config if config is not None else get_config()
        self.runner = runner if runner is not None else ProcessRunner(
            term_timeout=self.config.term_timeout,
            kill_timeout=self.config.kill_timeout,
        )
        self.registry = registry if registry is not None else get_launch_registry()
        self.trace_sink = trace_sink if trace_sink is not None else TraceSink(enabled=self.config.debug)
        self._process_factory = process_factory

    # =========================================================================
    # Public API
    # =========================================================================

    def launch_async(
        self,
        command: Command,
        working_directory: str | os.PathLike[str] | None = None,
        out_listener: StreamListener | None = None,
        err_listener: StreamListener | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        """Launch a command without waiting for it.

        If working_directory is None, the current directory is used.

        Args:
            command: Command line string or argument array, not empty
            working_directory: Working directory, can be None
            out_listener: Listener for stdout, can be None
            err_listener: Listener for stderr, can be None
            env: Complete environment for the process, can be None

        Raises:
            InvalidArgumentError: If the command is empty or the working
                directory is not a directory
            CoreError: If the process cannot be started
        """
        argv = self._to_argv(command)
        self.trace_sink.trace(f"Async Execute command line: {argv}")
        self.launch(
            argv,
            working_directory,
            NullMonitor(),
            env,
            None,
            out_listener,
            err_listener,
        )

    def launch_sync(
        self,
        command: Command,
        working_directory: str | os.PathLike[str] | None = None,
        out_listener: StreamListener | None = None,
        err_listener: StreamListener | None = None,
        monitor: CancelMonitor | None = None,
        env: Mapping[str, str] | None = None,
        launch_configuration: LaunchConfigurationLike | None = None,
    ) -> int:
        """Launch a command and block until it terminates.

        Returns 0 when nothing was launched because the monitor was already
        canceled; callers cannot tell that apart from a clean exit.

        The launch record, with the process and its buffered output, stays in
        the registry after this returns. Long-lived callers should call
        ``registry.cleanup_terminated()`` from time to time.

        Args:
            command: Command line string or argument array, not empty
            working_directory: Working directory, can be None
            out_listener: Listener for stdout, can be None
            err_listener: Listener for stderr, can be None
            monitor: Cancellation monitor, None means never canceled
            env: Complete environment for the process, can be None
            launch_configuration: Launch configuration, can be None

        Returns:
            The exit code of the process

        Raises:
            InvalidArgumentError: On an empty command or a bad working directory
            CoreError: If environment resolution or the spawn fails, or the
                process is still alive after a canceled wait
        """
        if monitor is None:
            monitor = NullMonitor()
        argv = self._to_argv(command)
        self.trace_sink.trace(f"Sync Execute command line: {argv}")

        process = self.launch(
            argv,
            working_directory,
            monitor,
            env,
            launch_configuration,
            out_listener,
            err_listener,
        )
        if process is None:
            return 0

        self._wait_for(process, monitor)
        return process.exit_value

    def launch(
        self,
        command: Command,
        working_directory: str | os.PathLike[str] | None = None,
        monitor: CancelMonitor | None = None,
        env: Mapping[str, str] | None = None,
        launch_configuration: LaunchConfigurationLike | None = None,
        out_listener: StreamListener | None = None,
        err_listener: StreamListener | None = None,
    ) -> ManagedProcess | None:
        """Launch a command and return its handle.

        Only needed when direct access to the ManagedProcess is wanted.

        Returns:
            The launched process, or None if the monitor was already canceled

        Raises:
            InvalidArgumentError: On an empty command or a bad working directory
            CoreError: If environment resolution or the spawn fails, or the
                configured process label is invalid
        """
        argv = self._to_argv(command)
        self._check_commands(argv)
        self._check_working_directory(working_directory)
        if monitor is None:
            monitor = NullMonitor()
        if env is None and launch_configuration is not None:
            env = launch_configuration.resolve_environment()
        if monitor.is_canceled():
            logger.debug(f"Launch canceled before spawn: {argv[0]}")
            return None

        attributes = self._generate_process_attributes(argv, launch_configuration)
        launch = LaunchRecord(configuration=launch_configuration, mode="run")

        popen = self.runner.spawn(argv, working_directory, env)

        try:
            process = self._process_factory(
                launch,
                popen,
                attributes.label or argv[0],
                attributes,
                runner=self.runner,
                encoding=self.config.encoding,
                drain_timeout=self.config.drain_timeout,
            )
            self._attach_listeners(argv, out_listener, err_listener, process)
            self.registry.register(launch)
        except BaseException:
            # Nothing else holds the child yet
            logger.debug(f"Launch failed after spawn, killing pid={popen.pid}")
            self.runner.kill(popen)
            raise
        return process

    async def launch_and_wait(
        self,
        command: Command,
        working_directory: str | os.PathLike[str] | None = None,
        out_listener: StreamListener | None = None,
        err_listener: StreamListener | None = None,
        env: Mapping[str, str] | None = None,
        launch_configuration: LaunchConfigurationLike | None = None,
    ) -> int:
        """Awaitable launch_sync.

        The blocking wait runs in a worker thread. Cancelling the awaiting
        task cancels the wait, which terminates the process.

        Returns:
            The exit code of the process (0 if nothing was launched)
        """
        token = CancellationToken()
        run = functools.partial(
            self.launch_sync,
            command,
            working_directory,
            out_listener,
            err_listener,
            token,
            env,
            launch_configuration,
        )
        try:
            return await anyio.to_thread.run_sync(run, abandon_on_cancel=True)
        except anyio.get_cancelled_exc_class():
            token.cancel()
            raise

    # =========================================================================
    # Internals
    # =========================================================================

    def _to_argv(self, command: Command | None) -> list[str]:
        if isinstance(command, str):
            return parse_arguments(command)
        if command is None:
            self._check_commands(None)
        return list(command)

    def _wait_for(self, process: ManagedProcess, monitor: CancelMonitor) -> None:
        """Block until the process terminates or the monitor is canceled.

        Wakes up on termination, on cancellation when the monitor can notify,
        and otherwise at least every poll_interval seconds.
        """
        wake = threading.Event()
        process.add_termination_callback(wake.set)
        unsubscribe = subscribe_cancel(monitor, wake.set)
        try:
            while True:
                wake.clear()
                if process.is_terminated():
                    break
                if monitor.is_canceled():
                    logger.debug(f"Wait canceled, terminating pid={process.pid}")
                    process.terminate()
                    break
                try:
                    wake.wait(self.config.poll_interval)
                except InterruptedError as e:
                    self.trace_sink.log(
                        logging.INFO,
                        "Exception waiting for process to terminate",
                        e,
                    )
        finally:
            if unsubscribe is not None:
                unsubscribe()

    def _generate_process_attributes(
        self,
        command: Sequence[str],
        launch_configuration: LaunchConfigurationLike | None,
    ) -> ProcessAttributes:
        label: Any = None
        if launch_configuration is not None:
            label = launch_configuration.get_attribute(PROCESS_LABEL_ATTR, command[0])
        try:
            return ProcessAttributes(
                process_type=command[0],
                command_line=render_command_line(command),
                label=label,
            )
        except ValidationError as e:
            raise CoreError(f"Invalid process label {label!r}", cause=e) from e

    def _attach_listeners(
        self,
        command: Sequence[str],
        out_listener: StreamListener | None,
        err_listener: StreamListener | None,
        process: ManagedProcess,
    ) -> None:
        if self.config.debug:
            self.trace_sink.trace(f"Creating TracingStreamListeners for {list(command)}")
            out_listener = TracingStreamListener(out_listener, self.trace_sink, "out")
            err_listener = TracingStreamListener(err_listener, self.trace_sink, "err")

        # Replay catches output from processes that finish before attachment
        if out_listener is not None:
            process.output_stream.add_listener(out_listener, replay=True)

        if err_listener is not None:
            process.error_stream.add_listener(err_listener, replay=True)

    @staticmethod
    def _check_commands(command: Sequence[str] | None) -> None:
        if command is None or len(command) < 1:
            raise InvalidArgumentError("Empty commands array")

    @staticmethod
    def _check_working_directory(working_directory: str | os.PathLike[str] | None) -> None:
        if working_directory is not None and not os.path.isdir(working_directory):
            raise InvalidArgumentError(f"{working_directory} is not a valid directory")
