"""
Foreach service for gitscan.

Runs a shell command inside every discovered repository that passes the
status filter, streaming its output and aggregating the exit codes.
Used by the `gitscan foreach` command.
"""

import logging
import os
import signal
import subprocess
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Any, Iterable, List, Optional, Union

from ..domain import (
    InvocationOutcome,
    RepositoryHandle,
    RunResult,
    StatusFilter,
    aggregate,
    matches_status,
)
from ..exit_codes import LAUNCH_FAILED, UsageError
from ..render import BufferedSink, OutputSink, STDERR_TAG, STDOUT_TAG
from ..utils import find_first_parent, make_path_relative
from .scan_service import RepositoryScanner

logger = logging.getLogger(__name__)

CHUNK_SIZE = 65536
# Reader threads get this long to drain once the child was killed
KILL_DRAIN_SECONDS = 1.0


def _terminate(proc: subprocess.Popen) -> None:
    """Kill a child together with everything in its process group."""
    if os.name != 'posix':
        proc.kill()
        return
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass


class CommandExecutor:
    """
    Runs one command in one repository.

    The relative repository path and the search root are handed to the
    child through its own environment; the parent environment is never
    modified.

    Example:
        executor = CommandExecutor(verbose=True)
        outcome = executor.run(handle, "git fetch", "/home/user/src",
                               OutputSink.stdout(), OutputSink.stderr())
    """

    def __init__(
        self,
        verbose: bool = False,
        timeout: Optional[float] = None,
        path_var: str = "path",
        toplevel_var: str = "toplevel"
    ):
        """
        Initialize CommandExecutor.

        Args:
            verbose: Print a banner per repository and tag each output chunk
            timeout: Seconds before a child is killed (None = wait forever)
            path_var: Environment variable holding the relative repository path
            toplevel_var: Environment variable holding the search root
        """
        self.verbose = verbose
        self.timeout = timeout or None
        self.path_var = path_var
        self.toplevel_var = toplevel_var
        self.stopping = threading.Event()
        self._live = set()
        self._live_lock = threading.Lock()

    def build_env(self, relative_path: str, toplevel: str) -> Dict[str, str]:
        """Child environment: a copy of ours plus the two path variables."""
        env = dict(os.environ)
        env[self.path_var] = relative_path
        env[self.toplevel_var] = toplevel
        return env

    def run(
        self,
        handle: RepositoryHandle,
        command_line: str,
        root: str,
        output_sink: OutputSink,
        error_sink: OutputSink
    ) -> InvocationOutcome:
        """
        Run command_line with its working directory set to handle.path.

        Args:
            handle: Repository to run in
            command_line: Shell command line
            root: Search root the relative path is computed against
            output_sink: Receives the child's stdout
            error_sink: Receives the child's stderr and failure reports

        Returns:
            InvocationOutcome carrying the child's exit code
        """
        relative_path = make_path_relative(handle.path, root)

        if self.verbose:
            output_sink.line(f"[[ {handle.path} ]]", style="green")

        logger.debug(f"Running {command_line!r} in {handle.path}")
        try:
            proc = subprocess.Popen(
                command_line,
                shell=True,
                cwd=handle.path,
                env=self.build_env(relative_path, root),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                # Own process group, so a kill reaches everything the shell started
                start_new_session=(os.name == 'posix'),
            )
        except OSError as e:
            error_sink.line(f"[[ {handle.path}: failed to launch: {e} ]]", style="red")
            return InvocationOutcome(
                repository=handle,
                exit_code=LAUNCH_FAILED,
                relative_path=relative_path,
                toplevel=root,
                error=str(e),
            )

        readers = [
            threading.Thread(target=self._pump, args=(proc.stdout, output_sink, STDOUT_TAG), daemon=True),
            threading.Thread(target=self._pump, args=(proc.stderr, error_sink, STDERR_TAG), daemon=True),
        ]
        for reader in readers:
            reader.start()

        self._track(proc)
        timed_out = False
        try:
            exit_code = proc.wait(timeout=self.timeout)
        except subprocess.TimeoutExpired:
            timed_out = True
            exit_code = self._kill(proc, readers)
        except KeyboardInterrupt:
            self._kill(proc, readers)
            raise
        else:
            for reader in readers:
                reader.join()
        finally:
            with self._live_lock:
                self._live.discard(proc)

        if timed_out:
            error_sink.line(
                f"[[ {handle.path}: timed out after {self.timeout:g}s, exit code = {exit_code} ]]",
                style="red",
            )
        elif exit_code != 0:
            error_sink.line(f"[[ {handle.path}: exit code = {exit_code} ]]", style="red")

        return InvocationOutcome(
            repository=handle,
            exit_code=exit_code,
            relative_path=relative_path,
            toplevel=root,
            timed_out=timed_out,
        )

    def _pump(self, pipe, sink: OutputSink, tag: tuple) -> None:
        """Forward chunks from a child pipe as they arrive."""
        try:
            for chunk in iter(lambda: pipe.read1(CHUNK_SIZE), b''):
                if self.verbose:
                    sink.write_tagged(tag, chunk)
                else:
                    sink.write(chunk)
        finally:
            pipe.close()

    def _track(self, proc: subprocess.Popen) -> None:
        with self._live_lock:
            self._live.add(proc)
            stopped = self.stopping.is_set()
        if stopped:
            # Launched after kill_all() had already swept the live set
            _terminate(proc)

    def kill_all(self) -> None:
        """Kill every running child and any child launched from now on."""
        with self._live_lock:
            self.stopping.set()
            live = list(self._live)
        for proc in live:
            logger.debug(f"Killing process group {proc.pid}")
            _terminate(proc)

    def _kill(self, proc: subprocess.Popen, readers: List[threading.Thread]) -> int:
        _terminate(proc)
        exit_code = proc.wait()
        for reader in readers:
            reader.join(KILL_DRAIN_SECONDS)
        return exit_code


class ForeachService:
    """
    Scan, filter, execute, aggregate.

    Example:
        service = ForeachService()
        result = service.run(["/home/user/src"], "git status -s", "novel")
        sys.exit(result.exit_code)
    """

    def __init__(
        self,
        scanner: Optional[RepositoryScanner] = None,
        executor: Optional[CommandExecutor] = None,
        config: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize ForeachService.

        Args:
            scanner: Repository scanner (built from config if None)
            executor: Command executor (built from config if None)
            config: Configuration dict with 'scan' and 'foreach' sections
        """
        self.config = config or {}
        scan_config = self.config.get('scan', {})
        foreach_config = self.config.get('foreach', {})

        self.scanner = scanner or RepositoryScanner(
            include_nested=scan_config.get('include_nested', False),
            exclude_dirs=scan_config.get('exclude_dirs', []),
            follow_symlinks=scan_config.get('follow_symlinks', True),
        )
        self.executor = executor or CommandExecutor(
            timeout=foreach_config.get('timeout') or None,
            path_var=foreach_config.get('path_var', 'path'),
            toplevel_var=foreach_config.get('toplevel_var', 'toplevel'),
        )

    def matching(self, roots: List[str], status_filter: StatusFilter) -> Iterable[RepositoryHandle]:
        """Lazily yield scanned repositories that pass the filter."""
        for handle in self.scanner.scan(roots):
            if matches_status(handle.status, status_filter):
                yield handle
            else:
                logger.debug(f"Skipping {handle.path} ({handle.status.value})")

    def run(
        self,
        roots: List[str],
        command_line: str,
        status_filter: Union[str, StatusFilter] = StatusFilter.ALL,
        output_sink: Optional[OutputSink] = None,
        error_sink: Optional[OutputSink] = None,
        parallel: int = 1
    ) -> RunResult:
        """
        Run command_line in every matching repository under roots.

        Args:
            roots: Absolute, existing search roots, scanned in order
            command_line: Shell command line to run per repository
            status_filter: all, novel or boring
            output_sink: Destination for child stdout (default: our stdout)
            error_sink: Destination for child stderr (default: our stderr)
            parallel: Number of concurrent invocations (1 = sequential)

        Returns:
            RunResult aggregating every invocation

        Raises:
            UsageError: for a missing command or unknown status filter
        """
        if not command_line:
            raise UsageError("Missing required option: --command")
        status_filter = StatusFilter.parse(status_filter)
        if parallel < 1:
            raise UsageError(f"--parallel must be at least 1, got {parallel}")

        output_sink = output_sink or OutputSink.stdout()
        error_sink = error_sink or OutputSink.stderr()

        if self.executor.verbose:
            output_sink.line("[[ Finding repositories ]]", style="green")

        handles = self.matching(roots, status_filter)
        if parallel > 1:
            outcomes = self._run_parallel(handles, roots, command_line, output_sink, error_sink, parallel)
        else:
            outcomes = [
                self.executor.run(handle, command_line, self._toplevel(handle, roots), output_sink, error_sink)
                for handle in handles
            ]

        result = aggregate(outcomes)
        logger.debug(f"Ran in {result.total} repositories, {result.failed} failed")
        return result

    def _toplevel(self, handle: RepositoryHandle, roots: List[str]) -> str:
        return find_first_parent(handle.path, roots) or handle.root

    def _run_parallel(
        self,
        handles: Iterable[RepositoryHandle],
        roots: List[str],
        command_line: str,
        output_sink: OutputSink,
        error_sink: OutputSink,
        parallel: int
    ) -> List[InvocationOutcome]:
        """Run with a bounded worker pool, replaying output in discovery order."""
        outcomes = []
        self.executor.stopping.clear()
        with ThreadPoolExecutor(max_workers=parallel) as pool:
            try:
                pending = []
                for handle in handles:
                    out_buffer = BufferedSink(color=output_sink.color)
                    err_buffer = BufferedSink(color=error_sink.color)
                    future = pool.submit(
                        self.executor.run,
                        handle,
                        command_line,
                        self._toplevel(handle, roots),
                        out_buffer,
                        err_buffer,
                    )
                    pending.append((future, out_buffer, err_buffer))

                for future, out_buffer, err_buffer in pending:
                    outcome = future.result()
                    out_buffer.replay(output_sink)
                    err_buffer.replay(error_sink)
                    outcomes.append(outcome)
            except BaseException:
                # Ctrl+C lands here in the main thread; queued repositories must not start
                pool.shutdown(wait=False, cancel_futures=True)
                self.executor.kill_all()
                raise
        return outcomes
