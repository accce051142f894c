"""External check program invocation.

Runs a check program without a shell, streams the input to its stdin,
reads the header block it prints at the start of its stdout and waits
for it to exit.
"""

import shlex
import shutil
import signal
import subprocess
import threading
from dataclasses import dataclass
from email.message import Message
from typing import Any, BinaryIO, Dict, List, Optional, Sequence

from ..common.logger import get_logger
from .textproto import HeaderError, read_header

logger = get_logger("runner")


class RunnerError(RuntimeError):
    """Raised when a check program cannot be run to completion.

    Attributes:
        cmdline: Command line that was attempted
        err: Underlying exception
    """

    def __init__(self, message: str, cmdline: str, err: Optional[BaseException] = None):
        super().__init__(f"{message}: {err}" if err is not None else message)
        self.cmdline = cmdline
        self.err = err


@dataclass
class RunResult:
    """Termination status and output of a check program."""

    cmdline: str
    returncode: int
    header: Optional[Message] = None
    timed_out: bool = False

    @property
    def exited(self) -> bool:
        """True if the program exited normally (not killed by a signal)."""
        return self.returncode >= 0 and not self.timed_out

    @property
    def signal(self) -> Optional[int]:
        """Number of the signal that killed the program, if any."""
        if self.returncode < 0:
            return -self.returncode
        return None


def format_cmdline(command: str, args: Sequence[str]) -> str:
    """Render a command line for logs and error reports."""
    return shlex.join([command, *args])


def find_command(command: str) -> Optional[str]:
    """Locate a program on PATH; absolute and relative paths are checked as is."""
    return shutil.which(command)


class ProcessRunner:
    """Runs check programs.

    Output is read on a background thread so that the exit of the program,
    not the end of its stdout, ends the run. A program that leaves a
    background process holding its stdout therefore does not hold up the
    caller past its own exit.

    Args:
        timeout: Seconds after which a still-running program is killed and
            reported as timed out. None waits indefinitely.
        chunk_size: Size of reads when copying input and draining output
        exit_grace: Seconds to wait, once the program has exited, for the
            rest of its header block and for the input copy to finish
        poll_interval: Seconds between checks of the program's status while
            its header block is outstanding
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        chunk_size: int = 64 * 1024,
        exit_grace: float = 0.5,
        poll_interval: float = 0.05,
    ):
        self.timeout = timeout
        self.chunk_size = chunk_size
        self.exit_grace = exit_grace
        self.poll_interval = poll_interval

    def run(
        self,
        command: str,
        args: Sequence[str],
        stdin: Optional[BinaryIO] = None,
    ) -> RunResult:
        """Run a check program to completion.

        Args:
            command: Program name or path
            args: Arguments, passed to the program as is
            stdin: Stream copied to the program's standard input; None
                gives it an empty input

        Returns:
            RunResult with the exit status and parsed header block

        Raises:
            RunnerError: If the program cannot be started, its input cannot
                be read, or it prints a malformed header block
        """
        cmdline = format_cmdline(command, args)
        logger.debug(f"Running check program: {cmdline}")

        try:
            proc = subprocess.Popen(
                [command, *args],
                stdin=subprocess.PIPE if stdin is not None else subprocess.DEVNULL,
                stdout=subprocess.PIPE,
            )
        except (OSError, ValueError) as e:
            if stdin is not None:
                stdin.close()
            raise RunnerError("failed to start check program", cmdline, e) from e

        writer = None
        input_errors: List[BaseException] = []
        if stdin is not None:
            writer = threading.Thread(
                target=self._copy_input,
                args=(stdin, proc.stdin, input_errors),
                name=f"check-stdin-{proc.pid}",
                daemon=True,
            )
            writer.start()

        expired = threading.Event()
        timer = None
        if self.timeout is not None:
            timer = threading.Timer(self.timeout, self._expire, args=(proc, expired))
            timer.daemon = True
            timer.start()

        output: Dict[str, Any] = {}
        header_done = threading.Event()
        reader = threading.Thread(
            target=self._read_output,
            args=(proc.stdout, output, header_done),
            name=f"check-stdout-{proc.pid}",
            daemon=True,
        )
        reader.start()

        returncode = None
        try:
            while not header_done.wait(self.poll_interval):
                if proc.poll() is not None:
                    header_done.wait(self.exit_grace)
                    break

            error = output.get("error")
            if isinstance(error, HeaderError):
                raise RunnerError("malformed header block", cmdline, error) from error
            if error is not None:
                raise RunnerError("failed to read check program output", cmdline, error) from error
            if not header_done.is_set():
                logger.debug(
                    f"Check program {proc.pid} exited with its output still open, "
                    "ignoring the rest of the header block"
                )

            returncode = proc.wait()
        finally:
            if timer is not None:
                timer.cancel()
            if returncode is None:
                self._reap(proc)

        if writer is not None:
            writer.join(self.exit_grace)
            if writer.is_alive():
                logger.debug(f"Input copy to check program {proc.pid} still pending, abandoning it")
        if input_errors:
            raise RunnerError(
                "failed to feed check program input", cmdline, input_errors[0]
            ) from input_errors[0]

        return RunResult(
            cmdline=cmdline,
            returncode=returncode,
            header=output.get("header"),
            timed_out=expired.is_set(),
        )

    def _copy_input(
        self, source: BinaryIO, sink: BinaryIO, errors: List[BaseException]
    ) -> None:
        try:
            while True:
                chunk = source.read(self.chunk_size)
                if not chunk:
                    break
                sink.write(chunk)
        except BrokenPipeError:
            # The program exited or closed stdin without reading everything.
            pass
        except OSError as e:
            errors.append(e)
        finally:
            source.close()
            try:
                sink.close()
            except BrokenPipeError:
                pass

    def _read_output(
        self, stream: BinaryIO, output: Dict[str, Any], header_done: threading.Event
    ) -> None:
        try:
            try:
                output["header"] = read_header(stream)
            except (HeaderError, OSError) as e:
                output["error"] = e
                return
            finally:
                header_done.set()
            # Anything after the header block is ignored, but must still be
            # consumed so the program does not block on a full pipe.
            while stream.read(self.chunk_size):
                pass
        except OSError as e:
            logger.debug(f"Failed to drain check program output: {e}")
        finally:
            stream.close()

    def _expire(self, proc: subprocess.Popen, expired: threading.Event) -> None:
        if proc.poll() is not None:
            return
        logger.warning(f"Check program {proc.pid} timed out after {self.timeout}s, killing")
        expired.set()
        try:
            proc.kill()
        except OSError:
            pass

    def _reap(self, proc: subprocess.Popen) -> None:
        """Stop a program abandoned on an error path and collect its status."""
        if proc.poll() is None:
            self._interrupt(proc)
        try:
            proc.wait(timeout=self.exit_grace)
        except subprocess.TimeoutExpired:
            logger.debug(f"Check program {proc.pid} ignored interrupt, killing")
            try:
                proc.kill()
            except OSError:
                pass
            proc.wait()

    def _interrupt(self, proc: subprocess.Popen) -> None:
        logger.debug(f"Interrupting check program {proc.pid}")
        try:
            proc.send_signal(signal.SIGINT)
        except OSError as e:
            logger.debug(f"Failed to interrupt check program {proc.pid}: {e}")
