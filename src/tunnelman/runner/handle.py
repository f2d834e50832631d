"""OS process capability used by the process supervisor."""

import subprocess
from collections.abc import Sequence
from typing import Protocol


class ProcessHandle(Protocol):
    """Minimal view of a spawned process.

    ``wait`` raises :class:`subprocess.TimeoutExpired` when ``timeout`` elapses
    before the process exits, and returns the exit code otherwise.
    """

    pid: int

    def signal(self, sig: int) -> None: ...

    def wait(self, timeout: float | None = None) -> int: ...

    def force_kill(self) -> None: ...

    def poll(self) -> int | None: ...


class PopenHandle:
    """ProcessHandle backed by :class:`subprocess.Popen`."""

    def __init__(self, process: subprocess.Popen[bytes]):
        self._process = process
        self.pid = process.pid

    @classmethod
    def spawn(cls, command: Sequence[str]) -> "PopenHandle":
        """Start ``command`` detached from our stdio.

        Raises:
            OSError: If the executable cannot be started
        """
        process = subprocess.Popen(
            list(command),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
        return cls(process)

    def signal(self, sig: int) -> None:
        self._process.send_signal(sig)

    def wait(self, timeout: float | None = None) -> int:
        return self._process.wait(timeout=timeout)

    def force_kill(self) -> None:
        self._process.kill()

    def poll(self) -> int | None:
        return self._process.poll()
