"""Append-only run log receiving every action's output."""

import os
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Optional, Union

from zabbix_setup.errors import LogSinkError


class LogSink:
    """
    Append-only byte log for one run.

    The file is opened once in append mode and flushed after every write, so
    an interrupted run leaves everything written so far on disk.
    """

    MARKER_FORMAT = "[{label}] Command: {description}\n"
    RESULT_FORMAT = "[{label}] Result: {outcome} (exit {returncode})\n"

    def __init__(self, path: Path, handle: BinaryIO) -> None:
        self.path = path
        self._handle = handle

    @classmethod
    def open(cls, path: Union[str, Path]) -> "LogSink":
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            handle = open(path, "ab")
        except OSError as e:
            raise LogSinkError(f"Cannot open log file {path}: {e}") from e
        try:
            os.chmod(path, 0o600)
        except OSError:
            # Not fatal: the file is usable, just not locked down.
            pass
        return cls(path, handle)

    @property
    def closed(self) -> bool:
        return self._handle.closed

    def _write(self, data: bytes) -> None:
        try:
            self._handle.write(data)
            self._handle.flush()
        except (OSError, ValueError) as e:
            raise LogSinkError(f"Cannot write to log file {self.path}: {e}") from e

    def marker(self, label: str, description: str) -> None:
        """Write a step boundary marker."""
        line = self.MARKER_FORMAT.format(label=label, description=description)
        self._write(line.encode("utf-8"))

    def result(self, label: str, ok: bool, returncode: Optional[int]) -> None:
        """Close a step's output block with its outcome."""
        line = self.RESULT_FORMAT.format(
            label=label,
            outcome="OK" if ok else "FAILED",
            returncode="-" if returncode is None else returncode,
        )
        self._write(line.encode("utf-8"))

    def stream(self) -> BinaryIO:
        """
        Flush and return the log handle for an action to write into directly.

        A child process given this handle appends to the log while it runs.
        """
        self._write(b"")
        return self._handle

    def end_line(self) -> None:
        """Terminate the last line if streamed output left it open."""
        try:
            with open(self.path, "rb") as f:
                f.seek(0, os.SEEK_END)
                if f.tell() == 0:
                    return
                f.seek(-1, os.SEEK_END)
                last = f.read(1)
        except OSError as e:
            raise LogSinkError(f"Cannot read log file {self.path}: {e}") from e
        if last != b"\n":
            self._write(b"\n")

    def append(self, data: bytes) -> None:
        """Append captured output verbatim, ending it on a newline."""
        if not data:
            return
        if not data.endswith(b"\n"):
            data += b"\n"
        self._write(data)

    def note(self, text: str, timestamp: Optional[datetime] = None) -> None:
        """Write a free-form timestamped line."""
        stamp = (timestamp or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")
        self._write(f"# {stamp} {text}\n".encode("utf-8"))

    def read_text(self) -> str:
        """Return the whole log, decoded for display."""
        if not self.closed:
            self._handle.flush()
        try:
            return self.path.read_bytes().decode("utf-8", errors="replace")
        except OSError as e:
            raise LogSinkError(f"Cannot read log file {self.path}: {e}") from e

    def close(self) -> None:
        if not self.closed:
            self._handle.close()

    def __enter__(self) -> "LogSink":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
