"""Tests for zabbix_setup.logsink."""

import os
import stat
from datetime import datetime

import pytest

from zabbix_setup.errors import LogSinkError, ResourceError
from zabbix_setup.logsink import LogSink


def test_open_creates_parent_directories(log_path):
    with LogSink.open(log_path) as sink:
        assert sink.path == log_path
    assert log_path.exists()


def test_log_is_private(sink, log_path):
    assert stat.S_IMODE(os.stat(log_path).st_mode) == 0o600


def test_marker_format(sink):
    sink.marker("Install nginx", "apt-get install -y nginx")
    assert sink.read_text() == "[Install nginx] Command: apt-get install -y nginx\n"


@pytest.mark.parametrize(
    "ok, returncode, expected",
    [
        (True, 0, "[A] Result: OK (exit 0)\n"),
        (False, 2, "[A] Result: FAILED (exit 2)\n"),
        (False, None, "[A] Result: FAILED (exit -)\n"),
    ],
)
def test_result_format(sink, ok, returncode, expected):
    sink.result("A", ok, returncode)
    assert sink.read_text() == expected


def test_append_is_verbatim_and_newline_terminated(sink):
    sink.append(b"line one\nline two")
    sink.append(b"already terminated\n")
    assert sink.read_text() == "line one\nline two\nalready terminated\n"


def test_append_empty_writes_nothing(sink):
    sink.append(b"")
    assert sink.read_text() == ""


def test_note_is_timestamped(sink):
    sink.note("Run started", timestamp=datetime(2024, 5, 1, 12, 30, 0))
    assert sink.read_text() == "# 2024-05-01 12:30:00 Run started\n"


def test_reopen_appends(log_path):
    with LogSink.open(log_path) as first:
        first.marker("A", "true")
    with LogSink.open(log_path) as second:
        second.marker("B", "true")
        assert second.read_text() == "[A] Command: true\n[B] Command: true\n"


def test_binary_output_is_decoded_with_replacement(sink):
    sink.append(b"bad byte \xff here\n")
    assert "bad byte � here" in sink.read_text()


def test_unopenable_path(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("not a directory")
    with pytest.raises(LogSinkError) as excinfo:
        LogSink.open(blocker / "run.log")
    assert isinstance(excinfo.value, ResourceError)


def test_write_after_close(sink):
    sink.close()
    assert sink.closed
    with pytest.raises(LogSinkError):
        sink.marker("A", "true")


def test_read_after_close(sink):
    sink.marker("A", "true")
    sink.close()
    assert sink.read_text() == "[A] Command: true\n"


def test_stream_is_flushed_log_handle(sink):
    sink.marker("A", "echo hi")
    stream = sink.stream()
    stream.write(b"direct\n")
    stream.flush()
    assert sink.read_text() == "[A] Command: echo hi\ndirect\n"


def test_stream_after_close(sink):
    sink.close()
    with pytest.raises(LogSinkError):
        sink.stream()


@pytest.mark.parametrize(
    "content, expected",
    [(b"", b""), (b"done\n", b"done\n"), (b"partial", b"partial\n")],
)
def test_end_line(sink, log_path, content, expected):
    stream = sink.stream()
    stream.write(content)
    stream.flush()
    sink.end_line()
    assert log_path.read_bytes() == expected
