import os

import pytest

from cpnlink.protocol import (
    CONTINUATION_HEADER,
    FramingError,
    assemble,
    chunk,
    deframe,
    frame,
    scan,
)


@pytest.mark.parametrize("n", [0, 1, 126, 127, 128, 254, 255, 256, 1000])
def test_frame_deframe_roundtrip(n):
    msg = os.urandom(n)
    payload, rest = deframe(frame(msg))
    assert payload == msg
    assert rest == b""


@pytest.mark.parametrize("n", [0, 1, 126, 127, 128, 254, 255, 256, 1000])
def test_chunk_count_and_headers(n):
    chunks = chunk(b"x" * n)
    expected = 1 if n == 0 else (n + 126) // 127
    assert len(chunks) == expected
    for c in chunks[:-1]:
        assert c[0] == CONTINUATION_HEADER
        assert len(c) == 128
    last = chunks[-1]
    assert last[0] <= 127
    assert len(last) == 1 + last[0]
    assert last[0] == (n % 127 if n % 127 or n == 0 else 127)


def test_empty_message_is_single_zero_chunk():
    assert chunk(b"") == [b"\x00"]
    assert deframe(b"\x00") == (b"", b"")


def test_any_high_header_is_continuation():
    body = bytes(range(127))
    for header in (128, 200, 255):
        buf = bytes([header]) + body + b"\x02hi"
        assert deframe(buf) == (body + b"hi", b"")


def test_deframe_incomplete_keeps_buffer():
    data = frame(b"a" * 300)
    for cut in (0, 1, 127, 128, 129, 256, 257, len(data) - 1):
        partial = data[:cut]
        assert deframe(partial) == (None, partial)


def test_deframe_two_messages_back_to_back():
    buf = frame(b"first" * 40) + frame(b"second")
    p1, rest = deframe(buf)
    p2, rest = deframe(rest)
    assert p1 == b"first" * 40
    assert p2 == b"second"
    assert rest == b""


def test_deframe_leaves_trailing_partial_chunk():
    tail = frame(b"next")[:3]
    payload, rest = deframe(frame(b"done") + tail)
    assert payload == b"done"
    assert rest == tail


def test_deframe_max_message_size():
    assert deframe(frame(b"z" * 200), max_message_size=200)[0] == b"z" * 200
    with pytest.raises(FramingError):
        deframe(frame(b"z" * 201), max_message_size=200)


def test_scan_resumes_from_previous_position():
    msg = bytes(range(256)) * 2
    data = frame(msg) + frame(b"next")
    offset, size, done = scan(data[:200])
    assert (offset, size, done) == (128, 127, False)
    offset, size, done = scan(data[:400], offset, size)
    assert (offset, size, done) == (384, 381, False)
    offset, size, done = scan(data, offset, size)
    assert done
    assert size == len(msg)
    assert assemble(data, offset) == msg
    assert deframe(data[offset:]) == (b"next", b"")
