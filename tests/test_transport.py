import os
import socket
import time

import pytest

from ecchannel.errors import ConnectionClosed, FrameTooLarge, MalformedPayload, TransferTimeout
from ecchannel.transport import BufferPool, FramedSocket


def _pair(sock_pair, **kw):
    a, b = sock_pair
    kw.setdefault("send_timeout", 5.0)
    return FramedSocket(a, **kw), FramedSocket(b, **kw)


@pytest.mark.parametrize("size", [0, 1, 1024 * 1024])
def test_framed_roundtrip(sock_pair, executor, size):
    fa, fb = _pair(sock_pair)
    data = os.urandom(size)
    fut = executor.submit(fa.send_arbitrary, data)
    assert fb.recv_arbitrary() == data
    fut.result(timeout=10)


def test_framed_messages_keep_boundaries(sock_pair):
    fa, fb = _pair(sock_pair)
    fa.send_arbitrary(b"first")
    fa.send_arbitrary(b"")
    fa.send_arbitrary(b"third")
    assert [fb.recv_arbitrary() for _ in range(3)] == [b"first", b"", b"third"]


def test_recv_raw_returns_short_read(sock_pair):
    fa, fb = _pair(sock_pair)
    assert fa.send_raw(b"0123456789") == 10
    assert fb.recv_raw(64) == b"0123456789"


def test_recv_raw_returns_buffer_to_pool(sock_pair):
    pool = BufferPool()
    fa, fb = _pair(sock_pair, pool=pool)
    fa.send_raw(b"x" * 100)
    assert fb.recv_raw(100) == b"x" * 100
    assert pool.idle_count() == 1


def test_recv_exact_spans_several_receives(sock_pair, executor):
    fa, fb = _pair(sock_pair)

    def dribble():
        for chunk in (b"ab", b"cd", b"ef"):
            fa.send_raw(chunk)
            time.sleep(0.05)

    fut = executor.submit(dribble)
    assert fb.recv_exact(6) == b"abcdef"
    fut.result(timeout=10)


def test_recv_exact_peer_closed(sock_pair):
    a, _ = sock_pair
    fa, fb = _pair(sock_pair)
    fa.send_raw(b"abc")
    a.close()
    with pytest.raises(ConnectionClosed) as ei:
        fb.recv_exact(64)
    assert ei.value.received == 3


def test_frame_limit(sock_pair):
    fa, fb = _pair(sock_pair, max_frame_size=10)
    fa.send_arbitrary(b"y" * 11)
    with pytest.raises(FrameTooLarge):
        fb.recv_arbitrary()


def test_negative_frame_length(sock_pair):
    fa, fb = _pair(sock_pair)
    fa.send_raw(b"\xfe\xff\xff\xff")
    with pytest.raises(MalformedPayload):
        fb.recv_arbitrary()


def test_send_timeout_when_peer_never_reads(sock_pair):
    a, _ = sock_pair
    a.setsockopt(socket.SOL_SOCKET, socket.SO_SNDBUF, 4096)
    fa = FramedSocket(a, send_timeout=0.3)

    start = time.monotonic()
    with pytest.raises(TransferTimeout):
        fa.send_raw(bytes(8 * 1024 * 1024))
    elapsed = time.monotonic() - start

    assert elapsed >= 0.29
    assert elapsed < 5
    # receive side stays blocking
    assert a.gettimeout() is None


def test_buffer_pool_reuse():
    pool = BufferPool(max_per_class=1)
    assert BufferPool.size_class(1) == 256
    assert BufferPool.size_class(257) == 512

    with pool.rent(300) as buf:
        first = buf
        assert len(buf) >= 300
    with pool.rent(400) as buf:
        assert buf is first

    pool.release(bytearray(512))
    pool.release(bytearray(512))
    assert pool.idle_count() == 1
    pool.clear()
    assert pool.idle_count() == 0


def test_bounded_send_keeps_error_when_socket_closed_midway(sock_pair):
    a, _ = sock_pair
    fa = FramedSocket(a, send_timeout=1.0)
    with pytest.raises(RuntimeError):
        with fa._bounded_send():
            a.close()
            raise RuntimeError("send failed")


def test_close_wakes_blocked_recv(sock_pair, executor):
    fa, fb = _pair(sock_pair)
    fut = executor.submit(fb.recv_exact, 64)
    time.sleep(0.1)
    fb.close()
    with pytest.raises(OSError):
        fut.result(timeout=5)
