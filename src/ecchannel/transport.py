"""
ecchannel.transport
基于 TCP socket 的收发工具：
- Raw：定长字节，发送受 send_timeout 约束，接收阻塞且无超时
- Framed：4 字节长度前缀 + payload
接收使用进程级共享的缓冲池（BufferPool）作为临时缓冲区。
"""
from __future__ import annotations

import logging
import socket
import threading
import time
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional

from .errors import ConnectionClosed, FrameTooLarge, TransferTimeout
from .protocol import LENGTH_PREFIX_LEN, pack_length, unpack_length

logger = logging.getLogger("ecchannel.transport")

RECV_CHUNK = 65536
MAX_FRAME_LENGTH = 0x7FFFFFFF  # int32 prefix


class BufferPool:
    """
    线程安全的 bytearray 池，按 2 的幂分级复用。
    多个通道共享同一个池；每个级别最多保留 max_per_class 个空闲缓冲区。
    """
    MIN_SIZE = 256

    def __init__(self, max_per_class: int = 8):
        self.max_per_class = max_per_class
        self._free: Dict[int, List[bytearray]] = {}
        self._lock = threading.Lock()

    @classmethod
    def size_class(cls, n: int) -> int:
        size = cls.MIN_SIZE
        while size < n:
            size <<= 1
        return size

    def acquire(self, n: int) -> bytearray:
        size = self.size_class(n)
        with self._lock:
            bucket = self._free.get(size)
            if bucket:
                return bucket.pop()
        return bytearray(size)

    def release(self, buf: bytearray) -> None:
        size = len(buf)
        with self._lock:
            bucket = self._free.setdefault(size, [])
            if len(bucket) < self.max_per_class:
                bucket.append(buf)

    @contextmanager
    def rent(self, n: int) -> Iterator[bytearray]:
        buf = self.acquire(n)
        try:
            yield buf
        finally:
            self.release(buf)

    def idle_count(self) -> int:
        with self._lock:
            return sum(len(b) for b in self._free.values())

    def clear(self) -> None:
        with self._lock:
            self._free.clear()


BUFFER_POOL = BufferPool()


class FramedSocket:
    def __init__(
        self,
        sock: socket.socket,
        send_timeout: float,
        pool: BufferPool = BUFFER_POOL,
        max_frame_size: Optional[int] = None,
    ):
        self.sock = sock
        self.send_timeout = send_timeout
        self.pool = pool
        self.max_frame_size = max_frame_size

    @contextmanager
    def _bounded_send(self) -> Iterator[Callable[[bytes], None]]:
        """
        一次有界发送：块内所有写操作共享同一个截止时间。
        超时抛 TransferTimeout，不报告已发送的部分字节数；
        退出时恢复 socket 原有的阻塞模式，接收端仍然无超时。
        """
        prev = self.sock.gettimeout()
        deadline = time.monotonic() + self.send_timeout

        def send(data: bytes) -> None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise socket.timeout("send deadline passed")
            self.sock.settimeout(remaining)
            self.sock.sendall(data)

        try:
            yield send
        except socket.timeout as e:
            logger.debug("send timed out after %.3fs", self.send_timeout)
            raise TransferTimeout(self.send_timeout) from e
        finally:
            # another thread may have closed the socket mid-send
            if self.sock.fileno() != -1:
                self.sock.settimeout(prev)

    def send_raw(self, data: bytes) -> int:
        with self._bounded_send() as send:
            send(data)
        return len(data)

    def recv_raw(self, n: int) -> bytes:
        """单次阻塞接收，返回实际收到的字节（可能少于 n；对端关闭时为 b""）。"""
        if n <= 0:
            return b""
        with self.pool.rent(n) as buf:
            got = self.sock.recv_into(buf, n)
            return bytes(buf[:got])

    def recv_exact(self, n: int) -> bytes:
        out = bytearray()
        while len(out) < n:
            chunk = self.recv_raw(min(n - len(out), RECV_CHUNK))
            if not chunk:
                raise ConnectionClosed(expected=n, received=len(out))
            out += chunk
        return bytes(out)

    def send_arbitrary(self, data: bytes) -> None:
        if len(data) > MAX_FRAME_LENGTH:
            raise ValueError(f"payload of {len(data)} bytes does not fit a 4-byte length prefix")
        with self._bounded_send() as send:
            send(pack_length(len(data)))
            send(data)

    def recv_arbitrary(self) -> bytes:
        n = unpack_length(self.recv_exact(LENGTH_PREFIX_LEN))
        if self.max_frame_size is not None and n > self.max_frame_size:
            raise FrameTooLarge(n, self.max_frame_size)
        return self.recv_exact(n)

    def close(self) -> None:
        """shutdown 先唤醒其他线程中阻塞的 recv，再释放 socket。"""
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass  # peer already gone or never connected
        self.sock.close()
