"""
cpnlink.transport
基于 TCP socket 的分块消息收发：后台线程持续读取，recv_message 等待条件变量唤醒。
"""
from __future__ import annotations

import logging
import socket
import threading
from typing import Optional

from .protocol import assemble, check_size, chunk, scan

logger = logging.getLogger(__name__)


class NotConnectedError(ConnectionError):
    pass


class ChunkedSocket:
    def __init__(self, sock: socket.socket, max_message_size: Optional[int] = None, recv_size: int = 4096):
        self.sock = sock
        self.buf = bytearray()
        self.max_message_size = max_message_size
        self.recv_size = recv_size

        self._cond = threading.Condition()
        self._send_lock = threading.Lock()
        self._eof = False
        self._error: Optional[BaseException] = None
        self._closed = False

        # 当前消息已检查到的位置与 payload 字节数，新数据到达后从这里继续
        self._scan_offset = 0
        self._scan_size = 0

        # 调用 recv_message 的先后顺序
        self._next_ticket = 0
        self._serving = 0

        self._reader = threading.Thread(target=self._read_loop, name="cpnlink-reader", daemon=True)
        self._reader.start()

    @property
    def closed(self) -> bool:
        return self._closed

    def _read_loop(self) -> None:
        while True:
            try:
                data = self.sock.recv(self.recv_size)
            except OSError as e:
                with self._cond:
                    if not self._closed:
                        logger.warning("reader stopped: %s", e)
                        self._error = e
                    self._cond.notify_all()
                return
            with self._cond:
                if not data:
                    self._eof = True
                    self._cond.notify_all()
                    return
                self.buf += data
                self._cond.notify_all()

    def send_message(self, payload: bytes) -> None:
        if self._closed:
            raise NotConnectedError("not connected")
        with self._send_lock:
            for c in chunk(payload):
                self.sock.sendall(c)
        logger.debug("sent message: %d bytes", len(payload))

    def _take_message(self) -> Optional[bytes]:
        self._scan_offset, self._scan_size, done = scan(self.buf, self._scan_offset, self._scan_size)
        check_size(self._scan_size, self.max_message_size)
        if not done:
            return None
        end = self._scan_offset
        payload = assemble(self.buf, end)
        del self.buf[:end]
        self._scan_offset = 0
        self._scan_size = 0
        return payload

    def recv_message(self) -> bytes:
        with self._cond:
            ticket = self._next_ticket
            self._next_ticket += 1
            try:
                while True:
                    if self._closed:
                        raise NotConnectedError("not connected")
                    if ticket == self._serving:
                        payload = self._take_message()
                        if payload is not None:
                            logger.debug("received message: %d bytes", len(payload))
                            return payload
                        if self._error is not None:
                            raise ConnectionError("connection failed") from self._error
                        if self._eof:
                            raise EOFError("connection closed")
                    self._cond.wait()
            finally:
                if ticket == self._serving:
                    self._serving += 1
                    self._cond.notify_all()

    def close(self) -> None:
        with self._cond:
            if self._closed:
                return
            self._closed = True
            self._cond.notify_all()
        try:
            # 让后台线程的 recv() 立即返回
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        self.sock.close()
        if self._reader is not threading.current_thread():
            self._reader.join(timeout=1.0)
