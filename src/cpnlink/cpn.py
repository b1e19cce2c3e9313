"""
cpnlink.cpn
与 CPN Tools 通信的 TCP 接口：主动 connect 或被动 accept 一个连接，然后按分块格式收发消息。

    cpn = CPN()
    cpn.connect("127.0.0.1", 9000)
    cpn.send('setmark("P", 2`(3,"X",0.0));', encode=True)
    reply = cpn.receive(decode=True)
    cpn.disconnect()
"""
from __future__ import annotations

import logging
import socket
from typing import Optional, Union

from .transport import ChunkedSocket, NotConnectedError

logger = logging.getLogger(__name__)


class AlreadyConnectedError(RuntimeError):
    pass


class CPN:
    def __init__(self, max_message_size: Optional[int] = None):
        self.max_message_size = max_message_size
        self.link: Optional[ChunkedSocket] = None

    @property
    def connected(self) -> bool:
        return self.link is not None and not self.link.closed

    def _require_link(self) -> ChunkedSocket:
        if not self.connected:
            raise NotConnectedError("not connected")
        return self.link

    def attach(self, sock: socket.socket) -> None:
        """接管一个已建立连接的 socket。"""
        if self.link is not None:
            raise AlreadyConnectedError("instance already owns a connection")
        sock.settimeout(None)
        if sock.family in (socket.AF_INET, socket.AF_INET6):
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        self.link = ChunkedSocket(sock, max_message_size=self.max_message_size)

    def connect(self, host: str, port: int, timeout: Optional[float] = None) -> None:
        if self.link is not None:
            raise AlreadyConnectedError("instance already owns a connection")
        sock = socket.create_connection((host, int(port)), timeout=timeout)
        self.attach(sock)
        logger.info("connected to %s:%d", host, int(port))

    def accept(self, port: int, host: str = "", timeout: Optional[float] = None) -> None:
        """监听 port，只接受一个连接，随后关闭监听 socket。"""
        if self.link is not None:
            raise AlreadyConnectedError("instance already owns a connection")
        with socket.create_server((host, int(port))) as srv:
            srv.settimeout(timeout)
            logger.info("listening on %s:%d", host or "*", int(port))
            conn, addr = srv.accept()
        self.attach(conn)
        logger.info("accepted connection from %s:%d", addr[0], addr[1])

    def send(self, data: Union[bytes, str], encode: bool = False) -> None:
        link = self._require_link()
        payload = self.encode(data) if encode else data
        link.send_message(payload)

    def receive(self, decode: bool = False) -> Union[bytes, str]:
        payload = self._require_link().recv_message()
        return self.decode(payload) if decode else payload

    @staticmethod
    def encode(data: str) -> bytes:
        return data.encode("utf-8")

    @staticmethod
    def decode(data: bytes) -> str:
        return data.decode("utf-8")

    def disconnect(self) -> None:
        if self.link is None or self.link.closed:
            return
        self.link.close()
        logger.info("disconnected")

    def __enter__(self) -> "CPN":
        return self

    def __exit__(self, *exc) -> None:
        self.disconnect()
