"""
cpnlink.server
演示服务器：被动接受单个连接，把收到的每条消息回显给对端。
"""
from __future__ import annotations

import argparse
import logging

from .cpn import CPN

_LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def serve(cpn: CPN, prefix: bytes = b"echo: ") -> int:
    """回显直到对端关闭连接，返回处理的消息数。"""
    count = 0
    while True:
        try:
            payload = cpn.receive()
        except EOFError:
            return count
        print(f"[server] recv: {payload!r}")
        cpn.send(prefix + payload)
        count += 1


def main(argv: list | None = None) -> None:
    ap = argparse.ArgumentParser(prog="cpnlink-server")
    ap.add_argument("--host", default="127.0.0.1")
    ap.add_argument("--port", type=int, default=9000)
    ap.add_argument("--max-message-size", type=int, default=None, help="reject messages larger than this")
    ap.add_argument("--log-level", default="INFO", choices=sorted(_LOG_LEVELS))
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=_LOG_LEVELS[args.log_level],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    with CPN(max_message_size=args.max_message_size) as cpn:
        print(f"[server] listening on {args.host}:{args.port}")
        cpn.accept(args.port, host=args.host)
        n = serve(cpn)
        print(f"[server] peer closed after {n} messages")


if __name__ == "__main__":
    main()
