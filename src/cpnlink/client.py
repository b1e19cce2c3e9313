"""
cpnlink.client
演示客户端：连接后发送一条消息，读取一条回复。
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


def main(argv: list | None = None) -> None:
    ap = argparse.ArgumentParser(prog="cpnlink-client")
    ap.add_argument("--host", default="127.0.0.1")
    ap.add_argument("--port", type=int, default=9000)
    ap.add_argument("--message", default='setmark("P", 2`(3,"X",0.0));')
    ap.add_argument("--timeout", type=float, default=10.0, help="connect timeout in seconds")
    ap.add_argument("--log-level", default="INFO", choices=sorted(_LOG_LEVELS))
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=_LOG_LEVELS[args.log_level],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    with CPN() as cpn:
        cpn.connect(args.host, args.port, timeout=args.timeout)
        cpn.send(args.message, encode=True)
        reply = cpn.receive()
        print(f"[client] recv: {reply.decode('utf-8', errors='replace')}")


if __name__ == "__main__":
    main()
