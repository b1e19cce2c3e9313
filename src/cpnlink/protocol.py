"""
cpnlink.protocol
CPN Tools Comms/Java 分块 framing：每个 chunk = 1 字节 header + payload。

header 0..127   : 最后一个 chunk，payload 长度 = header
header 128..255 : 后面还有 chunk，payload 长度固定为 127
"""
from __future__ import annotations

from typing import List, Optional, Tuple

MAX_CHUNK_PAYLOAD = 127
CONTINUATION_HEADER = 255


class FramingError(ValueError):
    pass


def is_terminal(header: int) -> bool:
    return header <= MAX_CHUNK_PAYLOAD


def payload_size(header: int) -> int:
    return header if is_terminal(header) else MAX_CHUNK_PAYLOAD


def chunk(payload: bytes) -> List[bytes]:
    """把一条消息切成 wire chunks；空消息也会产生一个 header=0 的 chunk。"""
    chunks = []
    offset = 0
    while offset + MAX_CHUNK_PAYLOAD < len(payload):
        chunks.append(bytes([CONTINUATION_HEADER]) + payload[offset:offset + MAX_CHUNK_PAYLOAD])
        offset += MAX_CHUNK_PAYLOAD
    rest = payload[offset:]
    chunks.append(bytes([len(rest)]) + rest)
    return chunks



def frame(payload: bytes) -> bytes:
    return b"".join(chunk(payload))


def scan(buf: bytes, offset: int = 0, size: int = 0) -> Tuple[int, int, bool]:
    """从 offset 开始只检查 header，跳过已收齐的 chunk。

    返回 (下一个待检查的位置, 已收齐的 payload 字节数, 是否已收到最后一个 chunk)。
    offset/size 可以传入上一次的返回值，从中断处继续。
    """
    while offset < len(buf):
        header = buf[offset]
        n = payload_size(header)
        if len(buf) < offset + 1 + n:
            break
        size += n
        offset += 1 + n
        if is_terminal(header):
            return offset, size, True
    return offset, size, False


def assemble(buf: bytes, end: int) -> bytes:
    """拼接 buf[:end] 中各 chunk 的 payload；end 必须是 scan 给出的消息边界。"""
    parts = []
    offset = 0
    while offset < end:
        n = payload_size(buf[offset])
        parts.append(bytes(buf[offset + 1:offset + 1 + n]))
        offset += 1 + n
    return b"".join(parts)


def check_size(size: int, max_message_size: Optional[int]) -> None:
    if max_message_size is not None and size > max_message_size:
        raise FramingError(f"message exceeds {max_message_size} bytes")


def deframe(buf: bytes, max_message_size: Optional[int] = None) -> Tuple[Optional[bytes], bytes]:
    """从缓冲区头部解析一条完整消息：返回 (payload_or_none, remaining_buf)。

    只要最后一个 chunk 还没收齐，就原样返回 buf，不消费任何字节。
    """
    end, size, done = scan(buf)
    check_size(size, max_message_size)
    if not done:
        return None, buf
    return assemble(buf, end), bytes(buf[end:])
