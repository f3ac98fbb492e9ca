"""Bencode 输入流.

该模块提供 `StreamReader`, 以字节粒度从任意二进制文件对象中读取数据.
"""

import io
from typing import IO

from .exceptions import EndOfStreamError


class StreamReader:
    """二进制流的逐字节读取器.

    包装文件类对象, 只读取当前需要的字节, 不预读整个流.
    """

    __slots__ = ("_fp", "_pos", "_source")

    _fp: IO[bytes]
    _pos: int
    _source: bytes | None

    def __init__(self, fp: IO[bytes]):
        """初始化 StreamReader.

        Args:
            fp: 可读的二进制文件对象, 必须实现 `read(n)`.
        """
        self._fp = fp
        self._pos = 0
        self._source = None

    @classmethod
    def from_bytes(cls, data: bytes | bytearray | memoryview) -> "StreamReader":
        """从内存中的字节构建读取器, 并保留原始数据用于错误转储."""
        source = bytes(data)
        reader = cls(io.BytesIO(source))
        reader._source = source
        return reader

    @property
    def position(self) -> int:
        """已消费的字节数."""
        return self._pos

    @property
    def source(self) -> bytes | None:
        """原始输入 (仅当从内存字节构建时可用)."""
        return self._source

    def read_byte(self) -> int | None:
        """读取一个字节.

        Returns:
            字节值; 流结束时返回 None.
        """
        chunk = self._fp.read(1)
        if not chunk:
            return None
        self._pos += 1
        return chunk[0]

    def read_exact(self, length: int) -> bytes:
        """精确读取 length 个字节.

        Raises:
            EndOfStreamError: 流在读满之前结束.
        """
        if length == 0:
            return b""

        parts = []
        remaining = length
        while remaining > 0:
            chunk = self._fp.read(remaining)
            if not chunk:
                raise EndOfStreamError(
                    f"Expected {length} bytes, stream ended after {length - remaining}",
                    pos=self._pos,
                )
            parts.append(chunk)
            self._pos += len(chunk)
            remaining -= len(chunk)
        return b"".join(parts)

    def at_eof(self) -> bool:
        """检查流是否已经耗尽 (可能会消费一个字节).

        仅在顶层值解码完成后使用.
        """
        return self.read_byte() is None
