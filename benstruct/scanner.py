"""Bencode 扫描器.

从输入流的当前位置读取恰好一个 `Token`. 该格式没有空白或注释语法,
每个字节都有意义.
"""

import re

from .config import DecodeConfig
from .exceptions import EndOfStreamError, InvalidValueError
from .stream import StreamReader
from .tokens import DICT_OPEN, END, LIST_OPEN, Token

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

_INTEGER_RE = re.compile(rb"[+-]?[0-9]+")
_CANONICAL_INTEGER_RE = re.compile(rb"0|-?[1-9][0-9]*")

_MARKER_INT = ord("i")
_MARKER_LIST = ord("l")
_MARKER_DICT = ord("d")
_MARKER_END = ord("e")
_COLON = ord(":")
_DIGIT_0 = ord("0")
_DIGIT_9 = ord("9")


class Scanner:
    """将输入流的下一批字节转换为一个词法单元."""

    __slots__ = ("_config", "_reader")

    def __init__(self, reader: StreamReader, config: DecodeConfig | None = None):
        self._reader = reader
        self._config = config or DecodeConfig()

    def scan_token(self) -> Token:
        """读取一个标记字节并扫描对应的词法单元.

        Raises:
            EndOfStreamError: 流已结束, 或遇到未知的标记字节.
            InvalidValueError: 整数或长度格式错误.
        """
        pos = self._reader.position
        marker = self._reader.read_byte()
        if marker is None:
            raise EndOfStreamError("Unexpected end of stream", pos=pos)

        if marker == _MARKER_LIST:
            return LIST_OPEN
        if marker == _MARKER_DICT:
            return DICT_OPEN
        if marker == _MARKER_END:
            return END
        if marker == _MARKER_INT:
            return self.scan_integer()
        if _DIGIT_0 <= marker <= _DIGIT_9:
            return self.scan_byte_string(marker)

        raise EndOfStreamError(f"Unexpected marker byte 0x{marker:02x}", pos=pos)

    def scan_integer(self) -> Token:
        """扫描 `i` 之后直到 `e` 的整数文本, 解析为 64 位有符号整数."""
        start = self._reader.position
        text = bytearray()
        while True:
            byte = self._reader.read_byte()
            if byte is None:
                raise EndOfStreamError(
                    "Stream ended before integer terminator", pos=self._reader.position
                )
            if byte == _MARKER_END:
                break
            if byte >= 0x80:
                raise InvalidValueError(
                    "Non UTF-8 integer encoding", pos=self._reader.position - 1
                )
            text.append(byte)

        raw = bytes(text)
        literal = raw.decode("ascii")
        if not _INTEGER_RE.fullmatch(raw):
            raise InvalidValueError(f"Can't parse `{literal}` as i64", pos=start)
        if self._config.strict_integers and not _CANONICAL_INTEGER_RE.fullmatch(raw):
            raise InvalidValueError(f"Non-canonical integer `{literal}`", pos=start)

        value = int(raw)
        if not INT64_MIN <= value <= INT64_MAX:
            raise InvalidValueError(f"Can't parse `{literal}` as i64", pos=start)
        return Token.integer(value)

    def scan_byte_string(self, first_digit: int) -> Token:
        """扫描 `<长度>:<内容>` 形式的字节串.

        Args:
            first_digit: 已读取的第一个长度数字 (ASCII 码).
        """
        start = self._reader.position - 1
        limit = self._config.max_string_length
        length = first_digit - _DIGIT_0
        digits = bytearray((first_digit,))

        while True:
            byte = self._reader.read_byte()
            if byte is None:
                raise EndOfStreamError(
                    "Stream ended before string length terminator",
                    pos=self._reader.position,
                )
            if byte == _COLON:
                break
            if byte >= 0x80:
                raise InvalidValueError(
                    "Non UTF-8 string length encoding", pos=self._reader.position - 1
                )
            digits.append(byte)
            if not _DIGIT_0 <= byte <= _DIGIT_9:
                raise InvalidValueError(
                    f"Can't parse `{digits.decode('ascii')}` as string length",
                    pos=start,
                )
            length = length * 10 + (byte - _DIGIT_0)
            if length > limit:
                raise InvalidValueError(
                    f"String length exceeds max limit {limit}", pos=start
                )

        if length > limit:
            raise InvalidValueError(f"String length exceeds max limit {limit}", pos=start)
        return Token.byte_string(self._reader.read_exact(length))
