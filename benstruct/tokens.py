"""Bencode 词法单元.

扫描器每次产生一个 `Token`, 解码器最多消费一次.
"""

from dataclasses import dataclass
from enum import Enum

from typing_extensions import assert_never


class TokenKind(Enum):
    """词法单元种类."""

    INTEGER = "i"
    BYTE_STRING = "s"
    LIST_OPEN = "l"
    DICT_OPEN = "d"
    END = "e"


@dataclass(frozen=True, slots=True)
class Token:
    """一个已扫描但尚未交付的输入单元.

    Attributes:
        kind: 单元种类.
        value: `INTEGER` 时为 int, `BYTE_STRING` 时为 bytes, 其余为 None.
    """

    kind: TokenKind
    value: int | bytes | None = None

    @classmethod
    def integer(cls, value: int) -> "Token":
        return cls(TokenKind.INTEGER, value)

    @classmethod
    def byte_string(cls, value: bytes) -> "Token":
        return cls(TokenKind.BYTE_STRING, value)

    @property
    def type_name(self) -> str:
        """自描述类型名, 用于无模式目标的变体推断."""
        kind = self.kind
        if kind is TokenKind.INTEGER:
            return "Integer"
        if kind is TokenKind.BYTE_STRING:
            return "ByteString"
        if kind is TokenKind.LIST_OPEN:
            return "List"
        if kind is TokenKind.DICT_OPEN:
            return "Dict"
        if kind is TokenKind.END:
            return "End"
        assert_never(kind)

    def __repr__(self) -> str:
        if self.value is None:
            return f"Token({self.kind.name})"
        return f"Token({self.kind.name}, {self.value!r})"


LIST_OPEN = Token(TokenKind.LIST_OPEN)
DICT_OPEN = Token(TokenKind.DICT_OPEN)
END = Token(TokenKind.END)
