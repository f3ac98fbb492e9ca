"""自描述值.

`Value` 是无模式目标: 解码时根据下一个词法单元的形状推断变体
(`Integer`, `ByteString`, `List`, `Dict`), 负载就是该值本身.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ValueKind(str, Enum):
    """自描述值的变体名."""

    INTEGER = "Integer"
    BYTE_STRING = "ByteString"
    LIST = "List"
    DICT = "Dict"


@dataclass(frozen=True)
class Value:
    """保留线上形状的值树.

    Attributes:
        kind: 变体.
        data: `INTEGER` 为 int, `BYTE_STRING` 为 bytes,
            `LIST` 为 `list[Value]`, `DICT` 为 `dict[bytes, Value]`.
    """

    kind: ValueKind
    data: Any

    def to_python(self) -> Any:
        """递归展开为普通 Python 对象."""
        if self.kind is ValueKind.LIST:
            return [item.to_python() for item in self.data]
        if self.kind is ValueKind.DICT:
            return {key: item.to_python() for key, item in self.data.items()}
        return self.data

    def __getitem__(self, key: Any) -> "Value":
        if self.kind is ValueKind.DICT and isinstance(key, str):
            key = key.encode("utf-8")
        if self.kind in (ValueKind.LIST, ValueKind.DICT):
            return self.data[key]
        raise TypeError(f"{self.kind.value} value is not subscriptable")
