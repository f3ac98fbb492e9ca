"""Bencode 类型适配器.

提供类似于 Pydantic TypeAdapter 的接口,
用于把 Bencode 数据解码并验证为任意类型.
"""

from typing import Any, Generic, TypeVar

from pydantic import TypeAdapter

from .api import loads
from .config import DEFAULT_MAX_DEPTH, MAX_STRING_LENGTH, BytesMode
from .options import BencodeOption
from .shapes import resolve_shape

T = TypeVar("T")


class BencodeTypeAdapter(Generic[T]):
    """Bencode 类型适配器.

    先按目标类型的形状解码, 再交给 `pydantic.TypeAdapter` 验证,
    因此 `Annotated` 约束 (如 `Field(gt=0)`) 也会生效.

    Examples:
        >>> adapter = BencodeTypeAdapter(list[int])
        >>> adapter.validate_bencode(b"li1ei2ei3ee")
        [1, 2, 3]
    """

    def __init__(self, type_: type[T] | Any):
        """初始化 Bencode 类型适配器.

        Args:
            type_: 目标类型 (如 BencodeStruct 子类, list[int], int 等).

        Raises:
            TypeError: 目标类型不受支持.
        """
        self._type = type_
        self._pydantic_adapter = TypeAdapter(type_)
        # 提前解析, 不支持的类型在构造时就报错
        resolve_shape(type_)

    @property
    def type(self) -> Any:
        return self._type

    def validate_bencode(
        self,
        data: bytes | bytearray | memoryview | str,
        *,
        option: BencodeOption = BencodeOption.NONE,
        max_depth: int = DEFAULT_MAX_DEPTH,
        max_string_length: int = MAX_STRING_LENGTH,
        bytes_mode: BytesMode = "raw",
    ) -> T:
        """解码并验证 Bencode 数据.

        关键字参数与 `loads` 相同.

        Raises:
            BencodeDecodeError: 数据格式错误.
            ValidationError: 值不满足类型约束.
        """
        value = loads(
            data,
            target=self._type,
            option=option,
            max_depth=max_depth,
            max_string_length=max_string_length,
            bytes_mode=bytes_mode,
        )
        return self._pydantic_adapter.validate_python(value)
