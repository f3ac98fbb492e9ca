"""Bencode API 模块.

提供用于 Bencode 反序列化的高级接口 `loads`, `load`.
目标类型可以是任意受支持的类型注解, 默认 `Any` 解析为普通 Python 对象.
"""

from typing import IO, Any, TypeVar, overload

from .config import DEFAULT_MAX_DEPTH, MAX_STRING_LENGTH, BytesMode, DecodeConfig
from .decoder import decode_with
from .options import BencodeOption
from .shapes import resolve_shape
from .stream import StreamReader

T = TypeVar("T")


@overload
def loads(
    data: bytes | bytearray | memoryview | str,
    target: type[T],
    option: BencodeOption = BencodeOption.NONE,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
    max_string_length: int = MAX_STRING_LENGTH,
    bytes_mode: BytesMode = "raw",
) -> T: ...


@overload
def loads(
    data: bytes | bytearray | memoryview | str,
    target: Any = Any,
    option: BencodeOption = BencodeOption.NONE,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
    max_string_length: int = MAX_STRING_LENGTH,
    bytes_mode: BytesMode = "raw",
) -> Any: ...


def loads(
    data: bytes | bytearray | memoryview | str,
    target: Any = Any,
    option: BencodeOption = BencodeOption.NONE,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
    max_string_length: int = MAX_STRING_LENGTH,
    bytes_mode: BytesMode = "raw",
) -> Any:
    """反序列化 Bencode 数据为 Python 对象.

    Args:
        data: 输入数据. 文本 (`str`) 先按 UTF-8 编码为字节再解码.
        target: 目标类型注解.
            - `Any` (默认): 解析为 int / bytes / list / dict.
            - `int`, `bytes`, `str`, `list[T]`, `dict[str, T]`, `T | None` 等.
            - `BencodeStruct` 或其他 Pydantic 模型: 以结构体模式解析并验证.
            - 多个变体类型的 `Union`: 解析单条目字典形式的标签联合.
            - `Value`: 保留线上形状的自描述值树.
        option: 解码选项 (如 `BencodeOption.STRICT_INTEGERS`).
        max_depth: 列表/字典的最大嵌套深度.
        max_string_length: 单个字节串的最大长度.
        bytes_mode: 字节串的处理模式 (仅对无模式目标 `Any` 有效).
            - `'raw'`: 保持所有 bytes 类型不变.
            - `'string'`: 尝试将所有 bytes 解码为 UTF-8 字符串.
            - `'auto'`: 只有可读的 UTF-8 文本才解码为字符串.

    Returns:
        目标类型的值.

    Raises:
        EndOfStreamError: 输入在值完整之前结束.
        InvalidValueError: 数据格式错误或与目标类型不匹配.
        UnknownVariantError: 标签联合的形状无法表达.
        BencodeRecursionError: 嵌套过深.
        ValidationError: 数据不符合 Pydantic 模型定义.

    Examples:
        >>> from benstruct import loads
        >>> loads(b"l4:spam4:eggse", list[bytes])
        [b'spam', b'eggs']
        >>> loads("d3:cow3:mooe", dict[str, str])
        {'cow': 'moo'}
    """
    if isinstance(data, str):
        data = data.encode("utf-8")

    config = DecodeConfig.from_params(
        option=option,
        max_depth=max_depth,
        max_string_length=max_string_length,
        bytes_mode=bytes_mode,
    )
    shape = resolve_shape(target, config.bytes_mode)
    return decode_with(StreamReader.from_bytes(data), shape, config)


@overload
def load(
    fp: IO[bytes],
    target: type[T],
    option: BencodeOption = BencodeOption.NONE,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
    max_string_length: int = MAX_STRING_LENGTH,
    bytes_mode: BytesMode = "raw",
) -> T: ...


@overload
def load(
    fp: IO[bytes],
    target: Any = Any,
    option: BencodeOption = BencodeOption.NONE,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
    max_string_length: int = MAX_STRING_LENGTH,
    bytes_mode: BytesMode = "raw",
) -> Any: ...


def load(
    fp: IO[bytes],
    target: Any = Any,
    option: BencodeOption = BencodeOption.NONE,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
    max_string_length: int = MAX_STRING_LENGTH,
    bytes_mode: BytesMode = "raw",
) -> Any:
    """从二进制流中读取并反序列化一个 Bencode 值.

    逐字节读取, 只消费该值占用的字节; 值之后的数据留在流中
    (除非设置了 `BencodeOption.REJECT_TRAILING_DATA`).

    Args:
        fp: 打开的二进制文件对象.
        target: 目标类型.
        option: 解码选项.
        max_depth: 最大嵌套深度.
        max_string_length: 单个字节串的最大长度.
        bytes_mode: 字节处理模式.

    Returns:
        解析后的对象.
    """
    config = DecodeConfig.from_params(
        option=option,
        max_depth=max_depth,
        max_string_length=max_string_length,
        bytes_mode=bytes_mode,
    )
    shape = resolve_shape(target, config.bytes_mode)
    return decode_with(StreamReader(fp), shape, config)
