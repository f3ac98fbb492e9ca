"""Bencode 反序列化库.

由目标类型驱动的 Bencode 解码器: 调用方请求 "一个形如 T 的值",
解码器把字节流解析为 int / bytes / str / list / dict, Pydantic 结构体,
标签联合或自描述的 `Value`.
"""

from .adapter import BencodeTypeAdapter
from .api import load, loads
from .config import BytesMode, DecodeConfig
from .decoder import Decoder
from .exceptions import (
    BencodeDecodeError,
    BencodeError,
    BencodeRecursionError,
    EndOfStreamError,
    InvalidValueError,
    UnknownVariantError,
)
from .options import BencodeOption
from .stream import StreamReader
from .struct import BencodeField, BencodeStruct
from .value import Value, ValueKind

__version__ = "0.1.0"

__all__ = [
    "BencodeDecodeError",
    "BencodeError",
    "BencodeField",
    "BencodeOption",
    "BencodeRecursionError",
    "BencodeStruct",
    "BencodeTypeAdapter",
    "BytesMode",
    "DecodeConfig",
    "Decoder",
    "EndOfStreamError",
    "InvalidValueError",
    "StreamReader",
    "UnknownVariantError",
    "Value",
    "ValueKind",
    "__version__",
    "load",
    "loads",
]
