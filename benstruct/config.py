"""benstruct 配置对象."""

from dataclasses import dataclass
from typing import Literal

from .options import BencodeOption

BytesMode = Literal["raw", "string", "auto"]

# 安全限制
DEFAULT_MAX_DEPTH = 100
MAX_STRING_LENGTH = 100 * 1024 * 1024  # 100MB


@dataclass(frozen=True)
class DecodeConfig:
    """反序列化配置 (不可变).

    在 API 入口层创建, 然后传递给 Decoder 内核.

    Attributes:
        flags: 选项标志 (IntFlag).
        max_depth: 列表/字典允许的最大嵌套深度.
        max_string_length: 单个字节串允许的最大长度.
        bytes_mode: 无模式 (`Any`) 目标中字节串的处理模式.
    """

    flags: BencodeOption = BencodeOption.NONE
    max_depth: int = DEFAULT_MAX_DEPTH
    max_string_length: int = MAX_STRING_LENGTH
    bytes_mode: BytesMode = "raw"

    @classmethod
    def from_params(
        cls,
        option: BencodeOption = BencodeOption.NONE,
        max_depth: int = DEFAULT_MAX_DEPTH,
        max_string_length: int = MAX_STRING_LENGTH,
        bytes_mode: BytesMode = "raw",
    ) -> "DecodeConfig":
        """从参数构建配置对象.

        Raises:
            ValueError: 限制值不是正数, 或 bytes_mode 未知.
        """
        if max_depth <= 0:
            raise ValueError(f"max_depth must be positive, got {max_depth}")
        if max_string_length < 0:
            raise ValueError(
                f"max_string_length cannot be negative, got {max_string_length}"
            )
        if bytes_mode not in ("raw", "string", "auto"):
            raise ValueError(f"Unknown bytes_mode: {bytes_mode!r}")

        return cls(
            flags=BencodeOption(option),
            max_depth=max_depth,
            max_string_length=max_string_length,
            bytes_mode=bytes_mode,
        )

    @property
    def strict_integers(self) -> bool:
        """是否拒绝非规范整数."""
        return bool(self.flags & BencodeOption.STRICT_INTEGERS)

    @property
    def reject_trailing_data(self) -> bool:
        """是否拒绝顶层值之后的剩余字节."""
        return bool(self.flags & BencodeOption.REJECT_TRAILING_DATA)
