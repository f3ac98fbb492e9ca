"""Bencode 解码上下文.

该模块定义了在反序列化过程中显式传递的请求级上下文.
模式标志不保存在长生命周期对象上, 嵌套的解码请求彼此看不到对方的模式.
"""

import contextlib
from collections.abc import Iterator
from dataclasses import dataclass, replace

from .exceptions import BencodeDecodeError


@dataclass(frozen=True)
class DecodeContext:
    """单次解码请求的上下文 (不可变).

    Attributes:
        depth: 当前容器嵌套深度 (顶层为 0).
        struct_mode: 字典键作为字段标识符交付, 而不是作为普通值递归解码.
        option_mode: 下一个产生的值包装为 "存在".
        self_describing: 允许根据词法单元形状推断类型标签.
        loc: 从根开始的路径 (字典键或列表索引), 用于错误报告.
    """

    depth: int = 0
    struct_mode: bool = False
    option_mode: bool = False
    self_describing: bool = False
    loc: tuple[str | int, ...] = ()

    def enter(self) -> "DecodeContext":
        """进入一个容器: 深度加一, 清除所有模式标志."""
        return DecodeContext(depth=self.depth + 1, loc=self.loc)

    def at(self, key: str | int) -> "DecodeContext":
        """容器内的子位置 (列表索引或字典键), 模式标志被清除."""
        return DecodeContext(depth=self.depth, loc=(*self.loc, key))

    def plain(self) -> "DecodeContext":
        """清除所有模式标志, 保留深度与路径."""
        return DecodeContext(depth=self.depth, loc=self.loc)

    def with_struct_mode(self) -> "DecodeContext":
        return replace(self, struct_mode=True, option_mode=False)

    def with_option_mode(self) -> "DecodeContext":
        return replace(self, option_mode=True)

    def without_option_mode(self) -> "DecodeContext":
        return replace(self, option_mode=False)

    def with_self_describing(self) -> "DecodeContext":
        return replace(self, self_describing=True, struct_mode=False)


@contextlib.contextmanager
def located(ctx: DecodeContext) -> Iterator[None]:
    """为块内抛出且尚无位置的解码错误补充路径."""
    try:
        yield
    except BencodeDecodeError as e:
        if not e.loc and ctx.loc:
            e.loc = list(ctx.loc)
        raise
