"""Bencode 容器适配器.

让通用解码协议从一个已打开的列表或字典中依次取出元素, 键值对或标签联合负载.
该格式不携带元素数量, 只有显式的 `e` 终止符: 每次取元素前先窥视栈顶,
与 End 比较来发现容器结束, 从不把解码失败当作结束信号.
"""

from enum import Enum
from typing import TYPE_CHECKING, Any, Literal, TypeVar

from .context import DecodeContext, located
from .exceptions import UnknownVariantError
from .tokens import TokenKind

if TYPE_CHECKING:
    from .decoder import Decoder
    from .visitor import Visitor

T = TypeVar("T")


class _Sentinel(Enum):
    EXHAUSTED = "EXHAUSTED"

    def __repr__(self) -> str:
        return "EXHAUSTED"


# 容器已耗尽
EXHAUSTED = _Sentinel.EXHAUSTED
Exhausted = Literal[_Sentinel.EXHAUSTED]


def _loc_key(key: Any) -> str | int:
    if isinstance(key, str | int):
        return key
    if isinstance(key, bytes | bytearray):
        return bytes(key).decode("utf-8", "replace")
    return repr(key)


class _ContainerAccess:
    """绑定到一个已打开容器的一次性适配器."""

    __slots__ = ("_closed", "_ctx", "_decoder", "_index")

    def __init__(self, decoder: "Decoder", ctx: DecodeContext):
        self._decoder = decoder
        self._ctx = ctx
        self._index = 0
        self._closed = False

    @property
    def exhausted(self) -> bool:
        """是否已经发现匹配的 End."""
        return self._closed

    @property
    def depth(self) -> int:
        return self._ctx.depth

    def _at_end(self) -> bool:
        """窥视栈顶; 若为 End 则弹出并永久关闭适配器."""
        if self._closed:
            return True
        if self._decoder.peek_token().kind is TokenKind.END:
            self._decoder.discard_token()
            self._closed = True
        return self._closed


class SeqAccess(_ContainerAccess):
    """列表元素访问."""

    __slots__ = ()

    def next_element(self, shape: "Visitor[T]") -> T | Exhausted:
        """解码下一个元素.

        Returns:
            元素值; 遇到 End 时返回 `EXHAUSTED`.
        """
        ctx = self._ctx.at(self._index)
        with located(ctx):
            if self._at_end():
                return EXHAUSTED
            value = shape.decode(self._decoder, ctx)
        self._index += 1
        return value


class MapAccess(_ContainerAccess):
    """字典条目访问.

    结构体模式下键以字段标识符交付, 且键的词法单元留在栈上,
    由随后的 `next_value` 丢弃.
    """

    __slots__ = ("_key_loc",)

    def __init__(self, decoder: "Decoder", ctx: DecodeContext):
        super().__init__(decoder, ctx)
        self._key_loc: str | int | None = None

    @property
    def struct_mode(self) -> bool:
        return self._ctx.struct_mode

    def next_key(self, shape: "Visitor[T]") -> T | Exhausted:
        """解码下一个键.

        Returns:
            键; 遇到 End 时返回 `EXHAUSTED`.
        """
        with located(self._ctx):
            if self._at_end():
                return EXHAUSTED
            if self._ctx.struct_mode:
                key = self._decoder.decode_field_identifier(self._ctx, shape)
            else:
                key = shape.decode(self._decoder, self._ctx.plain())
        self._key_loc = _loc_key(key)
        return key

    def next_value(self, shape: "Visitor[T]") -> T:
        """解码与上一个键配对的值.

        值的位置不会是终止符: 紧挨着它之前刚成功消费了一个键.
        """
        key_loc = self._key_loc if self._key_loc is not None else self._index
        ctx = self._ctx.at(key_loc)
        with located(ctx):
            if self._ctx.struct_mode:
                # 丢弃仍然暂存在栈上的字段名
                self._decoder.discard_token()
            self._decoder.ensure_token()
            value = shape.decode(self._decoder, ctx)
        self._index += 1
        self._key_loc = None
        return value

    def next_entry(
        self, key_shape: "Visitor[Any]", value_shape: "Visitor[T]"
    ) -> tuple[Any, T] | Exhausted:
        key = self.next_key(key_shape)
        if key is EXHAUSTED:
            return EXHAUSTED
        return key, self.next_value(value_shape)


class EnumAccess:
    """标签联合访问.

    Args:
        decoder: 解码器.
        ctx: 字典内部的上下文; 自描述路径下为携带自描述能力的上下文.
        inferred: 变体名是否由词法单元形状推断 (自描述路径).
    """

    __slots__ = ("_ctx", "_decoder", "_inferred")

    def __init__(self, decoder: "Decoder", ctx: DecodeContext, inferred: bool):
        self._decoder = decoder
        self._ctx = ctx
        self._inferred = inferred

    def variant(self, shape: "Visitor[T]") -> tuple[T, "VariantAccess"]:
        """先解码变体标签, 再返回用于读取负载的 `VariantAccess`."""
        if self._inferred:
            tag = self._decoder.decode_field_identifier(self._ctx, shape)
            return tag, VariantAccess(self._decoder, self._ctx.plain(), None)

        if self._decoder.peek_token().kind is TokenKind.END:
            self._decoder.discard_token()
            raise UnknownVariantError(
                "Tagged union dictionary is empty, expected exactly one entry",
                loc=list(self._ctx.loc),
            )
        tag = shape.decode(self._decoder, self._ctx.plain())
        return tag, VariantAccess(self._decoder, self._ctx.at(_loc_key(tag)), self)


class VariantAccess:
    """标签联合负载访问. 只支持单负载变体."""

    __slots__ = ("_ctx", "_decoder", "_owner")

    def __init__(
        self, decoder: "Decoder", ctx: DecodeContext, owner: EnumAccess | None
    ):
        self._decoder = decoder
        self._ctx = ctx
        # None 表示自描述路径, 负载之后没有需要关闭的字典
        self._owner = owner

    def newtype_variant(self, shape: "Visitor[T]") -> T:
        """解码唯一负载."""
        with located(self._ctx):
            self._decoder.ensure_token()
            value = shape.decode(self._decoder, self._ctx)
            if self._owner is not None:
                if self._decoder.peek_token().kind is not TokenKind.END:
                    raise UnknownVariantError(
                        "Tagged union dictionary must contain exactly one entry"
                    )
                self._decoder.discard_token()
        return value

    def unit_variant(self) -> None:
        raise UnknownVariantError("Unit variant not supported.", loc=list(self._ctx.loc))

    def tuple_variant(self, length: int, shape: "Visitor[T]") -> T:
        raise UnknownVariantError(
            "Tuple variant not supported.", loc=list(self._ctx.loc)
        )

    def struct_variant(self, fields: tuple[str, ...], shape: "Visitor[T]") -> T:
        raise UnknownVariantError(
            "Struct variant not supported.", loc=list(self._ctx.loc)
        )
