"""Bencode 解码器实现.

该模块提供 `Decoder`: 持有输入流与一个单词法单元前瞻栈,
把词法单元分派给访问者的回调或容器适配器.
"""

from typing import Any, TypeVar

from typing_extensions import assert_never

from .access import EnumAccess, MapAccess, SeqAccess
from .config import DecodeConfig
from .context import DecodeContext, located
from .exceptions import (
    BencodeDecodeError,
    BencodeRecursionError,
    EndOfStreamError,
    InvalidValueError,
    UnknownVariantError,
)
from .log import get_hexdump, logger
from .scanner import Scanner
from .stream import StreamReader
from .tokens import Token, TokenKind
from .visitor import Visitor

T = TypeVar("T")


class Decoder:
    """由目标形状驱动的 Bencode 解码器.

    每次解码操作使用一个实例. 实例独占输入流和待消费词法单元栈;
    模式标志不保存在实例上, 而是通过 `DecodeContext` 显式传递.
    """

    __slots__ = ("_config", "_reader", "_scanner", "_stack")

    _config: DecodeConfig
    _reader: StreamReader
    _scanner: Scanner
    _stack: list[Token]

    def __init__(self, reader: StreamReader, config: DecodeConfig | None = None):
        """初始化 Decoder.

        Args:
            reader: 输入流读取器.
            config: 解码配置.
        """
        self._config = config or DecodeConfig()
        self._reader = reader
        self._scanner = Scanner(reader, self._config)
        self._stack = []

    @property
    def config(self) -> DecodeConfig:
        return self._config

    @property
    def pending(self) -> tuple[Token, ...]:
        """已扫描但尚未消费的词法单元 (栈底在前)."""
        return tuple(self._stack)

    def decode(self, visitor: Visitor[T]) -> T:
        """解码一个顶层值.

        Raises:
            BencodeDecodeError: 数据格式错误或与目标形状不匹配.
        """
        logger.debug("[Decoder] 开始解码, 目标: %s", visitor.expecting)

        try:
            try:
                value = visitor.decode(self, DecodeContext())
            except RecursionError as e:
                # max_depth 超出解释器栈深时, 以同一异常类型报告
                raise BencodeRecursionError(
                    "Nesting depth exceeds the interpreter recursion limit",
                    pos=self._reader.position,
                ) from e
            if self._stack:
                raise BencodeDecodeError(
                    f"Decoder finished with pending tokens: {self._stack!r}"
                )
            if self._config.reject_trailing_data and not self._reader.at_eof():
                raise InvalidValueError(
                    "Trailing data after top-level value",
                    pos=self._reader.position - 1,
                )
        except BencodeDecodeError as e:
            if e.pos is None:
                e.pos = self._reader.position
            source = self._reader.source
            if source is not None:
                logger.error(
                    "[Decoder] 解码错误: %s\n%s", e, get_hexdump(source, e.pos)
                )
            else:
                logger.error("[Decoder] 解码错误: %s (位置 %d)", e, e.pos)
            raise
        except Exception as e:
            logger.error("[Decoder] 解码错误: %s", e)
            raise

        logger.debug("[Decoder] 成功解码, 消费 %d 字节", self._reader.position)
        return value

    # --- 前瞻栈 ---

    def ensure_token(self) -> None:
        """栈为空时扫描一个词法单元并压栈. 扫描错误直接传播."""
        if not self._stack:
            self._stack.append(self._scanner.scan_token())

    def peek_token(self) -> Token:
        """返回栈顶词法单元但不弹出."""
        self.ensure_token()
        return self._stack[-1]

    def discard_token(self) -> Token:
        """弹出并丢弃栈顶词法单元."""
        return self._stack.pop()

    def _enter(self, ctx: DecodeContext) -> DecodeContext:
        child = ctx.enter()
        if child.depth > self._config.max_depth:
            raise BencodeRecursionError(
                f"Nesting depth exceeds limit {self._config.max_depth}",
                loc=list(ctx.loc),
                pos=self._reader.position,
            )
        return child

    # --- 解码请求 ---

    def decode_any(self, ctx: DecodeContext, visitor: Visitor[T]) -> T:
        """解码下一个值, 由词法单元的形状决定交给哪个回调."""
        self.ensure_token()
        if ctx.option_mode:
            # 格式中没有空值标记, 可选值只要出现就是 "存在"
            return visitor.visit_some(self, ctx.without_option_mode())

        token = self._stack.pop()
        kind = token.kind
        with located(ctx):
            if kind is TokenKind.INTEGER:
                return visitor.visit_int(token.value)  # type: ignore[arg-type]
            if kind is TokenKind.BYTE_STRING:
                return visitor.visit_bytes(token.value)  # type: ignore[arg-type]
            if kind is TokenKind.LIST_OPEN:
                return visitor.visit_seq(SeqAccess(self, self._enter(ctx)))
            if kind is TokenKind.DICT_OPEN:
                return visitor.visit_map(MapAccess(self, self._enter(ctx)))
            if kind is TokenKind.END:
                raise EndOfStreamError(
                    "Unexpected end of container", pos=self._reader.position - 1
                )
            assert_never(kind)

    def decode_option(self, ctx: DecodeContext, visitor: Visitor[T]) -> T:
        """解码一个可选值. 可选性只能在字典层面以 "键缺失" 观察到."""
        return self.decode_any(ctx.with_option_mode(), visitor)

    def decode_as_struct(self, ctx: DecodeContext, visitor: Visitor[T]) -> T:
        """以结构体模式解码字典: 键作为原始字段标识符交付."""
        token = self.peek_token()
        if token.kind is not TokenKind.DICT_OPEN:
            # 交给通用分派, 由访问者报告类型不匹配
            return self.decode_any(ctx.plain(), visitor)

        self._stack.pop()
        child = self._enter(ctx).with_struct_mode()
        with located(ctx):
            return visitor.visit_map(MapAccess(self, child))

    def decode_field_identifier(self, ctx: DecodeContext, visitor: Visitor[T]) -> T:
        """读取栈顶词法单元作为字段标识符, 不弹出.

        结构体模式下交付字节串键的原始字节, 随后的值解码负责丢弃该键.
        仅当上下文声明了自描述能力时, 才根据词法单元形状推断类型标签.
        """
        token = self.peek_token()
        kind = token.kind

        if ctx.struct_mode:
            if kind is TokenKind.BYTE_STRING:
                return visitor.visit_identifier(token.value)  # type: ignore[arg-type]
            raise InvalidValueError(
                f"Dictionary key must be a byte string, got {token.type_name}"
            )

        if ctx.self_describing:
            if kind is TokenKind.END:
                raise EndOfStreamError(
                    "Unexpected end of container", pos=self._reader.position - 1
                )
            return visitor.visit_identifier(token.type_name.encode("ascii"))

        raise InvalidValueError("Field identifier requested outside of a struct")

    def decode_as_tagged_union(self, ctx: DecodeContext, visitor: Visitor[T]) -> T:
        """解码一个标签联合.

        自描述访问者: 变体名由下一个词法单元的形状推断, 负载就是该值本身.
        其他访问者: 值必须是单条目字典, 键为变体名, 值为唯一负载.
        """
        ctx = ctx.plain()
        token = self.peek_token()
        kind = token.kind

        if visitor.self_describing:
            return visitor.visit_enum(
                EnumAccess(self, ctx.with_self_describing(), inferred=True)
            )

        if kind is TokenKind.DICT_OPEN:
            self._stack.pop()
            child = self._enter(ctx)
            with located(ctx):
                return visitor.visit_enum(EnumAccess(self, child, inferred=False))
        if kind is TokenKind.END:
            raise EndOfStreamError(
                "Unexpected end of container", pos=self._reader.position - 1
            )
        if (
            kind is TokenKind.INTEGER
            or kind is TokenKind.BYTE_STRING
            or kind is TokenKind.LIST_OPEN
        ):
            raise UnknownVariantError(
                f"Expected a one-entry dictionary for {visitor.expecting}, "
                f"got {token.type_name}",
                loc=list(ctx.loc),
            )
        assert_never(kind)


def decode_with(reader: StreamReader, visitor: Visitor[Any], config: DecodeConfig) -> Any:
    """使用新的 Decoder 实例解码一个顶层值."""
    return Decoder(reader, config).decode(visitor)
