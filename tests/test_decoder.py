"""测试 Bencode 解码器核心."""

from typing import Any

import pytest

from benstruct.access import EXHAUSTED, MapAccess, SeqAccess
from benstruct.config import DecodeConfig
from benstruct.context import DecodeContext
from benstruct.decoder import Decoder
from benstruct.exceptions import (
    BencodeRecursionError,
    EndOfStreamError,
    InvalidValueError,
    UnknownVariantError,
)
from benstruct.shapes import AnyShape, IntShape
from benstruct.stream import StreamReader
from benstruct.tokens import Token, TokenKind
from benstruct.visitor import Visitor


def decoder_for(data: bytes, **config: Any) -> Decoder:
    return Decoder(StreamReader.from_bytes(data), DecodeConfig(**config))


class RecordingVisitor(Visitor[Any]):
    """记录收到的回调及其上下文."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []

    def visit_int(self, value: int) -> Any:
        self.calls.append(("int", value))
        return value

    def visit_bytes(self, value: bytes) -> Any:
        self.calls.append(("bytes", value))
        return value

    def visit_seq(self, access: SeqAccess) -> Any:
        self.calls.append(("seq", access.depth))
        items = []
        while (item := access.next_element(AnyShape())) is not EXHAUSTED:
            items.append(item)
        return items

    def visit_map(self, access: MapAccess) -> Any:
        self.calls.append(("map", access.struct_mode))
        return AnyShape().visit_map(access)

    def visit_some(self, decoder: Decoder, ctx: DecodeContext) -> Any:
        self.calls.append(("some", ctx.option_mode))
        return decoder.decode_any(ctx, self)

    def visit_identifier(self, name: bytes) -> Any:
        self.calls.append(("identifier", name))
        return name


# --- 前瞻栈 ---


def test_ensure_token_scans_only_when_empty() -> None:
    """ensure_token() 只在栈为空时扫描, 栈中最多一个待消费单元."""
    decoder = decoder_for(b"i1ei2e")

    decoder.ensure_token()
    decoder.ensure_token()

    assert decoder.pending == (Token.integer(1),)


def test_peek_does_not_consume() -> None:
    """peek_token() 返回栈顶但不弹出."""
    decoder = decoder_for(b"4:spam")

    assert decoder.peek_token() == Token.byte_string(b"spam")
    assert decoder.peek_token() == Token.byte_string(b"spam")
    assert len(decoder.pending) == 1


def test_ensure_token_propagates_scan_errors() -> None:
    """扫描错误不被吞掉, 栈保持为空."""
    decoder = decoder_for(b"i3.0e")

    with pytest.raises(InvalidValueError):
        decoder.ensure_token()
    assert decoder.pending == ()


def test_stack_empty_after_decode() -> None:
    """顶层值解码完成后栈为空."""
    decoder = decoder_for(b"d1:ali1ei2ee1:bi3ee")

    assert decoder.decode(AnyShape()) == {b"a": [1, 2], b"b": 3}
    assert decoder.pending == ()


# --- decode_any 分派 ---


def test_decode_any_integer() -> None:
    visitor = RecordingVisitor()
    assert decoder_for(b"i-5e").decode(visitor) == -5
    assert visitor.calls == [("int", -5)]


def test_decode_any_byte_string() -> None:
    visitor = RecordingVisitor()
    assert decoder_for(b"3:abc").decode(visitor) == b"abc"
    assert visitor.calls == [("bytes", b"abc")]


def test_decode_any_list_enters_container() -> None:
    """ListOpen 应交付深度加一的序列适配器."""
    visitor = RecordingVisitor()
    assert decoder_for(b"li1ee").decode(visitor) == [1]
    assert visitor.calls == [("seq", 1)]


def test_decode_any_dict_is_not_struct_mode() -> None:
    """通用字典不处于结构体模式."""
    visitor = RecordingVisitor()
    assert decoder_for(b"d1:ki1ee").decode(visitor) == {b"k": 1}
    assert visitor.calls == [("map", False)]


def test_decode_any_end_token() -> None:
    """位于值位置的 End 应抛出 EndOfStreamError."""
    with pytest.raises(EndOfStreamError):
        decoder_for(b"e").decode(AnyShape())


def test_decode_any_empty_input() -> None:
    with pytest.raises(EndOfStreamError):
        decoder_for(b"").decode(AnyShape())


def test_unexpected_callback_is_invalid_value() -> None:
    """访问者不接受的回调应抛出 InvalidValueError."""
    with pytest.raises(InvalidValueError, match="expected an integer"):
        decoder_for(b"4:spam").decode(IntShape())


# --- 模式标志 ---


def test_decode_option_wraps_as_present() -> None:
    """decode_option() 把下一个值包装为 "存在", 并清除 option 模式."""
    decoder = decoder_for(b"i7e")
    visitor = RecordingVisitor()

    result = decoder.decode_option(DecodeContext(), visitor)

    assert result == 7
    assert visitor.calls == [("some", False), ("int", 7)]


def test_decode_option_empty_input() -> None:
    with pytest.raises(EndOfStreamError):
        decoder_for(b"").decode_option(DecodeContext(), RecordingVisitor())


def test_decode_as_struct_sets_struct_mode() -> None:
    """decode_as_struct() 交付结构体模式的字典适配器."""
    seen: list[bool] = []

    class StructVisitor(Visitor[Any]):
        def visit_map(self, access: MapAccess) -> Any:
            seen.append(access.struct_mode)
            fields = {}
            while (key := access.next_key(RecordingVisitor())) is not EXHAUSTED:
                fields[key] = access.next_value(AnyShape())
            return fields

    decoder = decoder_for(b"d1:ai1e1:b2:xye")
    result = decoder.decode_as_struct(DecodeContext(), StructVisitor())

    assert result == {b"a": 1, b"b": b"xy"}
    assert seen == [True]
    assert decoder.pending == ()


def test_decode_as_struct_non_dict_falls_back() -> None:
    """非字典的值交给通用分派, 由访问者报告类型不匹配."""
    visitor = RecordingVisitor()
    assert decoder_for(b"i1e").decode_as_struct(DecodeContext(), visitor) == 1


def test_field_identifier_does_not_pop() -> None:
    """结构体模式下字段标识符读取不弹出键."""
    decoder = decoder_for(b"3:key")
    visitor = RecordingVisitor()
    ctx = DecodeContext(struct_mode=True)

    assert decoder.decode_field_identifier(ctx, visitor) == b"key"
    assert decoder.pending == (Token.byte_string(b"key"),)


def test_field_identifier_requires_byte_string_key() -> None:
    decoder = decoder_for(b"i1e")
    with pytest.raises(InvalidValueError, match="byte string"):
        decoder.decode_field_identifier(
            DecodeContext(struct_mode=True), RecordingVisitor()
        )


def test_field_identifier_outside_struct() -> None:
    """未处于结构体模式且没有自描述能力时, 标识符请求被拒绝且不改变模式."""
    decoder = decoder_for(b"i1e")
    ctx = DecodeContext()

    with pytest.raises(InvalidValueError, match="outside of a struct"):
        decoder.decode_field_identifier(ctx, RecordingVisitor())
    assert ctx.struct_mode is False


@pytest.mark.parametrize(
    ("data", "tag"),
    [
        (b"i1e", b"Integer"),
        (b"1:a", b"ByteString"),
        (b"le", b"List"),
        (b"de", b"Dict"),
    ],
)
def test_field_identifier_self_describing(data: bytes, tag: bytes) -> None:
    """自描述上下文中根据词法单元形状推断类型标签, 不消费词法单元."""
    decoder = decoder_for(data)
    ctx = DecodeContext(self_describing=True)

    assert decoder.decode_field_identifier(ctx, RecordingVisitor()) == tag
    assert len(decoder.pending) == 1


def test_tagged_union_rejects_scalar() -> None:
    """标签联合只接受单条目字典."""

    class UnionVisitor(Visitor[Any]):
        expecting = "a union"

    with pytest.raises(UnknownVariantError, match="one-entry dictionary"):
        decoder_for(b"4:unit").decode_as_tagged_union(DecodeContext(), UnionVisitor())


# --- 深度限制 ---


def test_depth_limit() -> None:
    """嵌套超过 max_depth 时应抛出 BencodeRecursionError."""
    data = b"l" * 11 + b"e" * 11

    with pytest.raises(BencodeRecursionError, match="limit 10"):
        decoder_for(data, max_depth=10).decode(AnyShape())


def test_depth_limit_exact() -> None:
    """嵌套恰好等于 max_depth 时正常解码."""
    data = b"l" * 10 + b"e" * 10

    result = decoder_for(data, max_depth=10).decode(AnyShape())

    for _ in range(9):
        assert len(result) == 1
        result = result[0]
    assert result == []


def test_default_depth_limit_fails_cleanly() -> None:
    """对抗性的深度嵌套应以解码错误结束, 而不是耗尽调用栈."""
    data = b"l" * 5000 + b"e" * 5000

    with pytest.raises(BencodeRecursionError):
        decoder_for(data).decode(AnyShape())


# --- 尾随数据 ---


def test_trailing_data_ignored_by_default() -> None:
    assert decoder_for(b"i1eXYZ").decode(AnyShape()) == 1


def test_trailing_data_rejected() -> None:
    from benstruct.options import BencodeOption

    decoder = decoder_for(b"i1ex", flags=BencodeOption.REJECT_TRAILING_DATA)
    with pytest.raises(InvalidValueError, match="Trailing data"):
        decoder.decode(AnyShape())


def test_error_position_recorded() -> None:
    """解码错误应记录流偏移."""
    with pytest.raises(InvalidValueError) as exc_info:
        decoder_for(b"li1ei2.5ee").decode(AnyShape())

    assert exc_info.value.pos == 5
    assert exc_info.value.loc == [1]


def test_token_kind_dispatch_is_exhaustive() -> None:
    """每种词法单元都有类型名."""
    names = {Token(kind).type_name for kind in TokenKind}
    assert names == {"Integer", "ByteString", "List", "Dict", "End"}
