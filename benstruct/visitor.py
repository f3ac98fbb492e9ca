"""通用结构化解码协议.

调用方通过 `Visitor` 请求 "一个形如 T 的值": 解码器不需要预先知道 T,
只把扫描到的词法单元交给访问者的对应回调.
"""

from typing import TYPE_CHECKING, ClassVar, Generic, NoReturn, TypeVar

from .exceptions import InvalidValueError

if TYPE_CHECKING:
    from .access import EnumAccess, MapAccess, SeqAccess
    from .context import DecodeContext
    from .decoder import Decoder

T = TypeVar("T")


class Visitor(Generic[T]):
    """解码访问者基类.

    子类只需重写目标类型能接受的回调, 其余回调默认以 `InvalidValueError` 拒绝.

    Attributes:
        expecting: 错误信息中使用的期望描述.
        self_describing: 是否声明 "自描述" 能力. 为 True 时, 标签联合请求会
            根据下一个词法单元的形状推断变体名, 而不是读取单条目字典.
    """

    expecting: str = "a value"
    self_describing: ClassVar[bool] = False

    def decode(self, decoder: "Decoder", ctx: "DecodeContext") -> T:
        """向解码器发起请求. 默认请求任意值."""
        return decoder.decode_any(ctx, self)

    def unexpected(self, what: str) -> NoReturn:
        raise InvalidValueError(f"invalid type: {what}, expected {self.expecting}")

    def visit_int(self, value: int) -> T:
        self.unexpected(f"integer `{value}`")

    def visit_bytes(self, value: bytes) -> T:
        self.unexpected("byte string")

    def visit_seq(self, access: "SeqAccess") -> T:
        self.unexpected("list")

    def visit_map(self, access: "MapAccess") -> T:
        self.unexpected("dictionary")

    def visit_some(self, decoder: "Decoder", ctx: "DecodeContext") -> T:
        self.unexpected("optional value")

    def visit_enum(self, access: "EnumAccess") -> T:
        self.unexpected("tagged union")

    def visit_identifier(self, name: bytes) -> T:
        self.unexpected("field identifier")
