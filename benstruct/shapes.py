"""目标形状.

把 Python 类型注解 (如 `int`, `list[bytes]`, `dict[str, int]`, `Model | None`,
标签联合或 `Any`) 转换为驱动解码器的访问者.
"""

import collections.abc
import types as stdlib_types
import typing
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Annotated,
    Any,
    Literal,
    Union,
    get_args,
    get_origin,
)

from pydantic import BaseModel
from typing_extensions import is_typeddict

from .access import EXHAUSTED
from .config import BytesMode
from .exceptions import InvalidValueError, UnknownVariantError
from .value import Value, ValueKind
from .visitor import Visitor

if TYPE_CHECKING:
    from .access import EnumAccess, MapAccess, SeqAccess
    from .context import DecodeContext
    from .decoder import Decoder


def _is_safe_text(text: str) -> bool:
    r"""判断字符串是否为 '人类可读文本'.

    允许所有可打印字符以及 \n, \r, \t; 拒绝其他控制字符.
    """
    return all(c.isprintable() or c in "\n\r\t" for c in text)


def convert_bytes(data: bytes, mode: BytesMode) -> bytes | str:
    """按 bytes_mode 处理无模式目标中的字节串."""
    if mode == "raw":
        return data
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError:
        return data
    if mode == "string" or _is_safe_text(text):
        return text
    return data


# --- 标量 ---


class IntShape(Visitor[int]):
    expecting = "an integer"

    def visit_int(self, value: int) -> int:
        return value


class BoolShape(Visitor[bool]):
    expecting = "a boolean integer (0 or 1)"

    def visit_int(self, value: int) -> bool:
        if value not in (0, 1):
            raise InvalidValueError(f"Invalid boolean value: {value}")
        return bool(value)


class BytesShape(Visitor[bytes]):
    expecting = "a byte string"

    def visit_bytes(self, value: bytes) -> bytes:
        return value


class StrShape(Visitor[str]):
    expecting = "a UTF-8 string"

    def visit_bytes(self, value: bytes) -> str:
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidValueError(f"Non UTF-8 string: {e.reason}") from e


class LiteralShape(Visitor[Any]):
    """`Literal[...]`: 先按第一个字面量的类型解码, 再检查取值."""

    def __init__(self, values: tuple[Any, ...], inner: Visitor[Any]):
        self._values = values
        self._inner = inner
        self.expecting = f"one of {list(values)!r}"

    def decode(self, decoder: "Decoder", ctx: "DecodeContext") -> Any:
        value = self._inner.decode(decoder, ctx)
        if value not in self._values:
            raise InvalidValueError(
                f"Invalid literal {value!r}, expected {self.expecting}"
            )
        return value


class AnyShape(Visitor[Any]):
    """无模式目标: 整数, 字节串 (或文本), 列表, 字典."""

    expecting = "any value"

    def __init__(self, bytes_mode: BytesMode = "raw"):
        self._bytes_mode = bytes_mode

    def visit_int(self, value: int) -> int:
        return value

    def visit_bytes(self, value: bytes) -> bytes | str:
        return convert_bytes(value, self._bytes_mode)

    def visit_seq(self, access: "SeqAccess") -> list[Any]:
        result = []
        while (item := access.next_element(self)) is not EXHAUSTED:
            result.append(item)
        return result

    def visit_map(self, access: "MapAccess") -> dict[Any, Any]:
        key_shape = _KeyShape(self._bytes_mode)
        result = {}
        while (key := access.next_key(key_shape)) is not EXHAUSTED:
            result[key] = access.next_value(self)
        return result


class _KeyShape(Visitor[Any]):
    """无模式字典的键: 只能是字节串."""

    expecting = "a byte string key"

    def __init__(self, bytes_mode: BytesMode):
        self._bytes_mode = bytes_mode

    def visit_bytes(self, value: bytes) -> bytes | str:
        return convert_bytes(value, self._bytes_mode)


# 跳过未知字段时使用
IGNORED = AnyShape("raw")


# --- 容器 ---


class SequenceShape(Visitor[Any]):
    """`list[T]`, `tuple[T, ...]`, `set[T]` 等同质序列."""

    def __init__(self, item: Visitor[Any], factory: Any = list):
        self._item = item
        self._factory = factory
        self.expecting = f"a list of {item.expecting}"

    def visit_seq(self, access: "SeqAccess") -> Any:
        items = []
        while (item := access.next_element(self._item)) is not EXHAUSTED:
            items.append(item)
        return items if self._factory is list else self._factory(items)


class TupleShape(Visitor[tuple[Any, ...]]):
    """`tuple[A, B]`: 元素个数固定的列表."""

    def __init__(self, items: tuple[Visitor[Any], ...]):
        self._items = items
        self.expecting = f"a list of {len(items)} elements"

    def visit_seq(self, access: "SeqAccess") -> tuple[Any, ...]:
        values = []
        for index, shape in enumerate(self._items):
            value = access.next_element(shape)
            if value is EXHAUSTED:
                raise InvalidValueError(
                    f"Invalid length {index}, expected {self.expecting}"
                )
            values.append(value)
        if access.next_element(IGNORED) is not EXHAUSTED:
            raise InvalidValueError(f"Too many elements, expected {self.expecting}")
        return tuple(values)


class MappingShape(Visitor[dict[Any, Any]]):
    """`dict[K, V]`."""

    def __init__(self, key: Visitor[Any], value: Visitor[Any]):
        self._key = key
        self._value = value
        self.expecting = f"a dictionary of {value.expecting}"

    def visit_map(self, access: "MapAccess") -> dict[Any, Any]:
        result = {}
        while (key := access.next_key(self._key)) is not EXHAUSTED:
            try:
                hash(key)
            except TypeError as e:
                raise InvalidValueError(
                    f"Unhashable dictionary key of type {type(key).__name__}"
                ) from e
            result[key] = access.next_value(self._value)
        return result


class OptionalShape(Visitor[Any]):
    """`T | None`. 格式中没有空值, 出现的值总是 "存在"."""

    def __init__(self, inner: Visitor[Any]):
        self._inner = inner
        self.expecting = f"an optional {inner.expecting}"

    def decode(self, decoder: "Decoder", ctx: "DecodeContext") -> Any:
        return decoder.decode_option(ctx, self)

    def visit_some(self, decoder: "Decoder", ctx: "DecodeContext") -> Any:
        return self._inner.decode(decoder, ctx)


# --- 结构体 ---


class _FieldIdentifier(Visitor[bytes]):
    expecting = "a field identifier"

    def visit_identifier(self, name: bytes) -> bytes:
        return name


FIELD_IDENTIFIER = _FieldIdentifier()


class StructShape(Visitor[BaseModel]):
    """Pydantic 模型 (包括 `BencodeStruct`): 以结构体模式解码字典.

    字段形状由 `resolve_shape` 在本形状进入缓存之后解析 (`prepare`),
    因此递归模型可以引用自身.
    """

    def __init__(self, model: type[BaseModel], bytes_mode: BytesMode):
        self._model = model
        self._bytes_mode = bytes_mode
        self._fields: dict[bytes, tuple[str, Visitor[Any]]] | None = None
        self.expecting = f"struct {model.__name__}"

    def decode(self, decoder: "Decoder", ctx: "DecodeContext") -> BaseModel:
        return decoder.decode_as_struct(ctx, self)

    def prepare(self) -> None:
        """解析所有字段的形状."""
        if not self._model.__pydantic_complete__:
            # 前向引用在此之后才可解析
            self._model.model_rebuild()
        keys = getattr(self._model, "__bencode_fields__", None)
        fields: dict[bytes, tuple[str, Visitor[Any]]] = {}
        for name, info in self._model.model_fields.items():
            if keys is not None:
                wire_key = keys.get(name)
                if wire_key is None:
                    continue
            else:
                wire_key = (info.alias or name).encode("utf-8")
            fields[wire_key] = (
                info.alias or name,
                resolve_shape(info.annotation, self._bytes_mode),
            )
        self._fields = fields

    def collect(self, access: "MapAccess") -> dict[str, Any]:
        """读取所有条目, 返回以验证键为索引的字段字典. 未知键被跳过."""
        fields = self._fields
        if fields is None:
            raise RuntimeError(f"Fields of {self.expecting} were never resolved")
        values: dict[str, Any] = {}
        while (key := access.next_key(FIELD_IDENTIFIER)) is not EXHAUSTED:
            entry = fields.get(key)
            if entry is None:
                access.next_value(IGNORED)
                continue
            name, shape = entry
            values[name] = access.next_value(shape)
        return values

    def visit_map(self, access: "MapAccess") -> BaseModel:
        return self._model.model_validate(self.collect(access))


# --- 标签联合 ---


class _VariantTag(Visitor[str]):
    """变体标签: 字典键 (字节串) 或自描述路径中推断的标识符."""

    expecting = "a variant name"

    def visit_bytes(self, value: bytes) -> str:
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidValueError(f"Non UTF-8 variant name: {e.reason}") from e

    def visit_identifier(self, name: bytes) -> str:
        return self.visit_bytes(name)


VARIANT_TAG = _VariantTag()

_NEWTYPE = "newtype"
_UNIT = "unit"
_TUPLE = "tuple"
_STRUCT = "struct"


class TaggedUnionShape(Visitor[Any]):
    """标签联合: 单条目字典, 键为变体名, 值为唯一负载.

    Args:
        variants: 变体名 -> (变体种类, 负载类型, 负载形状).
            负载形状只有单负载变体才有, 其余为 None.
    """

    def __init__(self, variants: dict[str, tuple[str, Any, Visitor[Any] | None]]):
        self._variants = variants
        self.expecting = f"one of the variants {sorted(variants)!r}"

    def decode(self, decoder: "Decoder", ctx: "DecodeContext") -> Any:
        return decoder.decode_as_tagged_union(ctx, self)

    def visit_enum(self, access: "EnumAccess") -> Any:
        name, variant = access.variant(VARIANT_TAG)
        entry = self._variants.get(name)
        if entry is None:
            raise UnknownVariantError(
                f"Unknown variant `{name}`, expected {self.expecting}"
            )

        kind, payload, shape = entry
        if kind == _UNIT:
            variant.unit_variant()
            return payload
        if kind == _TUPLE:
            return variant.tuple_variant(len(payload._fields), IGNORED)
        if kind == _STRUCT:
            fields = tuple(typing.get_type_hints(payload))
            return variant.struct_variant(fields, IGNORED)
        assert shape is not None
        return variant.newtype_variant(shape)


class EnumShape(TaggedUnionShape):
    """`Enum`: 每个成员都是无负载变体."""

    def __init__(self, enum_cls: type[Enum]):
        super().__init__({member.name: (_UNIT, member, None) for member in enum_cls})
        self.expecting = f"enum {enum_cls.__name__}"


class ValueShape(Visitor[Value]):
    """自描述 `Value`: 变体名由词法单元形状推断."""

    expecting = "a self-describing value"
    self_describing = True

    def __init__(self) -> None:
        self._payloads: dict[ValueKind, Visitor[Any]] = {
            ValueKind.INTEGER: IntShape(),
            ValueKind.BYTE_STRING: BytesShape(),
            ValueKind.LIST: SequenceShape(self),
            ValueKind.DICT: MappingShape(BytesShape(), self),
        }

    def decode(self, decoder: "Decoder", ctx: "DecodeContext") -> Value:
        return decoder.decode_as_tagged_union(ctx, self)

    def visit_enum(self, access: "EnumAccess") -> Value:
        name, variant = access.variant(VARIANT_TAG)
        kind = ValueKind(name)
        return Value(kind, variant.newtype_variant(self._payloads[kind]))


# --- 解析 ---


def _is_class(tp: Any) -> bool:
    # 参数化泛型 (如 list[int]) 在部分版本中通过 isinstance(tp, type) 检查
    return isinstance(tp, type) and get_origin(tp) is None


def _variant_name(member: Any) -> str:
    if get_origin(member) is Annotated:
        for meta in get_args(member)[1:]:
            if isinstance(meta, str):
                return meta
        member = get_args(member)[0]
    name = getattr(member, "__bencode_variant__", None)
    if isinstance(name, str):
        return name
    if _is_class(member):
        return member.__name__
    raise TypeError(
        f"Cannot derive a variant name for {member!r}; "
        f'use Annotated[{member!r}, "Name"]'
    )


def _variant_kind(member: Any) -> str:
    if _is_class(member):
        if issubclass(member, tuple) and hasattr(member, "_fields"):
            return _TUPLE
        if is_typeddict(member):
            return _STRUCT
    return _NEWTYPE


def _build_union(members: tuple[Any, ...], bytes_mode: BytesMode) -> Visitor[Any]:
    non_none = tuple(m for m in members if m is not type(None))
    if len(non_none) == 1:
        inner = resolve_shape(non_none[0], bytes_mode)
    else:
        variants: dict[str, tuple[str, Any, Visitor[Any] | None]] = {}
        for member in non_none:
            name = _variant_name(member)
            if name in variants:
                raise TypeError(f"Duplicate variant name {name!r}")
            if get_origin(member) is Annotated:
                member = get_args(member)[0]
            kind = _variant_kind(member)
            shape = resolve_shape(member, bytes_mode) if kind == _NEWTYPE else None
            variants[name] = (kind, member, shape)
        inner = TaggedUnionShape(variants)
    if len(non_none) != len(members):
        return OptionalShape(inner)
    return inner


_SEQUENCE_ORIGINS = {
    list: list,
    collections.abc.Sequence: list,
    collections.abc.MutableSequence: list,
    collections.abc.Iterable: list,
    set: set,
    collections.abc.Set: frozenset,
    collections.abc.MutableSet: set,
    frozenset: frozenset,
}

_MAPPING_ORIGINS = {
    dict,
    collections.abc.Mapping,
    collections.abc.MutableMapping,
}


def _build_shape(tp: Any, bytes_mode: BytesMode) -> Visitor[Any]:
    if tp is Any or tp is object:
        return AnyShape(bytes_mode)
    if tp is Value:
        return ValueShape()
    if tp is bool:
        return BoolShape()
    if tp is int:
        return IntShape()
    if tp is bytes:
        return BytesShape()
    if tp is str:
        return StrShape()
    if tp is type(None):
        raise TypeError("NoneType cannot be decoded: the format has no null value")

    origin = get_origin(tp)
    args = get_args(tp)

    if origin is Annotated:
        return resolve_shape(args[0], bytes_mode)
    if origin is Union or origin is stdlib_types.UnionType:
        return _build_union(args, bytes_mode)
    if origin is Literal:
        first = args[0]
        inner = resolve_shape(type(first), bytes_mode)
        return LiteralShape(args, inner)

    if _is_class(tp):
        if issubclass(tp, BaseModel):
            return StructShape(tp, bytes_mode)
        if issubclass(tp, Enum):
            return EnumShape(tp)
        if tp in _SEQUENCE_ORIGINS:
            return SequenceShape(AnyShape(bytes_mode), _SEQUENCE_ORIGINS[tp])
        if tp is tuple:
            return SequenceShape(AnyShape(bytes_mode), tuple)
        if tp in _MAPPING_ORIGINS:
            return MappingShape(_KeyShape(bytes_mode), AnyShape(bytes_mode))

    if origin is tuple:
        if len(args) == 2 and args[1] is Ellipsis:
            return SequenceShape(resolve_shape(args[0], bytes_mode), tuple)
        if args == ((),):
            return TupleShape(())
        return TupleShape(tuple(resolve_shape(a, bytes_mode) for a in args))
    if origin in _SEQUENCE_ORIGINS:
        item = resolve_shape(args[0], bytes_mode) if args else AnyShape(bytes_mode)
        return SequenceShape(item, _SEQUENCE_ORIGINS[origin])
    if origin in _MAPPING_ORIGINS:
        if not args:
            return MappingShape(_KeyShape(bytes_mode), AnyShape(bytes_mode))
        key_tp, value_tp = args
        if key_tp is Any or key_tp is object:
            key_shape: Visitor[Any] = _KeyShape(bytes_mode)
        else:
            key_shape = resolve_shape(key_tp, bytes_mode)
        return MappingShape(key_shape, resolve_shape(value_tp, bytes_mode))

    raise TypeError(f"Unsupported target type: {tp!r}")


_SHAPE_CACHE: dict[tuple[Any, str], Visitor[Any]] = {}


def resolve_shape(tp: Any, bytes_mode: BytesMode = "raw") -> Visitor[Any]:
    """把类型注解解析为访问者 (按注解缓存).

    Raises:
        TypeError: 不支持的目标类型.
    """
    key = (tp, bytes_mode)
    try:
        return _SHAPE_CACHE[key]
    except KeyError:
        pass
    except TypeError:
        # 不可哈希的注解 (如带不可哈希元数据的 Annotated)
        shape = _build_shape(tp, bytes_mode)
        if isinstance(shape, StructShape):
            shape.prepare()
        return shape

    shape = _build_shape(tp, bytes_mode)
    _SHAPE_CACHE[key] = shape
    if isinstance(shape, StructShape):
        # 先入缓存再解析字段, 递归引用会命中缓存
        try:
            shape.prepare()
        except BaseException:
            del _SHAPE_CACHE[key]
            raise
    return shape
