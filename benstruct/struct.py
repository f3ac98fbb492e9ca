"""Bencode 结构体定义模块."""

from typing import Any, ClassVar, TypeVar, cast

from pydantic import BaseModel, Field
from pydantic.fields import FieldInfo
from pydantic_core import PydanticUndefined
from typing_extensions import dataclass_transform

from .config import DEFAULT_MAX_DEPTH
from .options import BencodeOption

S = TypeVar("S", bound="BencodeStruct")


def BencodeField(
    default: Any = PydanticUndefined,
    *,
    key: str | bytes | None = None,
    alias: str | None = None,
    default_factory: Any | None = None,
) -> Any:
    """创建 Bencode 结构体字段配置.

    这是 Pydantic `Field` 的包装函数, 用于注入字典键等元数据.

    Args:
        default: 字段的静态默认值.
            如果未提供此参数且未提供 `default_factory`, 则该字段为**必填**.
        key: 线上字典键. 默认为字段别名或字段名.
            键不是合法标识符时使用 (如 `"piece length"`, `"created by"`).
        alias: Pydantic 别名.
        default_factory: 用于生成默认值的无参可调用对象.
            对于可变类型 (如 `list`, `dict`), **必须**使用此参数而不是 `default`.

    Returns:
        Any: 包含 Bencode 元数据的 Pydantic FieldInfo 对象.

    Examples:
        >>> from benstruct import BencodeStruct, BencodeField
        >>> class Info(BencodeStruct):
        ...     name: str = BencodeField()
        ...     piece_length: int = BencodeField(key="piece length")
        ...     files: list[bytes] = BencodeField(default_factory=list)
    """
    if isinstance(key, str):
        key = key.encode("utf-8")
    if key is not None and not isinstance(key, bytes):
        raise TypeError(f"Invalid bencode key: {key!r}")

    kwargs: dict[str, Any] = {}
    if key is not None:
        kwargs["json_schema_extra"] = {"bencode_key": key.decode("latin-1")}
    if alias is not None:
        kwargs["alias"] = alias
    if default is not PydanticUndefined:
        kwargs["default"] = default
    if default_factory is not None:
        kwargs["default_factory"] = default_factory

    return cast(Any, Field)(**kwargs)


def wire_key(name: str, field_info: FieldInfo) -> bytes:
    """字段在线上使用的字典键."""
    extra = field_info.json_schema_extra
    if isinstance(extra, dict) and "bencode_key" in extra:
        return cast(str, extra["bencode_key"]).encode("latin-1")
    return (field_info.alias or name).encode("utf-8")


def prepare_fields(fields: dict[str, FieldInfo]) -> dict[str, bytes]:
    """准备字段名到线上键的映射, 并检查键不重复."""
    keys: dict[str, bytes] = {}
    seen: dict[bytes, str] = {}
    for name, field in fields.items():
        if field.exclude is True:
            continue
        key = wire_key(name, field)
        if key in seen:
            raise ValueError(
                f"Fields '{seen[key]}' and '{name}' share the bencode key {key!r}"
            )
        seen[key] = name
        keys[name] = key
    return keys


@dataclass_transform(kw_only_default=True, field_specifiers=(BencodeField,))
class BencodeStructMeta(type(BaseModel)):
    """BencodeStruct 的元类, 用于收集字段的线上键."""

    def __new__(  # noqa: D102
        mcs,
        name: str,
        bases: tuple[type, ...],
        namespace: dict[str, Any],
        **kwargs: Any,
    ):
        cls = super().__new__(mcs, name, bases, namespace, **kwargs)
        if name != "BencodeStruct":
            cls.__bencode_fields__ = prepare_fields(cls.model_fields)
        return cls


class BencodeStruct(BaseModel, metaclass=BencodeStructMeta):
    """Bencode 结构体基类.

    继承自 `pydantic.BaseModel`, 提供声明式的结构体定义方式.
    解码时字典键作为字段标识符匹配字段, 未知键被跳过,
    缺失的必填字段由 Pydantic 报告 `ValidationError`.

    Examples:
        >>> from benstruct import BencodeStruct, BencodeField
        >>> class Peer(BencodeStruct):
        ...     ip: str
        ...     port: int
        ...     peer_id: bytes = BencodeField(key="peer id")
        >>> peer = Peer.model_validate_bencode(
        ...     b"d2:ip9:127.0.0.17:peer id2:ab4:porti6881ee"
        ... )
        >>> peer.port
        6881
    """

    __bencode_fields__: ClassVar[dict[str, bytes]] = {}

    @classmethod
    def model_validate_bencode(
        cls: type[S],
        data: bytes | bytearray | memoryview | str,
        option: BencodeOption = BencodeOption.NONE,
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> S:
        """解码 Bencode 数据并创建实例.

        Args:
            data: 输入数据 (bytes 或文本).
            option: 解码选项.
            max_depth: 最大嵌套深度.

        Returns:
            S: 结构体实例.

        Raises:
            BencodeDecodeError: 数据解析失败.
            ValidationError: 数据结构不符合模型定义.
        """
        from .api import loads

        return loads(data, target=cls, option=option, max_depth=max_depth)
