"""Bencode 特定的异常类.

该模块为 benstruct 库定义了异常层次结构.
"""


class BencodeError(Exception):
    """所有 benstruct 异常的基类."""

    pass


class BencodeDecodeError(BencodeError):
    """反序列化失败时抛出.

    Case:
        - 输入数据被截断.
        - 格式错误 (如整数文本非法).
        - 目标类型与数据形状不匹配.
    """

    def __init__(
        self,
        msg: str,
        loc: list[str | int] | None = None,
        pos: int | None = None,
    ) -> None:
        """初始化解码错误.

        Args:
            msg: 错误描述信息.
            loc: 错误发生的位置路径 (字典键或列表索引).
            pos: 错误发生时输入流的字节偏移.
        """
        super().__init__(msg)
        self.loc = loc or []
        self.pos = pos

    def __str__(self) -> str:
        base_msg = super().__str__()
        if self.loc:
            # 格式化为 dotted path
            loc_str = ".".join(str(x) for x in self.loc)
            return f"{base_msg} (at {loc_str})"
        return base_msg


class EndOfStreamError(BencodeDecodeError):
    """输入在仍需要值, 长度或终止符时耗尽."""

    pass


class InvalidValueError(BencodeDecodeError, ValueError):
    """值无效时抛出.

    Case:
        - 整数文本非法 (如 `i3.0e`).
        - 字节串长度不是十进制数字.
        - 需要文本的位置出现非 UTF-8 字节.
    """

    pass


class UnknownVariantError(BencodeDecodeError):
    """请求了该格式无法表达的标签联合形状时抛出.

    只支持单负载变体 (一个条目的字典), 无负载, 多字段和位置元组变体均被拒绝.
    """

    pass


class BencodeRecursionError(BencodeDecodeError):
    """嵌套深度超过限制时抛出."""

    pass
