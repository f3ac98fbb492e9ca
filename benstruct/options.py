"""Bencode 反序列化的配置选项.

该模块定义了用于控制 `loads` 和 `load` 函数行为的选项标志.
"""

from enum import IntFlag


class BencodeOption(IntFlag):
    """Bencode 配置选项标志.

    可以使用位运算组合多个选项:
        option = BencodeOption.STRICT_INTEGERS | BencodeOption.REJECT_TRAILING_DATA
    """

    # 默认行为: 接受前导零和 -0, 忽略尾随数据
    NONE = 0x0000

    # 拒绝非规范整数 (如 i03e, i-0e)
    STRICT_INTEGERS = 0x0001

    # 顶层值之后还有剩余字节时报错
    REJECT_TRAILING_DATA = 0x0002
