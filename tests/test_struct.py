"""测试 BencodeStruct 与结构体模式解码."""

from typing import Any

import pytest
from pydantic import BaseModel, Field, ValidationError

from benstruct import (
    BencodeField,
    BencodeStruct,
    EndOfStreamError,
    InvalidValueError,
    loads,
)
from benstruct.struct import prepare_fields, wire_key

# --- 辅助结构体 ---


class Peer(BencodeStruct):
    ip: str
    port: int
    peer_id: bytes = BencodeField(key="peer id")


class FileEntry(BencodeStruct):
    length: int
    path: list[str]


class Info(BencodeStruct):
    """种子文件的 info 字典."""

    name: str
    piece_length: int = BencodeField(key="piece length")
    pieces: bytes
    files: list[FileEntry] = BencodeField(default_factory=list)
    private: bool = False


class Torrent(BencodeStruct):
    announce: str
    info: Info
    comment: str | None = None
    created_by: str | None = BencodeField(None, key="created by")


class Node(BencodeStruct):
    """递归结构."""

    value: int
    children: list["Node"] = BencodeField(default_factory=list)


TORRENT = (
    b"d8:announce23:http://tracker/announce"
    b"10:created by6:benstr"
    b"4:infod"
    b"5:filesld6:lengthi10e4:pathl1:a5:b.txteed6:lengthi0e4:pathl1:ceee"
    b"4:name4:demo"
    b"12:piece lengthi16384e"
    b"6:pieces20:" + b"\x00" * 20 + b"ee"
)


# --- 字段定义 ---


def test_wire_keys() -> None:
    """未指定 key 的字段使用字段名, 指定的使用给定的键."""
    assert Peer.__bencode_fields__ == {
        "ip": b"ip",
        "port": b"port",
        "peer_id": b"peer id",
    }
    assert Info.__bencode_fields__["piece_length"] == b"piece length"


def test_bencode_field_bytes_key() -> None:
    class Raw(BencodeStruct):
        value: int = BencodeField(key=b"\xffkey")

    assert wire_key("value", Raw.model_fields["value"]) == b"\xffkey"
    assert Raw.model_validate_bencode(b"d4:\xffkeyi1ee").value == 1


def test_bencode_field_invalid_key() -> None:
    with pytest.raises(TypeError):
        BencodeField(key=1)  # type: ignore[arg-type]


def test_duplicate_keys_rejected() -> None:
    """两个字段映射到同一个键时, 定义类就会失败."""
    with pytest.raises(ValueError, match="share the bencode key"):

        class Broken(BencodeStruct):
            a: int = BencodeField(key="x")
            b: int = BencodeField(key="x")


def test_prepare_fields_skips_excluded() -> None:
    class WithExcluded(BaseModel):
        a: int
        b: int = Field(0, exclude=True)

    assert prepare_fields(WithExcluded.model_fields) == {"a": b"a"}


# --- 解码 ---


def test_decode_peer() -> None:
    peer = Peer.model_validate_bencode(b"d2:ip9:127.0.0.17:peer id2:ab4:porti6881ee")

    assert peer.ip == "127.0.0.1"
    assert peer.port == 6881
    assert peer.peer_id == b"ab"


def test_decode_torrent() -> None:
    torrent = loads(TORRENT, Torrent)

    assert torrent.announce == "http://tracker/announce"
    assert torrent.created_by == "benstr"
    assert torrent.comment is None
    assert torrent.info.name == "demo"
    assert torrent.info.piece_length == 16384
    assert torrent.info.pieces == b"\x00" * 20
    assert [f.path for f in torrent.info.files] == [["a", "b.txt"], ["c"]]
    assert torrent.info.private is False


def test_unknown_keys_skipped() -> None:
    """未知键 (包括嵌套容器) 被跳过."""
    data = b"d5:extrad1:xli1ei2eee2:ip1:a4:porti1e7:peer id0:e"
    peer = Peer.model_validate_bencode(data)

    assert peer.port == 1
    assert peer.peer_id == b""


def test_missing_required_field() -> None:
    with pytest.raises(ValidationError):
        Peer.model_validate_bencode(b"d2:ip1:ae")


def test_field_type_mismatch() -> None:
    with pytest.raises(InvalidValueError) as exc_info:
        Peer.model_validate_bencode(b"d2:ip1:a4:port2:xxe")

    assert exc_info.value.loc == ["port"]
    assert "expected an integer" in str(exc_info.value)


def test_recursive_struct() -> None:
    node = loads(b"d8:childrenld5:valuei2eed5:valuei1ee", Node)

    assert node.value == 1
    assert node.children[0].value == 2
    assert node.children[0].children == []


def test_struct_from_non_dict() -> None:
    with pytest.raises(InvalidValueError, match="expected struct Peer"):
        loads(b"li1ee", Peer)


def test_struct_integer_key() -> None:
    """结构体的键必须是字节串."""
    with pytest.raises(InvalidValueError, match="must be a byte string"):
        loads(b"di1ei2ee", Peer)


def test_struct_unterminated() -> None:
    with pytest.raises(EndOfStreamError):
        loads(b"d2:ip1:a", Peer)


def test_struct_bool_field() -> None:
    info = loads(b"d4:name1:n12:piece lengthi1e6:pieces0:7:privatei1ee", Info)
    assert info.private is True

    with pytest.raises(InvalidValueError, match="Invalid boolean value"):
        loads(b"d4:name1:n12:piece lengthi1e6:pieces0:7:privatei2ee", Info)


def test_plain_pydantic_model() -> None:
    """普通 Pydantic 模型同样以结构体模式解码, 键为别名或字段名."""

    class Plain(BaseModel):
        name: str
        size: int = Field(alias="total size")
        tags: dict[str, Any] = Field(default_factory=dict)

    result = loads(b"d4:name1:x10:total sizei3e4:tagsd1:ki1eee", Plain)

    assert result.name == "x"
    assert result.size == 3
    assert result.tags == {"k": 1}


def test_pydantic_constraints_apply() -> None:
    class Limited(BencodeStruct):
        port: int = Field(gt=0, lt=65536)

    assert Limited.model_validate_bencode(b"d4:porti80ee").port == 80
    with pytest.raises(ValidationError):
        Limited.model_validate_bencode(b"d4:porti0ee")
