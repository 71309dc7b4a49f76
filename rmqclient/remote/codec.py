"""Remoting command model and its wire codecs (JSON and compact binary headers)."""

from __future__ import annotations

import abc
import itertools
import json
import struct
import threading
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, BinaryIO, Mapping, Optional, Protocol

RPC_TYPE = 0
RPC_ONEWAY = 1
RESPONSE_TYPE = 1
DEFAULT_FLAG = 0
DEFAULT_VERSION = 317

# code(2) + language(1) + version(2) + opaque(4) + flag(4) + remark len(4) + ext len(4)
HEADER_FIXED_LENGTH = 21

_INT32_RANGE = 1 << 32
_INT32_HALF = 1 << 31


class LanguageCode(IntEnum):
    """Language identifier carried in every command header."""

    JAVA = 0
    GO = 9
    UNKNOWN = 127

    def __str__(self) -> str:
        if self is LanguageCode.JAVA:
            return "JAVA"
        if self is LanguageCode.GO:
            return "GO"
        return "unknown"

    @classmethod
    def from_byte(cls, value: int) -> "LanguageCode":
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN

    @classmethod
    def from_json(cls, value: Any) -> "LanguageCode":
        if value == "GO":
            return cls.GO
        if value == "JAVA":
            return cls.JAVA
        return cls.UNKNOWN


class CodecType(IntEnum):
    """Header serialisation format, stored in the top byte of the header length."""

    JSON = 0
    ROCKETMQ = 1


class _CustomHeader(Protocol):
    def encode(self) -> Mapping[str, str]: ...


_opaque_lock = threading.Lock()
_opaque_counter = itertools.count(1)


def _next_opaque() -> int:
    with _opaque_lock:
        value = next(_opaque_counter)
    return ((value + _INT32_HALF) % _INT32_RANGE) - _INT32_HALF


@dataclass
class RemotingCommand:
    """A request or response exchanged with a broker or name server."""

    code: int = 0
    language: LanguageCode = LanguageCode.GO
    version: int = 0
    opaque: int = 0
    flag: int = 0
    remark: str = ""
    ext_fields: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    def __str__(self) -> str:
        return (
            f"Code: {self.code}, opaque: {self.opaque}, "
            f"Remark: {self.remark}, ExtFields: {self.ext_fields}"
        )

    def is_response_type(self) -> bool:
        return (self.flag & RESPONSE_TYPE) == RESPONSE_TYPE

    def mark_response_type(self) -> None:
        self.flag |= RESPONSE_TYPE

    def write_to(self, stream: BinaryIO, codec: CodecType = CodecType.JSON) -> None:
        """Write this command as one complete frame to a binary stream."""
        stream.write(encode(self, codec))


def new_remoting_command(
    code: int, header: Optional[_CustomHeader] = None, body: Optional[bytes] = None
) -> RemotingCommand:
    """Create a command with a fresh opaque id and the header's encoded fields."""
    ext_fields = dict(header.encode()) if header is not None else {}
    return RemotingCommand(
        code=code,
        language=LanguageCode.GO,
        version=DEFAULT_VERSION,
        opaque=_next_opaque(),
        flag=DEFAULT_FLAG,
        ext_fields=ext_fields,
        body=bytes(body) if body is not None else b"",
    )


class RPCHook(abc.ABC):
    """Hook invoked around each remote call."""

    @abc.abstractmethod
    def do_before_request(self, addr: str, command: RemotingCommand) -> None: ...

    @abc.abstractmethod
    def do_after_response(self, addr: str, command: RemotingCommand) -> None: ...


def _mark_protocol_type(length: int, codec: CodecType) -> bytes:
    return bytes(
        (int(codec), (length >> 16) & 0xFF, (length >> 8) & 0xFF, length & 0xFF)
    )


def _encode_header(command: RemotingCommand, codec: CodecType) -> bytes:
    if codec == CodecType.JSON:
        return encode_json_header(command)
    if codec == CodecType.ROCKETMQ:
        return encode_rmq_header(command)
    raise ValueError(f"unknown codec type: {int(codec)}")


def encode(command: RemotingCommand, codec: CodecType = CodecType.JSON) -> bytes:
    """Encode a command into a frame: size, marked header length, header, body.

    The leading 4-byte size counts everything after itself.
    """
    header = _encode_header(command, codec)
    body = command.body or b""
    frame_size = 4 + len(header) + len(body)
    return (
        struct.pack(">i", frame_size)
        + _mark_protocol_type(len(header), codec)
        + header
        + body
    )


def decode(data: bytes) -> RemotingCommand:
    """Decode a frame whose leading size field has already been stripped."""
    if len(data) < 4:
        raise ValueError("frame too short: missing header length")
    (marked,) = struct.unpack_from(">i", data, 0)
    header_length = marked & 0xFFFFFF
    codec_value = (marked >> 24) & 0xFF
    header_data = data[4 : 4 + header_length]
    if len(header_data) < header_length:
        raise ValueError("frame too short: truncated header")

    if codec_value == CodecType.JSON:
        command = decode_json_header(header_data)
    elif codec_value == CodecType.ROCKETMQ:
        command = decode_rmq_header(header_data)
    else:
        raise ValueError(f"unknown codec type: {codec_value}")

    body = data[4 + header_length :]
    command.body = bytes(body) if body else b""
    return command


def encode_json_header(command: RemotingCommand) -> bytes:
    """Serialise the header fields as JSON; the body is never included."""
    payload = {
        "code": command.code,
        "language": "GO",
        "version": command.version,
        "opaque": command.opaque,
        "flag": command.flag,
        "remark": command.remark,
        "extFields": dict(command.ext_fields),
    }
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def decode_json_header(data: bytes) -> RemotingCommand:
    """Parse a JSON header into a command with an empty body."""
    payload = json.loads(data)
    if not isinstance(payload, dict):
        raise ValueError("JSON header must be an object")
    ext_fields = payload.get("extFields") or {}
    return RemotingCommand(
        code=int(payload.get("code", 0)),
        language=LanguageCode.from_json(payload.get("language")),
        version=int(payload.get("version", 0)),
        opaque=int(payload.get("opaque", 0)),
        flag=int(payload.get("flag", 0)),
        remark=payload.get("remark") or "",
        ext_fields={str(k): str(v) for k, v in ext_fields.items()},
        body=b"",
    )


def _encode_maps(maps: Mapping[str, str]) -> bytes:
    parts = []
    for key, value in maps.items():
        key_bytes = key.encode("utf-8")
        value_bytes = value.encode("utf-8")
        parts.append(struct.pack(">h", len(key_bytes)))
        parts.append(key_bytes)
        parts.append(struct.pack(">i", len(value_bytes)))
        parts.append(value_bytes)
    return b"".join(parts)


def encode_rmq_header(command: RemotingCommand) -> bytes:
    """Serialise the header in the compact binary layout."""
    ext_bytes = _encode_maps(command.ext_fields) if command.ext_fields else b""
    remark = command.remark.encode("utf-8")
    return b"".join(
        (
            struct.pack(
                ">hBhiii",
                command.code,
                int(LanguageCode.GO),
                command.version,
                command.opaque,
                command.flag,
                len(remark),
            ),
            remark,
            struct.pack(">i", len(ext_bytes)),
            ext_bytes,
        )
    )


class _Reader:
    def __init__(self, data: bytes) -> None:
        self._data = data
        self._pos = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def take(self, size: int) -> bytes:
        if size < 0 or self.remaining < size:
            raise ValueError("unexpected end of header data")
        chunk = self._data[self._pos : self._pos + size]
        self._pos += size
        return chunk

    def unpack(self, fmt: str) -> tuple:
        return struct.unpack(fmt, self.take(struct.calcsize(fmt)))


def decode_rmq_header(data: bytes) -> RemotingCommand:
    """Parse a compact binary header into a command with an empty body."""
    reader = _Reader(data)
    (code,) = reader.unpack(">h")
    (language,) = reader.unpack(">B")
    (version,) = reader.unpack(">h")
    (opaque,) = reader.unpack(">i")
    (flag,) = reader.unpack(">i")
    (remark_len,) = reader.unpack(">i")
    remark = reader.take(remark_len).decode("utf-8") if remark_len > 0 else ""
    (ext_len,) = reader.unpack(">i")

    ext_fields: dict[str, str] = {}
    if ext_len > 0:
        ext_reader = _Reader(reader.take(ext_len))
        while ext_reader.remaining > 0:
            (key_len,) = ext_reader.unpack(">h")
            key = ext_reader.take(key_len).decode("utf-8")
            (value_len,) = ext_reader.unpack(">i")
            value = ext_reader.take(value_len).decode("utf-8")
            ext_fields[key] = value

    return RemotingCommand(
        code=code,
        language=LanguageCode.from_byte(language),
        version=version,
        opaque=opaque,
        flag=flag,
        remark=remark,
        ext_fields=ext_fields,
        body=b"",
    )