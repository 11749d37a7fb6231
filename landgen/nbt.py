"""Lossless NBT codec plus copy-on-write editing of compound paths.

Whole files are decoded, edited along one key path and encoded back.
Untouched subtrees are shared by reference between the input and the
edited tree.
"""

from __future__ import annotations

import gzip
import struct
from dataclasses import dataclass
from typing import Any, BinaryIO, Dict, Iterable, List, Mapping, Sequence


TAG_END = 0
TAG_BYTE = 1
TAG_SHORT = 2
TAG_INT = 3
TAG_LONG = 4
TAG_FLOAT = 5
TAG_DOUBLE = 6
TAG_BYTE_ARRAY = 7
TAG_STRING = 8
TAG_LIST = 9
TAG_COMPOUND = 10
TAG_INT_ARRAY = 11
TAG_LONG_ARRAY = 12

_SCALARS = {
    TAG_BYTE: ">b",
    TAG_SHORT: ">h",
    TAG_INT: ">i",
    TAG_LONG: ">q",
    TAG_FLOAT: ">f",
    TAG_DOUBLE: ">d",
}
_ARRAYS = {
    TAG_INT_ARRAY: ">i",
    TAG_LONG_ARRAY: ">q",
}


class NBTError(Exception):
    pass


class MalformedTreeError(NBTError):
    """A compound was expected on an edit path but is missing or of another type."""


@dataclass(frozen=True)
class Tag:
    type: int
    value: Any
    elem_type: int = TAG_END

    # Compound values are dicts, so tags compare by value but are not hashable.
    __hash__ = None  # type: ignore[assignment]

    @property
    def is_compound(self) -> bool:
        return self.type == TAG_COMPOUND


@dataclass(frozen=True)
class NBTRoot:
    name: str
    tag: Tag
    gzipped: bool = True


def byte_tag(v: int) -> Tag:
    return Tag(TAG_BYTE, int(v))


def int_tag(v: int) -> Tag:
    return Tag(TAG_INT, int(v))


def long_tag(v: int) -> Tag:
    return Tag(TAG_LONG, int(v))


def string_tag(s: str) -> Tag:
    return Tag(TAG_STRING, s)


def long_array_tag(vals: Iterable[int]) -> Tag:
    return Tag(TAG_LONG_ARRAY, tuple(int(v) for v in vals))


def compound_tag(items: Mapping[str, Tag]) -> Tag:
    return Tag(TAG_COMPOUND, dict(items))


class _Buf:
    __slots__ = ("b", "o")

    def __init__(self, b: bytes):
        self.b = b
        self.o = 0

    def read_bytes(self, n: int) -> bytes:
        if self.o + n > len(self.b):
            raise NBTError("unexpected EOF")
        v = self.b[self.o : self.o + n]
        self.o += n
        return v

    def read_u8(self) -> int:
        return self.read_bytes(1)[0]

    def read(self, fmt: str) -> Any:
        return struct.unpack(fmt, self.read_bytes(struct.calcsize(fmt)))[0]

    def read_length(self, what: str) -> int:
        ln = self.read(">i")
        if ln < 0:
            raise NBTError(f"negative {what} length")
        return ln

    def read_string(self) -> str:
        ln = self.read(">H")
        try:
            return self.read_bytes(ln).decode("utf-8", errors="strict")
        except UnicodeDecodeError as exc:
            raise NBTError(f"invalid string: {exc}") from exc


def _read_payload(tag: int, buf: _Buf) -> Tag:
    fmt = _SCALARS.get(tag)
    if fmt is not None:
        return Tag(tag, buf.read(fmt))
    if tag == TAG_BYTE_ARRAY:
        return Tag(tag, buf.read_bytes(buf.read_length("byte array")))
    if tag == TAG_STRING:
        return Tag(tag, buf.read_string())
    if tag == TAG_LIST:
        inner = buf.read_u8()
        ln = buf.read_length("list")
        if inner == TAG_END and ln:
            raise NBTError("non-empty list of TAG_End")
        return Tag(tag, tuple(_read_payload(inner, buf) for _ in range(ln)), inner)
    if tag == TAG_COMPOUND:
        out: Dict[str, Tag] = {}
        while True:
            t = buf.read_u8()
            if t == TAG_END:
                return Tag(tag, out)
            name = buf.read_string()
            out[name] = _read_payload(t, buf)
    afmt = _ARRAYS.get(tag)
    if afmt is not None:
        ln = buf.read_length("array")
        raw = buf.read_bytes(struct.calcsize(afmt) * ln)
        return Tag(tag, struct.unpack(f">{ln}{afmt[1]}", raw))
    raise NBTError(f"unknown tag {tag}")


def _enc_string(s: str) -> bytes:
    b = s.encode("utf-8", errors="strict")
    if len(b) > 65535:
        raise NBTError("string too long for NBT")
    return struct.pack(">H", len(b)) + b


def _write_payload(t: Tag, out: List[bytes]) -> None:
    fmt = _SCALARS.get(t.type)
    if fmt is not None:
        out.append(struct.pack(fmt, t.value))
        return
    if t.type == TAG_BYTE_ARRAY:
        out.append(struct.pack(">i", len(t.value)))
        out.append(bytes(t.value))
        return
    if t.type == TAG_STRING:
        out.append(_enc_string(t.value))
        return
    if t.type == TAG_LIST:
        out.append(struct.pack(">Bi", t.elem_type, len(t.value)))
        for item in t.value:
            if item.type != t.elem_type:
                raise NBTError(f"list of tag {t.elem_type} holds tag {item.type}")
            _write_payload(item, out)
        return
    if t.type == TAG_COMPOUND:
        for name, child in t.value.items():
            out.append(struct.pack(">B", child.type))
            out.append(_enc_string(name))
            _write_payload(child, out)
        out.append(b"\x00")
        return
    afmt = _ARRAYS.get(t.type)
    if afmt is not None:
        vals = tuple(t.value)
        out.append(struct.pack(">i", len(vals)))
        out.append(struct.pack(f">{len(vals)}{afmt[1]}", *vals))
        return
    raise NBTError(f"unknown tag {t.type}")


def loads(raw: bytes) -> NBTRoot:
    gzipped = raw[:2] == b"\x1f\x8b"
    if gzipped:
        try:
            raw = gzip.decompress(raw)
        except (OSError, EOFError) as exc:
            raise NBTError(f"corrupt gzip container: {exc}") from exc
    buf = _Buf(raw)
    root_t = buf.read_u8()
    if root_t != TAG_COMPOUND:
        raise MalformedTreeError(f"unexpected root tag: {root_t} (expected compound)")
    name = buf.read_string()
    return NBTRoot(name=name, tag=_read_payload(TAG_COMPOUND, buf), gzipped=gzipped)


def dumps(root: NBTRoot) -> bytes:
    if not root.tag.is_compound:
        raise MalformedTreeError("root tag is not a compound")
    out = [struct.pack(">B", TAG_COMPOUND), _enc_string(root.name)]
    _write_payload(root.tag, out)
    raw = b"".join(out)
    # mtime=0 keeps identical trees byte-identical on disk.
    return gzip.compress(raw, mtime=0) if root.gzipped else raw


def read_root(stream: BinaryIO) -> NBTRoot:
    return loads(stream.read())


def write_root(root: NBTRoot, stream: BinaryIO) -> None:
    stream.write(dumps(root))


def get_path(tree: Tag, path: Sequence[str]) -> Tag:
    """Return the compound reached by following ``path`` from ``tree``."""
    node = tree
    if not node.is_compound:
        raise MalformedTreeError("root tag is not a compound")
    for i, key in enumerate(path):
        child = node.value.get(key)
        if child is None:
            raise MalformedTreeError(f"missing compound {'.'.join(path[: i + 1])!r}")
        if not child.is_compound:
            raise MalformedTreeError(f"{'.'.join(path[: i + 1])!r} is not a compound")
        node = child
    return node


def with_updated_leaves(tree: Tag, path: Sequence[str], updates: Mapping[str, Tag]) -> Tag:
    """Return a copy of ``tree`` where the compound at ``path`` carries ``updates``.

    Existing keys keep their position and new keys are appended. Compounds
    off the path are the same objects as in ``tree``.
    """
    if not tree.is_compound:
        raise MalformedTreeError("root tag is not a compound")
    if not path:
        merged = dict(tree.value)
        merged.update(updates)
        return Tag(TAG_COMPOUND, merged)

    key = path[0]
    child = tree.value.get(key)
    if child is None or not child.is_compound:
        raise MalformedTreeError(f"path segment {key!r} is missing or not a compound")
    rebuilt = dict(tree.value)
    rebuilt[key] = with_updated_leaves(child, path[1:], updates)
    return Tag(TAG_COMPOUND, rebuilt)


def to_python(t: Tag) -> Any:
    """Plain Python view of a tag: dicts, lists and scalars."""
    if t.type == TAG_COMPOUND:
        return {k: to_python(v) for k, v in t.value.items()}
    if t.type == TAG_LIST:
        return [to_python(v) for v in t.value]
    if t.type in _ARRAYS:
        return list(t.value)
    return t.value
