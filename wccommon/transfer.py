# wccommon/transfer.py
#
# Formato interno para mover una FrequencyTable a través de la frontera de
# aislamiento (proceso worker -> coordinator). Independiente del transporte:
#
#   [unique_count: int32]
#   unique_count x ( [word_len: int32][word utf-8 bytes][count: int32] )
#
# Todos los enteros son little-endian con signo. Las palabras viajan como
# utf-8 con surrogateescape: cualquier token de bytes vuelve intacto.
import os
import struct
from typing import Dict

from .errors import OutOfMemory, TransferError
from .types import FrequencyTable

_INT32 = struct.Struct("<i")
_INT32_MAX = 2**31 - 1


def _pack(value: int, what: str) -> bytes:
    if value < 0 or value > _INT32_MAX:
        raise TransferError(f"{what} out of int32 range: {value}")
    return _INT32.pack(value)


def encode_table(table: FrequencyTable) -> bytes:
    parts = [_pack(len(table), "unique count")]
    for word, count in table.items():
        try:
            raw = word.encode("utf-8", "surrogateescape")
        except UnicodeEncodeError as e:
            raise TransferError(f"word not encodable: {word!r}") from e
        parts.append(_pack(len(raw), "word length"))
        parts.append(raw)
        parts.append(_pack(count, f"count of {word!r}"))
    return b"".join(parts)


def decode_table(data: bytes) -> FrequencyTable:
    view = memoryview(data)
    pos = 0

    def read_int(what: str) -> int:
        nonlocal pos
        if pos + _INT32.size > len(view):
            raise TransferError(f"truncated stream reading {what} at offset {pos}")
        (value,) = _INT32.unpack_from(view, pos)
        pos += _INT32.size
        if value < 0:
            raise TransferError(f"negative {what} at offset {pos - _INT32.size}: {value}")
        return value

    try:
        unique = read_int("unique count")
        table: Dict[str, int] = {}
        for _ in range(unique):
            length = read_int("word length")
            if pos + length > len(view):
                raise TransferError(f"truncated word at offset {pos} (len={length})")
            word = bytes(view[pos:pos + length]).decode("utf-8", "surrogateescape")
            pos += length
            count = read_int("count")
            if word in table:
                raise TransferError(f"duplicate word in stream: {word!r}")
            table[word] = count
    except MemoryError as e:
        raise OutOfMemory("out of memory decoding transfer stream") from e

    if pos != len(view):
        raise TransferError(f"{len(view) - pos} trailing bytes after {unique} entries")
    return table


def write_table(path: str, table: FrequencyTable) -> str:
    # escribe a .tmp y renombra: el coordinator nunca ve un archivo a medias
    tmp_path = path + ".tmp"
    with open(tmp_path, "wb") as f:
        f.write(encode_table(table))
    os.replace(tmp_path, path)
    return path


def read_table(path: str) -> FrequencyTable:
    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as e:
        raise TransferError(f"cannot read transfer file {path}: {e}") from e
    return decode_table(data)
