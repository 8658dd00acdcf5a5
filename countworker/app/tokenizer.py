from typing import BinaryIO, Iterator, Tuple

# Espacios en blanco ASCII, igual que bytes.split()
_WHITESPACE = frozenset(b" \t\n\r\x0b\x0c")


def _is_space(byte: bytes) -> bool:
    return bool(byte) and byte[0] in _WHITESPACE


def iter_tokens(fh: BinaryIO, budget: int, max_len: int = 99,
                block_size: int = 1 << 20, encoding: str = "utf-8") -> Iterator[str]:
    """
    Lee hasta `budget` bytes desde la posición actual de `fh` y produce las
    palabras separadas por espacios. Tokens de más de `max_len` bytes se truncan.
    Un token que cruza dos bloques se arrastra al siguiente bloque.
    Bytes que no decodifican se conservan como surrogates (surrogateescape):
    ningún byte del corpus se pierde.
    """
    remaining = budget
    carry = b""
    while remaining > 0:
        block = fh.read(min(block_size, remaining))
        if not block:
            break
        remaining -= len(block)
        buf = carry + block
        tokens = buf.split()
        if tokens and not _is_space(buf[-1:]):
            # basta con max_len bytes: lo demás se truncaría igual
            carry = tokens.pop()[:max_len]
        else:
            carry = b""
        for tok in tokens:
            yield tok[:max_len].decode(encoding, errors="surrogateescape")
    if carry:
        yield carry[:max_len].decode(encoding, errors="surrogateescape")


def _scan_to_space(fh: BinaryIO, pos: int, limit: int, block_size: int = 4096) -> int:
    """Primera posición >= pos con un espacio en blanco (o `limit`)."""
    fh.seek(pos)
    while pos < limit:
        block = fh.read(min(block_size, limit - pos))
        if not block:
            return limit
        for i, b in enumerate(block):
            if b in _WHITESPACE:
                return pos + i
        pos += len(block)
    return limit


def aligned_range(fh: BinaryIO, start: int, end: int, corpus_size: int) -> Tuple[int, int]:
    """
    Ajusta [start, end) a fronteras de token: cada token queda en el rango que
    contiene su primer byte. Se salta el token que empieza antes de `start` y se
    extiende `end` hasta terminar el token que lo cruza.
    """
    if start > 0:
        fh.seek(start - 1)
        if not _is_space(fh.read(1)):
            start = _scan_to_space(fh, start, corpus_size)
    if 0 < end < corpus_size:
        fh.seek(end - 1)
        if not _is_space(fh.read(1)):
            end = _scan_to_space(fh, end, corpus_size)
    if start > end:
        start = end
    fh.seek(start)
    return start, end

