from __future__ import annotations

import io
import os
import stat
import tempfile
from pathlib import Path
from typing import BinaryIO

from grin.core.bitstream import BitReader, BitWriter
from grin.core.huffman import (
    HuffmanTree,
    build_code_table,
    build_freq_table,
    build_huffman_tree,
    decode_payload,
    deserialize_tree,
    encode_payload,
    serialize_tree,
)
from grin.errors import BadMagic

GRIN_MAGIC = 0x736
MAGIC_BITS = 32


# -------------------
# Container Grin
# [MAGIC(u32 big endian)|TREE(preorder, bit)|PAYLOAD(codici + END, bit)|PAD(0..7 bit a zero)]
# -------------------
def write_magic(writer: BitWriter) -> None:
    writer.write_bits(GRIN_MAGIC, MAGIC_BITS)


def read_magic(reader: BitReader) -> None:
    magic = reader.read_bits(MAGIC_BITS)
    if magic is None:
        raise BadMagic("file troppo corto per un container Grin")
    if magic != GRIN_MAGIC:
        raise BadMagic(f"Magic number non valido: 0x{magic:08x} (atteso 0x{GRIN_MAGIC:08x})")


def encode_stream(src: BinaryIO, dst: BinaryIO) -> HuffmanTree:
    """
    Encode ``src`` into ``dst``.

    ``src`` is read twice (frequencies, then payload) so it must be seekable.
    """
    start = src.tell()
    freq = build_freq_table(src)
    src.seek(start)

    tree = build_huffman_tree(freq)
    codes = build_code_table(tree)

    with BitWriter(dst) as w:
        write_magic(w)
        serialize_tree(tree, w)
        encode_payload(src, codes, w)
    return tree


def decode_stream(src: BinaryIO, dst: BinaryIO, *, strict: bool = False) -> int:
    with BitReader(src) as r:
        read_magic(r)
        tree = deserialize_tree(r)
        return decode_payload(tree, r, dst, strict=strict)


def compress_bytes(data: bytes) -> bytes:
    out = io.BytesIO()
    encode_stream(io.BytesIO(bytes(data)), out)
    return out.getvalue()


def decompress_bytes(blob: bytes, *, strict: bool = False) -> bytes:
    out = io.BytesIO()
    decode_stream(io.BytesIO(bytes(blob)), out, strict=strict)
    return out.getvalue()


# -------------------
# File
# -------------------
def encode_file(input_path: str | Path, output_path: str | Path) -> HuffmanTree:
    inp = Path(input_path)
    with inp.open("rb") as fp:
        freq = build_freq_table(fp)

    tree = build_huffman_tree(freq)
    codes = build_code_table(tree)

    # seconda lettura: l'input viene riaperto
    with inp.open("rb") as fp, BitWriter.open(Path(output_path)) as w:
        write_magic(w)
        serialize_tree(tree, w)
        encode_payload(fp, codes, w)
    return tree


def _output_mode(out: Path) -> int:
    # stesso modo di un open("wb"): quello del file esistente, altrimenti 0o666 & ~umask
    try:
        return stat.S_IMODE(out.stat().st_mode)
    except FileNotFoundError:
        pass
    mask = os.umask(0)
    os.umask(mask)
    return 0o666 & ~mask


def decode_file(input_path: str | Path, output_path: str | Path, *, strict: bool = False) -> int:
    """
    Decode a Grin file.

    The magic is checked before the output is created. The output is written
    to a temporary file next to ``output_path`` and renamed only on success,
    with the permissions a plain ``open(output_path, "wb")`` would give it.
    """
    out = Path(output_path)
    with BitReader.open(Path(input_path)) as r:
        read_magic(r)

        fd, tmp_name = tempfile.mkstemp(prefix=f".{out.name}.", suffix=".tmp", dir=str(out.parent))
        tmp = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as fp:
                tree = deserialize_tree(r)
                n = decode_payload(tree, r, fp, strict=strict)
            os.chmod(tmp, _output_mode(out))
            os.replace(tmp, out)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise
    return n
