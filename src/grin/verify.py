"""Verification helpers.

We implement:
  - file verify: validate a single Grin container file

Policy: light by default (magic + tree), --full also decodes the payload
strictly without writing anything.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from grin.core.bitstream import BitReader
from grin.core.huffman import decode_payload, deserialize_tree
from grin.engine.container import MAGIC_BITS, read_magic
from grin.errors import CorruptPayload


@dataclass(frozen=True)
class GrinInfo:
    file_size: int
    leaves: int
    tree_bits: int
    payload_bytes: int | None  # None in light mode


def verify_container_file(path: Path, *, full: bool = False) -> GrinInfo:
    p = Path(path)
    if not p.is_file():
        raise CorruptPayload(f"file non trovato: {p}")

    with BitReader.open(p) as r:
        read_magic(r)
        tree = deserialize_tree(r)
        tree_bits = r.bits_read - MAGIC_BITS

        payload_bytes = None
        if full:
            payload_bytes = decode_payload(tree, r, None, strict=True)

    return GrinInfo(
        file_size=p.stat().st_size,
        leaves=len(tree.leaf_symbols),
        tree_bits=tree_bits,
        payload_bytes=payload_bytes,
    )
