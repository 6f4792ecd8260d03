from __future__ import annotations

import io
import itertools

import pytest

from grin.core.bitstream import BitReader, BitWriter
from grin.core.huffman import (
    END_SYMBOL,
    build_code_table,
    build_freq_table,
    build_huffman_tree,
    decode_payload,
    deserialize_tree,
    encode_payload,
    serialize_tree,
)
from grin.errors import CorruptPayload, TruncatedPayload, TruncatedTree


def _serialize(tree) -> bytes:
    buf = io.BytesIO()
    with BitWriter(buf) as w:
        serialize_tree(tree, w)
    return buf.getvalue()


def _assert_prefix_free(codes: dict[int, tuple[int, ...]]) -> None:
    for (s1, c1), (s2, c2) in itertools.permutations(codes.items(), 2):
        assert c1[: len(c2)] != c2, f"{s2} e' prefisso di {s1}"


def test_freq_table_bytes_and_file_object() -> None:
    data = b"abc a"
    want = {ord("a"): 2, ord("b"): 1, ord("c"): 1, ord(" "): 1}
    assert build_freq_table(data) == want
    assert build_freq_table(io.BytesIO(data)) == want
    assert build_freq_table(b"") == {}
    assert END_SYMBOL not in build_freq_table(bytes(range(256)))


def test_build_does_not_mutate_callers_table() -> None:
    freq = {ord("x"): 3}
    build_huffman_tree(freq)
    assert freq == {ord("x"): 3}


def test_empty_table_gives_end_only_leaf_root() -> None:
    tree = build_huffman_tree({})
    assert len(tree) == 1
    assert tree.is_leaf(tree.root)
    assert tree.leaf_symbols == [END_SYMBOL]
    assert build_code_table(tree) == {END_SYMBOL: ()}


def test_tie_break_is_insertion_order() -> None:
    # "abc a": a=2, b=c=' '=END=1
    tree = build_huffman_tree(build_freq_table(b"abc a"))
    assert build_code_table(tree) == {
        ord("c"): (0, 0),
        END_SYMBOL: (0, 1),
        ord("a"): (1, 0),
        ord(" "): (1, 1, 0),
        ord("b"): (1, 1, 1),
    }


def test_single_repeated_byte_gives_two_leaves() -> None:
    tree = build_huffman_tree(build_freq_table(b"a" * 1000))
    assert tree.leaf_symbols == [ord("a"), END_SYMBOL]
    # END (peso 1) esce per primo: figlio sinistro
    assert build_code_table(tree) == {END_SYMBOL: (0,), ord("a"): (1,)}


def test_all_byte_values_give_257_leaves_prefix_free() -> None:
    tree = build_huffman_tree(build_freq_table(bytes(range(256))))
    assert tree.leaf_symbols == list(range(257))
    codes = build_code_table(tree)
    assert len(codes) == 257
    _assert_prefix_free(codes)


def test_prefix_free_on_skewed_frequencies() -> None:
    # pesi 2**i (+ END=1): albero completamente sbilanciato
    freq = {sym: 1 << sym for sym in range(30)}
    tree = build_huffman_tree(freq)
    codes = build_code_table(tree)
    _assert_prefix_free(codes)
    assert max(len(c) for c in codes.values()) == 30
    assert codes[29] == (0,)


def test_serialize_layout_for_two_leaf_tree() -> None:
    tree = build_huffman_tree({ord("a"): 5})
    # 1 | 0 100000000 | 0 001100001 -> 21 bit
    assert _serialize(tree).hex() == "a00308"


@pytest.mark.parametrize(
    "data",
    [b"", b"a", b"abc a", b"mississippi river", bytes(range(256)), bytes(range(256)) * 3 + b"zzzz"],
)
def test_serialize_deserialize_keeps_code_table(data: bytes) -> None:
    tree = build_huffman_tree(build_freq_table(data))
    back = deserialize_tree(BitReader(io.BytesIO(_serialize(tree))))
    assert build_code_table(back) == build_code_table(tree)
    assert back.leaf_symbols == tree.leaf_symbols


def test_deserialize_truncated_flag_bit() -> None:
    tree = build_huffman_tree(build_freq_table(b"abc a"))
    blob = _serialize(tree)
    with pytest.raises(TruncatedTree):
        deserialize_tree(BitReader(io.BytesIO(blob[:3])))


def test_deserialize_truncated_leaf_value() -> None:
    # flag 0 then only 7 bits of the 9-bit symbol
    with pytest.raises(TruncatedTree):
        deserialize_tree(BitReader(io.BytesIO(b"\x00")))


def test_deserialize_empty_source() -> None:
    with pytest.raises(TruncatedTree):
        deserialize_tree(BitReader(io.BytesIO(b"")))


def test_deserialize_rejects_symbol_above_end() -> None:
    buf = io.BytesIO()
    with BitWriter(buf) as w:
        w.write_bit(0)
        w.write_bits(300, 9)
    with pytest.raises(CorruptPayload):
        deserialize_tree(BitReader(io.BytesIO(buf.getvalue())))


def _encode(tree, data: bytes) -> bytes:
    buf = io.BytesIO()
    with BitWriter(buf) as w:
        encode_payload(data, build_code_table(tree), w)
    return buf.getvalue()


def test_encode_decode_payload() -> None:
    data = b"abc a"
    tree = build_huffman_tree(build_freq_table(data))
    payload = _encode(tree, data)
    # 10 111 00 110 10 01 + pad
    assert payload.hex() == "b9a4"

    out = io.BytesIO()
    n = decode_payload(tree, BitReader(io.BytesIO(payload)), out)
    assert n == 5
    assert out.getvalue() == data


def test_encode_payload_from_file_object() -> None:
    data = b"hello hello"
    tree = build_huffman_tree(build_freq_table(data))
    assert _encode(tree, io.BytesIO(data)) == _encode(tree, data)


def test_end_only_tree_encodes_zero_bits_and_decodes_nothing() -> None:
    tree = build_huffman_tree({})
    assert _encode(tree, b"") == b""
    out = io.BytesIO()
    assert decode_payload(tree, BitReader(io.BytesIO(b"\xff")), out, strict=True) == 0
    assert out.getvalue() == b""


def test_single_leaf_root_other_than_end_is_corrupt() -> None:
    buf = io.BytesIO()
    with BitWriter(buf) as w:
        w.write_bit(0)
        w.write_bits(ord("a"), 9)
    tree = deserialize_tree(BitReader(io.BytesIO(buf.getvalue())))
    with pytest.raises(CorruptPayload):
        decode_payload(tree, BitReader(io.BytesIO(b"")), io.BytesIO())


def test_decode_stops_at_end_and_ignores_padding() -> None:
    tree = build_huffman_tree({ord("a"): 1})
    # a=0, END=1, then garbage bits that would decode as more 'a'
    out = io.BytesIO()
    n = decode_payload(tree, BitReader(io.BytesIO(bytes([0b01000000]))), out)
    assert n == 1
    assert out.getvalue() == b"a"


def test_decode_exhausted_without_end_lenient_vs_strict() -> None:
    tree = build_huffman_tree({ord("a"): 1})
    # solo 'a' (bit 0), niente END
    out = io.BytesIO()
    assert decode_payload(tree, BitReader(io.BytesIO(b"\x00")), out) == 8
    assert out.getvalue() == b"a" * 8

    with pytest.raises(TruncatedPayload):
        decode_payload(tree, BitReader(io.BytesIO(b"\x00")), io.BytesIO(), strict=True)


def test_decode_without_sink_only_counts() -> None:
    data = bytes(range(256)) * 300
    tree = build_huffman_tree(build_freq_table(data))
    payload = _encode(tree, data)
    assert decode_payload(tree, BitReader(io.BytesIO(payload)), None, strict=True) == len(data)
