from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import BinaryIO, Dict, List, Optional, Tuple, Union

import heapq
import itertools

from grin.core.bitstream import CHUNK_SIZE_DEFAULT, BitReader, BitWriter
from grin.errors import CorruptPayload, TruncatedPayload, TruncatedTree

# 0..255 sono byte letterali, 256 e' il marcatore di fine payload
END_SYMBOL = 256
SYMBOL_BITS = 9

NO_NODE = -1

ByteSource = Union[bytes, bytearray, memoryview, BinaryIO]


# -------------------
# Albero Huffman (arena)
# -------------------
@dataclass(frozen=True)
class HuffmanTree:
    """
    Arena di nodi indicizzati: il nodo i e' una foglia se symbols[i] >= 0,
    altrimenti e' interno con figli lefts[i] / rights[i].
    """

    symbols: Tuple[int, ...]
    lefts: Tuple[int, ...]
    rights: Tuple[int, ...]
    root: int

    def is_leaf(self, node: int) -> bool:
        return self.symbols[node] != NO_NODE

    @property
    def leaf_symbols(self) -> List[int]:
        return sorted(s for s in self.symbols if s != NO_NODE)

    def __len__(self) -> int:
        return len(self.symbols)


class _ArenaBuilder:
    def __init__(self) -> None:
        self.symbols: List[int] = []
        self.lefts: List[int] = []
        self.rights: List[int] = []

    def leaf(self, symbol: int) -> int:
        self.symbols.append(symbol)
        self.lefts.append(NO_NODE)
        self.rights.append(NO_NODE)
        return len(self.symbols) - 1

    def internal(self, left: int = NO_NODE, right: int = NO_NODE) -> int:
        self.symbols.append(NO_NODE)
        self.lefts.append(left)
        self.rights.append(right)
        return len(self.symbols) - 1

    def freeze(self, root: int) -> HuffmanTree:
        return HuffmanTree(
            symbols=tuple(self.symbols),
            lefts=tuple(self.lefts),
            rights=tuple(self.rights),
            root=root,
        )


def _iter_chunks(source: ByteSource, chunk_size: int = CHUNK_SIZE_DEFAULT):
    if isinstance(source, (bytes, bytearray, memoryview)):
        if len(source):
            yield bytes(source)
        return
    while True:
        chunk = source.read(chunk_size)
        if not chunk:
            break
        yield chunk


# -------------------
# Frequenze
# -------------------
def build_freq_table(source: ByteSource) -> Dict[int, int]:
    """Count byte values 0..255 in ``source`` (bytes or a binary file object, read to EOF)."""
    freq = [0] * 256
    for chunk in _iter_chunks(source):
        for b in chunk:
            freq[b] += 1
    return {sym: f for sym, f in enumerate(freq) if f > 0}


def build_huffman_tree(freq: Mapping[int, int]) -> HuffmanTree:
    """
    Costruzione greedy: heap di (peso, sequenza, nodo).

    Tie-break: a parita' di peso esce prima chi e' stato inserito prima.
    Le foglie entrano in ordine crescente di simbolo (END per ultimo),
    i nodi interni ricevono la sequenza successiva quando vengono creati.
    Il primo estratto diventa il figlio sinistro.
    """
    table = dict(freq)
    table[END_SYMBOL] = 1

    arena = _ArenaBuilder()
    heap: List[Tuple[int, int, int]] = []
    counter = itertools.count()

    for sym in sorted(table):
        if not (0 <= sym <= END_SYMBOL):
            raise ValueError(f"simbolo fuori range: {sym}")
        f = int(table[sym])
        if f < 0:
            raise ValueError(f"frequenza negativa per simbolo {sym}")
        heapq.heappush(heap, (f, next(counter), arena.leaf(sym)))

    while len(heap) > 1:
        f1, _, n1 = heapq.heappop(heap)
        f2, _, n2 = heapq.heappop(heap)
        parent = arena.internal(n1, n2)
        heapq.heappush(heap, (f1 + f2, next(counter), parent))

    return arena.freeze(heap[0][2])


# -------------------
# Serializzazione preorder
# -------------------
def serialize_tree(tree: HuffmanTree, writer: BitWriter) -> None:
    """Foglia: 0 + simbolo su 9 bit. Interno: 1, poi sinistro, poi destro."""
    stack = [tree.root]
    while stack:
        node = stack.pop()
        if tree.is_leaf(node):
            writer.write_bit(0)
            writer.write_bits(tree.symbols[node], SYMBOL_BITS)
        else:
            writer.write_bit(1)
            stack.append(tree.rights[node])
            stack.append(tree.lefts[node])


def deserialize_tree(reader: BitReader) -> HuffmanTree:
    arena = _ArenaBuilder()
    root = NO_NODE
    # slot da riempire: (padre, lato) con lato 0 = sinistro, 1 = destro
    pending: List[Tuple[int, int]] = [(NO_NODE, 0)]

    while pending:
        parent, side = pending.pop()

        flag = reader.read_bit()
        if flag is None:
            raise TruncatedTree("albero troncato (flag bit mancante)")

        if flag == 0:
            sym = reader.read_bits(SYMBOL_BITS)
            if sym is None:
                raise TruncatedTree("albero troncato (valore foglia incompleto)")
            if sym > END_SYMBOL:
                raise CorruptPayload(f"simbolo foglia fuori range: {sym}")
            node = arena.leaf(sym)
        else:
            node = arena.internal()
            pending.append((node, 1))
            pending.append((node, 0))

        if parent == NO_NODE:
            root = node
        elif side == 0:
            arena.lefts[parent] = node
        else:
            arena.rights[parent] = node

    return arena.freeze(root)


# -------------------
# Codici
# -------------------
def build_code_table(tree: HuffmanTree) -> Dict[int, Tuple[int, ...]]:
    codes: Dict[int, Tuple[int, ...]] = {}
    stack: List[Tuple[int, Tuple[int, ...]]] = [(tree.root, ())]
    while stack:
        node, path = stack.pop()
        if tree.is_leaf(node):
            # radice foglia (solo END): percorso vuoto
            codes[tree.symbols[node]] = path
            continue
        stack.append((tree.rights[node], path + (1,)))
        stack.append((tree.lefts[node], path + (0,)))
    return codes


def encode_payload(source: ByteSource, codes: Mapping[int, Tuple[int, ...]], writer: BitWriter) -> int:
    """
    Scrive il codice di ogni byte di ``source`` seguito dal codice di END.
    Ritorna il numero di byte codificati.
    """
    n = 0
    for chunk in _iter_chunks(source):
        for b in chunk:
            writer.write_code(codes[b])
        n += len(chunk)
    writer.write_code(codes[END_SYMBOL])
    return n


def decode_payload(
    tree: HuffmanTree,
    reader: BitReader,
    out: Optional[BinaryIO] = None,
    *,
    strict: bool = False,
) -> int:
    """
    Cammina l'albero un bit alla volta fino a END.

    Se i bit finiscono prima di END:
      - strict=False: si termina senza errore (output corto)
      - strict=True: TruncatedPayload

    ``out`` None conta soltanto i byte. Ritorna il numero di byte decodificati.
    """
    symbols, lefts, rights, root = tree.symbols, tree.lefts, tree.rights, tree.root

    if symbols[root] != NO_NODE:
        if symbols[root] == END_SYMBOL:
            return 0
        raise CorruptPayload("albero con una sola foglia diversa da END")

    buf = bytearray()
    total = 0
    node = root
    while True:
        bit = reader.read_bit()
        if bit is None:
            if strict:
                raise TruncatedPayload(f"payload troncato dopo {total + len(buf)} byte (END mancante)")
            break
        node = lefts[node] if bit == 0 else rights[node]
        sym = symbols[node]
        if sym == NO_NODE:
            continue
        if sym == END_SYMBOL:
            break
        buf.append(sym)
        node = root
        if len(buf) >= CHUNK_SIZE_DEFAULT:
            if out is not None:
                out.write(bytes(buf))
            total += len(buf)
            buf.clear()

    if buf and out is not None:
        out.write(bytes(buf))
    return total + len(buf)
