"""Grin: static Huffman file codec."""

__version__ = "0.1.0"
