"""
Self-describing container around the Huffman core.

Layout (big endian):
    version       u8
    symbol count  u16
    entries       symbol count x (byte u8, count u64), ascending byte order
    data size     u64
    padding bits  u8
    payload       packed code bits, most significant bit first
"""
import io
import logging
import struct

import frequency
from huffman import build_tree
from models import Header

log = logging.getLogger(__name__)

FORMAT_VERSION = 1

_PREFIX = struct.Struct(">BH")
_ENTRY = struct.Struct(">BQ")
_SUFFIX = struct.Struct(">QB")


class CorruptDataError(ValueError):
    """The container is truncated, inconsistent, or from another version."""


### HEADER ###
def write_header(header):
    out = bytearray(_PREFIX.pack(header.version, len(header.frequencies)))
    for byte, count in sorted(header.frequencies.items()):
        out += _ENTRY.pack(byte, count)
    out += _SUFFIX.pack(header.data_size, header.padding)
    return bytes(out)


def read_header(blob):
    """Parse a header. Returns the Header and the offset where the payload starts."""
    if len(blob) < _PREFIX.size:
        raise CorruptDataError("header truncated")
    version, num_symbols = _PREFIX.unpack_from(blob, 0)
    if version != FORMAT_VERSION:
        raise CorruptDataError(f"unsupported format version {version}")
    if num_symbols > 256:
        raise CorruptDataError(f"invalid symbol count {num_symbols}")

    offset = _PREFIX.size
    end = offset + num_symbols * _ENTRY.size + _SUFFIX.size
    if len(blob) < end:
        raise CorruptDataError("frequency table truncated")

    frequencies = {}
    for _ in range(num_symbols):
        byte, count = _ENTRY.unpack_from(blob, offset)
        offset += _ENTRY.size
        if byte in frequencies or count == 0:
            raise CorruptDataError(f"invalid frequency entry for byte {byte}")
        frequencies[byte] = count
    data_size, padding = _SUFFIX.unpack_from(blob, offset)
    offset += _SUFFIX.size

    if padding > 7:
        raise CorruptDataError(f"invalid padding {padding}")
    if sum(frequencies.values()) != data_size:
        raise CorruptDataError("frequency table does not add up to the data size")
    return Header(version, frequencies, data_size, padding), offset


### BIT PACKING ###
def encode_bits(data, code_table):
    """Translate every byte to its code and pack the bits. Returns (payload, padding)."""
    bits = "".join(code_table[byte] for byte in data)
    padding = -len(bits) % 8
    if not bits:
        return b"", 0
    bits += "0" * padding
    return int(bits, 2).to_bytes(len(bits) // 8, byteorder="big"), padding


def decode_bits(payload, root, data_size, padding=0):
    """Walk the tree bit by bit until data_size bytes have been decoded."""
    if data_size == 0:
        return b""
    if root is None:
        raise CorruptDataError("no tree to decode with")

    bit_string = "".join(format(byte, "08b") for byte in payload)
    if padding:
        bit_string = bit_string[:-padding]

    out = bytearray()
    if root.is_leaf():
        # Single-symbol input: every bit stands for the one byte
        out.extend(bytes([root.byte]) * len(bit_string))
    else:
        current_node = root
        for bit in bit_string:
            current_node = current_node.left if bit == "0" else current_node.right
            if current_node.is_leaf():
                out.append(current_node.byte)
                current_node = root
        if current_node is not root:
            raise CorruptDataError("payload ends inside a code")

    if len(out) != data_size:
        raise CorruptDataError(f"decoded {len(out)} bytes, expected {data_size}")
    return bytes(out)


### COMPRESS / DECOMPRESS ###
def compress(data, chunk_size=frequency.CHUNK_SIZE, workers=frequency.WORKER_COUNT):
    frequencies = frequency.count(io.BytesIO(data), chunk_size, workers)
    tree = build_tree(frequencies)
    payload, padding = encode_bits(data, tree.code_table)
    header = Header(FORMAT_VERSION, frequencies, len(data), padding)
    log.debug("Compressed %d bytes into %d payload bytes (%d symbols)",
              len(data), len(payload), len(frequencies))
    return write_header(header) + payload


def decompress(blob):
    header, offset = read_header(blob)
    tree = build_tree(header.frequencies)
    payload = blob[offset:]

    total_bits = tree.weighted_path_length(header.frequencies)
    expected = (total_bits + 7) // 8
    if len(payload) != expected or expected * 8 - total_bits != header.padding:
        raise CorruptDataError(
            f"payload is {len(payload)} bytes with {header.padding} padding bits, "
            f"expected {expected} bytes for {total_bits} bits")
    return decode_bits(payload, tree.root, header.data_size, header.padding)
