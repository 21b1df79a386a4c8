"""
DER Encoding Primitives

Tag/length/value encoders used to hand-assemble PKCS #10 structures:
- Definite-length encoding (short form and long form up to 4 length bytes)
- SEQUENCE, SET, INTEGER, OBJECT IDENTIFIER, BIT STRING, string types
- Explicit context-specific tags ([0] for the CSR attributes)
- TLV header reading and PEM framing

Standards Reference:
- ITU-T X.690 (DER) Section 8.1.3 (length octets), 8.19 (OBJECT IDENTIFIER)
- RFC 7468 - Textual Encodings of PKIX Structures

Author: SecureRoad PKI Project
Date: October 2025
"""

import base64
import re
from typing import Iterable, List, Sequence, Tuple, Union

from config.pki_config import PKI_CONSTANTS


# ============================================================================
# UNIVERSAL TAGS (X.680 Section 8.4)
# ============================================================================

TAG_INTEGER = 0x02
TAG_BIT_STRING = 0x03
TAG_OCTET_STRING = 0x04
TAG_NULL = 0x05
TAG_OBJECT_IDENTIFIER = 0x06
TAG_UTF8_STRING = 0x0C
TAG_PRINTABLE_STRING = 0x13
TAG_IA5_STRING = 0x16
TAG_SEQUENCE = 0x30  # constructed
TAG_SET = 0x31  # constructed

CLASS_CONTEXT_SPECIFIC = 0x80
FLAG_CONSTRUCTED = 0x20

# Long form supports up to 4 length octets (content < 4 GiB)
MAX_LENGTH_OCTETS = 4

_PRINTABLE_CHARS = frozenset(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789 '()+,-./:=?"
)

OidLike = Union[str, Sequence[int]]


# ============================================================================
# LENGTH / TLV
# ============================================================================


def encode_length(length: int) -> bytes:
    """
    Encode DER definite length octets.

    - length < 128: single byte
    - otherwise: 0x80 | n followed by n big-endian bytes (n = 1..4)

    Args:
        length: Content length in bytes

    Returns:
        bytes: Length octets

    Raises:
        ValueError: If length is negative or needs more than 4 length octets
    """
    if length < 0:
        raise ValueError(f"DER length cannot be negative: {length}")

    if length < 0x80:
        return bytes([length])

    num_octets = (length.bit_length() + 7) // 8
    if num_octets > MAX_LENGTH_OCTETS:
        raise ValueError(
            f"DER length {length} exceeds the {MAX_LENGTH_OCTETS}-octet long form"
        )

    return bytes([0x80 | num_octets]) + length.to_bytes(num_octets, byteorder="big")


def encode_tlv(tag: int, content: bytes) -> bytes:
    """Encode tag + definite length + content."""
    if not 0 <= tag <= 0xFF:
        raise ValueError(f"Tag must be a single byte, got {tag}")
    if tag & 0x1F == 0x1F:
        raise ValueError("High-tag-number form is not supported")
    return bytes([tag]) + encode_length(len(content)) + bytes(content)


def read_tlv(data: bytes, offset: int = 0) -> Tuple[int, int, int]:
    """
    Read a definite-length TLV header.

    Args:
        data: DER buffer
        offset: Position of the tag byte

    Returns:
        Tuple (tag, content_start, content_end); data[offset:content_end]
        is the full TLV, data[content_start:content_end] its content.

    Raises:
        ValueError: On truncated input, indefinite length or oversized length
    """
    if offset >= len(data):
        raise ValueError("Truncated DER: missing tag")

    tag = data[offset]
    if tag & 0x1F == 0x1F:
        raise ValueError("High-tag-number form is not supported")

    if offset + 1 >= len(data):
        raise ValueError("Truncated DER: missing length")

    first = data[offset + 1]
    cursor = offset + 2

    if first < 0x80:
        length = first
    elif first == 0x80:
        raise ValueError("Indefinite length encoding is not supported in DER")
    else:
        num_octets = first & 0x7F
        if num_octets > MAX_LENGTH_OCTETS:
            raise ValueError(f"Length uses {num_octets} octets, max is {MAX_LENGTH_OCTETS}")
        if cursor + num_octets > len(data):
            raise ValueError("Truncated DER: incomplete long-form length")
        length = int.from_bytes(data[cursor:cursor + num_octets], byteorder="big")
        cursor += num_octets

    end = cursor + length
    if end > len(data):
        raise ValueError(f"Truncated DER: content needs {length} bytes")

    return tag, cursor, end


# ============================================================================
# CONSTRUCTED TYPES
# ============================================================================


def encode_sequence(*elements: bytes) -> bytes:
    """SEQUENCE of already-encoded elements, kept in the given order."""
    return encode_tlv(TAG_SEQUENCE, b"".join(elements))


def encode_set(*elements: bytes) -> bytes:
    """
    SET of already-encoded elements.

    Elements are emitted in the given order; callers building SET OF with
    more than one element must pass them sorted (X.690 11.6).
    """
    return encode_tlv(TAG_SET, b"".join(elements))


def encode_context_tag(number: int, content: bytes = b"", constructed: bool = True) -> bytes:
    """
    Explicit context-specific tag [number].

    encode_context_tag(0) yields A0 00, the empty PKCS #10 attributes set.
    """
    if not 0 <= number < 31:
        raise ValueError(f"Context tag number must be in 0..30, got {number}")
    tag = CLASS_CONTEXT_SPECIFIC | number
    if constructed:
        tag |= FLAG_CONSTRUCTED
    return encode_tlv(tag, content)


# ============================================================================
# PRIMITIVE TYPES
# ============================================================================


def encode_integer(value: int) -> bytes:
    """INTEGER in minimal two's complement form."""
    magnitude = value if value >= 0 else ~value
    num_bytes = (magnitude.bit_length() + 8) // 8
    return encode_tlv(TAG_INTEGER, value.to_bytes(num_bytes, byteorder="big", signed=True))


def _parse_oid(oid: OidLike) -> List[int]:
    if isinstance(oid, str):
        try:
            arcs = [int(part) for part in oid.strip().split(".")]
        except ValueError:
            raise ValueError(f"Invalid OID: {oid!r}")
    else:
        arcs = [int(part) for part in oid]

    if len(arcs) < 2:
        raise ValueError(f"OID needs at least two arcs: {oid!r}")
    if any(arc < 0 for arc in arcs):
        raise ValueError(f"OID arcs must be non-negative: {oid!r}")
    if arcs[0] > 2:
        raise ValueError(f"First OID arc must be 0, 1 or 2: {oid!r}")
    if arcs[0] < 2 and arcs[1] >= 40:
        raise ValueError(f"Second OID arc must be < 40 under arc {arcs[0]}: {oid!r}")
    return arcs


def _encode_base128(value: int) -> bytes:
    chunks = [value & 0x7F]
    value >>= 7
    while value:
        chunks.append(0x80 | (value & 0x7F))
        value >>= 7
    return bytes(reversed(chunks))


def encode_oid(oid: OidLike) -> bytes:
    """
    OBJECT IDENTIFIER from a dotted string ("1.2.840.10045.2.1") or an
    integer sequence. The first two arcs are merged as 40*X + Y and every
    subidentifier is written base-128, high bit set on all but the last byte.
    """
    arcs = _parse_oid(oid)
    body = _encode_base128(40 * arcs[0] + arcs[1])
    body += b"".join(_encode_base128(arc) for arc in arcs[2:])
    return encode_tlv(TAG_OBJECT_IDENTIFIER, body)


def encode_bit_string(content: bytes) -> bytes:
    """BIT STRING of whole bytes: leading unused-bits octet is always 0x00."""
    return encode_tlv(TAG_BIT_STRING, b"\x00" + bytes(content))


def encode_utf8_string(value: str) -> bytes:
    return encode_tlv(TAG_UTF8_STRING, value.encode("utf-8"))


def encode_printable_string(value: str) -> bytes:
    invalid = set(value) - _PRINTABLE_CHARS
    if invalid:
        raise ValueError(f"Characters not allowed in PrintableString: {sorted(invalid)}")
    return encode_tlv(TAG_PRINTABLE_STRING, value.encode("ascii"))


def encode_ia5_string(value: str) -> bytes:
    try:
        encoded = value.encode("ascii")
    except UnicodeEncodeError:
        raise ValueError(f"IA5String accepts ASCII only: {value!r}")
    return encode_tlv(TAG_IA5_STRING, encoded)


# ============================================================================
# PEM (RFC 7468)
# ============================================================================


def pem_encode(der: bytes, label: str, line_length: int = PKI_CONSTANTS.PEM_LINE_LENGTH) -> str:
    """Wrap DER bytes in a PEM block with the base64 body split at line_length."""
    body = base64.b64encode(der).decode("ascii")
    lines = [body[i:i + line_length] for i in range(0, len(body), line_length)]
    return f"-----BEGIN {label}-----\n" + "\n".join(lines) + f"\n-----END {label}-----\n"


def pem_blocks(text: str, label: str) -> List[bytes]:
    """Decode every PEM block carrying the given label, in document order."""
    pattern = re.compile(
        rf"-----BEGIN {re.escape(label)}-----\s*(.*?)\s*-----END {re.escape(label)}-----",
        re.DOTALL,
    )
    blocks = []
    for match in pattern.finditer(text):
        body = "".join(match.group(1).split())
        blocks.append(base64.b64decode(body, validate=True))
    return blocks


def pem_decode(text: str, label: str) -> bytes:
    """Decode the single PEM block carrying the given label."""
    blocks = pem_blocks(text, label)
    if len(blocks) != 1:
        raise ValueError(f"Expected exactly one '{label}' PEM block, found {len(blocks)}")
    return blocks[0]


def concat_encoded(elements: Iterable[bytes]) -> Tuple[bytes, int]:
    """Join already-encoded TLVs and return them with their summed length."""
    parts = [bytes(element) for element in elements]
    return b"".join(parts), sum(len(part) for part in parts)
