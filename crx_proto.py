"""
Minimal reader for the CRX3 header.

The header is a serialized CrxFileHeader message (components/crx_file/crx3.proto
in Chromium). Only the pieces needed to recover the signing key are decoded:

    CrxFileHeader.sha256_with_rsa      field 2      -> AsymmetricKeyProof
    CrxFileHeader.sha256_with_ecdsa    field 3      -> skipped
    CrxFileHeader.signed_header_data   field 10000  -> SignedData.crx_id

Every decode step takes the cursor and returns the advanced one, so nothing
here holds state between calls.
"""
from typing import List, NamedTuple, Optional, Sequence, Tuple

from Crypto.Hash import SHA256

from crx_errors import (
    DuplicateSignedHeaderData,
    HeaderBoundsMismatch,
    InvalidSignedHeaderData,
    KeyIdMismatch,
    NoCrxIdFound,
    NoPublicKeyFound,
    PublicKeyTooLarge,
    TruncatedVarint,
    UnexpectedField,
    UnexpectedProofField,
    VarintOverflow,
)
from crx_logger import logger


# wire keys, (field_number << 3) | wire_type with wire_type 2 (length-delimited)
KEY_SHA256_WITH_RSA = 0x12
KEY_SHA256_WITH_ECDSA = 0x1A
KEY_SIGNED_HEADER_DATA = (10000 << 3) | 2
KEY_PROOF_PUBLIC_KEY = 0x0A
KEY_PROOF_SIGNATURE = 0x12
KEY_CRX_ID = 0x0A

CRX_ID_LENGTH = 16


class HeaderFields(NamedTuple):
    public_keys: List[memoryview]
    crx_id: Optional[memoryview]


def read_varint(view: memoryview, pos: int, end: int) -> Tuple[int, int]:
    """Decode a uint32 varint starting at pos; return (value, next position)."""
    start = pos
    value = 0
    for shift in (0, 7, 14, 21):
        if pos >= end:
            raise TruncatedVarint(start, end)
        byte = view[pos]
        pos += 1
        value |= (byte & 0x7F) << shift
        if byte < 0x80:
            return value, pos

    if pos >= end:
        raise TruncatedVarint(start, end)
    byte = view[pos]
    pos += 1
    # only 4 bits are left for a 32-bit value
    if byte > 0x0F:
        raise VarintOverflow(start)
    return value | (byte << 28), pos


def read_field(view: memoryview, pos: int, end: int) -> Tuple[int, int, int]:
    """Read a (key, length) pair; return (key, length, start of value)."""
    key, pos = read_varint(view, pos, end)
    length, pos = read_varint(view, pos, end)
    return key, length, pos


def _read_key_proof(view: memoryview, pos: int, proof_end: int) -> Optional[memoryview]:
    """Return the public_key of an AsymmetricKeyProof, or None if it has none."""
    if pos == proof_end:
        return None

    field_start = pos
    key, length, pos = read_field(view, pos, proof_end)
    if key == KEY_PROOF_SIGNATURE:
        pos += length
        if pos > proof_end:
            raise HeaderBoundsMismatch(pos, proof_end)
        if pos == proof_end:
            # signature without public_key, allowed by crx3.proto
            return None
        field_start = pos
        key, length, pos = read_field(view, pos, proof_end)

    if key != KEY_PROOF_PUBLIC_KEY:
        raise UnexpectedProofField(key, field_start)
    if pos + length > proof_end:
        raise PublicKeyTooLarge(length, proof_end - pos, pos)
    return view[pos:pos + length]


def _read_crx_id(view: memoryview, pos: int, region_end: int) -> memoryview:
    if pos == region_end:
        raise InvalidSignedHeaderData("signed_header_data has no crx_id", pos)
    key, length, pos = read_field(view, pos, region_end)
    if key != KEY_CRX_ID:
        raise InvalidSignedHeaderData(
            f"Unexpected key in signed_header_data: {key}", pos)
    if length != CRX_ID_LENGTH:
        raise InvalidSignedHeaderData(
            f"Unexpected signed_header_data length {length}", pos)
    if pos + length != region_end:
        raise InvalidSignedHeaderData(
            "signed_header_data must hold exactly one crx_id", pos)
    return view[pos:pos + length]


def walk_header(view: memoryview, start: int, end: int) -> HeaderFields:
    """Collect candidate public keys and the crx_id from the header [start, end)."""
    public_keys = []
    crx_id = None
    pos = start

    while pos < end:
        field_start = pos
        key, length, pos = read_field(view, pos, end)
        value_end = pos + length
        if value_end > end:
            raise HeaderBoundsMismatch(value_end, end)

        if key == KEY_SIGNED_HEADER_DATA:
            if crx_id is not None:
                raise DuplicateSignedHeaderData(field_start)
            crx_id = _read_crx_id(view, pos, value_end)
        elif key == KEY_SHA256_WITH_RSA:
            public_key = _read_key_proof(view, pos, value_end)
            if public_key is not None:
                public_keys.append(public_key)
        elif key == KEY_SHA256_WITH_ECDSA:
            logger.debug(f"Skipping sha256_with_ecdsa proof at offset {field_start}")
        else:
            raise UnexpectedField(key, field_start)
        pos = value_end

    if pos != end:
        raise HeaderBoundsMismatch(pos, end)

    if not public_keys:
        raise NoPublicKeyFound()
    if crx_id is None:
        raise NoCrxIdFound()
    return HeaderFields(public_keys, crx_id)


def key_digest_prefix(public_key) -> bytes:
    """First 128 bits of SHA-256 over the key, the form a crx_id takes."""
    return SHA256.new(bytes(public_key)).digest()[:CRX_ID_LENGTH]


def public_key_to_extension_id(public_key) -> str:
    """Chrome extension ID: first 32 hex digits of SHA-256(key) mapped 0-f to a-p."""
    sha256sum = SHA256.new(bytes(public_key)).hexdigest()
    ord_a = ord('a')
    return ''.join(chr(int(digit, 16) + ord_a) for digit in sha256sum[:32])


def verify_public_key(public_keys: Sequence[memoryview], crx_id) -> memoryview:
    """Return the first key whose digest matches crx_id."""
    expected = bytes(crx_id)
    for index, public_key in enumerate(public_keys):
        if key_digest_prefix(public_key) == expected:
            logger.debug(f"Public key #{index} matches crx_id {expected.hex()}")
            return public_key
    raise KeyIdMismatch(expected, len(public_keys))


def get_public_key(view: memoryview, start: int, end: int) -> memoryview:
    fields = walk_header(view, start, end)
    return verify_public_key(fields.public_keys, fields.crx_id)


__all__ = [
    "HeaderFields",
    "read_varint",
    "read_field",
    "walk_header",
    "key_digest_prefix",
    "public_key_to_extension_id",
    "verify_public_key",
    "get_public_key",
]
