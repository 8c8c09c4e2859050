"""
CRX container parsing.

Format reference: https://developer.chrome.com/extensions/crx.html

    CRX2:  "Cr24" | 02 00 00 00 | key length | sig length | key | sig | zip
    CRX3:  "Cr24" | 03 00 00 00 | header length | CrxFileHeader | zip

All lengths are little-endian uint32.
"""
import base64
import struct
from enum import IntEnum
from typing import NamedTuple, Tuple, Union

from crx_errors import (
    InvalidMagic,
    NotCrxIsZip,
    NotCrxMaybeZip,
    TruncatedHeader,
    UnsupportedVersion,
)
from crx_logger import logger
from crx_proto import get_public_key, public_key_to_extension_id


CRX_MAGIC = b"Cr24"
ZIP_LOCAL_FILE_MAGIC = b"PK\x03\x04"
ZIP_EOCD_MAGIC = b"PK\x05\x06"

# EOCD record without comment, and the largest comment it may carry
ZIP_EOCD_SIZE = 22
ZIP_MAX_COMMENT = 0xFFFF

# magic (4) + version (4) + key length (4) + signature length (4)
CRX2_HEADER_SIZE = 16
# magic (4) + version (4) + header length (4)
CRX3_HEADER_SIZE = 12


class FormatVersion(IntEnum):
    CRX2 = 2
    CRX3 = 3


class CrxPayload(NamedTuple):
    version: FormatVersion
    zip_data: bytes
    public_key: bytes
    key_verified: bool

    @property
    def public_key_base64(self) -> str:
        return base64.b64encode(self.public_key).decode("ascii")

    @property
    def extension_id(self) -> str:
        return public_key_to_extension_id(self.public_key)


def calc_length(view: memoryview, offset: int) -> int:
    # extract an integer from bytes following little-endian order
    return struct.unpack_from("<I", view, offset)[0]


def is_maybe_zip_data(view: memoryview) -> bool:
    """Look for a ZIP end-of-central-directory record near the end of view."""
    last = len(view) - ZIP_EOCD_SIZE
    if last < 0:
        return False
    first = max(0, last - ZIP_MAX_COMMENT)
    window = bytes(view[first:last + len(ZIP_EOCD_MAGIC)])
    return window.rfind(ZIP_EOCD_MAGIC) != -1


def classify_header(view: memoryview) -> FormatVersion:
    magic = bytes(view[:4])
    if magic == ZIP_LOCAL_FILE_MAGIC:
        raise NotCrxIsZip()
    if magic != CRX_MAGIC:
        if is_maybe_zip_data(view):
            raise NotCrxMaybeZip()
        raise InvalidMagic(magic)

    if len(view) < 8:
        raise TruncatedHeader(8, len(view))
    version_bytes = bytes(view[4:8])
    if version_bytes[0] not in (2, 3) or any(version_bytes[1:]):
        raise UnsupportedVersion(version_bytes)
    return FormatVersion(version_bytes[0])


def locate_crx2(view: memoryview) -> Tuple[int, memoryview]:
    """Return the ZIP start offset and the embedded public key of a CRX2 file."""
    if len(view) < CRX2_HEADER_SIZE:
        raise TruncatedHeader(CRX2_HEADER_SIZE, len(view))
    public_key_length = calc_length(view, 8)
    signature_length = calc_length(view, 12)
    zip_start = CRX2_HEADER_SIZE + public_key_length + signature_length
    if zip_start > len(view):
        raise TruncatedHeader(zip_start, len(view))
    logger.debug(
        f"CRX2: public key {public_key_length} bytes, "
        f"signature {signature_length} bytes, zip at {zip_start}"
    )
    public_key = view[CRX2_HEADER_SIZE:CRX2_HEADER_SIZE + public_key_length]
    return zip_start, public_key


def locate_crx3(view: memoryview) -> Tuple[int, memoryview]:
    """Return the ZIP start offset and the verified public key of a CRX3 file."""
    if len(view) < CRX3_HEADER_SIZE:
        raise TruncatedHeader(CRX3_HEADER_SIZE, len(view))
    header_length = calc_length(view, 8)
    zip_start = CRX3_HEADER_SIZE + header_length
    if zip_start > len(view):
        raise TruncatedHeader(zip_start, len(view))
    logger.debug(f"CRX3: header {header_length} bytes, zip at {zip_start}")
    public_key = get_public_key(view, CRX3_HEADER_SIZE, zip_start)
    return zip_start, public_key


def slice_payload(view: memoryview, zip_start: int) -> bytes:
    return bytes(view[zip_start:])


def _parse_view(view: memoryview) -> CrxPayload:
    while True:
        version = classify_header(view)
        if version == FormatVersion.CRX2:
            zip_start, public_key = locate_crx2(view)
            break
        zip_start, public_key = locate_crx3(view)
        # addons.opera.com creates CRX3 files by prepending the CRX3 header to the CRX2 data.
        if bytes(view[zip_start:zip_start + 4]) != CRX_MAGIC:
            break
        logger.debug(f"Nested CRX at offset {zip_start}, parsing the inner file")
        view = view[zip_start:]

    return CrxPayload(
        version=version,
        zip_data=slice_payload(view, zip_start),
        public_key=bytes(public_key),
        key_verified=version == FormatVersion.CRX3,
    )


def parse_crx(crx_blob: Union[bytes, bytearray, memoryview]) -> CrxPayload:
    """Strip the CRX header from crx_blob and return the ZIP payload and key."""
    view = memoryview(crx_blob).toreadonly().cast("B")
    return _parse_view(view)


__all__ = [
    "FormatVersion",
    "CrxPayload",
    "calc_length",
    "is_maybe_zip_data",
    "classify_header",
    "locate_crx2",
    "locate_crx3",
    "slice_payload",
    "parse_crx",
]
