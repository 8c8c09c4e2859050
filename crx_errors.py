from typing import Optional


class BadCrx(IOError):
    """Base class for every reason a blob is rejected as a CRX file."""
    pass


class NotCrxIsZip(BadCrx):

    def __init__(self) -> None:
        super().__init__("Input is not a CRX file, but a ZIP file.")


class NotCrxMaybeZip(BadCrx):

    def __init__(self) -> None:
        super().__init__("Input is not a CRX file, but possibly a ZIP file.")


class InvalidMagic(BadCrx):

    def __init__(self, magic: bytes) -> None:
        self.magic = magic
        super().__init__(f"Invalid header: Does not start with Cr24 (got {magic!r}).")


class UnsupportedVersion(BadCrx):

    def __init__(self, version_bytes: bytes) -> None:
        self.version_bytes = version_bytes
        super().__init__(
            f"Unexpected crx format version number: {version_bytes.hex(' ')}."
        )


class TruncatedHeader(BadCrx):

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Truncated header: need {expected} bytes, file has {actual}."
        )


class ProtoError(BadCrx):
    """Malformed CRX3 protobuf header."""

    def __init__(self, message: str, offset: Optional[int] = None) -> None:
        self.offset = offset
        if offset is not None:
            message = f"{message} (at offset {offset})"
        super().__init__(f"proto: {message}")


class VarintOverflow(ProtoError):

    def __init__(self, offset: int) -> None:
        super().__init__("not a uint32", offset)


class TruncatedVarint(ProtoError):

    def __init__(self, offset: int, end: int) -> None:
        self.end = end
        super().__init__(f"varint runs past header end {end}", offset)


class UnexpectedProofField(ProtoError):

    def __init__(self, tag: int, offset: int) -> None:
        self.tag = tag
        super().__init__(f"Unexpected key in AsymmetricKeyProof: {tag}", offset)


class PublicKeyTooLarge(ProtoError):

    def __init__(self, length: int, available: int, offset: int) -> None:
        self.length = length
        self.available = available
        super().__init__(
            f"size of public_key field is too large ({length} > {available})",
            offset,
        )


class InvalidSignedHeaderData(ProtoError):

    def __init__(self, message: str, offset: int) -> None:
        super().__init__(message, offset)


class DuplicateSignedHeaderData(ProtoError):

    def __init__(self, offset: int) -> None:
        super().__init__("Unexpected duplicate signed_header_data", offset)


class UnexpectedField(ProtoError):

    def __init__(self, tag: int, offset: int) -> None:
        self.tag = tag
        super().__init__(f"Unexpected key: {tag}", offset)


class HeaderBoundsMismatch(ProtoError):

    def __init__(self, position: int, end: int) -> None:
        self.position = position
        self.end = end
        super().__init__(f"field ends at {position}, header ends at {end}")


class NoPublicKeyFound(ProtoError):

    def __init__(self) -> None:
        super().__init__("Did not find any public key")


class NoCrxIdFound(ProtoError):

    def __init__(self) -> None:
        super().__init__("Did not find crx_id")


class KeyIdMismatch(ProtoError):

    def __init__(self, crx_id: bytes, candidates: int) -> None:
        self.crx_id = crx_id
        self.candidates = candidates
        super().__init__(
            f"None of the {candidates} public keys matched with crx_id {crx_id.hex()}"
        )
