"""
Builders for synthetic CRX files used across the test suite.
"""
import hashlib
import io
import struct
import zipfile


def encode_varint(value):
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def proto_field(key, payload):
    return encode_varint(key) + encode_varint(len(payload)) + payload


def rsa_proof(public_key=None, signature=None):
    body = b""
    if signature is not None:
        body += proto_field(0x12, signature)
    if public_key is not None:
        body += proto_field(0x0A, public_key)
    return proto_field(0x12, body)


def ecdsa_proof(public_key, signature=b"ec-signature"):
    return proto_field(0x1A, proto_field(0x0A, public_key) + proto_field(0x12, signature))


def signed_header_data(crx_id):
    return proto_field((10000 << 3) | 2, proto_field(0x0A, crx_id))


def crx_id_for(public_key):
    return hashlib.sha256(public_key).digest()[:16]


def make_zip(files=None):
    files = files or {"manifest.json": '{"name": "test", "version": "1.0"}'}
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, content in files.items():
            zf.writestr(name, content)
    return buffer.getvalue()


def build_crx2(zip_data, public_key=b"crx2-public-key", signature=b"crx2-signature"):
    header = b"Cr24" + struct.pack("<III", 2, len(public_key), len(signature))
    return header + public_key + signature + zip_data


def build_crx3_raw(header, zip_data):
    return b"Cr24" + struct.pack("<II", 3, len(header)) + header + zip_data


def build_crx3(zip_data, public_key=b"crx3-public-key", signature=b"crx3-signature"):
    header = rsa_proof(public_key, signature) + signed_header_data(crx_id_for(public_key))
    return build_crx3_raw(header, zip_data)
