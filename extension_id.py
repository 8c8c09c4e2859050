import argparse
import os
import sys

from Crypto.PublicKey import RSA

from crx_errors import BadCrx
from crx_format import parse_crx
from crx_logger import logger, set_verbose
from crx_proto import public_key_to_extension_id


def public_key_to_pem(public_key: bytes) -> str:
    """Re-encode a DER SubjectPublicKeyInfo RSA key as PEM."""
    try:
        key = RSA.import_key(bytes(public_key))
    except (ValueError, IndexError, TypeError) as e:
        raise ValueError(f"Public key is not a DER encoded RSA key: {e}") from e
    return key.export_key(format='PEM').decode('ascii')


def handle_blob(crx_name: str, crx_blob: bytes, pem: bool = False) -> str:
    logger.info(f"Loading {crx_name}")
    payload = parse_crx(crx_blob)
    logger.debug(f"CRX{int(payload.version)}, {len(payload.zip_data)} bytes of zip data")
    if not payload.key_verified:
        logger.info("CRX2 public key is not bound to an extension ID, it is shown as found.")

    logger.info('Public key (paste into manifest.json to preserve extension ID)')
    logger.info('"key": "' + payload.public_key_base64 + '",')
    if pem:
        logger.info(public_key_to_pem(payload.public_key))

    extension_id = payload.extension_id
    logger.info('Calculated extension ID: ' + extension_id)
    return extension_id


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Print the public key and extension ID of a CRX file")
    parser.add_argument("filename", help="The CRX file to process")
    parser.add_argument("--pem", action="store_true",
                        help="Also print the public key in PEM format")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Show parsing details")
    args = parser.parse_args(argv)
    set_verbose(args.verbose)

    if not os.path.isfile(args.filename):
        logger.error(f"Error: The file '{args.filename}' does not exist.")
        return 1

    with open(args.filename, 'rb') as crx_file:
        content = crx_file.read()

    try:
        handle_blob(args.filename, content, pem=args.pem)
    except (BadCrx, ValueError) as e:
        logger.error(f"Error: cannot read the key of '{args.filename}': {e}")
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
