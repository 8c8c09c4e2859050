#!/bin/python
import os
import sys
import argparse

from zipfile import ZipFile, BadZipFile
from io import BytesIO
from typing import Optional

from crx_errors import BadCrx
from crx_format import CrxPayload, parse_crx
from crx_logger import logger, set_verbose


class CrxArchive:


    def __init__(self, crx_path: str) -> None:
        self.crx_path = crx_path


    def read_payload(self) -> CrxPayload:
        """Read the CRX file and strip its headers."""
        with open(self.crx_path, "rb") as crx_file:
            return parse_crx(crx_file.read())


    def open_zip(self) -> ZipFile:
        """Open the ZIP archive embedded in the CRX file."""
        payload = self.read_payload()
        logger.debug(
            f"{self.crx_path}: CRX{int(payload.version)}, "
            f"extension ID {payload.extension_id}"
        )
        return ZipFile(BytesIO(payload.zip_data))


    def get_zip_archive(self) -> Optional[ZipFile]:
        """Read CRX file and parse its content to ZIP format."""
        try:
            return self.open_zip()
        except (BadZipFile, BadCrx) as e:
            logger.warning(f"{self.crx_path}: {e}")
            return None


    def extract_to_folder(self, target_path: str) -> None:
        """Extract the contents of the CRX file to a specified folder path."""
        try:
            zip_file = self.open_zip()
        except BadZipFile as e:
            raise BadCrx(f"Embedded ZIP archive is invalid: {e}") from e

        with zip_file:
            os.makedirs(target_path, exist_ok=True)
            zip_file.extractall(target_path)
        logger.info(f"Extracted {self.crx_path} to {target_path}")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='Extract a CRX file to a folder.')
    parser.add_argument('-p', '--path', help='Path to the CRX file.', type=str)
    parser.add_argument('-o', '--output', type=str,
                        help='Target folder (default: next to the CRX file, named after it).')
    parser.add_argument('-v', '--verbose', action='store_true', help='Show parsing details.')
    args = parser.parse_args(argv)
    set_verbose(args.verbose)

    crx_path = args.path
    while crx_path is None or not os.path.isfile(crx_path):
        crx_path = input("Please enter the path to the CRX file: ")

    target_path = args.output
    if target_path is None:
        crx_dir = os.path.dirname(crx_path)
        crx_name = os.path.splitext(os.path.basename(crx_path))[0]
        target_path = os.path.join(crx_dir, crx_name)

    try:
        CrxArchive(crx_path).extract_to_folder(target_path)
    except BadCrx as e:
        logger.error(f"Error: the provided CRX archive cannot be extracted: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
