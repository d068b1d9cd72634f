# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Hashing utilities for makerel.

Release tarballs can be tens of megabytes, so files are always hashed in
fixed-size chunks rather than read whole.
"""

import hashlib
from pathlib import Path
from typing import BinaryIO

HASH_ALGORITHM = "sha256"
HASH_BUFFER_SIZE = 65536  # 64 KiB


def compute_sha256_stream(stream: BinaryIO) -> str:
    """
    Compute the SHA256 hex digest of everything left in a binary stream.

    Args:
        stream: An open binary file object, positioned where hashing starts.

    Returns:
        Lowercase hex string of the SHA256 digest.
    """
    hasher = hashlib.new(HASH_ALGORITHM)
    while True:
        chunk = stream.read(HASH_BUFFER_SIZE)
        if not chunk:
            break
        hasher.update(chunk)
    return hasher.hexdigest()


def compute_sha256(file_path: Path) -> str:
    """
    Compute the SHA256 hex digest of a file.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        OSError: If the file can't be read.
    """
    with open(file_path, "rb") as f:
        return compute_sha256_stream(f)

