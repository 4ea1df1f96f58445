"""Content fingerprints for local files and provider content tags.

The sync engine fingerprints every local file with SHA-256. Providers report
their own content tags (S3 ETag, Dropbox ``content_hash``, OneDrive
``quickXorHash``, Google Drive ``md5Checksum``); the helpers here compute the
same tags from local bytes so both sides can be compared without downloading.
"""

import base64
import hashlib
from pathlib import Path
from typing import Union

# Read buffer for streaming hashes (1 MB)
READ_CHUNK_SIZE: int = 1024 * 1024

# Dropbox hashes content in 4 MB blocks
DROPBOX_BLOCK_SIZE: int = 4 * 1024 * 1024

# QuickXorHash parameters
QUICKXOR_WIDTH_IN_BITS: int = 160
QUICKXOR_SHIFT: int = 11
_UINT64_MASK: int = (1 << 64) - 1


def content_hash(data: bytes) -> str:
    """Compute the SHA-256 content fingerprint of a byte string.

    Args:
        data: File contents

    Returns:
        Lowercase hex digest (64 characters)

    Examples:
        >>> content_hash(b"")[:16]
        'e3b0c44298fc1c14'
    """
    return hashlib.sha256(data).hexdigest()


def hash_file(path: Union[str, Path]) -> str:
    """Compute the SHA-256 content fingerprint of a file on disk.

    Args:
        path: Path to the file

    Returns:
        Lowercase hex digest

    Raises:
        OSError: If the file cannot be read
    """
    sha = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(READ_CHUNK_SIZE), b""):
            sha.update(chunk)
    return sha.hexdigest()


def md5_hex(data: bytes) -> str:
    """MD5 hex digest, as reported by S3 (single-part ETag) and Google Drive."""
    return hashlib.md5(data).hexdigest()


def dropbox_content_hash(data: bytes) -> str:
    """Compute the Dropbox ``content_hash`` of a byte string.

    The file is split into 4 MB blocks, each block is hashed with SHA-256 and
    the concatenated binary digests are hashed again with SHA-256.

    Args:
        data: File contents

    Returns:
        Lowercase hex digest
    """
    overall = hashlib.sha256()
    for offset in range(0, len(data), DROPBOX_BLOCK_SIZE):
        block = data[offset : offset + DROPBOX_BLOCK_SIZE]
        overall.update(hashlib.sha256(block).digest())
    return overall.hexdigest()


class QuickXorHash:
    """Incremental implementation of Microsoft's QuickXorHash.

    OneDrive reports this hash for every file (``file.hashes.quickXorHash``).
    Bytes are XORed into a 160-bit register, each byte shifted 11 bits further
    than the previous one (wrapping around), and the total length is XORed
    into the last 64 bits of the result.

    Examples:
        >>> h = QuickXorHash()
        >>> h.update(b"")
        >>> h.base64digest()
        'AAAAAAAAAAAAAAAAAAAAAAAAAAA='
    """

    def __init__(self) -> None:
        self._cells = [0] * ((QUICKXOR_WIDTH_IN_BITS - 1) // 64 + 1)
        self._shift_so_far = 0
        self._length = 0

    def update(self, data: bytes) -> None:
        cells = self._cells
        size = len(data)
        last_index = len(cells) - 1
        vector_index = self._shift_so_far // 64
        vector_offset = self._shift_so_far % 64
        iterations = min(size, QUICKXOR_WIDTH_IN_BITS)

        for i in range(iterations):
            is_last_cell = vector_index == last_index
            # The last cell only holds the remaining 32 bits of the register
            bits_in_cell = QUICKXOR_WIDTH_IN_BITS % 64 if is_last_cell else 64

            if vector_offset <= bits_in_cell - 8:
                for j in range(i, size, QUICKXOR_WIDTH_IN_BITS):
                    cells[vector_index] ^= data[j] << vector_offset
            else:
                next_index = 0 if is_last_cell else vector_index + 1
                low_bits = bits_in_cell - vector_offset
                xored = 0
                for j in range(i, size, QUICKXOR_WIDTH_IN_BITS):
                    xored ^= data[j]
                cells[vector_index] ^= (xored << vector_offset) & _UINT64_MASK
                cells[next_index] ^= xored >> low_bits

            vector_offset += QUICKXOR_SHIFT
            while vector_offset >= bits_in_cell:
                vector_index = 0 if is_last_cell else vector_index + 1
                vector_offset -= bits_in_cell

        self._shift_so_far = (
            self._shift_so_far + QUICKXOR_SHIFT * (size % QUICKXOR_WIDTH_IN_BITS)
        ) % QUICKXOR_WIDTH_IN_BITS
        self._length += size

    def digest(self) -> bytes:
        raw = b"".join(cell.to_bytes(8, "little") for cell in self._cells)
        result = bytearray(raw[: QUICKXOR_WIDTH_IN_BITS // 8])
        length_bytes = (self._length & _UINT64_MASK).to_bytes(8, "little")
        start = QUICKXOR_WIDTH_IN_BITS // 8 - len(length_bytes)
        for i, value in enumerate(length_bytes):
            result[start + i] ^= value
        return bytes(result)

    def base64digest(self) -> str:
        return base64.b64encode(self.digest()).decode("ascii")


def quickxor_hash(data: bytes) -> str:
    """Compute the base64 QuickXorHash reported by OneDrive."""
    hasher = QuickXorHash()
    hasher.update(data)
    return hasher.base64digest()
