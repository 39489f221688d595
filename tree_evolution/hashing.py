"""
tree_evolution/hashing.py - Content hash functions for structural tree hashing
"""
import hashlib
from enum import Enum
from typing import Sequence

import numpy as np


class HashFunction(Enum):
    """Digest algorithms available to the hasher (truncated to 64 bits)"""
    BLAKE2B = 'blake2b'
    SHA256 = 'sha256'
    MD5 = 'md5'


class HashMode(Enum):
    """Whether leaf values take part in structural hashes"""
    STRICT = 'strict'
    RELAXED = 'relaxed'


class Hasher:
    """Deterministic bytes -> 64-bit hash function"""

    def __init__(self, function: HashFunction = HashFunction.BLAKE2B):
        self.function = HashFunction(function)

    def __call__(self, data: bytes) -> int:
        if self.function is HashFunction.BLAKE2B:
            digest = hashlib.blake2b(data, digest_size=8).digest()
        else:
            digest = hashlib.new(self.function.value, data).digest()[:8]
        return int.from_bytes(digest, 'little')

    def symbol(self, name: str) -> int:
        """Hash a symbol name (operation or variable identity)"""
        return self(name.encode('utf-8'))

    def __repr__(self):
        return f"Hasher({self.function.value})"


DEFAULT_HASHER = Hasher()


def pack_hashes(hashes: Sequence[int]) -> bytes:
    """Lay out a sequence of 64-bit hashes as little-endian bytes"""
    return np.asarray(hashes, dtype='<u8').tobytes()


def pack_leaf(hash_value: int, value: float) -> bytes:
    """Byte key of a leaf in strict mode: static hash followed by its value"""
    return (np.asarray([hash_value], dtype='<u8').tobytes()
            + np.asarray([value], dtype='<f8').tobytes())
