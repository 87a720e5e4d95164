"""
String hashing used to place keys into storage buckets.
"""

FNV_OFFSET_BASIS = 2166136261
FNV_PRIME = 16777619
UINT32_MASK = 0xFFFFFFFF


def fnv1a_32(text: str) -> int:
    """
    Compute the 32-bit FNV-1a hash of a string's UTF-8 bytes.

    Stable across processes, unlike the builtin ``hash()``, which is
    salted per interpreter. Not suitable for anything security related.
    """
    value = FNV_OFFSET_BASIS
    for byte in text.encode('utf-8'):
        value ^= byte
        value = (value * FNV_PRIME) & UINT32_MASK
    return value
