from enum import Enum

import mmh3

_MASK = 0xFFFFFFFFFFFFFFFF

# Positions 0..255
RING_SIZE = 256


class HashAlgorithm(Enum):
    """Hash functions available for placing servers and keys"""

    # SipHash-1-3 with zero keys reduced modulo 255 (position 255 unused)
    SIP13 = "sip13"
    # MurmurHash3 (64-bit) reduced modulo 256
    MURMUR3 = "murmur3"


_RING_SLOTS: dict[HashAlgorithm, int] = {
    HashAlgorithm.SIP13: 255,
    HashAlgorithm.MURMUR3: 256,
}


def _rotl(x: int, b: int) -> int:
    return ((x << b) | (x >> (64 - b))) & _MASK


def _sip_round(
    v0: int, v1: int, v2: int, v3: int
) -> tuple[int, int, int, int]:
    v0 = (v0 + v1) & _MASK
    v1 = _rotl(v1, 13) ^ v0
    v0 = _rotl(v0, 32)
    v2 = (v2 + v3) & _MASK
    v3 = _rotl(v3, 16) ^ v2
    v0 = (v0 + v3) & _MASK
    v3 = _rotl(v3, 21) ^ v0
    v2 = (v2 + v1) & _MASK
    v1 = _rotl(v1, 17) ^ v2
    v2 = _rotl(v2, 32)
    return v0, v1, v2, v3


def siphash13(data: bytes, k0: int = 0, k1: int = 0) -> int:
    """SipHash with 1 compression round and 3 finalization rounds.

    Returns the unsigned 64-bit digest of ``data`` under the 128-bit key
    ``(k0, k1)``.
    """
    v0 = k0 ^ 0x736F6D6570736575
    v1 = k1 ^ 0x646F72616E646F6D
    v2 = k0 ^ 0x6C7967656E657261
    v3 = k1 ^ 0x7465646279746573

    length = len(data)
    tail_start = length - (length % 8)

    for offset in range(0, tail_start, 8):
        m = int.from_bytes(data[offset : offset + 8], "little")
        v3 ^= m
        v0, v1, v2, v3 = _sip_round(v0, v1, v2, v3)
        v0 ^= m

    # Last block: remaining bytes plus the message length in the top byte
    b = ((length & 0xFF) << 56) | int.from_bytes(data[tail_start:], "little")
    v3 ^= b
    v0, v1, v2, v3 = _sip_round(v0, v1, v2, v3)
    v0 ^= b

    v2 ^= 0xFF
    for _ in range(3):
        v0, v1, v2, v3 = _sip_round(v0, v1, v2, v3)

    return v0 ^ v1 ^ v2 ^ v3


def ring_slots(algorithm: HashAlgorithm = HashAlgorithm.SIP13) -> int:
    """Number of distinct positions the algorithm can produce"""
    return _RING_SLOTS[algorithm]


def ring_hash(key: str, algorithm: HashAlgorithm = HashAlgorithm.SIP13) -> int:
    """Hash a key to a position on the ring (0..255)"""
    if algorithm is HashAlgorithm.SIP13:
        # 0xFF terminator keeps string hashing prefix-free
        digest = siphash13(key.encode("utf-8") + b"\xff")
    else:
        digest = mmh3.hash64(key, signed=False)[0]
    return digest % _RING_SLOTS[algorithm]
