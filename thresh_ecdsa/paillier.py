"""Paillier encryption with generator n + 1, plus prime generation and sampling helpers."""

from __future__ import annotations

import math
import secrets
from dataclasses import dataclass
from functools import cached_property
from typing import Tuple


def _small_primes(limit: int) -> Tuple[int, ...]:
    sieve = bytearray([1]) * (limit + 1)
    sieve[0:2] = b"\x00\x00"
    for i in range(2, math.isqrt(limit) + 1):
        if sieve[i]:
            sieve[i * i :: i] = bytearray(len(sieve[i * i :: i]))
    return tuple(i for i, flag in enumerate(sieve) if flag)


_SMALL_PRIMES = _small_primes(2000)
_MILLER_RABIN_ROUNDS = 40


def _is_probable_prime(candidate: int) -> bool:
    if candidate < 2:
        return False
    for prime in _SMALL_PRIMES:
        if candidate % prime == 0:
            return candidate == prime
    d = candidate - 1
    s = 0
    while d % 2 == 0:
        d //= 2
        s += 1
    for _ in range(_MILLER_RABIN_ROUNDS):
        a = 2 + secrets.randbelow(candidate - 3)
        x = pow(a, d, candidate)
        if x in (1, candidate - 1):
            continue
        for _ in range(s - 1):
            x = x * x % candidate
            if x == candidate - 1:
                break
        else:
            return False
    return True


def sample_below(bound: int) -> int:
    """A uniformly random integer in [0, bound)."""
    if bound <= 0:
        raise ValueError("bound must be positive")
    return secrets.randbelow(bound)


def sample_bits(bits: int) -> int:
    """A uniformly random integer in [0, 2**bits)."""
    if bits < 0:
        raise ValueError("bit count must not be negative")
    return secrets.randbits(bits)


def generate_prime(bits: int) -> int:
    """A random prime of exactly `bits` bits whose two top bits are set."""
    if bits < 2:
        raise ValueError("a prime needs at least 2 bits")
    while True:
        candidate = secrets.randbits(bits) | (0b11 << (bits - 2)) | 1
        if _is_probable_prime(candidate):
            return candidate


def generate_safe_prime(bits: int) -> int:
    """A random prime p = 2q + 1 of exactly `bits` bits with q prime."""
    if bits < 3:
        raise ValueError("a safe prime needs at least 3 bits")
    while True:
        q = secrets.randbits(bits - 1) | (0b11 << (bits - 3)) | 1
        p = 2 * q + 1
        if _is_probable_prime(q) and _is_probable_prime(p):
            return p


@dataclass(frozen=True)
class EncryptionKey:
    """Paillier public key."""

    n: int

    def __post_init__(self):
        if self.n <= 1:
            raise ValueError("modulus must be greater than 1")

    @property
    def nn(self) -> int:
        return self.n * self.n


@dataclass(frozen=True)
class DecryptionKey:
    """Paillier private key, the two prime factors of the modulus."""

    p: int
    q: int

    def __post_init__(self):
        if self.p == self.q:
            raise ValueError("the two primes must differ")
        if self.p < 2 or self.q < 2:
            raise ValueError("primes must be at least 2")

    @property
    def n(self) -> int:
        return self.p * self.q

    def encryption_key(self) -> EncryptionKey:
        return EncryptionKey(self.n)

    @cached_property
    def _hp(self) -> int:
        return self._h(self.p)

    @cached_property
    def _hq(self) -> int:
        return self._h(self.q)

    @cached_property
    def _q_inv_p(self) -> int:
        return pow(self.q, -1, self.p)

    def _h(self, prime: int) -> int:
        square = prime * prime
        g = self.n + 1
        return pow(_l(pow(g, prime - 1, square), prime), -1, prime)

    def _decrypt(self, c: int) -> int:
        p, q = self.p, self.q
        mp = _l(pow(c, p - 1, p * p), p) * self._hp % p
        mq = _l(pow(c, q - 1, q * q), q) * self._hq % q
        return mq + q * ((mp - mq) * self._q_inv_p % p)


def _l(u: int, divisor: int) -> int:
    return (u - 1) // divisor


def keypair(bits: int = 2048) -> Tuple[EncryptionKey, DecryptionKey]:
    """A key pair whose modulus has exactly `bits` bits."""
    if bits < 4:
        raise ValueError("modulus needs at least 4 bits")
    half = bits // 2
    p = generate_prime(half)
    while True:
        q = generate_prime(bits - half)
        if q != p:
            break
    dk = DecryptionKey(p, q)
    return dk.encryption_key(), dk


def keypair_safe_primes(bits: int = 2048) -> Tuple[EncryptionKey, DecryptionKey]:
    """A key pair built from two safe primes; the modulus has exactly `bits` bits."""
    if bits < 6:
        raise ValueError("modulus needs at least 6 bits")
    half = bits // 2
    p = generate_safe_prime(half)
    while True:
        q = generate_safe_prime(bits - half)
        if q != p:
            break
    dk = DecryptionKey(p, q)
    return dk.encryption_key(), dk


def encrypt_with_randomness(ek: EncryptionKey, m: int, r: int) -> int:
    """Encrypt m with the given randomness r, a unit modulo n."""
    n, nn = ek.n, ek.nn
    if not 0 < r < n or math.gcd(r, n) != 1:
        raise ValueError("randomness must be a unit modulo n")
    return (1 + (m % n) * n) * pow(r, n, nn) % nn


def encrypt(ek: EncryptionKey, m: int) -> int:
    """Encrypt m with fresh randomness."""
    while True:
        r = sample_below(ek.n)
        if r > 0 and math.gcd(r, ek.n) == 1:
            return encrypt_with_randomness(ek, m, r)


def decrypt(dk: DecryptionKey, c: int) -> int:
    """Recover the plaintext, in [0, n), of ciphertext c."""
    return dk._decrypt(c)