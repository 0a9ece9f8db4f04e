"""Commitments and zero-knowledge proofs used by the threshold ECDSA protocol."""

from __future__ import annotations

import hashlib
import math
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple, Union

from .curve import Point, Scalar
from .paillier import DecryptionKey, EncryptionKey, sample_below

SALT_STRING = b"Broadcasting correct key proof of knowledge"
CORRECT_KEY_ROUNDS = 11
SMALL_PRIME_BOUND = 6370
COMPOSITE_CHALLENGE_BITS = 128
COMPOSITE_SECURITY_BITS = 128


class ProofError(Exception):
    """A zero-knowledge proof or commitment failed to verify."""


def _int_bytes(value: int) -> bytes:
    if value < 0:
        raise ValueError("only non-negative integers can be encoded")
    return value.to_bytes((value.bit_length() + 7) // 8, "big")


def _encode(item: Union[Point, Scalar, int, bytes]) -> bytes:
    if isinstance(item, Point):
        data = b"\x00" if item.is_zero() else item.to_bytes(True)
    elif isinstance(item, Scalar):
        data = item.to_bytes()
    elif isinstance(item, bytes):
        data = item
    elif isinstance(item, int):
        data = _int_bytes(item)
    else:
        raise TypeError(f"cannot hash {type(item).__name__}")
    return len(data).to_bytes(4, "big") + data


def _digest(*items) -> int:
    hasher = hashlib.sha256()
    for item in items:
        hasher.update(_encode(item))
    return int.from_bytes(hasher.digest(), "big")


def _challenge(*items) -> Scalar:
    return Scalar(_digest(*items))


def hash_commitment(message: int, blind_factor: int) -> int:
    """SHA-256 commitment to `message` under the randomness `blind_factor`."""
    digest = hashlib.sha256(_int_bytes(message) + _int_bytes(blind_factor)).digest()
    return int.from_bytes(digest, "big")


@dataclass(frozen=True)
class DLogProof:
    """Schnorr proof of knowledge of the discrete log of `pk` to the generator."""

    pk: Point
    pk_t_rand_commitment: Point
    challenge_response: Scalar

    @classmethod
    def prove(cls, secret: Scalar) -> "DLogProof":
        g = Point.generator()
        nonce = Scalar.random()
        commitment = g * nonce
        pk = g * secret
        challenge = _challenge(commitment, g, pk)
        return cls(pk, commitment, nonce - challenge * secret)

    def verify(self) -> None:
        g = Point.generator()
        challenge = _challenge(self.pk_t_rand_commitment, g, self.pk)
        if g * self.challenge_response + self.pk * challenge != self.pk_t_rand_commitment:
            raise ProofError("invalid discrete log proof")


@dataclass(frozen=True)
class PedersenProof:
    """Proof that `com` is a well formed Pedersen commitment g*m + h*r."""

    e: Scalar
    a1: Point
    a2: Point
    com: Point
    z1: Scalar
    z2: Scalar

    @classmethod
    def prove(cls, m: Scalar, r: Scalar) -> "PedersenProof":
        g = Point.generator()
        h = Point.base_point2()
        s1 = Scalar.random()
        s2 = Scalar.random()
        a1 = g * s1
        a2 = h * s2
        com = g * m + h * r
        e = _challenge(g, h, com, a1, a2)
        return cls(e, a1, a2, com, s1 + e * m, s2 + e * r)

    def verify(self) -> None:
        g = Point.generator()
        h = Point.base_point2()
        e = _challenge(g, h, self.com, self.a1, self.a2)
        if e != self.e:
            raise ProofError("Pedersen proof challenge mismatch")
        if g * self.z1 + h * self.z2 != self.a1 + self.a2 + self.com * e:
            raise ProofError("invalid Pedersen proof")


@dataclass(frozen=True)
class HomoElGamalStatement:
    """Statement D = H*x + Y*r and E = G*r."""

    g: Point
    h: Point
    y: Point
    d: Point
    e: Point


@dataclass(frozen=True)
class HomoElGamalWitness:
    x: Scalar
    r: Scalar


@dataclass(frozen=True)
class HomoElGamalProof:
    """Proof of correct homomorphic ElGamal encryption."""

    t: Point
    a3: Point
    z1: Scalar
    z2: Scalar

    @classmethod
    def prove(
        cls, witness: HomoElGamalWitness, statement: HomoElGamalStatement
    ) -> "HomoElGamalProof":
        s1 = Scalar.random()
        s2 = Scalar.random()
        a1 = statement.h * s1
        a2 = statement.y * s2
        a3 = statement.g * s2
        t = a1 + a2
        e = cls._challenge_for(t, a3, statement)
        return cls(t, a3, s1 + witness.x * e, s2 + witness.r * e)

    @staticmethod
    def _challenge_for(t: Point, a3: Point, statement: HomoElGamalStatement) -> Scalar:
        return _challenge(
            t, a3, statement.g, statement.h, statement.y, statement.d, statement.e
        )

    def verify(self, statement: HomoElGamalStatement) -> None:
        e = self._challenge_for(self.t, self.a3, statement)
        first = statement.h * self.z1 + statement.y * self.z2 == self.t + statement.d * e
        second = statement.g * self.z2 == self.a3 + statement.e * e
        if not (first and second):
            raise ProofError("invalid homomorphic ElGamal proof")


@dataclass(frozen=True)
class DLogStatement:
    """Statement ni = g^(-x) modulo the composite n."""

    n: int
    g: int
    ni: int


@dataclass(frozen=True)
class CompositeDLogProof:
    """Proof of knowledge of a discrete log modulo a composite number."""

    x: int
    y: int

    @staticmethod
    def _challenge_for(x: int, statement: DLogStatement) -> int:
        digest = _digest(x, statement.g, statement.n, statement.ni)
        return digest % (1 << COMPOSITE_CHALLENGE_BITS)

    @staticmethod
    def _nonce_bound(statement: DLogStatement) -> int:
        bits = statement.n.bit_length() + COMPOSITE_CHALLENGE_BITS + COMPOSITE_SECURITY_BITS
        return 1 << bits

    @classmethod
    def prove(cls, statement: DLogStatement, secret: int) -> "CompositeDLogProof":
        r = sample_below(cls._nonce_bound(statement))
        x = pow(statement.g, r, statement.n)
        e = cls._challenge_for(x, statement)
        return cls(x, r + e * secret)

    def verify(self, statement: DLogStatement) -> None:
        n = statement.n
        if n <= 1:
            raise ProofError("modulus too small")
        if not (1 < statement.g < n and 1 < statement.ni < n):
            raise ProofError("statement elements out of range")
        if math.gcd(statement.g, n) != 1 or math.gcd(statement.ni, n) != 1:
            raise ProofError("statement elements are not units")
        if not 0 < self.x < n or self.y < 0:
            raise ProofError("proof values out of range")
        e = self._challenge_for(self.x, statement)
        if pow(statement.g, self.y, n) * pow(statement.ni, e, n) % n != self.x:
            raise ProofError("invalid composite discrete log proof")


@lru_cache(maxsize=None)
def _small_primes_product() -> int:
    product = 1
    for candidate in range(2, SMALL_PRIME_BOUND):
        if all(candidate % d for d in range(2, math.isqrt(candidate) + 1)):
            product *= candidate
    return product


def _rho_vec(n: int, salt: bytes) -> Tuple[int, ...]:
    needed = (n.bit_length() + 7) // 8
    n_bytes = _int_bytes(n)
    values = []
    for index in range(CORRECT_KEY_ROUNDS):
        stream = b""
        counter = 0
        while len(stream) < needed:
            stream += hashlib.sha256(
                salt + n_bytes + index.to_bytes(4, "big") + counter.to_bytes(4, "big")
            ).digest()
            counter += 1
        values.append(int.from_bytes(stream[:needed], "big") % n)
    return tuple(values)


@dataclass(frozen=True)
class NiCorrectKeyProof:
    """Non-interactive proof that a Paillier modulus n satisfies gcd(n, phi(n)) = 1."""

    sigma_vec: Tuple[int, ...]

    @classmethod
    def proof(cls, dk: DecryptionKey, salt: Optional[bytes] = None) -> "NiCorrectKeyProof":
        salt = SALT_STRING if salt is None else salt
        n = dk.n
        phi = (dk.p - 1) * (dk.q - 1)
        n_inv = pow(n, -1, phi)
        return cls(tuple(pow(rho, n_inv, n) for rho in _rho_vec(n, salt)))

    def verify(self, ek: EncryptionKey, salt: Optional[bytes] = None) -> None:
        salt = SALT_STRING if salt is None else salt
        n = ek.n
        if math.gcd(n, _small_primes_product()) != 1:
            raise ProofError("modulus has a small prime factor")
        if len(self.sigma_vec) != CORRECT_KEY_ROUNDS:
            raise ProofError("wrong number of proof elements")
        for rho, sigma in zip(_rho_vec(n, salt), self.sigma_vec):
            if not 0 < sigma < n or math.gcd(rho, n) != 1:
                raise ProofError("proof element out of range")
            if pow(sigma, n, n) != rho:
                raise ProofError("invalid correct key proof")