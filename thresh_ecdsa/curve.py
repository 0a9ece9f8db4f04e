"""Arithmetic on the secp256k1 curve: scalars modulo the group order and curve points."""

from __future__ import annotations

import hashlib
import secrets
from functools import lru_cache
from typing import Optional, Tuple, Union

FIELD_PRIME = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEFFFFFC2F
CURVE_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
CURVE_B = 7
GENERATOR_X = 0x79BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798
GENERATOR_Y = 0x483ADA7726A3C4655DA4FBFC0E1108A8FD17B448A68554199C47D08FFB10D4B8

_Jacobian = Tuple[int, int, int]
_INFINITY: _Jacobian = (0, 1, 0)


class Scalar:
    """An element of the scalar field of secp256k1 (integers modulo the group order)."""

    __slots__ = ("_value",)

    def __init__(self, value: Union[int, "Scalar"] = 0):
        if isinstance(value, Scalar):
            value = value._value
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"cannot build a scalar from {type(value).__name__}")
        self._value = value % CURVE_ORDER

    @classmethod
    def random(cls) -> "Scalar":
        """A uniformly random non-zero scalar."""
        return cls(secrets.randbelow(CURVE_ORDER - 1) + 1)

    @classmethod
    def zero(cls) -> "Scalar":
        return cls(0)

    def invert(self) -> "Scalar":
        """Multiplicative inverse; raises ZeroDivisionError for zero."""
        if self._value == 0:
            raise ZeroDivisionError("zero scalar has no inverse")
        return Scalar(pow(self._value, -1, CURVE_ORDER))

    def to_int(self) -> int:
        return self._value

    def to_bytes(self) -> bytes:
        """Big-endian 32-byte encoding."""
        return self._value.to_bytes(32, "big")

    @staticmethod
    def _coerce(other) -> Optional[int]:
        if isinstance(other, Scalar):
            return other._value
        if isinstance(other, int) and not isinstance(other, bool):
            return other
        return None

    def __add__(self, other):
        value = self._coerce(other)
        if value is None:
            return NotImplemented
        return Scalar(self._value + value)

    __radd__ = __add__

    def __sub__(self, other):
        value = self._coerce(other)
        if value is None:
            return NotImplemented
        return Scalar(self._value - value)

    def __rsub__(self, other):
        value = self._coerce(other)
        if value is None:
            return NotImplemented
        return Scalar(value - self._value)

    def __mul__(self, other):
        value = self._coerce(other)
        if value is None:
            return NotImplemented
        return Scalar(self._value * value)

    __rmul__ = __mul__

    def __neg__(self) -> "Scalar":
        return Scalar(-self._value)

    def __int__(self) -> int:
        return self._value

    def __bool__(self) -> bool:
        return self._value != 0

    def __eq__(self, other) -> bool:
        if isinstance(other, Scalar):
            return self._value == other._value
        return NotImplemented

    def __hash__(self) -> int:
        return hash(("Scalar", self._value))

    def __repr__(self) -> str:
        return f"Scalar(0x{self._value:064x})"


def _is_on_curve(x: int, y: int) -> bool:
    p = FIELD_PRIME
    return 0 <= x < p and 0 <= y < p and (y * y - x * x * x - CURVE_B) % p == 0


def _jacobian_double(point: _Jacobian) -> _Jacobian:
    x1, y1, z1 = point
    if z1 == 0 or y1 == 0:
        return _INFINITY
    p = FIELD_PRIME
    yy = y1 * y1 % p
    s = 4 * x1 * yy % p
    m = 3 * x1 * x1 % p
    x3 = (m * m - 2 * s) % p
    y3 = (m * (s - x3) - 8 * yy * yy) % p
    z3 = 2 * y1 * z1 % p
    return (x3, y3, z3)


def _jacobian_add(first: _Jacobian, second: _Jacobian) -> _Jacobian:
    if first[2] == 0:
        return second
    if second[2] == 0:
        return first
    p = FIELD_PRIME
    x1, y1, z1 = first
    x2, y2, z2 = second
    z1z1 = z1 * z1 % p
    z2z2 = z2 * z2 % p
    u1 = x1 * z2z2 % p
    u2 = x2 * z1z1 % p
    s1 = y1 * z2 * z2z2 % p
    s2 = y2 * z1 * z1z1 % p
    if u1 == u2:
        if s1 != s2:
            return _INFINITY
        return _jacobian_double(first)
    h = (u2 - u1) % p
    r = (s2 - s1) % p
    hh = h * h % p
    hhh = h * hh % p
    v = u1 * hh % p
    x3 = (r * r - hhh - 2 * v) % p
    y3 = (r * (v - x3) - s1 * hhh) % p
    z3 = h * z1 * z2 % p
    return (x3, y3, z3)


class Point:
    """A point of secp256k1 in affine form; Point() is the point at infinity."""

    __slots__ = ("_coords",)

    def __init__(self, x: Optional[int] = None, y: Optional[int] = None):
        if x is None and y is None:
            self._coords: Optional[Tuple[int, int]] = None
            return
        if x is None or y is None:
            raise ValueError("both coordinates are required")
        if not _is_on_curve(x, y):
            raise ValueError("point is not on secp256k1")
        self._coords = (x, y)

    @classmethod
    def _from_jacobian(cls, point: _Jacobian) -> "Point":
        x, y, z = point
        if z == 0:
            return cls()
        p = FIELD_PRIME
        z_inv = pow(z, -1, p)
        z_inv2 = z_inv * z_inv % p
        result = cls.__new__(cls)
        result._coords = (x * z_inv2 % p, y * z_inv2 * z_inv % p)
        return result

    def _to_jacobian(self) -> _Jacobian:
        if self._coords is None:
            return _INFINITY
        return (self._coords[0], self._coords[1], 1)

    @classmethod
    def generator(cls) -> "Point":
        return _generator()

    @classmethod
    def base_point2(cls) -> "Point":
        """A second generator whose discrete log with respect to the first is unknown."""
        return _base_point2()

    def x_coord(self) -> Optional[int]:
        return None if self._coords is None else self._coords[0]

    def y_coord(self) -> Optional[int]:
        return None if self._coords is None else self._coords[1]

    def is_zero(self) -> bool:
        return self._coords is None

    def to_bytes(self, compressed: bool = True) -> bytes:
        """SEC1 encoding: 33 bytes compressed or 65 bytes uncompressed."""
        if self._coords is None:
            raise ValueError("the point at infinity has no encoding")
        x, y = self._coords
        if compressed:
            return bytes([2 + (y & 1)]) + x.to_bytes(32, "big")
        return b"\x04" + x.to_bytes(32, "big") + y.to_bytes(32, "big")

    @classmethod
    def from_bytes(cls, data: bytes) -> "Point":
        """Parse a SEC1 encoded point, compressed or not."""
        data = bytes(data)
        if len(data) == 33 and data[0] in (2, 3):
            x = int.from_bytes(data[1:], "big")
            if x >= FIELD_PRIME:
                raise ValueError("x coordinate out of range")
            y = _lift_x(x)
            if y is None:
                raise ValueError("no point with this x coordinate")
            if (y & 1) != (data[0] & 1):
                y = FIELD_PRIME - y
            return cls(x, y)
        if len(data) == 65 and data[0] == 4:
            return cls(int.from_bytes(data[1:33], "big"), int.from_bytes(data[33:], "big"))
        raise ValueError("invalid point encoding")

    def __add__(self, other):
        if not isinstance(other, Point):
            return NotImplemented
        return Point._from_jacobian(_jacobian_add(self._to_jacobian(), other._to_jacobian()))

    def __neg__(self) -> "Point":
        if self._coords is None:
            return Point()
        x, y = self._coords
        return Point(x, (-y) % FIELD_PRIME)

    def __sub__(self, other):
        if not isinstance(other, Point):
            return NotImplemented
        return self + (-other)

    def __mul__(self, other):
        if isinstance(other, Scalar):
            k = other.to_int()
        elif isinstance(other, int) and not isinstance(other, bool):
            k = other % CURVE_ORDER
        else:
            return NotImplemented
        if k == 0 or self._coords is None:
            return Point()
        base = self._to_jacobian()
        acc = _INFINITY
        for bit in bin(k)[2:]:
            acc = _jacobian_double(acc)
            if bit == "1":
                acc = _jacobian_add(acc, base)
        return Point._from_jacobian(acc)

    __rmul__ = __mul__

    def __eq__(self, other) -> bool:
        if isinstance(other, Point):
            return self._coords == other._coords
        return NotImplemented

    def __hash__(self) -> int:
        return hash(("Point", self._coords))

    def __repr__(self) -> str:
        if self._coords is None:
            return "Point(infinity)"
        return f"Point(0x{self._coords[0]:064x}, 0x{self._coords[1]:064x})"


def _lift_x(x: int) -> Optional[int]:
    p = FIELD_PRIME
    rhs = (x * x * x + CURVE_B) % p
    y = pow(rhs, (p + 1) // 4, p)
    if y * y % p != rhs:
        return None
    return y


@lru_cache(maxsize=None)
def _generator() -> Point:
    return Point(GENERATOR_X, GENERATOR_Y)


@lru_cache(maxsize=None)
def _base_point2() -> Point:
    seed = _generator().to_bytes(True)
    x = int.from_bytes(hashlib.sha256(seed).digest(), "big") % FIELD_PRIME
    while True:
        y = _lift_x(x)
        if y is not None:
            if y & 1:
                y = FIELD_PRIME - y
            return Point(x, y)
        x = (x + 1) % FIELD_PRIME