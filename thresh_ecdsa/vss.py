"""Feldman verifiable secret sharing over secp256k1."""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import reduce
from typing import List, Sequence, Tuple

from .curve import Point, Scalar


class VssError(Exception):
    """Invalid sharing parameters or a share that does not match its commitments."""


@dataclass(frozen=True)
class ShamirParameters:
    threshold: int
    share_count: int


@dataclass(frozen=True)
class VerifiableSS:
    """Public commitments G*a_j to the coefficients of a sharing polynomial."""

    parameters: ShamirParameters
    commitments: Tuple[Point, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "commitments", tuple(self.commitments))

    @classmethod
    def share(
        cls, threshold: int, share_count: int, secret: Scalar
    ) -> Tuple["VerifiableSS", List[Scalar]]:
        """Split `secret` into `share_count` shares, any threshold + 1 of which recover it."""
        if threshold < 0 or threshold >= share_count:
            raise VssError("threshold must be in range [0; share_count)")
        coefficients = [Scalar(secret)] + [Scalar.random() for _ in range(threshold)]
        shares = [_evaluate(coefficients, index) for index in range(1, share_count + 1)]
        g = Point.generator()
        commitments = tuple(g * coefficient for coefficient in coefficients)
        return cls(ShamirParameters(threshold, share_count), commitments), shares

    def get_point_commitment(self, index: int) -> Point:
        """Commitment G*f(index) computed from the coefficient commitments."""
        x = Scalar(index)
        return reduce(lambda acc, c: acc * x + c, reversed(self.commitments), Point())

    def validate_share(self, share: Scalar, index: int) -> None:
        """Check share f(index) against the commitments; index counts from 1."""
        if Point.generator() * share != self.get_point_commitment(index):
            raise VssError("share does not match the commitments")

    @staticmethod
    def map_share_to_new_params(params: ShamirParameters, index: int, s: Sequence[int]) -> Scalar:
        """Lagrange coefficient at zero for party `index` within the signer set `s` (0-based)."""
        if len(s) <= params.threshold:
            raise VssError("not enough parties to interpolate")
        if any(i < 0 or i >= params.share_count for i in [index, *s]):
            raise VssError("party index out of range")
        xi = Scalar(index + 1)
        others = [Scalar(j + 1) for j in s if j != index]
        numerator = reduce(lambda acc, xj: acc * xj, others, Scalar(1))
        denominator = reduce(lambda acc, xj: acc * (xj - xi), others, Scalar(1))
        return numerator * denominator.invert()

    def reconstruct(self, indices: Sequence[int], shares: Sequence[Scalar]) -> Scalar:
        """Recover the secret from shares of the 0-based parties in `indices`."""
        if len(indices) != len(shares):
            raise VssError("indices and shares differ in length")
        if len(shares) <= self.parameters.threshold:
            raise VssError("not enough shares to reconstruct")
        points = [Scalar(i + 1) for i in indices]
        secret = Scalar.zero()
        for xi, share in zip(points, shares):
            others = [xj for xj in points if xj != xi]
            numerator = reduce(lambda acc, xj: acc * xj, others, Scalar(1))
            denominator = reduce(lambda acc, xj: acc * (xj - xi), others, Scalar(1))
            secret = secret + share * numerator * denominator.invert()
        return secret


def _evaluate(coefficients: Sequence[Scalar], index: int) -> Scalar:
    x = Scalar(index)
    return reduce(lambda acc, c: acc * x + c, reversed(coefficients), Scalar.zero())