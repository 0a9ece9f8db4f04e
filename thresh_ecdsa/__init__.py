"""Threshold ECDSA on secp256k1: distributed key generation and multi-party signing."""

__version__ = "0.8.1"

__all__ = [
    "curve",
    "paillier",
    "proofs",
    "vss",
    "party",
    "store",
    "keygen_rounds",
    "keygen",
]