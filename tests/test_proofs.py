import hashlib
import math

import pytest

from thresh_ecdsa.curve import Point, Scalar
from thresh_ecdsa.paillier import EncryptionKey, keypair, sample_below
from thresh_ecdsa.proofs import (
    CompositeDLogProof,
    DLogProof,
    DLogStatement,
    HomoElGamalProof,
    HomoElGamalStatement,
    HomoElGamalWitness,
    NiCorrectKeyProof,
    PedersenProof,
    ProofError,
    hash_commitment,
)


@pytest.fixture(scope="module")
def paillier_keys():
    return keypair(512)


def test_hash_commitment_of_zeros_is_empty_digest():
    assert hash_commitment(0, 0) == int.from_bytes(hashlib.sha256(b"").digest(), "big")


def test_hash_commitment_depends_on_blinding():
    assert hash_commitment(12345, 1) != hash_commitment(12345, 2)
    assert hash_commitment(12345, 7) == hash_commitment(12345, 7)


def test_dlog_proof_roundtrip():
    secret = Scalar.random()
    proof = DLogProof.prove(secret)
    assert proof.pk == Point.generator() * secret
    proof.verify()


def test_dlog_proof_tampered_fails():
    proof = DLogProof.prove(Scalar.random())
    bad = DLogProof(proof.pk, proof.pk_t_rand_commitment, proof.challenge_response + 1)
    with pytest.raises(ProofError):
        bad.verify()


def test_pedersen_commitment_value():
    m, r = Scalar.random(), Scalar.random()
    proof = PedersenProof.prove(m, r)
    assert proof.com == Point.generator() * m + Point.base_point2() * r
    proof.verify()


def test_pedersen_wrong_commitment_fails():
    proof = PedersenProof.prove(Scalar.random(), Scalar.random())
    bad = PedersenProof(
        proof.e, proof.a1, proof.a2, proof.com + Point.generator(), proof.z1, proof.z2
    )
    with pytest.raises(ProofError):
        bad.verify()


def _elgamal_statement(x, r):
    g = Point.generator() * Scalar.random()
    h = Point.base_point2()
    y = Point.generator()
    return HomoElGamalStatement(g=g, h=h, y=y, d=h * x + y * r, e=g * r)


def test_homo_elgamal_roundtrip():
    x, r = Scalar.random(), Scalar.random()
    statement = _elgamal_statement(x, r)
    proof = HomoElGamalProof.prove(HomoElGamalWitness(x=x, r=r), statement)
    proof.verify(statement)
    assert statement.g * proof.z2 == proof.a3 + statement.e * HomoElGamalProof._challenge_for(
        proof.t, proof.a3, statement
    )


def test_homo_elgamal_wrong_statement_fails():
    x, r = Scalar.random(), Scalar.random()
    statement = _elgamal_statement(x, r)
    proof = HomoElGamalProof.prove(HomoElGamalWitness(x=x, r=r), statement)
    other = HomoElGamalStatement(
        statement.g, statement.h, statement.y, statement.d, statement.e + Point.generator()
    )
    with pytest.raises(ProofError):
        proof.verify(other)


def _composite_setup(paillier_keys):
    ek, dk = paillier_keys
    n = ek.n
    phi = (dk.p - 1) * (dk.q - 1)
    h1 = sample_below(n - 2) + 2
    while True:
        xhi = sample_below(phi)
        if math.gcd(xhi, phi) == 1:
            break
    h2 = pow(h1, xhi, n)
    return DLogStatement(n=n, g=h1, ni=h2), phi - xhi


def test_composite_dlog_roundtrip(paillier_keys):
    statement, secret = _composite_setup(paillier_keys)
    proof = CompositeDLogProof.prove(statement, secret)
    proof.verify(statement)
    assert pow(statement.g, secret, statement.n) * statement.ni % statement.n == 1


def test_composite_dlog_wrong_secret_fails(paillier_keys):
    statement, secret = _composite_setup(paillier_keys)
    proof = CompositeDLogProof.prove(statement, secret + 1)
    with pytest.raises(ProofError):
        proof.verify(statement)


def test_correct_key_proof_roundtrip(paillier_keys):
    ek, dk = paillier_keys
    proof = NiCorrectKeyProof.proof(dk)
    assert len(proof.sigma_vec) == 11
    proof.verify(ek)


def test_correct_key_proof_wrong_key_fails(paillier_keys):
    _, dk = paillier_keys
    other_ek, _ = keypair(512)
    proof = NiCorrectKeyProof.proof(dk)
    with pytest.raises(ProofError):
        proof.verify(other_ek)


def test_correct_key_proof_wrong_salt_fails(paillier_keys):
    ek, dk = paillier_keys
    proof = NiCorrectKeyProof.proof(dk, b"one salt")
    with pytest.raises(ProofError):
        proof.verify(ek, b"another salt")


def test_correct_key_proof_rejects_small_factor(paillier_keys):
    ek, dk = paillier_keys
    proof = NiCorrectKeyProof.proof(dk)
    with pytest.raises(ProofError):
        proof.verify(EncryptionKey(ek.n * 3))