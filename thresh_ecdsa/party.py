"""Party-side computations of threshold ECDSA key generation and signing."""

from __future__ import annotations

from dataclasses import dataclass
from functools import reduce
from typing import Callable, List, Optional, Sequence, Tuple

from .curve import CURVE_ORDER, Point, Scalar
from .paillier import (
    DecryptionKey,
    EncryptionKey,
    decrypt,
    keypair,
    keypair_safe_primes,
    sample_below,
    sample_bits,
)
from .proofs import (
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
from .vss import VerifiableSS, VssError

SECURITY = 256
PAILLIER_MIN_BIT_LENGTH = 2047
PAILLIER_MAX_BIT_LENGTH = 2048


class ProtocolError(Exception):
    """A protocol check failed; `bad_actors` lists the offending positions."""

    def __init__(self, error_type: str, bad_actors: Sequence[int]):
        super().__init__(f"{error_type}: bad actors {list(bad_actors)}")
        self.error_type = error_type
        self.bad_actors = list(bad_actors)


class InvalidSignature(Exception):
    """The signature does not verify against the public key."""


class Phase5BadSum(Exception):
    """The R' values do not sum to the generator."""


class Phase6Error(Exception):
    """The S values do not sum to the public key."""


@dataclass(frozen=True)
class Parameters:
    threshold: int
    share_count: int


def _passes(check: Callable[[], None]) -> bool:
    try:
        check()
    except (ProofError, VssError, ValueError):
        return False
    return True


def _point_int(point: Point) -> int:
    return int.from_bytes(point.to_bytes(True), "big")


def _sum_points(points: Sequence[Point]) -> Point:
    return reduce(lambda acc, p: acc + p, points, Point())


def _sum_scalars(values, start: Optional[Scalar] = None) -> Scalar:
    return reduce(lambda acc, v: acc + v, values, start if start is not None else Scalar.zero())


def _check_len(items: Sequence, expected: int, what: str) -> None:
    if len(items) != expected:
        raise ValueError(f"expected {expected} {what}, got {len(items)}")


def generate_h1_h2_n_tilde() -> Tuple[int, int, int, int, int]:
    """Return (N_tilde, h1, h2, xhi, xhi_inv) for the range-proof setup."""
    ek_tilde, dk_tilde = keypair()
    phi = (dk_tilde.p - 1) * (dk_tilde.q - 1)
    h1 = sample_below(ek_tilde.n)
    while True:
        xhi = sample_below(phi)
        try:
            xhi_inv = pow(xhi, -1, phi)
        except ValueError:
            continue
        break
    h2 = pow(h1, xhi, ek_tilde.n)
    return ek_tilde.n, h1, h2, phi - xhi, phi - xhi_inv


def _hex(value: int) -> str:
    return format(value, "x")


@dataclass
class KeyGenBroadcastMessage1:
    e: EncryptionKey
    dlog_statement: DLogStatement
    com: int
    correct_key_proof: NiCorrectKeyProof
    composite_dlog_proof_base_h1: CompositeDLogProof
    composite_dlog_proof_base_h2: CompositeDLogProof

    def to_dict(self) -> dict:
        st = self.dlog_statement
        return {
            "e": _hex(self.e.n),
            "dlog_statement": {"N": _hex(st.n), "g": _hex(st.g), "ni": _hex(st.ni)},
            "com": _hex(self.com),
            "correct_key_proof": [_hex(v) for v in self.correct_key_proof.sigma_vec],
            "composite_dlog_proof_base_h1": {
                "x": _hex(self.composite_dlog_proof_base_h1.x),
                "y": _hex(self.composite_dlog_proof_base_h1.y),
            },
            "composite_dlog_proof_base_h2": {
                "x": _hex(self.composite_dlog_proof_base_h2.x),
                "y": _hex(self.composite_dlog_proof_base_h2.y),
            },
        }

    @classmethod
    def from_dict(cls, data: dict) -> "KeyGenBroadcastMessage1":
        st = data["dlog_statement"]
        p1 = data["composite_dlog_proof_base_h1"]
        p2 = data["composite_dlog_proof_base_h2"]
        return cls(
            e=EncryptionKey(int(data["e"], 16)),
            dlog_statement=DLogStatement(int(st["N"], 16), int(st["g"], 16), int(st["ni"], 16)),
            com=int(data["com"], 16),
            correct_key_proof=NiCorrectKeyProof(
                tuple(int(v, 16) for v in data["correct_key_proof"])
            ),
            composite_dlog_proof_base_h1=CompositeDLogProof(int(p1["x"], 16), int(p1["y"], 16)),
            composite_dlog_proof_base_h2=CompositeDLogProof(int(p2["x"], 16), int(p2["y"], 16)),
        )


@dataclass
class KeyGenDecommitMessage1:
    blind_factor: int
    y_i: Point

    def to_dict(self) -> dict:
        return {"blind_factor": _hex(self.blind_factor), "y_i": self.y_i.to_bytes(True).hex()}

    @classmethod
    def from_dict(cls, data: dict) -> "KeyGenDecommitMessage1":
        return cls(int(data["blind_factor"], 16), Point.from_bytes(bytes.fromhex(data["y_i"])))


@dataclass
class SharedKeys:
    y: Point
    x_i: Scalar


@dataclass
class Keys:
    u_i: Scalar
    y_i: Point
    dk: DecryptionKey
    ek: EncryptionKey
    party_index: int
    n_tilde: int
    h1: int
    h2: int
    xhi: int
    xhi_inv: int

    @classmethod
    def _build(cls, u: Scalar, index: int, pair) -> "Keys":
        ek, dk = pair
        n_tilde, h1, h2, xhi, xhi_inv = generate_h1_h2_n_tilde()
        return cls(u, Point.generator() * u, dk, ek, index, n_tilde, h1, h2, xhi, xhi_inv)

    @classmethod
    def create(cls, index: int) -> "Keys":
        return cls._build(Scalar.random(), index, keypair())

    @classmethod
    def create_safe_prime(cls, index: int) -> "Keys":
        return cls._build(Scalar.random(), index, keypair_safe_primes())

    @classmethod
    def create_from(cls, u: Scalar, index: int) -> "Keys":
        return cls._build(u, index, keypair())

    def phase1_broadcast_phase3_proof_of_correct_key_proof_of_correct_h1h2(
        self,
    ) -> Tuple[KeyGenBroadcastMessage1, KeyGenDecommitMessage1]:
        blind_factor = sample_bits(SECURITY)
        correct_key_proof = NiCorrectKeyProof.proof(self.dk, None)
        base_h1 = DLogStatement(self.n_tilde, self.h1, self.h2)
        base_h2 = DLogStatement(self.n_tilde, self.h2, self.h1)
        com = hash_commitment(_point_int(self.y_i), blind_factor)
        bcm1 = KeyGenBroadcastMessage1(
            e=self.ek,
            dlog_statement=base_h1,
            com=com,
            correct_key_proof=correct_key_proof,
            composite_dlog_proof_base_h1=CompositeDLogProof.prove(base_h1, self.xhi),
            composite_dlog_proof_base_h2=CompositeDLogProof.prove(base_h2, self.xhi_inv),
        )
        return bcm1, KeyGenDecommitMessage1(blind_factor, self.y_i)

    def phase1_verify_com_phase3_verify_correct_key_verify_dlog_phase2_distribute(
        self,
        params: Parameters,
        decom_vec: Sequence[KeyGenDecommitMessage1],
        bc1_vec: Sequence[KeyGenBroadcastMessage1],
    ) -> Tuple[VerifiableSS, List[Scalar], int]:
        _check_len(decom_vec, params.share_count, "decommitments")
        _check_len(bc1_vec, params.share_count, "commitments")
        bad_actors = []
        for i, (bc1, decom) in enumerate(zip(bc1_vec, decom_vec)):
            st = bc1.dlog_statement
            base_h2 = DLogStatement(st.n, st.ni, st.g)
            ok = (
                hash_commitment(_point_int(decom.y_i), decom.blind_factor) == bc1.com
                and _passes(lambda: bc1.correct_key_proof.verify(bc1.e, None))
                and PAILLIER_MIN_BIT_LENGTH <= bc1.e.n.bit_length() <= PAILLIER_MAX_BIT_LENGTH
                and PAILLIER_MIN_BIT_LENGTH <= st.n.bit_length() <= PAILLIER_MAX_BIT_LENGTH
                and _passes(lambda: bc1.composite_dlog_proof_base_h1.verify(st))
                and _passes(lambda: bc1.composite_dlog_proof_base_h2.verify(base_h2))
            )
            if not ok:
                bad_actors.append(i)
        vss_scheme, secret_shares = VerifiableSS.share(
            params.threshold, params.share_count, self.u_i
        )
        if bad_actors:
            raise ProtocolError("invalid key", bad_actors)
        return vss_scheme, list(secret_shares), self.party_index

    def phase2_verify_vss_construct_keypair_phase3_pok_dlog(
        self,
        params: Parameters,
        y_vec: Sequence[Point],
        secret_shares_vec: Sequence[Scalar],
        vss_scheme_vec: Sequence[VerifiableSS],
        index: int,
    ) -> Tuple[SharedKeys, DLogProof]:
        _check_len(y_vec, params.share_count, "public shares")
        _check_len(secret_shares_vec, params.share_count, "secret shares")
        _check_len(vss_scheme_vec, params.share_count, "vss schemes")
        bad_actors = [
            i
            for i, (y, share, vss) in enumerate(zip(y_vec, secret_shares_vec, vss_scheme_vec))
            if not (
                _passes(lambda: vss.validate_share(share, index)) and vss.commitments[0] == y
            )
        ]
        if bad_actors:
            raise ProtocolError("invalid vss", bad_actors)
        y = _sum_points(y_vec)
        x_i = _sum_scalars(secret_shares_vec)
        return SharedKeys(y, x_i), DLogProof.prove(x_i)

    @staticmethod
    def get_commitments_to_xi(vss_scheme_vec: Sequence[VerifiableSS]) -> List[Point]:
        head, *tail = vss_scheme_vec
        coefficients = list(head.commitments)
        for vss in tail:
            coefficients = [a + b for a, b in zip(coefficients, vss.commitments)]
        global_vss = VerifiableSS(head.parameters, tuple(coefficients))
        return [global_vss.get_point_commitment(i) for i in range(1, len(vss_scheme_vec) + 1)]

    @staticmethod
    def update_commitments_to_xi(
        comm: Point, vss_scheme: VerifiableSS, index: int, s: Sequence[int]
    ) -> Point:
        li = VerifiableSS.map_share_to_new_params(vss_scheme.parameters, index, s)
        return comm * li

    @staticmethod
    def verify_dlog_proofs_check_against_vss(
        params: Parameters,
        dlog_proofs_vec: Sequence[DLogProof],
        y_vec: Sequence[Point],
        vss_vec: Sequence[VerifiableSS],
    ) -> None:
        _check_len(y_vec, params.share_count, "public shares")
        _check_len(dlog_proofs_vec, params.share_count, "dlog proofs")
        xi_commitments = Keys.get_commitments_to_xi(vss_vec)
        bad_actors = [
            i
            for i, proof in enumerate(dlog_proofs_vec)
            if not (_passes(proof.verify) and xi_commitments[i] == proof.pk)
        ]
        if bad_actors:
            raise ProtocolError("bad dlog proof", bad_actors)


@dataclass(frozen=True)
class PartyPrivate:
    u_i: Scalar
    x_i: Scalar
    dk: DecryptionKey

    @classmethod
    def set_private(cls, key: Keys, shared_key: SharedKeys) -> "PartyPrivate":
        return cls(key.u_i, shared_key.x_i, key.dk)

    def y_i(self) -> Point:
        return Point.generator() * self.u_i

    def decrypt(self, ciphertext: int) -> int:
        return decrypt(self.dk, ciphertext)

    def refresh_private_key(self, factor: Scalar, index: int) -> Keys:
        return Keys._build(self.u_i + factor, index, keypair())

    def refresh_private_key_safe_prime(self, factor: Scalar, index: int) -> Keys:
        return Keys._build(self.u_i + factor, index, keypair_safe_primes())

    def update_private_key(self, factor_u_i: Scalar, factor_x_i: Scalar) -> "PartyPrivate":
        return PartyPrivate(self.u_i + factor_u_i, self.x_i + factor_x_i, self.dk)


@dataclass(frozen=True)
class SignBroadcastPhase1:
    com: int


@dataclass(frozen=True)
class SignDecommitPhase1:
    blind_factor: int
    g_gamma_i: Point


@dataclass
class SignKeys:
    w_i: Scalar
    g_w_i: Point
    k_i: Scalar
    gamma_i: Scalar
    g_gamma_i: Point

    @staticmethod
    def g_w_vec(pk_vec: Sequence[Point], s: Sequence[int], vss_scheme: VerifiableSS) -> List[Point]:
        return [
            pk_vec[i] * VerifiableSS.map_share_to_new_params(vss_scheme.parameters, i, s)
            for i in s
        ]

    @classmethod
    def create(
        cls, private_x_i: Scalar, vss_scheme: VerifiableSS, index: int, s: Sequence[int]
    ) -> "SignKeys":
        li = VerifiableSS.map_share_to_new_params(vss_scheme.parameters, index, s)
        w_i = li * private_x_i
        g = Point.generator()
        gamma_i = Scalar.random()
        return cls(w_i, g * w_i, Scalar.random(), gamma_i, g * gamma_i)

    def phase1_broadcast(self) -> Tuple[SignBroadcastPhase1, SignDecommitPhase1]:
        blind_factor = sample_bits(SECURITY)
        g_gamma_i = Point.generator() * self.gamma_i
        com = hash_commitment(_point_int(g_gamma_i), blind_factor)
        return SignBroadcastPhase1(com), SignDecommitPhase1(blind_factor, self.g_gamma_i)

    def phase2_delta_i(self, alpha_vec: Sequence[Scalar], beta_vec: Sequence[Scalar]) -> Scalar:
        _check_len(beta_vec, len(alpha_vec), "beta values")
        return _sum_scalars((a + b for a, b in zip(alpha_vec, beta_vec)), self.k_i * self.gamma_i)

    def phase2_sigma_i(self, miu_vec: Sequence[Scalar], ni_vec: Sequence[Scalar]) -> Scalar:
        _check_len(ni_vec, len(miu_vec), "ni values")
        return _sum_scalars((a + b for a, b in zip(miu_vec, ni_vec)), self.k_i * self.w_i)

    @staticmethod
    def phase3_compute_t_i(sigma_i: Scalar) -> Tuple[Point, Scalar, PedersenProof]:
        l = Scalar.random()
        t = Point.generator() * sigma_i + Point.base_point2() * l
        return t, l, PedersenProof.prove(sigma_i, l)

    @staticmethod
    def phase3_reconstruct_delta(delta_vec: Sequence[Scalar]) -> Scalar:
        return _sum_scalars(delta_vec).invert()

    @staticmethod
    def phase4(
        delta_inv: Scalar,
        b_proof_vec: Sequence[DLogProof],
        phase1_decommit_vec: Sequence[SignDecommitPhase1],
        bc1_vec: Sequence[SignBroadcastPhase1],
        index: int,
    ) -> Point:
        bad_actors = []
        for j, proof in enumerate(b_proof_vec):
            ind = j if j < index else j + 1
            decom = phase1_decommit_vec[ind]
            ok = proof.pk == decom.g_gamma_i and (
                hash_commitment(_point_int(decom.g_gamma_i), decom.blind_factor)
                == bc1_vec[ind].com
            )
            if not ok:
                bad_actors.append(ind)
        if bad_actors:
            raise ProtocolError("bad gamma_i decommit", bad_actors)
        return _sum_points([d.g_gamma_i for d in phase1_decommit_vec]) * delta_inv


@dataclass(frozen=True)
class SignatureRecid:
    r: Scalar
    s: Scalar
    recid: int


def _x_mod_order(point: Point) -> Scalar:
    x = point.x_coord()
    if x is None:
        raise InvalidSignature("point at infinity")
    return Scalar(x % CURVE_ORDER)


@dataclass
class LocalSignature:
    r: Scalar
    r_point: Point
    s_i: Scalar
    m: int
    y: Point

    @staticmethod
    def phase5_check_r_dash_sum(r_dash_vec: Sequence[Point]) -> None:
        g = Point.generator()
        if _sum_points([g, *r_dash_vec]) - g != g:
            raise Phase5BadSum("R' values do not sum to the generator")

    @staticmethod
    def phase6_compute_s_i_and_proof_of_consistency(
        r_point: Point, t_point: Point, sigma: Scalar, l: Scalar
    ) -> Tuple[Point, HomoElGamalProof]:
        s_point = r_point * sigma
        statement = HomoElGamalStatement(
            g=r_point, h=Point.base_point2(), y=Point.generator(), d=t_point, e=s_point
        )
        proof = HomoElGamalProof.prove(HomoElGamalWitness(x=l, r=sigma), statement)
        return s_point, proof

    @staticmethod
    def phase6_verify_proof(
        s_vec: Sequence[Point],
        proof_vec: Sequence[HomoElGamalProof],
        r_vec: Sequence[Point],
        t_vec: Sequence[Point],
    ) -> None:
        bad_actors = []
        for i, proof in enumerate(proof_vec):
            statement = HomoElGamalStatement(
                g=r_vec[i], h=Point.base_point2(), y=Point.generator(), d=t_vec[i], e=s_vec[i]
            )
            if not _passes(lambda: proof.verify(statement)):
                bad_actors.append(i)
        if bad_actors:
            raise ProtocolError("phase6", bad_actors)

    @staticmethod
    def phase6_check_s_i_sum(pubkey_y: Point, s_vec: Sequence[Point]) -> None:
        g = Point.generator()
        if _sum_points([g, *s_vec]) - g != pubkey_y:
            raise Phase6Error("S values do not sum to the public key")

    @classmethod
    def phase7_local_sig(
        cls, k_i: Scalar, message: int, r_point: Point, sigma_i: Scalar, pubkey: Point
    ) -> "LocalSignature":
        r = _x_mod_order(r_point)
        s_i = Scalar(message) * k_i + r * sigma_i
        return cls(r, r_point, s_i, message, pubkey)

    def output_signature(self, s_vec: Sequence[Scalar]) -> SignatureRecid:
        s = _sum_scalars(s_vec, self.s_i)
        s_bn = s.to_int()
        r = _x_mod_order(self.r_point)
        ry = self.r_point.y_coord() % CURVE_ORDER
        recid = ry & 1
        s_tag = CURVE_ORDER - s_bn
        if s_bn > s_tag:
            s = Scalar(s_tag)
            recid ^= 1
        sig = SignatureRecid(r, s, recid)
        verify(sig, self.y, self.m)
        return sig


def verify(sig: SignatureRecid, y: Point, message: int) -> None:
    """Raise InvalidSignature unless `sig` is a valid ECDSA signature of `message` under `y`."""
    try:
        b = sig.s.invert()
    except ZeroDivisionError as exc:
        raise InvalidSignature("zero s") from exc
    u1 = Scalar(message) * b
    u2 = sig.r * b
    point = Point.generator() * u1 + y * u2
    if sig.r != _x_mod_order(point):
        raise InvalidSignature("signature does not verify")