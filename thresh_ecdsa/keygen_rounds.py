"""The rounds of the distributed key generation protocol, one class per round."""

from __future__ import annotations

import operator
from dataclasses import dataclass
from functools import reduce
from typing import List, Tuple

from .curve import Point, Scalar
from .paillier import DecryptionKey, EncryptionKey
from .party import (
    KeyGenBroadcastMessage1,
    KeyGenDecommitMessage1,
    Keys,
    Parameters,
    ProtocolError,
    SharedKeys,
)
from .proofs import DLogProof, DLogStatement
from .store import BroadcastMsgsStore, Msg, P2PMsgsStore, RoundMsgs
from .vss import VerifiableSS

_ROUND_DESCRIPTIONS = {
    2: "round 2: verify commitments",
    3: "round 3: verify vss construction",
    4: "round 4: verify dlog proof",
}


class ProceedError(Exception):
    """A round could not proceed because the received messages failed verification."""

    def __init__(self, round_number: int, error: ProtocolError):
        super().__init__(f"{_ROUND_DESCRIPTIONS[round_number]}: {error}")
        self.round_number = round_number
        self.error = error

    @property
    def bad_actors(self) -> List[int]:
        return self.error.bad_actors


@dataclass
class LocalKey:
    """Secret share and public data a party holds after key generation."""

    paillier_dk: DecryptionKey
    pk_vec: List[Point]
    keys_linear: SharedKeys
    paillier_key_vec: List[EncryptionKey]
    y_sum_s: Point
    h1_h2_n_tilde_vec: List[DLogStatement]
    vss_scheme: VerifiableSS
    i: int
    t: int
    n: int

    def public_key(self) -> Point:
        """Public key of the secret shared between the parties."""
        return self.y_sum_s


@dataclass
class Round0:
    party_i: int
    t: int
    n: int

    def proceed(self, output) -> "Round1":
        """Create this party's keys and broadcast the commitment; `output` takes messages via append."""
        keys = Keys.create(self.party_i)
        bc1, decom1 = keys.phase1_broadcast_phase3_proof_of_correct_key_proof_of_correct_h1h2()
        output.append(Msg(self.party_i, None, bc1))
        return Round1(keys, bc1, decom1, self.party_i, self.t, self.n)

    def is_expensive(self) -> bool:
        return True


@dataclass
class Round1:
    keys: Keys
    bc1: KeyGenBroadcastMessage1
    decom1: KeyGenDecommitMessage1
    party_i: int
    t: int
    n: int

    def proceed(self, received: RoundMsgs, output) -> "Round2":
        """Record all commitments and broadcast the decommitment."""
        output.append(Msg(self.party_i, None, self.decom1))
        return Round2(
            keys=self.keys,
            received_comm=received.into_vec_including_me(self.bc1),
            decom=self.decom1,
            party_i=self.party_i,
            t=self.t,
            n=self.n,
        )

    def is_expensive(self) -> bool:
        return False

    @staticmethod
    def expects_messages(i: int, n: int) -> BroadcastMsgsStore:
        return BroadcastMsgsStore(i, n)


@dataclass
class Round2:
    keys: Keys
    received_comm: List[KeyGenBroadcastMessage1]
    decom: KeyGenDecommitMessage1
    party_i: int
    t: int
    n: int

    def proceed(self, received: RoundMsgs, output) -> "Round3":
        """Verify decommitments and key proofs, then send each party its secret share."""
        params = Parameters(self.t, self.n)
        received_decom = received.into_vec_including_me(self.decom)
        try:
            vss, shares, _ = (
                self.keys.phase1_verify_com_phase3_verify_correct_key_verify_dlog_phase2_distribute(
                    params, received_decom, self.received_comm
                )
            )
        except ProtocolError as exc:
            raise ProceedError(2, exc) from exc

        for receiver, share in enumerate(shares, start=1):
            if receiver != self.party_i:
                output.append(Msg(self.party_i, receiver, (vss, share)))

        return Round3(
            keys=self.keys,
            y_vec=[d.y_i for d in received_decom],
            bc_vec=self.received_comm,
            own_vss=vss,
            own_share=shares[self.party_i - 1],
            party_i=self.party_i,
            t=self.t,
            n=self.n,
        )

    def is_expensive(self) -> bool:
        return True

    @staticmethod
    def expects_messages(i: int, n: int) -> BroadcastMsgsStore:
        return BroadcastMsgsStore(i, n)


@dataclass
class Round3:
    keys: Keys
    y_vec: List[Point]
    bc_vec: List[KeyGenBroadcastMessage1]
    own_vss: VerifiableSS
    own_share: Scalar
    party_i: int
    t: int
    n: int

    def proceed(self, received: RoundMsgs, output) -> "Round4":
        """Verify received shares, build the local key share and broadcast its dlog proof."""
        params = Parameters(self.t, self.n)
        pairs: List[Tuple[VerifiableSS, Scalar]] = received.into_vec_including_me(
            (self.own_vss, self.own_share)
        )
        vss_schemes = [vss for vss, _ in pairs]
        party_shares = [share for _, share in pairs]
        try:
            shared_keys, dlog_proof = self.keys.phase2_verify_vss_construct_keypair_phase3_pok_dlog(
                params, self.y_vec, party_shares, vss_schemes, self.party_i
            )
        except ProtocolError as exc:
            raise ProceedError(3, exc) from exc

        output.append(Msg(self.party_i, None, dlog_proof))
        return Round4(
            keys=self.keys,
            y_vec=list(self.y_vec),
            bc_vec=self.bc_vec,
            shared_keys=shared_keys,
            own_dlog_proof=dlog_proof,
            vss_vec=vss_schemes,
            party_i=self.party_i,
            t=self.t,
            n=self.n,
        )

    def is_expensive(self) -> bool:
        return True

    @staticmethod
    def expects_messages(i: int, n: int) -> P2PMsgsStore:
        return P2PMsgsStore(i, n)


@dataclass
class Round4:
    keys: Keys
    y_vec: List[Point]
    bc_vec: List[KeyGenBroadcastMessage1]
    shared_keys: SharedKeys
    own_dlog_proof: DLogProof
    vss_vec: List[VerifiableSS]
    party_i: int
    t: int
    n: int

    def proceed(self, received: RoundMsgs) -> LocalKey:
        """Verify every party's dlog proof against the sharing and assemble the local key."""
        params = Parameters(self.t, self.n)
        dlog_proofs = received.into_vec_including_me(self.own_dlog_proof)
        try:
            Keys.verify_dlog_proofs_check_against_vss(params, dlog_proofs, self.y_vec, self.vss_vec)
        except ProtocolError as exc:
            raise ProceedError(4, exc) from exc

        return LocalKey(
            paillier_dk=self.keys.dk,
            pk_vec=[proof.pk for proof in dlog_proofs[: self.n]],
            keys_linear=self.shared_keys,
            paillier_key_vec=[bc.e for bc in self.bc_vec[: self.n]],
            y_sum_s=reduce(operator.add, self.y_vec),
            h1_h2_n_tilde_vec=[bc.dlog_statement for bc in self.bc_vec],
            vss_scheme=self.vss_vec[self.party_i - 1],
            i=self.party_i,
            t=self.t,
            n=self.n,
        )

    def is_expensive(self) -> bool:
        return True

    @staticmethod
    def expects_messages(i: int, n: int) -> BroadcastMsgsStore:
        return BroadcastMsgsStore(i, n)