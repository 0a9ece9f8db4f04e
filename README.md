# thresh-ecdsa

Threshold ECDSA on the secp256k1 curve. A group of `n` parties jointly
generates a key so that any `t + 1` of them can sign, while no coalition of
`t` or fewer learns anything about the secret key. Misbehaving parties are
identified by index when a protocol check fails.

The package is pure Python with no runtime dependencies.

## Installation

```
pip install .
```

For running the test suite:

```
pip install ".[test]"
pytest
```

## What is inside

- `thresh_ecdsa.curve` — `Scalar` and `Point` arithmetic on secp256k1.
- `thresh_ecdsa.paillier` — Paillier key generation, encryption and decryption.
- `thresh_ecdsa.proofs` — hash commitments and zero-knowledge proofs
  (`DLogProof`, `PedersenProof`, `HomoElGamalProof`, `CompositeDLogProof`,
  `NiCorrectKeyProof`).
- `thresh_ecdsa.vss` — Feldman verifiable secret sharing (`VerifiableSS`).
- `thresh_ecdsa.party` — the per-party protocol steps: `Keys`, `SignKeys`,
  `LocalSignature`, `verify`, and the errors `InvalidSignature`,
  `Phase5BadSum`, `Phase6Error`, `ProtocolError` (which carries the indices
  of the bad actors).
- `thresh_ecdsa.store` — message stores for broadcast and point-to-point
  rounds, plus an in-process `Simulation` that drives several parties.
- `thresh_ecdsa.keygen_rounds` / `thresh_ecdsa.keygen` — distributed key
  generation as a round-based state machine producing a `LocalKey`.

## Distributed key generation

Each party runs a `Keygen` state machine. Outgoing messages are taken from
`message_queue()`, and incoming messages are fed in with
`handle_incoming(msg)`; call `proceed()` whenever `wants_to_proceed()` is
true. When `is_finished()` becomes true, `pick_output()` yields the party's
`LocalKey`.

For local experiments, `simulate_keygen` runs all parties in one process:

```python
from thresh_ecdsa.keygen import simulate_keygen

keys = simulate_keygen(1, 3)          # threshold 1, three parties
public_key = keys[0].public_key()
assert all(k.public_key() == public_key for k in keys)
```

Constructing a party validates its arguments: fewer than two parties raises
`TooFewParties`, a threshold outside `[1, n - 1]` raises `InvalidThreshold`,
and an index outside `[1, n]` raises `InvalidPartyIndex`.

## Signing steps

`thresh_ecdsa.party` exposes the individual signing phases (commitment to
`g^gamma_i`, the delta and sigma shares, the `T_i` commitments, the
consistency checks of phases 5 and 6, and the local signature of phase 7).
`LocalSignature.output_signature` combines the partial signatures into a
`SignatureRecid` with a recovery id, and `verify(sig, y, message)` checks a
signature against the joint public key, raising `InvalidSignature` on
failure.

Key generation here uses ordinary primes for Paillier moduli by default;
`Keys.create_safe_prime` uses safe primes and is the recommended choice
outside of testing, at a considerable cost in speed.