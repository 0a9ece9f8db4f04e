import pytest

from thresh_ecdsa.curve import Point
from thresh_ecdsa.keygen import (
    DoublePickOutput,
    HandleMessageError,
    InvalidPartyIndex,
    InvalidThreshold,
    Keygen,
    ProceedRoundError,
    ProtocolMessage,
    ReceivedOutOfOrderMessage,
    TooFewParties,
    simulate_keygen,
)
from thresh_ecdsa.party import KeyGenDecommitMessage1
from thresh_ecdsa.store import Msg, Simulation


def _drain(parties):
    outgoing = []
    for party in parties:
        queue = party.message_queue()
        outgoing.extend(queue)
        queue.clear()
    return outgoing


def _deliver(parties, messages):
    for msg in messages:
        for party in parties:
            if party.party_ind() == msg.sender:
                continue
            if msg.receiver is None or msg.receiver == party.party_ind():
                party.handle_incoming(msg)


def _parties_at_round2():
    parties = [Keygen(1, 1, 2), Keygen(2, 1, 2)]
    for party in parties:
        party.proceed()
    round1 = _drain(parties)
    _deliver(parties, round1)
    return parties, round1


def _check_keys(keys, t, n):
    assert len(keys) == n
    assert [key.i for key in keys] == list(range(1, n + 1))
    assert all(key.t == t and key.n == n for key in keys)
    public = keys[0].public_key()
    assert all(key.public_key() == public for key in keys)
    g = Point.generator()
    for j, key in enumerate(keys):
        assert key.pk_vec == keys[0].pk_vec
        assert keys[0].pk_vec[j] == g * key.keys_linear.x_i
    shares = [keys[j].keys_linear.x_i for j in range(t + 1)]
    secret = keys[0].vss_scheme.reconstruct(list(range(t + 1)), shares)
    assert g * secret == public


@pytest.mark.parametrize("t, n", [(1, 3), (2, 3)])
def test_simulate_keygen(t, n):
    _check_keys(simulate_keygen(t, n), t, n)


def test_simulate_keygen_t1_n2_and_double_pick():
    parties = [Keygen(1, 1, 2), Keygen(2, 1, 2)]
    simulation = Simulation()
    for party in parties:
        simulation.add_party(party)
    keys = simulation.run()
    _check_keys(keys, 1, 2)
    assert parties[0].current_round() == 5
    assert parties[0].is_finished() is False
    with pytest.raises(DoublePickOutput):
        parties[0].pick_output()


@pytest.mark.parametrize(
    "args, error",
    [
        ((1, 1, 1), TooFewParties),
        ((1, 0, 3), InvalidThreshold),
        ((1, 3, 3), InvalidThreshold),
        ((0, 1, 3), InvalidPartyIndex),
        ((4, 1, 3), InvalidPartyIndex),
    ],
)
def test_constructor_rejects_bad_arguments(args, error):
    with pytest.raises(error):
        Keygen(*args)


def test_fresh_party_state():
    party = Keygen(1, 1, 2)
    assert party.current_round() == 0
    assert party.wants_to_proceed() is True
    assert party.is_finished() is False
    assert party.pick_output() is None
    assert party.total_rounds() == 4
    assert party.party_ind() == 1
    assert party.parties() == 2
    assert party.round_blame() == (0, [])
    assert party.message_queue() == []
    assert party.round_timeout() is None
    assert "round=0" in repr(party)
    assert "msgs1=[0/1]" in repr(party)


def test_protocol_message_rejects_unknown_round():
    with pytest.raises(ValueError):
        ProtocolMessage(5, None)


def test_out_of_order_duplicate_and_blame():
    parties, round1 = _parties_at_round2()
    first, second = parties
    assert first.current_round() == 2
    assert first.round_blame() == (1, [2])
    assert "msgs1=[None]" in repr(first)

    from_second = next(m for m in round1 if m.sender == 2)
    with pytest.raises(ReceivedOutOfOrderMessage) as info:
        first.handle_incoming(from_second)
    assert info.value.current_round == 2
    assert info.value.msg_round == 1

    decoms = _drain(parties)
    assert all(m.body.round == 2 for m in decoms)
    decom_second = next(m for m in decoms if m.sender == 2)
    first.handle_incoming(decom_second)
    assert first.round_blame() == (0, [])
    assert first.wants_to_proceed() is True
    assert first.current_round() == 2
    with pytest.raises(HandleMessageError):
        first.handle_incoming(decom_second)


def test_tampered_decommitment_blames_sender():
    parties, _ = _parties_at_round2()
    first = parties[0]
    decoms = _drain(parties)
    original = next(m for m in decoms if m.sender == 2).body.body
    forged = KeyGenDecommitMessage1(original.blind_factor + 1, original.y_i)
    first.handle_incoming(Msg(2, None, ProtocolMessage(2, forged)))
    with pytest.raises(ProceedRoundError) as info:
        first.proceed()
    assert info.value.bad_actors == [1]
    assert info.value.is_critical is True
    assert first.current_round() == 5
    assert first.is_finished() is False