import pytest

from thresh_ecdsa.curve import Point, Scalar
from thresh_ecdsa.vss import ShamirParameters, VerifiableSS, VssError


def test_share_commitment_to_secret():
    secret = Scalar.random()
    vss, shares = VerifiableSS.share(2, 5, secret)
    assert len(shares) == 5
    assert len(vss.commitments) == 3
    assert vss.commitments[0] == Point.generator() * secret
    assert vss.parameters == ShamirParameters(2, 5)


def test_every_share_validates():
    vss, shares = VerifiableSS.share(2, 4, Scalar.random())
    for index, share in enumerate(shares, start=1):
        vss.validate_share(share, index)
        assert vss.get_point_commitment(index) == Point.generator() * share


def test_wrong_share_rejected():
    vss, shares = VerifiableSS.share(1, 3, Scalar.random())
    with pytest.raises(VssError):
        vss.validate_share(shares[0] + 1, 1)
    with pytest.raises(VssError):
        vss.validate_share(shares[0], 2)


def test_reconstruct_from_any_subset():
    secret = Scalar.random()
    vss, shares = VerifiableSS.share(2, 5, secret)
    assert vss.reconstruct([0, 1, 2], shares[0:3]) == secret
    assert vss.reconstruct([1, 3, 4], [shares[1], shares[3], shares[4]]) == secret
    assert vss.reconstruct([0, 1, 2, 3, 4], shares) == secret


def test_reconstruct_needs_enough_shares():
    vss, shares = VerifiableSS.share(2, 5, Scalar.random())
    with pytest.raises(VssError):
        vss.reconstruct([0, 1], shares[:2])
    with pytest.raises(VssError):
        vss.reconstruct([0, 1, 2], shares[:2])


def test_lagrange_coefficients_combine_to_secret():
    secret = Scalar.random()
    vss, shares = VerifiableSS.share(2, 5, secret)
    s = [0, 2, 3, 4]
    combined = Scalar.zero()
    for index in s:
        combined = combined + VerifiableSS.map_share_to_new_params(
            vss.parameters, index, s
        ) * shares[index]
    assert combined == secret


def test_lagrange_requires_enough_parties():
    params = ShamirParameters(2, 5)
    with pytest.raises(VssError):
        VerifiableSS.map_share_to_new_params(params, 0, [0, 1])
    with pytest.raises(VssError):
        VerifiableSS.map_share_to_new_params(params, 0, [0, 1, 7])


def test_invalid_threshold_rejected():
    with pytest.raises(VssError):
        VerifiableSS.share(3, 3, Scalar.random())
    with pytest.raises(VssError):
        VerifiableSS.share(-1, 3, Scalar.random())


def test_threshold_zero_single_party():
    secret = Scalar.random()
    vss, shares = VerifiableSS.share(0, 1, secret)
    assert shares == [secret]
    vss.validate_share(shares[0], 1)


def test_commitments_are_tuple_and_equal():
    vss, _ = VerifiableSS.share(1, 2, Scalar.random())
    rebuilt = VerifiableSS(vss.parameters, list(vss.commitments))
    assert rebuilt == vss
    assert isinstance(rebuilt.commitments, tuple)