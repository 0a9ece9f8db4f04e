import pytest

from thresh_ecdsa.curve import CURVE_ORDER, FIELD_PRIME, Point, Scalar


def test_generator_compressed_encoding():
    g = Point.generator()
    assert g.to_bytes(True).hex() == (
        "0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"
    )


def test_generator_y_coordinate():
    assert Point.generator().y_coord() == (
        0x483ADA7726A3C4655DA4FBFC0E1108A8FD17B448A68554199C47D08FFB10D4B8
    )


def test_order_times_generator_is_infinity():
    g = Point.generator()
    assert (g * CURVE_ORDER).is_zero()
    assert (g * Scalar(CURVE_ORDER - 1)) == -g


def test_infinity_has_no_coordinates():
    zero = Point.generator() * Scalar.zero()
    assert zero.is_zero()
    assert zero.x_coord() is None
    assert zero.y_coord() is None
    with pytest.raises(ValueError):
        zero.to_bytes()


def test_point_addition_is_distributive():
    g = Point.generator()
    a, b = Scalar.random(), Scalar.random()
    assert g * (a + b) == g * a + g * b
    assert (g * a) * b == g * (a * b)


def test_point_doubling_matches_addition():
    g = Point.generator()
    assert g + g == g * 2
    assert g * 3 - g == g + g


def test_point_minus_itself_is_zero():
    p = Point.generator() * Scalar.random()
    assert (p - p).is_zero()
    assert p + Point() == p


def test_scalar_mul_commutes_with_point():
    a = Scalar.random()
    g = Point.generator()
    assert a * g == g * a


def test_scalar_reduction_and_zero():
    assert Scalar(CURVE_ORDER) == Scalar.zero()
    assert Scalar(-1) + Scalar(1) == Scalar.zero()
    assert (Scalar(5) - 7).to_int() == CURVE_ORDER - 2


def test_scalar_invert():
    a = Scalar.random()
    assert a * a.invert() == Scalar(1)


def test_zero_scalar_cannot_be_inverted():
    with pytest.raises(ZeroDivisionError):
        Scalar.zero().invert()


def test_scalar_to_bytes_round_trip():
    a = Scalar.random()
    raw = a.to_bytes()
    assert len(raw) == 32
    assert Scalar(int.from_bytes(raw, "big")) == a


def test_random_scalar_nonzero_and_in_range():
    for _ in range(20):
        a = Scalar.random()
        assert 0 < a.to_int() < CURVE_ORDER


def test_scalar_rejects_non_integers():
    with pytest.raises(TypeError):
        Scalar(1.5)


@pytest.mark.parametrize("compressed", [True, False])
def test_point_bytes_round_trip(compressed):
    p = Point.generator() * Scalar.random()
    raw = p.to_bytes(compressed)
    assert len(raw) == (33 if compressed else 65)
    assert Point.from_bytes(raw) == p


def test_from_bytes_rejects_bad_encodings():
    with pytest.raises(ValueError):
        Point.from_bytes(b"\x05" + bytes(32))
    with pytest.raises(ValueError):
        Point.from_bytes(b"\x02" + (FIELD_PRIME).to_bytes(32, "big"))
    raw = bytearray(Point.generator().to_bytes(False))
    raw[-1] ^= 1
    with pytest.raises(ValueError):
        Point.from_bytes(bytes(raw))


def test_point_constructor_rejects_off_curve():
    g = Point.generator()
    with pytest.raises(ValueError):
        Point(g.x_coord(), (g.y_coord() + 1) % FIELD_PRIME)


def test_base_point2_is_stable_and_distinct():
    h = Point.base_point2()
    assert h == Point.base_point2()
    assert h != Point.generator()
    assert Point.from_bytes(h.to_bytes(False)) == h
    assert (h * CURVE_ORDER).is_zero()