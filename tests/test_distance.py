import pytest

from clinic_biometrics.descriptor_codec import encode, fallback_descriptor
from clinic_biometrics.distance import byte_distance, distance, to_confidence
from conftest import image_bytes


def test_identical_vectors_have_zero_distance():
    v = encode([0.3, -0.1, 0.7, 0.2])
    assert distance(v, v) == 0.0


def test_orthogonal_vectors():
    assert distance(encode([1.0, 0.0]), encode([0.0, 1.0])) == pytest.approx(1.0)


def test_opposite_vectors_are_clamped_to_one():
    assert distance(encode([1.0, 2.0]), encode([-1.0, -2.0])) == 1.0


def test_zero_norm_is_max_distance():
    assert distance(encode([0.0, 0.0]), encode([1.0, 1.0])) == 1.0
    assert distance(encode([0.0, 0.0]), encode([0.0, 0.0])) == 1.0


def test_dimension_mismatch_is_max_distance():
    assert distance(encode([1.0, 0.0]), encode([1.0, 0.0, 0.0])) == 1.0


def test_cosine_distance_value():
    # cos = (1*1 + 1*0) / (sqrt(2) * 1)
    assert distance(encode([1.0, 1.0]), encode([1.0, 0.0])) == pytest.approx(1 - 2 ** -0.5)


def test_identical_fallback_descriptors_have_zero_distance():
    d = fallback_descriptor(image_bytes(7))
    assert distance(d, d) == 0.0


def test_unrelated_fallback_descriptors_are_far_apart():
    for seed in range(20):
        a = fallback_descriptor(image_bytes(seed))
        b = fallback_descriptor(image_bytes(seed + 1000))
        assert 0.6 < distance(a, b) <= 1.0


def test_byte_distance_uses_shorter_length():
    assert byte_distance(b"\x00\xff", b"\x00") == 0.0
    assert byte_distance(b"\x00", b"\xff") == 1.0
    assert byte_distance(b"", b"\x01") == 1.0


@pytest.mark.parametrize("a,b", [
    ("not-a-descriptor", "also-not"),
    (encode([1.0, 2.0]), fallback_descriptor(b"x")),
    (None, fallback_descriptor(b"x")),
])
def test_malformed_or_mixed_descriptors_are_max_distance(a, b):
    assert distance(a, b) == 1.0


def test_distance_is_always_bounded():
    samples = [encode([0.5, -0.2, 0.9]), encode([-3.0, 4.0, 0.1]), fallback_descriptor(b"a"),
               fallback_descriptor(b"b"), "garbage"]
    for a in samples:
        for b in samples:
            assert 0.0 <= distance(a, b) <= 1.0


def test_to_confidence_is_bounded_and_monotonic():
    assert to_confidence(0.0) == 1.0
    assert to_confidence(1.0) == 0.0
    assert to_confidence(1.7) == 0.0
    assert to_confidence(-0.2) == 1.0
    values = [to_confidence(d / 10) for d in range(12)]
    assert values == sorted(values, reverse=True)


def test_huge_components_stay_bounded():
    a = encode([1e200, 1e200])
    b = encode([1e200, 2e200])
    d = distance(a, b)
    # same direction as [1, 1] vs [1, 2]
    assert d == pytest.approx(1 - 3 / (2 ** 0.5 * 5 ** 0.5))
    assert 0.0 <= to_confidence(d) <= 1.0
    assert distance(encode([1e308, -1e308]), encode([-1e308, 1e308])) == 1.0


def test_nan_distance_has_zero_confidence():
    assert to_confidence(float("nan")) == 0.0
