import pytest

from clinic_biometrics import descriptor_codec
from conftest import image_bytes


def test_encode_decode_is_exact():
    vector = [0.1, -2.5e-8, 3.141592653589793, 1e300, 0.0]
    assert descriptor_codec.decode(descriptor_codec.encode(vector)) == vector


def test_encode_rejects_empty_and_non_finite():
    with pytest.raises(ValueError):
        descriptor_codec.encode([])
    with pytest.raises(ValueError):
        descriptor_codec.encode([0.1, float("nan")])


@pytest.mark.parametrize("text", ["", "not json", "{}", "[]", '["a", "b"]', "[true, false]", "1.5"])
def test_decode_returns_none_for_non_vectors(text):
    assert descriptor_codec.decode(text) is None


def test_fallback_descriptor_is_deterministic_and_fixed_length():
    a = descriptor_codec.fallback_descriptor(image_bytes(1))
    assert a == descriptor_codec.fallback_descriptor(image_bytes(1))
    assert len(a) == 128
    assert a != descriptor_codec.fallback_descriptor(image_bytes(2))


def test_fallback_descriptor_is_not_a_vector():
    digest = descriptor_codec.fallback_descriptor(b"face")
    assert descriptor_codec.decode(digest) is None
    assert len(descriptor_codec.descriptor_bytes(digest)) == 64


def test_descriptor_bytes_rejects_non_hex():
    assert descriptor_codec.descriptor_bytes("zz-not-hex") is None
    assert descriptor_codec.descriptor_bytes("") is None
