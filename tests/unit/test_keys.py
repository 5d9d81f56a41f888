import pytest

from crdstore_lib.errors import InvalidKeyError
from crdstore_lib.keys import KV, sanitize_key


@pytest.mark.parametrize('raw,expected', [
    ('/foo', '/foo'),
    ('foo', '/foo'),
    ('/foo/bar/', '/foo/bar'),
    ('  /foo  ', '/foo'),
    ('/', '/'),
])
def test_sanitize_key_normalizes(raw, expected):
    assert sanitize_key(raw) == expected


@pytest.mark.parametrize('raw', ['', '   ', '/foo//bar', '//', '/foo//', 'foo//'])
def test_sanitize_key_rejects_invalid(raw):
    with pytest.raises(InvalidKeyError):
        sanitize_key(raw)


def test_sanitize_key_rejects_non_string():
    with pytest.raises(InvalidKeyError):
        sanitize_key(None)  # type: ignore[arg-type]


def test_invalid_key_is_value_error():
    with pytest.raises(ValueError):
        sanitize_key('')


def test_kv_to_dict():
    assert KV('a', '1').to_dict() == {'key': 'a', 'value': '1'}
