import pytest

from src.app.services.token_signer import (
    InvalidTokenError,
    TokenSigner,
    b64url_decode,
    b64url_encode,
    derive_key,
    sha256_hex,
)


def test_seal_and_open_round_trip():
    signer = TokenSigner(b"k" * 32)
    token = signer.seal("jti.public.magic_link.2030-01-01T00:00:00Z")

    payload_part, signature = token.split(".")
    assert "=" not in payload_part
    assert "=" not in signature
    assert signer.open(token) == "jti.public.magic_link.2030-01-01T00:00:00Z"


def test_flipping_any_character_is_rejected():
    signer = TokenSigner(b"k" * 32)
    token = signer.seal("abc.public.magic_link.2030-01-01T00:00:00Z")

    for i, char in enumerate(token):
        if char == ".":
            continue
        replacement = "A" if char != "A" else "B"
        tampered = token[:i] + replacement + token[i + 1:]
        with pytest.raises(InvalidTokenError):
            signer.open(tampered)


def test_token_from_another_key_is_rejected():
    token = TokenSigner(b"a" * 32).seal("payload")

    with pytest.raises(InvalidTokenError):
        TokenSigner(b"b" * 32).open(token)


@pytest.mark.parametrize("token", ["", "no-dot", ".", "abc.", ".abc", "a.b.c", None])
def test_malformed_tokens_are_rejected(token):
    with pytest.raises(InvalidTokenError):
        TokenSigner(b"k" * 32).open(token)


def test_derive_key_is_deterministic_and_purpose_bound():
    master = b"master-secret"

    assert derive_key(master, "magic_link") == derive_key(master, "magic_link")
    assert derive_key(master, "magic_link") != derive_key(master, "password_reset")
    assert len(derive_key(master, "magic_link")) == 32


def test_derive_key_matches_rfc5869_vector():
    # RFC 5869 A.3: SHA-256, zero-length salt and info
    okm = derive_key(b"\x0b" * 22, "", length=42, salt=b"")

    assert okm.hex() == (
        "8da4e775a563c18f715f802a063c5a31b8a11f5c5ee1879ec3454e5f3c738d2d"
        "9d201395faa4b61a96c8"
    )


def test_b64url_decode_rejects_garbage():
    assert b64url_decode(b64url_encode(b"\x00\xffdata")) == b"\x00\xffdata"
    with pytest.raises(InvalidTokenError):
        b64url_decode("é")


def test_sha256_hex():
    assert sha256_hex("abc") == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
