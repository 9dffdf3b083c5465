import dataclasses
from unittest.mock import MagicMock
import pytest
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat
from conftest import CHALLENGE, ORIGIN, client_data_json, sign
from passkey_errors import DecodeError, MalformedInputError
from verify_assertion import (
    ClientData, Credential, LocalVerifier, ReferenceVerifier,
    collected_client_data, cross_check, signed_message,
)

VERIFIERS = [LocalVerifier(), ReferenceVerifier()]


def flip(data: bytes, bit: int) -> bytes:
    out = bytearray(data)
    out[bit // 8] ^= 1 << (bit % 8)
    return bytes(out)


def test_collected_client_data_matches_authenticator_output():
    assert collected_client_data(CHALLENGE, ORIGIN, False) == client_data_json()
    assert collected_client_data(CHALLENGE, ORIGIN, True) == client_data_json(cross_origin=True)
    assert collected_client_data(CHALLENGE, ORIGIN, None) == client_data_json(cross_origin=None)


def test_client_data_from_json():
    client_data = ClientData.from_json(client_data_json(cross_origin=True))

    assert client_data.origin == ORIGIN
    assert client_data.cross_origin is True
    assert client_data.raw == client_data_json(cross_origin=True)
    assert ClientData.from_json(b'{"origin":"https://a.example"}').cross_origin is None


@pytest.mark.parametrize('raw', [
    b'',
    b'{"origin":',
    b'[]',
    b'{"crossOrigin":false}',
    b'{"origin":"https://a.example","crossOrigin":"false"}',
    b'{"origin":"https://a.example","crossOrigin":0}',
    b'\xff\xfe',
])
def test_client_data_malformed(raw):
    with pytest.raises(DecodeError):
        ClientData.from_json(raw)


def test_signed_message():
    message = signed_message(b'\x01' * 37, b'{}')

    assert len(message) == 37 + 32
    assert message[:37] == b'\x01' * 37


@pytest.mark.parametrize('verifier', VERIFIERS, ids=lambda v: v.name)
def test_valid_signature(verifier, signed):
    assert verifier.verify(*signed) is True


def test_verifiers_agree(signed):
    result = cross_check(*signed)

    assert result.outcomes == {'local': True, 'reference': True}
    assert result.agreed
    assert result.verified


@pytest.mark.parametrize('cross_origin', [None, True])
def test_verifiers_agree_on_client_data_variants(private_key, cross_origin):
    challenge, client_data, credential = sign(private_key, client_data_json(cross_origin=cross_origin))

    assert client_data.cross_origin is cross_origin
    result = cross_check(challenge, client_data, credential)
    assert result.outcomes == {'local': True, 'reference': True}


def test_compressed_public_key(signed, private_key):
    challenge, client_data, credential = signed
    compressed = private_key.public_key().public_bytes(Encoding.X962, PublicFormat.CompressedPoint)

    result = cross_check(challenge, client_data, dataclasses.replace(credential, public_key=compressed))
    assert result.verified


@pytest.mark.parametrize('verifier', VERIFIERS, ids=lambda v: v.name)
def test_tampered_authenticator_data(verifier, signed):
    challenge, client_data, credential = signed
    for bit in range(len(credential.authenticator_data) * 8):
        tampered = dataclasses.replace(credential, authenticator_data=flip(credential.authenticator_data, bit))
        assert verifier.verify(challenge, client_data, tampered) is False


@pytest.mark.parametrize('verifier', VERIFIERS, ids=lambda v: v.name)
@pytest.mark.parametrize('point_format', [PublicFormat.UncompressedPoint, PublicFormat.CompressedPoint])
def test_tampered_public_key(verifier, signed, private_key, point_format):
    challenge, client_data, credential = signed
    credential = dataclasses.replace(
        credential, public_key=private_key.public_key().public_bytes(Encoding.X962, point_format))
    assert verifier.verify(challenge, client_data, credential) is True
    for bit in range(len(credential.public_key) * 8):
        tampered = dataclasses.replace(credential, public_key=flip(credential.public_key, bit))
        assert verifier.verify(challenge, client_data, tampered) is False


@pytest.mark.parametrize('verifier', VERIFIERS, ids=lambda v: v.name)
def test_tampered_signature(verifier, signed):
    challenge, client_data, credential = signed
    for bit in range(len(credential.signature) * 8):
        tampered = dataclasses.replace(credential, signature=flip(credential.signature, bit))
        assert verifier.verify(challenge, client_data, tampered) is False


def test_tampered_client_data_json(signed):
    challenge, client_data, credential = signed
    local = LocalVerifier()
    for bit in range(len(client_data.raw) * 8):
        tampered = dataclasses.replace(client_data, raw=flip(client_data.raw, bit))
        assert local.verify(challenge, tampered, credential) is False


def test_tampered_client_data_fields(signed):
    challenge, client_data, credential = signed
    reference = ReferenceVerifier()
    for bit in range(len(client_data.origin.encode()) * 8):
        origin = flip(client_data.origin.encode(), bit).decode('latin-1')
        assert reference.verify(challenge, dataclasses.replace(client_data, origin=origin), credential) is False
    assert reference.verify(challenge, dataclasses.replace(client_data, cross_origin=True), credential) is False
    for bit in range(len(challenge) * 8):
        assert reference.verify(flip(challenge, bit), client_data, credential) is False


@pytest.mark.parametrize('verifier', VERIFIERS, ids=lambda v: v.name)
@pytest.mark.parametrize('public_key, signature', [
    (b'\x04' * 64, b'\x01' * 64),
    (b'\x04' * 66, b'\x01' * 64),
    (b'\x02' * 32, b'\x01' * 64),
    (None, b'\x01' * 63),
    (None, b'\x01' * 72),
])
def test_malformed_input(verifier, signed, public_key, signature):
    challenge, client_data, credential = signed
    tampered = Credential(public_key or credential.public_key, signature, credential.authenticator_data)

    with pytest.raises(MalformedInputError):
        verifier.verify(challenge, client_data, tampered)


def test_cross_check_reports_divergence(signed, caplog):
    disagreeing = MagicMock()
    disagreeing.name = 'broken'
    disagreeing.verify.return_value = False

    result = cross_check(*signed, verifiers=[LocalVerifier(), disagreeing])

    assert result.outcomes == {'local': True, 'broken': False}
    assert not result.agreed
    assert not result.verified
    assert 'verifiers disagree' in caplog.text


def test_cross_check_agrees_on_forgery(signed):
    challenge, client_data, credential = signed
    forged = dataclasses.replace(credential, signature=bytes(64))

    result = cross_check(challenge, client_data, forged)
    assert result.agreed
    assert not result.verified


def test_cross_check_without_verifiers(signed):
    result = cross_check(*signed, verifiers=[])

    assert result.outcomes == {}
    assert result.agreed
    assert not result.verified
