import hashlib, json, struct
import cbor2
import pytest
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat
from der_signature import der_to_raw
from soft_authenticator import b64url
from verify_assertion import ClientData, Credential

ORIGIN = 'https://localhost'
CHALLENGE = bytes(range(32))


def attestation_object(auth_data: bytes) -> bytes:
    return cbor2.dumps({'fmt': 'none', 'attStmt': {}, 'authData': auth_data})


def client_data_json(challenge=CHALLENGE, origin=ORIGIN, cross_origin=False) -> bytes:
    collected = {
        'type': 'webauthn.get',
        'challenge': b64url(hashlib.sha256(challenge).digest()),
        'origin': origin,
    }
    if cross_origin is not None:
        collected['crossOrigin'] = cross_origin
    return json.dumps(collected, separators=(',', ':')).encode('utf-8')


def sign(private_key, client_json: bytes):
    auth_data = hashlib.sha256(b'localhost').digest() + struct.pack('>BI', 0x05, 7)
    der = private_key.sign(auth_data + hashlib.sha256(client_json).digest(), ec.ECDSA(hashes.SHA256()))
    pub_key = private_key.public_key().public_bytes(Encoding.X962, PublicFormat.UncompressedPoint)
    return CHALLENGE, ClientData.from_json(client_json), Credential(pub_key, der_to_raw(der), auth_data)


@pytest.fixture
def private_key():
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture
def signed(private_key):
    """A valid (challenge, client data, credential) triple."""
    return sign(private_key, client_data_json())
