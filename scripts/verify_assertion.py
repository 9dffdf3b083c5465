#!/usr/bin/env python3
"""Verify a WebAuthn assertion with two independent ES256 verifiers.
Usage:
    python verify_assertion.py <assertion.json> [keys.json]
assertion.json holds hex fields: challenge, authenticatorData, clientDataJSON, signature (DER).
Exits 1 when the verifiers disagree.
"""
import sys, os, json, base64, hashlib, logging, pathlib
from dataclasses import dataclass, field
from typing import Optional
import ecdsa
from ecdsa.util import sigdecode_string
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.exceptions import InvalidSignature
from cose_curve import Curve
from der_signature import raw_to_der
from passkey_errors import DecodeError, MalformedInputError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClientData:
    origin: str
    # None when the client left crossOrigin out of what it signed
    cross_origin: Optional[bool] = None
    raw: bytes = b''

    @classmethod
    def from_json(cls, client_data_json: bytes) -> 'ClientData':
        try:
            collected = json.loads(client_data_json)
        except (UnicodeDecodeError, ValueError) as e:
            raise DecodeError('clientDataJSON', str(e)) from e
        if not isinstance(collected, dict) or not isinstance(collected.get('origin'), str):
            raise DecodeError('clientDataJSON', 'origin missing')
        cross_origin = collected.get('crossOrigin')
        if cross_origin is not None and not isinstance(cross_origin, bool):
            raise DecodeError('clientDataJSON', f'crossOrigin must be a boolean, got {cross_origin!r}')
        return cls(collected['origin'], cross_origin, bytes(client_data_json))


@dataclass(frozen=True)
class Credential:
    public_key: bytes
    signature: bytes
    authenticator_data: bytes


def signed_message(authenticator_data: bytes, client_data_json: bytes) -> bytes:
    return authenticator_data + hashlib.sha256(client_data_json).digest()


def check_credential(credential: Credential, curve: Curve) -> None:
    if len(credential.public_key) not in (curve.compressed_key_size, curve.raw_key_size):
        raise MalformedInputError('public key', f'{len(credential.public_key)} bytes, expected '
                                  f'{curve.compressed_key_size} or {curve.raw_key_size}')
    if len(credential.signature) != curve.raw_signature_size:
        raise MalformedInputError('signature', f'{len(credential.signature)} bytes, expected {curve.raw_signature_size}')


class Verifier:
    name = None

    def __init__(self, curve: Curve = Curve.P256):
        self.curve = curve

    def verify(self, challenge: bytes, client_data: ClientData, credential: Credential) -> bool:
        raise NotImplementedError()


class LocalVerifier(Verifier):
    """Hashes the clientDataJSON the authenticator returned and checks the raw r|s signature."""
    name = 'local'

    def verify(self, challenge, client_data, credential):
        check_credential(credential, self.curve)
        message = signed_message(credential.authenticator_data, client_data.raw)
        try:
            key = ecdsa.VerifyingKey.from_string(
                credential.public_key, curve=self.curve.ecdsa_curve, hashfunc=hashlib.sha256,
                valid_encodings=('uncompressed', 'compressed'))
        except ecdsa.MalformedPointError as e:
            log.warning('local: rejecting public key: %s', e)
            return False
        try:
            return key.verify(credential.signature, message, hashfunc=hashlib.sha256, sigdecode=sigdecode_string)
        except ecdsa.BadSignatureError:
            return False


def collected_client_data(challenge: bytes, origin: str, cross_origin: Optional[bool]) -> bytes:
    """Rebuild the clientDataJSON of a webauthn.get whose challenge was SHA-256(challenge)."""
    digest = hashes.Hash(hashes.SHA256())
    digest.update(challenge)
    collected = {
        'type': 'webauthn.get',
        'challenge': base64.urlsafe_b64encode(digest.finalize()).rstrip(b'=').decode('ascii'),
        'origin': origin,
    }
    if cross_origin is not None:
        collected['crossOrigin'] = cross_origin
    return json.dumps(collected, separators=(',', ':'), ensure_ascii=False).encode('utf-8')


class ReferenceVerifier(Verifier):
    """Rebuilds clientDataJSON from the challenge and the structured fields, then verifies DER."""
    name = 'reference'

    def verify(self, challenge, client_data, credential):
        check_credential(credential, self.curve)
        client_json = collected_client_data(challenge, client_data.origin, client_data.cross_origin)
        digest = hashes.Hash(hashes.SHA256())
        digest.update(client_json)
        message = credential.authenticator_data + digest.finalize()
        try:
            key = ec.EllipticCurvePublicKey.from_encoded_point(self.curve.crypto_curve, credential.public_key)
        except ValueError as e:
            log.warning('reference: rejecting public key: %s', e)
            return False
        try:
            key.verify(raw_to_der(credential.signature, self.curve), message, ec.ECDSA(hashes.SHA256()))
        except InvalidSignature:
            return False
        return True


@dataclass
class CrossCheck:
    outcomes: dict = field(default_factory=dict)

    @property
    def agreed(self) -> bool:
        return len(set(self.outcomes.values())) <= 1

    @property
    def verified(self) -> bool:
        return bool(self.outcomes) and self.agreed and all(self.outcomes.values())


def default_verifiers():
    return [LocalVerifier(), ReferenceVerifier()]


def cross_check(challenge: bytes, client_data: ClientData, credential: Credential, verifiers=None) -> CrossCheck:
    result = CrossCheck()
    if verifiers is None:
        verifiers = default_verifiers()
    for verifier in verifiers:
        result.outcomes[verifier.name] = verifier.verify(challenge, client_data, credential)
        log.info('Verification from %s: %s', verifier.name, result.outcomes[verifier.name])
    if not result.agreed:
        log.error('verifiers disagree: %s', result.outcomes)
    return result


if __name__ == '__main__':
    from der_signature import der_to_raw
    from key_store import JsonKeyStore, PUB_KEY
    logging.basicConfig(level=os.environ.get('LOG_LEVEL', 'WARNING'))
    if len(sys.argv) < 2:
        print("usage: verify_assertion.py assertion.json [keys.json]")
        sys.exit(1)
    keys_path = sys.argv[2] if len(sys.argv) >= 3 else pathlib.Path(__file__).resolve().parent.parent / 'data' / 'keys.json'
    assertion = json.load(open(sys.argv[1], 'r', encoding='utf-8'))
    try:
        pub_key = JsonKeyStore(keys_path).get(PUB_KEY)
    except KeyError:
        sys.exit(f'no {PUB_KEY} in {keys_path}')
    try:
        client_data_json = bytes.fromhex(assertion['clientDataJSON'])
        credential = Credential(pub_key, der_to_raw(bytes.fromhex(assertion['signature'])),
                                bytes.fromhex(assertion['authenticatorData']))
        result = cross_check(bytes.fromhex(assertion['challenge']), ClientData.from_json(client_data_json), credential)
    except (DecodeError, MalformedInputError) as e:
        sys.exit(str(e))
    for name, verified in result.outcomes.items():
        print(f'Verification from {name}: {verified}')
    if not result.agreed:
        sys.exit('verifiers disagree')
