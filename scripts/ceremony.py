"""Registration and verification flow around an injected authenticator.

The authenticator stands in for ``navigator.credentials``: ``create`` returns
the attestation object of a new ES256 credential, ``get`` signs a challenge.
Only byte payloads cross this boundary.
"""
import enum, hashlib, logging, secrets
from collections import namedtuple
from dataclasses import dataclass
from typing import Optional
from attestation_decode import decode_public_key
from cose_curve import Curve
from der_signature import der_to_raw
from key_store import KeyStore, PUB_KEY
from verify_assertion import ClientData, Credential, CrossCheck, cross_check

log = logging.getLogger(__name__)

DEFAULT_DOMAIN = 'localhost'
DEFAULT_TIMEOUT_MS = 60_000
CHALLENGE_SIZE = 32

Attestation = namedtuple('Attestation', ['id', 'attestation_object'])
Assertion = namedtuple('Assertion', ['signature', 'authenticator_data', 'client_data_json'])
CredentialAttestation = namedtuple('CredentialAttestation', ['id', 'public_key'])


class AttemptState(enum.Enum):
    CHALLENGE_ISSUED = 'ChallengeIssued'
    SIGNATURE_REQUESTED = 'SignatureRequested'
    SIGNATURE_RECEIVED = 'SignatureReceived'
    MESSAGE_ASSEMBLED = 'MessageAssembled'
    VERIFIED = 'Verified'


class Authenticator:
    def create(self, options: dict) -> Attestation:
        raise NotImplementedError()

    def get(self, options: dict) -> Assertion:
        raise NotImplementedError()


@dataclass
class CredentialCreationOptions:
    timeout: int = DEFAULT_TIMEOUT_MS
    domain: Optional[str] = None
    rp_name: Optional[str] = None


@dataclass
class CredentialRequestOptions:
    timeout: int = DEFAULT_TIMEOUT_MS
    domain: Optional[str] = None


def creation_request(name: str, options: Optional[CredentialCreationOptions] = None) -> dict:
    options = options or CredentialCreationOptions()
    domain = options.domain or DEFAULT_DOMAIN
    return {
        'challenge': secrets.token_bytes(CHALLENGE_SIZE),
        'rp': {'id': domain, 'name': options.rp_name or domain},
        'user': {'id': secrets.token_bytes(CHALLENGE_SIZE), 'name': name, 'displayName': name},
        'pubKeyCredParams': [{'alg': Curve.P256.cose_alg, 'type': 'public-key'}],
        'timeout': options.timeout,
    }


def create_credential(authenticator: Authenticator, name: str,
                      options: Optional[CredentialCreationOptions] = None) -> CredentialAttestation:
    attestation = authenticator.create(creation_request(name, options))
    return CredentialAttestation(attestation.id, decode_public_key(attestation.attestation_object))


def request_signature(authenticator: Authenticator, challenge: bytes,
                      options: Optional[CredentialRequestOptions] = None) -> Assertion:
    options = options or CredentialRequestOptions()
    return authenticator.get({
        'rpId': options.domain or DEFAULT_DOMAIN,
        'challenge': hashlib.sha256(challenge).digest(),
        'timeout': options.timeout,
    })


def register(authenticator: Authenticator, store: KeyStore, name: str,
             options: Optional[CredentialCreationOptions] = None) -> CredentialAttestation:
    credential = create_credential(authenticator, name, options)
    store.put(PUB_KEY, credential.public_key)
    log.info('registered credential %s for %s', credential.id, name)
    return credential


def request_and_verify(authenticator: Authenticator, store: KeyStore, verifiers=None,
                       options: Optional[CredentialRequestOptions] = None) -> CrossCheck:
    pub_key = store.get(PUB_KEY)
    challenge = secrets.token_bytes(CHALLENGE_SIZE)
    log.debug('%s', AttemptState.CHALLENGE_ISSUED.value)

    log.debug('%s', AttemptState.SIGNATURE_REQUESTED.value)
    assertion = request_signature(authenticator, challenge, options)
    log.debug('%s: %d byte signature', AttemptState.SIGNATURE_RECEIVED.value, len(assertion.signature))

    credential = Credential(pub_key, der_to_raw(assertion.signature), bytes(assertion.authenticator_data))
    client_data = ClientData.from_json(assertion.client_data_json)
    log.debug('%s', AttemptState.MESSAGE_ASSEMBLED.value)

    result = cross_check(challenge, client_data, credential, verifiers)
    log.debug('%s{%s}', AttemptState.VERIFIED.value, result.verified)
    return result
