#!/usr/bin/env python3
"""Walk authData field by field and dump the credentialPublicKey as PEM.
Usage: python extract_credential_key.py <attestation_object> > key.pem
"""
import sys, os, io, struct, logging
from collections import namedtuple
import cbor2
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives import serialization
from cose_curve import Curve, ALG, X, Y
from passkey_errors import DecodeError

log = logging.getLogger(__name__)

AT_FLAG = 0x40

AuthenticatorData = namedtuple(
    'AuthenticatorData',
    ['rp_id_hash', 'flags', 'sign_count', 'aaguid', 'credential_id', 'credential_public_key'],
)


def parse_auth_data(auth_data: bytes) -> AuthenticatorData:
    if len(auth_data) < 37:
        raise DecodeError('authData', f'{len(auth_data)} bytes, header needs 37')
    rp_id_hash = auth_data[:32]
    flags = auth_data[32]
    sign_count = struct.unpack('>I', auth_data[33:37])[0]
    if not (flags & AT_FLAG):
        return AuthenticatorData(rp_id_hash, flags, sign_count, None, None, None)
    ptr = 37
    if len(auth_data) < ptr + 18:
        raise DecodeError('authData', 'truncated attestedCredentialData')
    aaguid = auth_data[ptr:ptr+16]; ptr += 16
    cred_id_len = struct.unpack('>H', auth_data[ptr:ptr+2])[0]; ptr += 2
    cred_id = auth_data[ptr:ptr+cred_id_len]; ptr += cred_id_len
    if len(cred_id) != cred_id_len:
        raise DecodeError('authData', f'credential id needs {cred_id_len} bytes')
    # extensions may follow the key, so decode a single item only
    try:
        cose_key = cbor2.CBORDecoder(io.BytesIO(auth_data[ptr:])).decode()
    except cbor2.CBORDecodeError as e:
        raise DecodeError('credentialPublicKey', str(e)) from e
    if not isinstance(cose_key, dict):
        raise DecodeError('credentialPublicKey', 'not a map')
    log.debug('credential id %d bytes, COSE alg %s', cred_id_len, cose_key.get(ALG))
    return AuthenticatorData(rp_id_hash, flags, sign_count, aaguid, cred_id, cose_key)


def cose_to_public_key(cose_key: dict) -> ec.EllipticCurvePublicKey:
    curve = Curve.from_cose_alg(cose_key.get(ALG))
    x, y = cose_key.get(X), cose_key.get(Y)
    if not isinstance(x, bytes) or not isinstance(y, bytes):
        raise DecodeError('COSE key', 'missing coordinates')
    pub_nums = ec.EllipticCurvePublicNumbers(int.from_bytes(x, 'big'), int.from_bytes(y, 'big'), curve.crypto_curve)
    try:
        return pub_nums.public_key()
    except ValueError as e:
        raise DecodeError('COSE key', str(e)) from e


if __name__ == '__main__':
    from attestation_decode import read_blob, decode_attestation
    logging.basicConfig(level=os.environ.get('LOG_LEVEL', 'WARNING'))
    if len(sys.argv) < 2:
        print("usage: extract_credential_key.py <attestation_object>")
        sys.exit(1)
    try:
        auth = parse_auth_data(decode_attestation(read_blob(sys.argv[1]))['authData'])
        if auth.credential_public_key is None:
            sys.exit('authData missing attestedCredentialData')
        pub_key = cose_to_public_key(auth.credential_public_key)
    except DecodeError as e:
        sys.exit(str(e))
    pem = pub_key.public_bytes(serialization.Encoding.PEM, serialization.PublicFormat.SubjectPublicKeyInfo)
    sys.stdout.buffer.write(pem)
