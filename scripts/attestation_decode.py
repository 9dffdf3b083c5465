#!/usr/bin/env python3
"""Decode a WebAuthn attestation object and recover the raw credential public key.
Usage: python attestation_decode.py <attestation_object> [keys.json]
The attestation object may be raw CBOR, hex or base64url text.
With a key store path the raw key is persisted under 'pubKey'.
"""
import sys, os, io, base64, binascii, struct, logging
import cbor2
from cose_curve import Curve, KTY, CRV, X, Y, KTY_EC2, UNCOMPRESSED
from passkey_errors import DecodeError

log = logging.getLogger(__name__)


def loads_exact(data: bytes, what: str):
    """CBOR-decode exactly one item, rejecting trailing bytes."""
    decoder = cbor2.CBORDecoder(io.BytesIO(data))
    try:
        obj = decoder.decode()
    except cbor2.CBORDecodeError as e:
        raise DecodeError(what, str(e)) from e
    try:
        decoder.read(1)
    except cbor2.CBORDecodeEOF:
        return obj
    raise DecodeError(what, 'trailing bytes after first item')


def decode_attestation(attestation_object: bytes) -> dict:
    att = loads_exact(bytes(attestation_object), 'attestation object')
    if not isinstance(att, dict):
        raise DecodeError('attestation object', f'expected map, got {type(att).__name__}')
    auth_data = att.get('authData')
    if not isinstance(auth_data, bytes):
        raise DecodeError('attestation object', 'authData missing or not a byte string')
    return att


def decode_public_key(attestation_object: bytes, curve: Curve = Curve.P256) -> bytes:
    """Return 0x04 | x | y taken from the COSE key at the tail of authData.

    The key is assumed to occupy exactly the last ``curve.cose_key_size``
    bytes of authData (no extensions follow it).
    """
    auth_data = decode_attestation(attestation_object)['authData']
    if len(auth_data) < curve.cose_key_size:
        raise DecodeError('authData', f'{len(auth_data)} bytes, need at least {curve.cose_key_size}')
    cose_key = loads_exact(auth_data[-curve.cose_key_size:], 'COSE key')
    if not isinstance(cose_key, dict):
        raise DecodeError('COSE key', 'not a map')
    if cose_key.get(KTY, KTY_EC2) != KTY_EC2:
        raise DecodeError('COSE key', f'kty {cose_key[KTY]} is not EC2')
    if cose_key.get(CRV, curve.cose_crv) != curve.cose_crv:
        raise DecodeError('COSE key', f'crv {cose_key[CRV]} is not {curve.label}')
    coords = []
    for label in (X, Y):
        point = cose_key.get(label)
        if not isinstance(point, bytes) or len(point) != curve.size:
            raise DecodeError('COSE key', f'field {label} must be {curve.size} bytes')
        coords.append(point)
    log.debug('decoded %s public key from %d bytes of authData', curve.label, len(auth_data))
    return bytes([UNCOMPRESSED]) + coords[0] + coords[1]


def read_blob(path) -> bytes:
    """Read raw bytes, or hex / base64url text, from a file."""
    data = open(path, 'rb').read()
    try:
        text = data.decode('ascii').strip()
    except UnicodeDecodeError:
        return data
    try:
        return binascii.unhexlify(text)
    except (binascii.Error, ValueError):
        pass
    try:
        return base64.urlsafe_b64decode(text + '=' * (-len(text) % 4))
    except (binascii.Error, ValueError):
        return data


if __name__ == '__main__':
    logging.basicConfig(level=os.environ.get('LOG_LEVEL', 'WARNING'))
    if len(sys.argv) < 2:
        print("usage: attestation_decode.py <attestation_object> [keys.json]"); sys.exit(1)
    blob = read_blob(sys.argv[1])
    try:
        att = decode_attestation(blob)
        pub_key = decode_public_key(blob)
    except DecodeError as e:
        sys.exit(str(e))
    auth_data = att['authData']
    print('format', att.get('fmt'))
    print('authData len', len(auth_data))
    if len(auth_data) >= 37:
        print('flags', bin(auth_data[32]))
        print('rpIdHash', auth_data[:32].hex())
        print('signCount', struct.unpack('>I', auth_data[33:37])[0])
    print('publicKey', pub_key.hex())
    if len(sys.argv) > 2:
        from key_store import JsonKeyStore, PUB_KEY
        JsonKeyStore(sys.argv[2]).put(PUB_KEY, pub_key)
        print('saved', PUB_KEY, 'to', sys.argv[2])
