"""Convert ECDSA signatures between ASN.1 DER and raw r|s form.

Authenticators return ``SEQUENCE { INTEGER r, INTEGER s }`` while raw ECDSA
verification APIs (WebCrypto, ``ecdsa.util.sigdecode_string``) expect the two
integers as fixed-width big-endian values.  The decoder reads the declared
tag/length fields instead of trusting fixed offsets, so anything that is not a
well formed signature for the curve is rejected rather than mis-sliced.
"""
from cryptography.hazmat.primitives.asymmetric.utils import encode_dss_signature
from cose_curve import Curve
from passkey_errors import DecodeError, MalformedInputError

SEQUENCE = 0x30
INTEGER = 0x02


def _read_integer(der: bytes, offset: int, size: int):
    if offset + 2 > len(der):
        raise DecodeError('DER signature', f'truncated at offset {offset}')
    if der[offset] != INTEGER:
        raise DecodeError('DER signature', f'expected INTEGER tag at offset {offset}, got {der[offset]:#04x}')
    length = der[offset + 1]
    start = offset + 2
    value = der[start:start + length]
    if length == 0 or len(value) != length:
        raise DecodeError('DER signature', f'bad INTEGER length {length} at offset {offset}')
    if value[0] & 0x80:
        raise DecodeError('DER signature', 'negative INTEGER')
    if length > 1 and value[0] == 0 and not value[1] & 0x80:
        raise DecodeError('DER signature', 'non-minimal INTEGER padding')
    if value[0] == 0 and length == size + 1:
        value = value[1:]
    if len(value) > size:
        raise DecodeError('DER signature', f'INTEGER wider than {size} bytes')
    return value.rjust(size, b'\x00'), start + length


def der_to_raw(der: bytes, curve: Curve = Curve.P256) -> bytes:
    der = bytes(der)
    # 30 06 02 01 r 02 01 s is the shortest possible encoding
    if len(der) < 8:
        raise DecodeError('DER signature', f'{len(der)} bytes is too short')
    if der[0] != SEQUENCE:
        raise DecodeError('DER signature', f'expected SEQUENCE tag, got {der[0]:#04x}')
    if der[1] & 0x80:
        # P-256 signatures are at most 72 bytes, well inside short-form lengths
        raise DecodeError('DER signature', 'long-form SEQUENCE length')
    if der[1] != len(der) - 2:
        raise DecodeError('DER signature', f'SEQUENCE length {der[1]} does not match {len(der) - 2} content bytes')
    r, offset = _read_integer(der, 2, curve.size)
    s, offset = _read_integer(der, offset, curve.size)
    if offset != len(der):
        raise DecodeError('DER signature', f'{len(der) - offset} trailing bytes')
    return r + s


def raw_to_der(raw: bytes, curve: Curve = Curve.P256) -> bytes:
    if len(raw) != curve.raw_signature_size:
        raise MalformedInputError('raw signature', f'{len(raw)} bytes, expected {curve.raw_signature_size}')
    r = int.from_bytes(raw[:curve.size], 'big')
    s = int.from_bytes(raw[curve.size:], 'big')
    return encode_dss_signature(r, s)
