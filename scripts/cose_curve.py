"""Curves supported by the COSE key / signature codecs.
Only ES256 on P-256 exists for now; adding a curve means adding a member here.
"""
import enum
import ecdsa
from cryptography.hazmat.primitives.asymmetric import ec
from passkey_errors import DecodeError

# COSE_Key labels (RFC 8152, 13.1.1)
KTY=1
ALG=3
CRV=-1
X=-2
Y=-3

KTY_EC2=2
UNCOMPRESSED=0x04


class Curve(enum.Enum):
    # (label, coordinate size, COSE crv, COSE alg)
    P256=('P-256', 32, 1, -7)

    def __init__(self, label, size, cose_crv, cose_alg):
        self.label=label
        self.size=size
        self.cose_crv=cose_crv
        self.cose_alg=cose_alg

    @property
    def cose_key_size(self) -> int:
        # a5 | 01 02 | 03 26 | 20 01 | 21 58 20 <x> | 22 58 20 <y>
        return 7 + 2 * (3 + self.size)

    @property
    def raw_key_size(self) -> int:
        return 1 + 2 * self.size

    @property
    def compressed_key_size(self) -> int:
        return 1 + self.size

    @property
    def raw_signature_size(self) -> int:
        return 2 * self.size

    @property
    def crypto_curve(self) -> ec.EllipticCurve:
        return {Curve.P256: ec.SECP256R1}[self]()

    @property
    def ecdsa_curve(self):
        return {Curve.P256: ecdsa.NIST256p}[self]

    @classmethod
    def from_cose_alg(cls, alg):
        for curve in cls:
            if curve.cose_alg == alg:
                return curve
        raise DecodeError('COSE key', f'unsupported alg {alg}')
