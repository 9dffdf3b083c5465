"""Software ES256 authenticator.

Keeps P-256 keys in memory and answers create/get requests with the same
byte layouts a platform authenticator produces ("none" attestation).
Used by the tests and by run_all.py in place of real hardware.
"""
import base64, hashlib, json, logging, os, struct
import cbor2
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from ceremony import Assertion, Attestation, Authenticator
from cose_curve import Curve, KTY, ALG, CRV, X, Y, KTY_EC2

log = logging.getLogger(__name__)

FLAG_UP = 0x01
FLAG_UV = 0x04
FLAG_AT = 0x40


def b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b'=').decode('ascii')


def cose_key(public_key: ec.EllipticCurvePublicKey, curve: Curve = Curve.P256) -> bytes:
    numbers = public_key.public_numbers()
    return cbor2.dumps({
        KTY: KTY_EC2,
        ALG: curve.cose_alg,
        CRV: curve.cose_crv,
        X: numbers.x.to_bytes(curve.size, 'big'),
        Y: numbers.y.to_bytes(curve.size, 'big'),
    })


class SoftAuthenticator(Authenticator):
    def __init__(self, origin=None, aaguid=b'\x00' * 16):
        self.origin = origin
        self.aaguid = aaguid
        # rp id -> [credential id, private key, sign count]
        self.credentials = {}

    def _origin(self, rp_id):
        return self.origin or f'https://{rp_id}'

    def create(self, options):
        algs = [p.get('alg') for p in options.get('pubKeyCredParams', [])]
        if Curve.P256.cose_alg not in algs:
            raise ValueError(f'no supported algorithm in {algs}')
        rp_id = options['rp']['id']
        private_key = ec.generate_private_key(Curve.P256.crypto_curve)
        credential_id = os.urandom(32)
        self.credentials[rp_id] = [credential_id, private_key, 0]
        auth_data = (
            hashlib.sha256(rp_id.encode('utf-8')).digest()
            + struct.pack('>BI', FLAG_UP | FLAG_UV | FLAG_AT, 0)
            + self.aaguid
            + struct.pack('>H', len(credential_id))
            + credential_id
            + cose_key(private_key.public_key())
        )
        attestation_object = cbor2.dumps({'fmt': 'none', 'attStmt': {}, 'authData': auth_data})
        log.debug('created credential %s for %s', b64url(credential_id), rp_id)
        return Attestation(b64url(credential_id), attestation_object)

    def get(self, options):
        rp_id = options['rpId']
        if rp_id not in self.credentials:
            raise ValueError(f'no credential for {rp_id}')
        stored = self.credentials[rp_id]
        stored[2] += 1
        client_data_json = json.dumps({
            'type': 'webauthn.get',
            'challenge': b64url(options['challenge']),
            'origin': self._origin(rp_id),
            'crossOrigin': False,
        }, separators=(',', ':')).encode('utf-8')
        auth_data = hashlib.sha256(rp_id.encode('utf-8')).digest() + struct.pack('>BI', FLAG_UP | FLAG_UV, stored[2])
        signature = stored[1].sign(auth_data + hashlib.sha256(client_data_json).digest(), ec.ECDSA(hashes.SHA256()))
        return Assertion(signature, auth_data, client_data_json)
