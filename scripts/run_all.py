#!/usr/bin/env python3
"""Convenience wrapper that runs a full register/verify pipeline against the
software authenticator.
Usage:
    python run_all.py [data_dir]
It will generate:
    data/attestation.hex  – attestation object returned at registration
    data/keys.json        – persisted raw public key
    data/key.pem          – credential public key as PEM
    data/assertion.json   – signed challenge, verified by both verifiers
"""
import sys, os, json, logging, secrets, subprocess, pathlib
from ceremony import creation_request, request_signature
from soft_authenticator import SoftAuthenticator
ROOT = pathlib.Path(__file__).resolve().parent.parent
SCRIPTS = ROOT / 'scripts'

logging.basicConfig(level=os.environ.get('LOG_LEVEL', 'WARNING'))
DATA = pathlib.Path(sys.argv[1]).expanduser().resolve() if len(sys.argv) >= 2 else ROOT / 'data'
DATA.mkdir(parents=True, exist_ok=True)
attestation_hex = DATA / 'attestation.hex'
keys_json = DATA / 'keys.json'
key_pem = DATA / 'key.pem'
assertion_json = DATA / 'assertion.json'
authenticator = SoftAuthenticator()
print("[+] creating credential …")
attestation = authenticator.create(creation_request('grug'))
attestation_hex.write_text(attestation.attestation_object.hex())
print("[+] decoding attestation …")
subprocess.check_call([
    sys.executable,
    str(SCRIPTS / 'attestation_decode.py'),
    str(attestation_hex),
    str(keys_json),
])
with open(key_pem, 'wb') as fh:
    subprocess.check_call([
        sys.executable,
        str(SCRIPTS / 'extract_credential_key.py'),
        str(attestation_hex),
    ], stdout=fh)
print("[+] signing challenge …")
challenge = secrets.token_bytes(32)
assertion = request_signature(authenticator, challenge)
assertion_json.write_text(json.dumps({
    'challenge': challenge.hex(),
    'authenticatorData': assertion.authenticator_data.hex(),
    'clientDataJSON': assertion.client_data_json.hex(),
    'signature': assertion.signature.hex(),
}, indent=2))
print("[+] verifying …")
subprocess.check_call([
    sys.executable,
    str(SCRIPTS / 'verify_assertion.py'),
    str(assertion_json),
    str(keys_json),
])
print("[+] done →", DATA)
