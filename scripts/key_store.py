"""Persistence for registered public keys.
Values are kept as JSON arrays of decimal bytes, the same lossless form a
browser produces when it stores a byte array in localStorage.
"""
import json, logging, pathlib

log = logging.getLogger(__name__)

PUB_KEY = 'pubKey'


class KeyStore:
    def put(self, key: str, value: bytes) -> None:
        raise NotImplementedError()

    def get(self, key: str) -> bytes:
        raise NotImplementedError()


class MemoryKeyStore(KeyStore):
    def __init__(self):
        self._data = {}

    def put(self, key, value):
        self._data[key] = bytes(value)

    def get(self, key):
        return self._data[key]


def _to_bytes(value) -> bytes:
    # JSON.stringify(Uint8Array) yields {"0": 4, "1": ...}
    if isinstance(value, dict):
        value = [value[k] for k in sorted(value, key=int)]
    return bytes(value)


class JsonKeyStore(KeyStore):
    def __init__(self, path):
        self.path = pathlib.Path(path)

    def load(self) -> dict:
        if not self.path.exists():
            return {}
        text = self.path.read_text(encoding='utf-8')
        if not text.strip():
            return {}
        return json.loads(text)

    def save(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data), encoding='utf-8')

    def put(self, key, value):
        data = self.load()
        data[key] = list(bytes(value))
        self.save(data)
        log.debug('stored %d bytes under %s in %s', len(value), key, self.path)

    def get(self, key):
        return _to_bytes(self.load()[key])
