class DecodeError(Exception):
    """Malformed CBOR/DER structure or wrong byte lengths inside it."""

    def __init__(self, what: str, msg: str):
        super().__init__(what, msg)
        self.what = what
        self.msg = msg

    def __str__(self):
        return "cannot decode {}: {}".format(self.what, self.msg)


class MalformedInputError(Exception):
    """Key or signature of the wrong size handed to a verifier."""

    def __init__(self, what: str, msg: str):
        super().__init__(what, msg)
        self.what = what
        self.msg = msg

    def __str__(self):
        return "malformed {}: {}".format(self.what, self.msg)
