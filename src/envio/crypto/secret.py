class Passphrase:
    """Mutable passphrase buffer that is zeroed when no longer needed.

    Python strings are immutable and cannot be scrubbed, so the text is
    copied into a ``bytearray`` as early as possible. Use it as a context
    manager, or call ``wipe()``; it also wipes itself when collected.
    """

    __slots__ = ("_buf",)

    def __init__(self, secret: str | bytes | bytearray):
        if isinstance(secret, str):
            secret = secret.encode("utf-8")
        self._buf = bytearray(secret)

    @property
    def buffer(self) -> bytearray:
        return self._buf

    def wipe(self) -> None:
        for i in range(len(self._buf)):
            self._buf[i] = 0

    def __len__(self) -> int:
        return len(self._buf)

    def __enter__(self) -> "Passphrase":
        return self

    def __exit__(self, *exc) -> None:
        self.wipe()

    def __del__(self) -> None:
        if hasattr(self, "_buf"):
            self.wipe()

    def __repr__(self) -> str:
        return "Passphrase(***)"
