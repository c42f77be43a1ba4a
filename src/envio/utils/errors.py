"""Error taxonomy shared by every layer of envio.

The core raises these and never prints; the command layer turns them into
``[!]`` messages and a non-zero exit status.
"""


class EnvioError(Exception):
    kind = "Error"


class MissingError(EnvioError):
    """A named profile or variable does not exist."""

    kind = "Missing"


class DuplicateError(EnvioError):
    """A profile or variable with that name already exists."""

    kind = "Duplicate"


class NoDirectoryError(EnvioError):
    kind = "NoDirectory"


class BadEnvelopeError(EnvioError):
    """Magic mismatch or truncated frame."""

    kind = "BadEnvelope"


class UnsupportedSchemeError(EnvioError):
    kind = "UnsupportedScheme"


class BadKeyError(EnvioError):
    """The passphrase or the key agent rejected the ciphertext."""

    kind = "BadKey"


class CorruptError(EnvioError):
    """Authentication failed or the decrypted payload did not parse."""

    kind = "Corrupt"


class AgentUnavailableError(EnvioError):
    kind = "AgentUnavailable"


class InvalidValueError(EnvioError):
    kind = "InvalidValue"


class InvalidNameError(EnvioError):
    kind = "InvalidName"


class EmptyProfileError(EnvioError):
    kind = "EmptyProfile"


class StorageIOError(EnvioError):
    """Underlying storage failure. The OSError is chained as ``__cause__``."""

    kind = "Io"

    def __init__(self, message: str, errno: int | None = None):
        super().__init__(message)
        self.errno = errno

    @classmethod
    def from_os_error(cls, action: str, exc: OSError) -> "StorageIOError":
        return cls(f"{action}: {exc.strerror or exc}", exc.errno)
