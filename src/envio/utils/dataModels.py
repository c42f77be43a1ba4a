import datetime as _dt
import struct

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Iterator, List, Optional

from envio.utils.errors import CorruptError, DuplicateError, InvalidValueError, MissingError

DEFAULT_T_COST = 3
DEFAULT_M_COST_KiB = 65536  # 64 MiB
DEFAULT_PARALLELISM = 2

# Upper bounds accepted when reading a file, so a forged header cannot ask
# Argon2 for absurd amounts of time or memory.
MAX_T_COST = 64
MAX_M_COST_KiB = 4 * 1024 * 1024
MAX_PARALLELISM = 16


class Scheme(IntEnum):
    PASSPHRASE = 0x01
    RECIPIENT = 0x02


ENVELOPE_MAGIC = b"ENV1"
ENVELOPE_HDR_FMT = ">4sBH"  # magic, scheme tag, reserved
ENVELOPE_HDR_SIZE = struct.calcsize(ENVELOPE_HDR_FMT)

LENGTH_FMT = ">I"
LENGTH_SIZE = struct.calcsize(LENGTH_FMT)

PASSPHRASE_VERSION = 1
PASSPHRASE_HDR_FMT = ">BIII16s12s32s"  # ver, t, m, p, salt(16), nonce(12), key check(32)
PASSPHRASE_HDR_SIZE = struct.calcsize(PASSPHRASE_HDR_FMT)

PROFILE_EXTENSION = ".env"

COMMENT_PREFIX = "# comment: "
EXPIRES_PREFIX = "# expires: "


@dataclass
class Env:
    name: str
    value: str
    comment: Optional[str] = None
    expiration_date: Optional[_dt.date] = None

    def is_expired(self, today: Optional[_dt.date] = None) -> bool:
        if self.expiration_date is None:
            return False
        return self.expiration_date <= (today or _dt.date.today())

    def to_lines(self, with_metadata: bool = True) -> List[str]:
        _check_name(self.name)
        _check_value(self.name, self.value)
        lines = [f"{self.name}={self.value}"]
        if with_metadata and self.comment is not None:
            if "\n" in self.comment:
                raise InvalidValueError(f"Comment of '{self.name}' must not contain a newline")
            lines.append(COMMENT_PREFIX + self.comment)
        if with_metadata and self.expiration_date is not None:
            lines.append(EXPIRES_PREFIX + self.expiration_date.isoformat())
        return lines


def _check_name(name: str) -> None:
    if not name:
        raise InvalidValueError("Variable name must not be empty")
    if "=" in name or "\n" in name or name.startswith("#") or name != name.strip():
        raise InvalidValueError(f"Invalid variable name: {name!r}")


def _check_value(name: str, value: str) -> None:
    if "\n" in value:
        raise InvalidValueError(f"Value of '{name}' must not contain a newline")
    if "=" in value:
        raise InvalidValueError(f"Value of '{name}' must not contain '='")
    if value[:1].isspace():
        raise InvalidValueError(f"Value of '{name}' must not start with whitespace")


class EnvVec:
    """Ordered set of environment variables keyed by name."""

    def __init__(self, envs: Optional[List[Env]] = None):
        self._envs: Dict[str, Env] = {}
        for env in envs or []:
            self.insert(env.name, env.value, env.comment, env.expiration_date)

    def keys(self) -> List[str]:
        return list(self._envs)

    def get(self, name: str) -> Optional[str]:
        env = self._envs.get(name)
        return env.value if env is not None else None

    def get_env(self, name: str) -> Env:
        try:
            return self._envs[name]
        except KeyError:
            raise MissingError(f"Environment variable '{name}' does not exist") from None

    def contains(self, name: str) -> bool:
        return name in self._envs

    __contains__ = contains

    def insert(
        self,
        name: str,
        value: str,
        comment: Optional[str] = None,
        expiration_date: Optional[_dt.date] = None,
    ) -> None:
        if not name:
            raise InvalidValueError("Variable name must not be empty")
        if name in self._envs:
            raise DuplicateError(f"Environment variable '{name}' already exists")
        self._envs[name] = Env(name, value, comment, expiration_date)

    def edit(self, name: str, value: str) -> None:
        self.get_env(name).value = value

    def set_comment(self, name: str, comment: Optional[str]) -> None:
        self.get_env(name).comment = comment

    def set_expiration(self, name: str, expiration_date: Optional[_dt.date]) -> None:
        self.get_env(name).expiration_date = expiration_date

    def remove(self, name: str) -> None:
        if name not in self._envs:
            raise MissingError(f"Environment variable '{name}' does not exist")
        del self._envs[name]

    def expired(self, today: Optional[_dt.date] = None) -> List[Env]:
        return [env for env in self if env.is_expired(today)]

    def as_environ(self) -> Dict[str, str]:
        return {env.name: env.value for env in self}

    def __iter__(self) -> Iterator[Env]:
        return iter(list(self._envs.values()))

    def __len__(self) -> int:
        return len(self._envs)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EnvVec):
            return NotImplemented
        return list(self) == list(other)

    def __repr__(self) -> str:
        return f"EnvVec({self.keys()!r})"

    def to_plaintext(self, selected: Optional[List[str]] = None, with_metadata: bool = False) -> str:
        lines: List[str] = []
        for env in self:
            if selected is not None and env.name not in selected:
                continue
            lines.extend(env.to_lines(with_metadata))
        return "".join(line + "\n" for line in lines)

    def to_payload(self) -> bytes:
        return self.to_plaintext(with_metadata=True).encode("utf-8")

    @staticmethod
    def from_payload(b: bytes) -> "EnvVec":
        try:
            text = b.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise CorruptError("Profile payload is not valid UTF-8") from exc
        if text and not text.endswith("\n"):
            raise CorruptError("Profile payload is truncated")

        envs = EnvVec()
        last: Optional[Env] = None
        for lineno, line in enumerate(text.split("\n")[:-1], start=1):
            if line.startswith(COMMENT_PREFIX) and last is not None:
                last.comment = line[len(COMMENT_PREFIX):]
            elif line.startswith(EXPIRES_PREFIX) and last is not None:
                try:
                    last.expiration_date = _dt.date.fromisoformat(line[len(EXPIRES_PREFIX):])
                except ValueError as exc:
                    raise CorruptError(f"Bad expiration date on line {lineno}") from exc
            elif "=" in line and not line.startswith("#"):
                name, _, value = line.partition("=")
                try:
                    envs.insert(name, value)
                except (DuplicateError, InvalidValueError) as exc:
                    raise CorruptError(f"Bad variable on line {lineno}: {exc}") from exc
                last = envs.get_env(name)
            else:
                raise CorruptError(f"Unparseable line {lineno} in profile payload")
        return envs
