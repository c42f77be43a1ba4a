import datetime as _dt
import logging

from pathlib import Path
from typing import List, Optional

from envio.storage.envelope import decode, encode, is_legacy
from envio.utils.dataModels import PROFILE_EXTENSION, Env, EnvVec
from envio.utils.errors import (
    BadKeyError,
    DuplicateError,
    EmptyProfileError,
    InvalidNameError,
    MissingError,
    NoDirectoryError,
    StorageIOError,
)
from envio.utils.helper import atomic_write, profile_path, profiles_dir, validate_profile_name

logger = logging.getLogger(__name__)


class Profile:
    """A named set of environment variables bound to one encrypted file.

    Changes stay in memory until ``push_changes()`` is called.
    """

    def __init__(self, name: str, envs: EnvVec, path: Path, cipher):
        self.name = name
        self.envs = envs
        self.path = Path(path)
        self.cipher = cipher

    def __repr__(self) -> str:
        return f"Profile({self.name!r}, {len(self.envs)} envs, {self.cipher.scheme.name.lower()})"

    @staticmethod
    def exists(name: str) -> bool:
        try:
            path = profile_path(name)
        except InvalidNameError:
            return False
        return path.is_file()

    @staticmethod
    def list() -> List[str]:
        """Names of the stored profiles, sorted."""
        directory = profiles_dir()
        if not directory.is_dir():
            raise NoDirectoryError(f"Profiles directory does not exist: {directory}")
        try:
            entries = list(directory.iterdir())
        except OSError as exc:
            raise StorageIOError.from_os_error(f"Failed to read {directory}", exc) from exc
        return sorted(
            p.stem for p in entries
            if p.suffix == PROFILE_EXTENSION and not p.stem.startswith(".") and p.is_file()
        )

    @classmethod
    def create(cls, name: str, envs: Optional[EnvVec], cipher) -> "Profile":
        if cls.exists(name):
            raise DuplicateError(f"Profile '{name}' already exists")
        profile = cls(name, envs if envs is not None else EnvVec(), profile_path(name), cipher)
        profile.push_changes()
        return profile

    @classmethod
    def load(cls, name: str, cipher) -> "Profile":
        path = profile_path(name)
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            raise MissingError(f"Profile '{name}' does not exist") from None
        except OSError as exc:
            raise StorageIOError.from_os_error(f"Failed to read {path}", exc) from exc

        scheme, body = decode(data)
        if scheme != cipher.scheme:
            raise BadKeyError(
                f"Profile '{name}' uses the {scheme.name.lower()} scheme, "
                f"not {cipher.scheme.name.lower()}"
            )
        envs = EnvVec.from_payload(cipher.open(body))
        if is_legacy(data):
            logger.info("profile %s has no envelope header; it will be upgraded on the next save", name)
        return cls(name, envs, path, cipher)

    def push_changes(self) -> None:
        payload = self.envs.to_payload()
        data = encode(self.cipher.scheme, self.cipher.seal(payload))
        atomic_write(self.path, data)
        logger.debug("saved profile %s (%d envs)", self.name, len(self.envs))

    def insert_env(
        self,
        name: str,
        value: str,
        comment: Optional[str] = None,
        expiration_date: Optional[_dt.date] = None,
    ) -> None:
        self.envs.insert(name, value, comment, expiration_date)

    def edit_env(self, name: str, value: str) -> None:
        self.envs.edit(name, value)

    def remove_env(self, name: str) -> None:
        self.envs.remove(name)

    def expired_envs(self, today: Optional[_dt.date] = None) -> List[Env]:
        return self.envs.expired(today)

    def export(self, path: Path, selected: Optional[List[str]] = None, with_metadata: bool = False) -> None:
        """Write the variables as plaintext ``KEY=VALUE`` lines."""
        if not len(self.envs):
            raise EmptyProfileError(f"Profile '{self.name}' has no environment variables")
        if selected:
            unknown = [key for key in selected if key not in self.envs]
            if unknown:
                raise MissingError(f"Environment variables not in profile: {', '.join(unknown)}")
        atomic_write(Path(path), self.envs.to_plaintext(selected or None, with_metadata).encode("utf-8"))

    @staticmethod
    def delete(name: str) -> None:
        path = profile_path(name)
        try:
            path.unlink()
        except FileNotFoundError:
            raise MissingError(f"Profile '{name}' does not exist") from None
        except OSError as exc:
            raise StorageIOError.from_os_error(f"Failed to delete {path}", exc) from exc
        logger.debug("deleted %s", path)

    @staticmethod
    def import_bytes(name: str, data: bytes) -> Path:
        """Store an already-encrypted profile under ``name``."""
        validate_profile_name(name)
        if Profile.exists(name):
            raise DuplicateError(f"Profile '{name}' already exists")
        decode(data)
        path = profile_path(name)
        atomic_write(path, data)
        return path
