import logging
import os
import sys

from pathlib import Path

from envio.utils.dataModels import PROFILE_EXTENSION
from envio.utils.errors import InvalidNameError, StorageIOError

logger = logging.getLogger(__name__)


def config_dir() -> Path:
    """Per-user configuration directory. ``ENVIO_CONFIG_DIR`` wins if set."""
    override = os.environ.get("ENVIO_CONFIG_DIR")
    if override:
        return Path(override).expanduser()
    if sys.platform == "win32" and os.environ.get("APPDATA"):
        return Path(os.environ["APPDATA"]) / "envio"
    xdg = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg) if xdg else Path("~/.config").expanduser()
    return base / "envio"


def profiles_dir() -> Path:
    return config_dir() / "profiles"


def contains_path_separator(s: str) -> bool:
    return "/" in s or "\\" in s


def validate_profile_name(name: str) -> None:
    if not name:
        raise InvalidNameError("Profile name can not be empty")
    if name.startswith("."):
        raise InvalidNameError(f"Profile name must not start with '.': {name}")
    if contains_path_separator(name):
        raise InvalidNameError(f"Profile name must not contain path separators: {name}")


def profile_path(name: str) -> Path:
    validate_profile_name(name)
    return profiles_dir() / f"{name}{PROFILE_EXTENSION}"


def atomic_write(path: Path, data: bytes) -> None:
    """Write ``data`` to a hidden sibling, fsync it, then rename it over ``path``.

    On any failure the temporary file is removed and ``path`` keeps its old
    contents.
    """
    tmp = path.with_name(f".{path.name}.tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tmp.open("wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except OSError as exc:
        try:
            tmp.unlink()
        except FileNotFoundError:
            pass
        raise StorageIOError.from_os_error(f"Failed to write {path}", exc) from exc
    logger.debug("wrote %d bytes to %s", len(data), path)
