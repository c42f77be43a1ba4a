"""Activation of a profile in the user's shell.

Unix: a script at ``<config_dir>/setenv.sh`` that the user's shell config
sources; it asks envio for the profile on each new shell. Windows: the
variables are written to the user environment with ``setx`` and removed
again through ``REG``.
"""
import argparse
import os
import shlex
import subprocess
import sys

from pathlib import Path

from envio.storage.profile import Profile
from envio.ui.constants import OK
from envio.utils.core import open_profile
from envio.utils.errors import EnvioError, MissingError
from envio.utils.helper import atomic_write, config_dir

SHELL_SCRIPT_TEMPLATE = """\
#!/bin/bash
# This script was generated by envio and should not be modified!

envio_profile={profile}
raw_output=$(envio list "$envio_profile" --no-pretty-print)

if ! echo "$raw_output" | grep -q "="; then
    echo "Error: failed to load environment variables from profile '$envio_profile'" >&2
else
    SHELL_NAME=$(basename "$SHELL")
    case "$SHELL_NAME" in
        bash | zsh | sh)
            while IFS= read -r line; do
                export "$line"
            done <<< "$(echo "$raw_output" | grep -E '^[^=#]+=')"
            ;;
        *)
            echo "Error: unsupported shell ($SHELL_NAME)" >&2
            ;;
    esac
fi
"""

SHELL_CONFIGS = {"bash": ".bashrc", "zsh": ".zshrc", "fish": ".config/fish/config.fish"}


def shellscript_path() -> Path:
    return config_dir() / "setenv.sh"


def shell_config() -> str:
    """The rc file of the user's login shell, relative to $HOME, or ''."""
    return SHELL_CONFIGS.get(Path(os.environ.get("SHELL", "")).name, "")


def create_shellscript(profile_name: str) -> Path:
    path = shellscript_path()
    atomic_write(path, SHELL_SCRIPT_TEMPLATE.format(profile=shlex.quote(profile_name)).encode("utf-8"))
    return path


def _run_windows(cmd: list[str], what: str) -> None:
    try:
        proc = subprocess.run(cmd, capture_output=True, check=False)
    except OSError as exc:
        raise EnvioError(f"Failed to run {cmd[0]}: {exc}") from exc
    if proc.returncode != 0:
        raise EnvioError(f"Failed to {what}")


def cmd_load(args: argparse.Namespace) -> None:
    name = args.profile_name
    if not Profile.exists(name):
        raise MissingError(f"Profile '{name}' does not exist")

    if sys.platform == "win32":
        profile = open_profile(name, args)
        for env in profile.envs:
            _run_windows(["setx", env.name, env.value], f"set environment variable {env.name}")
        print(f"{OK} Reload your shell to apply changes")
        return

    create_shellscript(name)
    rc = shell_config()
    if rc:
        print(f"{OK} Reload your shell to apply changes or run `source ~/{rc}`")
    else:
        print(f"{OK} Reload your shell to apply changes (source {shellscript_path()} from your shell config)")


def cmd_unload(args: argparse.Namespace) -> None:
    if sys.platform == "win32":
        if not args.profile_name:
            raise MissingError("A profile name is required on Windows")
        profile = open_profile(args.profile_name, args)
        for env in profile.envs:
            _run_windows(
                ["REG", "delete", "HKCU\\Environment", "/F", "/V", env.name],
                f"delete environment variable {env.name}",
            )
    else:
        path = shellscript_path()
        if path.exists():
            atomic_write(path, b"")
    print(f"{OK} Reload your shell to apply changes")
