import argparse
import datetime as _dt
import os
import subprocess
import sys

import httpx

from pathlib import Path
from typing import Dict, Optional

from envio.crypto.ciphers import Cipher, PassphraseCipher, RecipientCipher, get_cipher
from envio.crypto.gpg import GpgAgent
from envio.storage.profile import Profile
from envio.ui import prompt
from envio.ui.constants import ERR, INFO, NO_COMMENT, NO_EXPIRATION, OK
from envio.utils.dataModels import EnvVec
from envio.utils.errors import DuplicateError, EnvioError, InvalidValueError, MissingError, StorageIOError
from envio.utils.helper import contains_path_separator, validate_profile_name
from envio.utils.parsing import parse_assignments, parse_envs


def parse_date(s: str) -> _dt.date:
    try:
        return _dt.date.fromisoformat(s)
    except ValueError:
        raise InvalidValueError(f"Invalid date '{s}', expected YYYY-MM-DD") from None


def new_cipher(args: argparse.Namespace) -> Cipher:
    """Cipher for a profile being created, from --gpg or a passphrase."""
    if getattr(args, "gpg", None):
        fingerprint = args.gpg
        if fingerprint == "select":
            fingerprint = prompt.select_key(GpgAgent().list_keys())
        return RecipientCipher(fingerprint)
    passphrase = getattr(args, "passphrase", None)
    passphrase = prompt.check_new_passphrase(passphrase) if passphrase else prompt.prompt_new_passphrase()
    return PassphraseCipher(passphrase, args.t, args.m, args.p)


def check_expired_envs(profile: Profile) -> None:
    for env in profile.expired_envs():
        print(f"{INFO} Warning: environment variable '{env.name}' has expired ({env.expiration_date})")


def open_profile(name: str, args: argparse.Namespace) -> Profile:
    """Load an existing profile, asking for a passphrase only if its scheme needs one."""
    passphrase = getattr(args, "passphrase", None)
    cipher = get_cipher(name, (lambda: passphrase) if passphrase else prompt.prompt_passphrase)
    profile = Profile.load(name, cipher)
    check_expired_envs(profile)
    return profile


def _fill_missing_values(envs: Dict[str, Optional[str]]) -> Dict[str, str]:
    return {key: value if value is not None else prompt.prompt_value(key) for key, value in envs.items()}


def _collect_envs(args: argparse.Namespace) -> EnvVec:
    envs = EnvVec()
    if args.envs_file:
        src = Path(args.envs_file)
        if not src.is_file():
            raise MissingError(f"File does not exist: {src}")
        parsed = parse_envs(src.read_text(encoding="utf-8"))
        for key, value in parsed.items():
            if not value and prompt.confirm(f"Would you like to assign a value to key: {key}?"):
                parsed[key] = prompt.prompt_value(key)
        keep = prompt.select_many("Select the environment variables you want to keep in your new profile", list(parsed))
        for key, value in parsed.items():
            if key in keep:
                envs.insert(key, value)
    elif args.envs:
        for key, value in _fill_missing_values(parse_assignments(args.envs)).items():
            envs.insert(key, value)
    return envs


def cmd_create(args: argparse.Namespace) -> None:
    name = args.profile_name
    validate_profile_name(name)
    if Profile.exists(name):
        raise DuplicateError(f"Profile '{name}' already exists")

    cipher = new_cipher(args)
    try:
        Profile.create(name, _collect_envs(args), cipher)
    finally:
        cipher.wipe()
    print(f"{OK} Profile created: {name}")


def cmd_add(args: argparse.Namespace) -> None:
    profile = open_profile(args.profile_name, args)
    expires = parse_date(args.expires) if args.expires else None
    assignments = parse_assignments(args.envs)
    for key in assignments:
        if key in profile.envs:
            raise DuplicateError(f"The environment variable '{key}' already exists in profile")
    for key, value in _fill_missing_values(assignments).items():
        profile.insert_env(key, value, args.comment, expires)
    print(f"{INFO} Applying changes")
    profile.push_changes()
    print(f"{OK} Added {len(assignments)} variable(s) to {profile.name}")


def cmd_update(args: argparse.Namespace) -> None:
    profile = open_profile(args.profile_name, args)
    assignments = parse_assignments(args.envs)
    for key in assignments:
        if key not in profile.envs:
            raise MissingError(
                f"The environment variable '{key}' does not exist in profile; use the `add` command to add it"
            )
    for key, value in assignments.items():
        profile.edit_env(key, value if value is not None else prompt.prompt_value(key, new=True))
        if args.comment is not None:
            profile.envs.set_comment(key, args.comment)
        if args.expires is not None:
            profile.envs.set_expiration(key, parse_date(args.expires))
    print(f"{INFO} Applying changes")
    profile.push_changes()
    print(f"{OK} Updated {len(assignments)} variable(s) in {profile.name}")


def print_envs(profile: Profile, show_comments: bool = False, show_expiration: bool = False) -> None:
    header = ["Environment Variable", "Value"]
    if show_comments:
        header.append("Comment")
    if show_expiration:
        header.append("Expiration Date")
    rows = [header]
    for env in profile.envs:
        row = [env.name, env.value]
        if show_comments:
            row.append(env.comment if env.comment is not None else NO_COMMENT)
        if show_expiration:
            row.append(env.expiration_date.isoformat() if env.expiration_date else NO_EXPIRATION)
        rows.append(row)
    widths = [max(len(r[i]) for r in rows) for i in range(len(header))]
    for i, row in enumerate(rows):
        print("  ".join(cell.ljust(w) for cell, w in zip(row, widths)).rstrip())
        if i == 0:
            print("  ".join("-" * w for w in widths))


def cmd_list(args: argparse.Namespace) -> None:
    if args.profiles or not args.profile_name:
        profiles = Profile.list()
        if not profiles:
            print("(no profiles)")
            return
        for name in profiles:
            print(name if args.no_pretty_print else f"  {name}")
        return

    profile = open_profile(args.profile_name, args)
    if args.no_pretty_print:
        sys.stdout.write(profile.envs.to_plaintext())
    else:
        print_envs(profile, args.comments, args.expiration)


def cmd_export(args: argparse.Namespace) -> None:
    file_name = args.file or ".env"
    out = Path(file_name) if contains_path_separator(file_name) else Path.cwd() / file_name
    profile = open_profile(args.profile_name, args)
    selected = args.envs or None
    if selected and "select" in selected:
        selected = prompt.select_many("Select the environment variables you want to export", profile.envs.keys())
    profile.export(out, selected or None, with_metadata=args.metadata)
    print(f"{OK} Exported envs to {out}")


def download_profile(url: str, timeout: float = 30.0) -> bytes:
    try:
        response = httpx.get(url, follow_redirects=True, timeout=timeout)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        raise EnvioError(f"Failed to download profile from {url}: {exc}") from exc
    return response.content


def cmd_import(args: argparse.Namespace) -> None:
    name = args.profile_name
    if Profile.exists(name):
        raise DuplicateError(f"Profile '{name}' already exists")
    if args.url:
        print(f"{INFO} Downloading profile from {args.url}")
        data = download_profile(args.url)
    elif args.file:
        src = Path(args.file)
        try:
            data = src.read_bytes()
        except FileNotFoundError:
            raise MissingError(f"File does not exist: {src}") from None
        except OSError as exc:
            raise StorageIOError.from_os_error(f"Failed to read {src}", exc) from exc
    else:
        print(f"{ERR} You must specify a file or url")
        sys.exit(1)
    path = Profile.import_bytes(name, data)
    print(f"{OK} Imported profile {name} -> {path}")


def cmd_launch(args: argparse.Namespace) -> None:
    command = args.command[1:] if args.command[:1] == ["--"] else args.command
    if not command:
        print(f"{ERR} No command given")
        sys.exit(1)
    profile = open_profile(args.profile_name, args)
    env = dict(os.environ)
    env.update(profile.envs.as_environ())
    try:
        proc = subprocess.run(command, env=env, check=False)
    except FileNotFoundError:
        print(f"{ERR} Command not found: {command[0]}")
        sys.exit(127)
    if proc.returncode < 0:
        print(f"{ERR} Child process terminated by signal {-proc.returncode}")
        sys.exit(1)
    sys.exit(proc.returncode)
