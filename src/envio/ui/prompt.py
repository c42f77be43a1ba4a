"""Interactive prompts used by the command layer."""
import getpass

from typing import List, Optional, Tuple

from envio.ui.constants import (
    CONFIRM_PASSPHRASE_PROMPT,
    MIN_PASSPHRASE_LENGTH,
    NEW_PASSPHRASE_PROMPT,
    PASSPHRASE_PROMPT,
)
from envio.utils.errors import EnvioError


class PromptError(EnvioError):
    """The user gave up or gave unusable input."""

    kind = "Prompt"


def prompt_passphrase() -> str:
    return getpass.getpass(PASSPHRASE_PROMPT)


def check_new_passphrase(passphrase: str) -> str:
    """Apply the minimum length to a passphrase for a new or re-keyed profile."""
    if len(passphrase) < MIN_PASSPHRASE_LENGTH:
        raise PromptError(f"The encryption key must be at least {MIN_PASSPHRASE_LENGTH} characters long")
    return passphrase


def prompt_new_passphrase() -> str:
    passphrase = check_new_passphrase(getpass.getpass(NEW_PASSPHRASE_PROMPT))
    if getpass.getpass(CONFIRM_PASSPHRASE_PROMPT) != passphrase:
        raise PromptError("The keys don't match")
    return passphrase


def prompt_value(key: str, new: bool = False) -> str:
    return input(f"Enter the {'new ' if new else ''}value for {key}: ")


def confirm(question: str, default: bool = False) -> bool:
    suffix = " [Y/n] " if default else " [y/N] "
    answer = input(question + suffix).strip().lower()
    if not answer:
        return default
    return answer in ("y", "yes")


def select_key(keys: List[Tuple[str, str]]) -> str:
    """Let the user pick one ``(label, fingerprint)`` pair and return the fingerprint."""
    if not keys:
        raise PromptError("No GPG keys found")
    for i, (label, _) in enumerate(keys, start=1):
        print(f"  {i}) {label}")
    choice: Optional[int] = None
    raw = input("Select the GPG key you want to use for encryption: ").strip()
    if raw.isdigit():
        choice = int(raw)
    if choice is None or not 1 <= choice <= len(keys):
        raise PromptError(f"Invalid selection: {raw}")
    return keys[choice - 1][1]


def select_many(question: str, options: List[str]) -> List[str]:
    """Numbered multi-select. An empty answer keeps every option."""
    if not options:
        return []
    for i, option in enumerate(options, start=1):
        print(f"  {i}) {option}")
    raw = input(f"{question} (numbers separated by spaces, enter for all): ").strip()
    if not raw:
        return list(options)
    picked: List[str] = []
    for token in raw.replace(",", " ").split():
        if not token.isdigit() or not 1 <= int(token) <= len(options):
            raise PromptError(f"Invalid selection: {token}")
        option = options[int(token) - 1]
        if option not in picked:
            picked.append(option)
    return picked
