"""Parsing of user-supplied variable text.

Nothing here touches the disk or the envelope; these functions only turn
dotenv-style text and ``KEY=VALUE`` command-line arguments into plain
mappings.
"""
import io

from dotenv import dotenv_values
from typing import Dict, Iterable, Optional, Tuple


def parse_envs(text: str) -> Dict[str, str]:
    """Parse dotenv text into an ordered ``{key: value}`` mapping.

    python-dotenv does the parsing: comments, ``export`` prefixes, quoting
    and inline ``# ...`` comments follow its rules. Values are taken
    literally, without ``${VAR}`` expansion. A key with no ``=`` maps to an
    empty value, so the caller can ask the user for one.
    """
    values = dotenv_values(stream=io.StringIO(text), interpolate=False)
    return {key: value if value is not None else "" for key, value in values.items()}


def split_assignment(arg: str) -> Tuple[str, Optional[str]]:
    """Split a ``KEY=VALUE`` argument. A bare ``KEY`` gives ``(KEY, None)``."""
    if "=" not in arg:
        return arg, None
    key, _, value = arg.partition("=")
    return key, value


def parse_assignments(args: Iterable[str]) -> Dict[str, Optional[str]]:
    return dict(split_assignment(arg) for arg in args)
