import argparse
import platform

from importlib import metadata

from envio.ui.constants import VERSION
from envio.utils.core import cmd_add, cmd_create, cmd_export, cmd_import, cmd_launch, cmd_list, cmd_update
from envio.utils.dataModels import DEFAULT_T_COST, DEFAULT_M_COST_KiB, DEFAULT_PARALLELISM
from envio.utils.helper import config_dir
from envio.utils.maintain import cmd_remove, cmd_rotate
from envio.utils.shell import cmd_load, cmd_unload


REPORTED_DEPENDENCIES = ("cryptography", "argon2-cffi", "httpx", "python-dotenv", "pyrage")


def cmd_version(args: argparse.Namespace) -> None:
    print(f"envio {VERSION}")
    if not args.details:
        return
    print(f"Python {platform.python_version()} ({platform.python_implementation()})")
    print(f"Platform {platform.platform()}")
    print(f"Config directory {config_dir()}")
    for name in REPORTED_DEPENDENCIES:
        try:
            print(f"{name} {metadata.version(name)}")
        except metadata.PackageNotFoundError:
            print(f"{name} (not installed)")


def _passphrase_arg(p: argparse.ArgumentParser) -> None:
    p.add_argument("--passphrase", help="Encryption key (prompted for when omitted)")


def _kdf_args(p: argparse.ArgumentParser, defaults: bool) -> None:
    p.add_argument("-t", type=int, default=DEFAULT_T_COST if defaults else None, help="Argon2 time cost (iterations)")
    p.add_argument("-m", type=int, default=DEFAULT_M_COST_KiB if defaults else None, help="Argon2 memory (KiB)")
    p.add_argument("-p", type=int, default=DEFAULT_PARALLELISM if defaults else None, help="Argon2 parallelism")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="envio", description="Manage encrypted environment variable profiles")
    p.add_argument("-v", "--verbose", action="store_true", help="Print debug logs")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_create = sub.add_parser("create", help="Create a new profile")
    p_create.add_argument("profile_name")
    p_create.add_argument("-e", "--envs", nargs="+", metavar="ENV", help="KEY=VALUE pairs, or KEY to be prompted")
    p_create.add_argument("-f", "--envs-file", help="Read variables from a dotenv file")
    p_create.add_argument("-g", "--gpg", metavar="FINGERPRINT", help="Encrypt for a GPG key ('select' to choose)")
    _passphrase_arg(p_create)
    _kdf_args(p_create, defaults=True)
    p_create.set_defaults(func=cmd_create)

    p_add = sub.add_parser("add", help="Add variables to a profile")
    p_add.add_argument("profile_name")
    p_add.add_argument("envs", nargs="+", metavar="ENV")
    p_add.add_argument("--comment")
    p_add.add_argument("--expires", metavar="YYYY-MM-DD")
    _passphrase_arg(p_add)
    p_add.set_defaults(func=cmd_add)

    p_update = sub.add_parser("update", help="Change variables of a profile")
    p_update.add_argument("profile_name")
    p_update.add_argument("envs", nargs="+", metavar="ENV")
    p_update.add_argument("--comment")
    p_update.add_argument("--expires", metavar="YYYY-MM-DD")
    _passphrase_arg(p_update)
    p_update.set_defaults(func=cmd_update)

    p_remove = sub.add_parser("remove", help="Remove variables, or the whole profile")
    p_remove.add_argument("profile_name")
    p_remove.add_argument("-e", "--envs", nargs="+", metavar="KEY")
    _passphrase_arg(p_remove)
    p_remove.set_defaults(func=cmd_remove)

    p_list = sub.add_parser("list", help="List profiles, or the variables of one profile")
    p_list.add_argument("profile_name", nargs="?")
    p_list.add_argument("--profiles", action="store_true", help="List the stored profiles")
    p_list.add_argument("-n", "--no-pretty-print", action="store_true", help="Plain KEY=VALUE output")
    p_list.add_argument("-c", "--comments", action="store_true", help="Show comments")
    p_list.add_argument("-x", "--expiration", action="store_true", help="Show expiration dates")
    _passphrase_arg(p_list)
    p_list.set_defaults(func=cmd_list)

    p_export = sub.add_parser("export", help="Write a profile as a plaintext dotenv file")
    p_export.add_argument("profile_name")
    p_export.add_argument("-f", "--file", help="Output file (default: .env)")
    p_export.add_argument("-e", "--envs", nargs="+", metavar="KEY", help="Only export these variables ('select' to choose)")
    p_export.add_argument("--metadata", action="store_true", help="Include comment and expiration lines")
    _passphrase_arg(p_export)
    p_export.set_defaults(func=cmd_export)

    p_import = sub.add_parser("import", help="Import an encrypted profile file")
    p_import.add_argument("profile_name")
    src = p_import.add_mutually_exclusive_group()
    src.add_argument("-f", "--file")
    src.add_argument("-u", "--url")
    p_import.set_defaults(func=cmd_import)

    p_load = sub.add_parser("load", help="Activate a profile in new shells")
    p_load.add_argument("profile_name")
    _passphrase_arg(p_load)
    p_load.set_defaults(func=cmd_load)

    p_unload = sub.add_parser("unload", help="Deactivate the loaded profile")
    p_unload.add_argument("profile_name", nargs="?")
    _passphrase_arg(p_unload)
    p_unload.set_defaults(func=cmd_unload)

    p_launch = sub.add_parser("launch", help="Run a command with a profile's variables")
    p_launch.add_argument("profile_name")
    p_launch.add_argument("command", nargs=argparse.REMAINDER)
    _passphrase_arg(p_launch)
    p_launch.set_defaults(func=cmd_launch)

    p_rot = sub.add_parser("rotate", help="Re-encrypt a profile with a new key and/or Argon2 params")
    p_rot.add_argument("profile_name")
    _passphrase_arg(p_rot)
    p_rot.add_argument("--new-passphrase", help="New passphrase (prompted for when omitted)")
    p_rot.add_argument("--keep-passphrase", action="store_true", help="Only change the Argon2 params")
    p_rot.add_argument("-g", "--gpg", metavar="FINGERPRINT", help="Switch to a GPG key ('select' to choose)")
    _kdf_args(p_rot, defaults=False)
    p_rot.set_defaults(func=cmd_rotate)

    p_ver = sub.add_parser("version", help="Print the version")
    p_ver.add_argument("-v", "--verbose", dest="details", action="store_true", help="Also print runtime details")
    p_ver.set_defaults(func=cmd_version)

    return p
