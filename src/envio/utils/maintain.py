import argparse

from envio.crypto.ciphers import PassphraseCipher, RecipientCipher
from envio.crypto.gpg import GpgAgent
from envio.storage.profile import Profile
from envio.ui import prompt
from envio.ui.constants import INFO, OK
from envio.utils.core import open_profile
from envio.utils.errors import MissingError


def cmd_remove(args: argparse.Namespace) -> None:
    """Remove variables from a profile, or the whole profile when none are given."""
    name = args.profile_name
    if not Profile.exists(name):
        raise MissingError(f"Profile '{name}' does not exist")

    if not args.envs:
        Profile.delete(name)
        print(f"{OK} Deleted profile {name}")
        return

    profile = open_profile(name, args)
    for key in args.envs:
        profile.remove_env(key)
    print(f"{INFO} Applying changes")
    profile.push_changes()
    print(f"{OK} Removed {len(args.envs)} variable(s) from {name}")


def cmd_rotate(args: argparse.Namespace) -> None:
    """Re-encrypt a profile under new key material and/or new Argon2 params.

    Steps:
      1) Load with the current key material.
      2) Build the new cipher: a GPG recipient if --gpg is given, otherwise a
         passphrase cipher (new passphrase prompted unless --keep-passphrase).
      3) Push; the old file is replaced atomically.
    """
    profile = open_profile(args.profile_name, args)
    old = profile.cipher
    reused = False

    if args.gpg:
        agent = old.agent if isinstance(old, RecipientCipher) else GpgAgent()
        fingerprint = args.gpg
        if fingerprint == "select":
            fingerprint = prompt.select_key(agent.list_keys())
        new = RecipientCipher(fingerprint, agent=agent)
    else:
        if args.keep_passphrase and isinstance(old, PassphraseCipher):
            passphrase = old.passphrase
            reused = True
        else:
            passphrase = (
                prompt.check_new_passphrase(args.new_passphrase)
                if args.new_passphrase
                else prompt.prompt_new_passphrase()
            )
        t = args.t if args.t is not None else getattr(old, "t_cost", None)
        m = args.m if args.m is not None else getattr(old, "m_cost_kib", None)
        p = args.p if args.p is not None else getattr(old, "parallelism", None)
        kdf = {k: v for k, v in (("t_cost", t), ("m_cost_kib", m), ("parallelism", p)) if v is not None}
        new = PassphraseCipher(passphrase, **kdf)

    profile.cipher = new
    profile.push_changes()
    if not reused:
        old.wipe()
    print(f"{OK} Profile {profile.name} re-encrypted with the {new.scheme.name.lower()} scheme")
