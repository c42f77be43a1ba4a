"""Shared UI constants for the envio command line."""

VERSION = "0.6.0"

# Status message prefixes
OK = "[+]"
ERR = "[!]"
INFO = "[*]"

MIN_PASSPHRASE_LENGTH = 8

PASSPHRASE_PROMPT = "Enter your encryption key: "
NEW_PASSPHRASE_PROMPT = "Enter a new encryption key (remember it, you need it to decrypt the profile): "
CONFIRM_PASSPHRASE_PROMPT = "Confirm the encryption key: "

NO_COMMENT = "No comment"
NO_EXPIRATION = "Never"
