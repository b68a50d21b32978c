"""
This module handles the encryption key for the application's local data files.

It uses the `cryptography` library (Fernet symmetric encryption) so that the
records file and the preferences file are never written in plain text. The
module is responsible for:
- Generating a secret key if one does not already exist.
- Storing and loading the key from the configured key file.
- Building `Fernet` instances for the stores.

The key file must not be committed to version control.
"""
# fishinghit/encryption.py

import os

from cryptography.fernet import Fernet

from fishinghit.logging_config import get_logger

logger = get_logger(__name__)


def write_key(path: str) -> bytes:
    """Generates a new Fernet key and saves it to `path`.

    Returns:
        bytes: The generated key.
    """
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    key = Fernet.generate_key()
    with open(path, "wb") as key_file:
        key_file.write(key)
    return key


def load_key(path: str) -> bytes:
    """Loads the Fernet key from `path`.

    Returns:
        bytes: The encryption key.
    """
    with open(path, "rb") as key_file:
        return key_file.read()


def get_encryptor(path: str) -> Fernet:
    """Returns a Fernet instance for the key at `path`, creating the key on first run."""
    try:
        key = load_key(path)
    except FileNotFoundError:
        logger.info("Encryption key not found at %s. Generating a new one.", path)
        key = write_key(path)
    return Fernet(key)
