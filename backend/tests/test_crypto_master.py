import os
import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from envvault.core.crypto import (
    CryptoError,
    KEY_LEN,
    decrypt_value,
    encrypt_value,
    is_encrypted_string,
    load_master_key,
    write_master_key,
)


def test_master_round_trip():
    master = os.urandom(KEY_LEN)
    cipher = encrypt_value("secret", master)
    assert is_encrypted_string(cipher)
    assert decrypt_value(cipher, master) == "secret"


def test_payload_without_prefix_colon_is_rejected():
    master = os.urandom(KEY_LEN)
    cipher = encrypt_value("secret", master).replace("enc:", "enc", 1)
    assert not is_encrypted_string(cipher)
    with pytest.raises(CryptoError):
        decrypt_value(cipher, master)


def test_wrong_key_fails():
    cipher = encrypt_value("secret", os.urandom(KEY_LEN))
    with pytest.raises(CryptoError):
        decrypt_value(cipher, os.urandom(KEY_LEN))


def test_hex_key_accepted_and_bad_length_rejected():
    master = os.urandom(KEY_LEN)
    cipher = encrypt_value("secret", master.hex())
    assert decrypt_value(cipher, master) == "secret"
    with pytest.raises(CryptoError):
        encrypt_value("secret", b"short")


def test_key_file_round_trip(tmp_path):
    path = tmp_path / "vault.key"
    master = os.urandom(KEY_LEN)
    write_master_key(path, master)
    assert load_master_key(path) == master
    if os.name == "posix":
        assert path.stat().st_mode & 0o777 == 0o600
