import base64
import os
import secrets
from pathlib import Path
from typing import Tuple, Union

from cryptography.hazmat.primitives.ciphers.aead import AESGCM

# --- Parameters ---
MASTER_MODE = "master"
KEY_LEN = 32
IV_LEN = 12
VERSION = "v1"
PREFIX = "enc:"


class CryptoError(Exception):
    pass


def generate_master_key() -> bytes:
    return secrets.token_bytes(KEY_LEN)


def _normalize_master_key(key: Union[str, bytes]) -> bytes:
    if isinstance(key, bytes):
        candidate = key
    else:
        try:
            candidate = bytes.fromhex(key.strip())
        except ValueError as exc:
            raise CryptoError("invalid master key encoding") from exc
    if len(candidate) != KEY_LEN:
        raise CryptoError("invalid master key length")
    return candidate


def load_master_key(path: Path) -> bytes:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CryptoError(f"cannot read master key: {exc}") from exc
    return _normalize_master_key(raw)


def write_master_key(path: Path, key: bytes):
    """
    Persist the master key as hex, readable by the owner only. The key file is
    written once when the store is created and never rotated in place.
    """
    key = _normalize_master_key(key)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(".key.tmp")
    fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(key.hex())
        f.flush()
        os.fsync(f.fileno())
    os.replace(tmp, path)


def is_encrypted_string(value: object) -> bool:
    if not isinstance(value, str):
        return False
    return value.startswith(PREFIX)


def encrypt_value(plaintext: str, key: Union[str, bytes]) -> str:
    aes = AESGCM(_normalize_master_key(key))
    iv = secrets.token_bytes(IV_LEN)
    ct = aes.encrypt(iv, plaintext.encode("utf-8"), None)  # includes tag
    payload = "|".join(
        [
            VERSION,
            MASTER_MODE,
            base64.b64encode(iv).decode("utf-8"),
            base64.b64encode(ct).decode("utf-8"),
        ]
    )
    return PREFIX + payload


def _parse_encrypted(value: str) -> Tuple[str, str, bytes, bytes]:
    if not value.startswith(PREFIX):
        raise CryptoError("not encrypted")
    body = value[len(PREFIX):]
    parts = body.split("|")
    if len(parts) != 4:
        raise CryptoError("invalid payload format")
    version, mode, iv_b64, ct_b64 = parts
    if version != VERSION:
        raise CryptoError("unsupported version")
    if mode != MASTER_MODE:
        raise CryptoError("unsupported mode")
    try:
        iv = base64.b64decode(iv_b64, validate=True)
        ct = base64.b64decode(ct_b64, validate=True)
    except ValueError as exc:
        raise CryptoError("invalid payload encoding") from exc
    if len(iv) != IV_LEN:
        raise CryptoError("invalid iv length")
    return version, mode, iv, ct


def decrypt_value(encrypted: str, key: Union[str, bytes]) -> str:
    _, _, iv, ct = _parse_encrypted(encrypted)
    aes = AESGCM(_normalize_master_key(key))
    try:
        pt = aes.decrypt(iv, ct, None)
    except Exception as exc:
        raise CryptoError("decryption failed") from exc
    return pt.decode("utf-8")
