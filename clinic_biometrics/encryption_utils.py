# clinic_biometrics/encryption_utils.py
import base64, hmac, os
from functools import lru_cache
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

SECRET_PASSWORD = os.getenv("SECRET_PASSWORD", "change_me_please")
PBKDF2_SALT_BASE64 = os.getenv("PBKDF2_SALT_BASE64", "bm90LWEtcmVhbC1zYWx0LWNoYW5nZS1tZQ==")
PIN_ITERATIONS = 100_000


@lru_cache(maxsize=4)
def _derive_key(password: str, salt_b64: str) -> bytes:
    # derived once per (password, salt); a gallery scan decrypts every record
    salt = base64.b64decode(salt_b64)
    kdf = PBKDF2HMAC(algorithm=hashes.SHA256(), length=32, salt=salt, iterations=200_000)
    return kdf.derive(password.encode())

def encrypt_bytes(plaintext: bytes) -> tuple[str, str]:
    key = _derive_key(SECRET_PASSWORD, PBKDF2_SALT_BASE64)
    aes = AESGCM(key); nonce = os.urandom(12)
    ct = aes.encrypt(nonce, plaintext, None)
    return base64.b64encode(ct).decode(), base64.b64encode(nonce).decode()

def decrypt_bytes(ciphertext_b64: str, nonce_b64: str) -> bytes:
    key = _derive_key(SECRET_PASSWORD, PBKDF2_SALT_BASE64)
    aes = AESGCM(key)
    return aes.decrypt(base64.b64decode(nonce_b64), base64.b64decode(ciphertext_b64), None)

def seal_descriptor(descriptor: str) -> tuple[str, str]:
    """Encrypt a serialized descriptor for storage -> (ciphertext_b64, nonce_b64)."""
    return encrypt_bytes(descriptor.encode("utf-8"))

def open_descriptor(ciphertext_b64: str, nonce_b64: str) -> str:
    """Inverse of seal_descriptor. Raises cryptography.exceptions.InvalidTag on tampering."""
    return decrypt_bytes(ciphertext_b64, nonce_b64).decode("utf-8")


# ---------------- PINs ----------------
def _pin_digest(pin: str, salt: bytes) -> bytes:
    kdf = PBKDF2HMAC(algorithm=hashes.SHA256(), length=32, salt=salt, iterations=PIN_ITERATIONS)
    return kdf.derive(pin.encode())

def hash_pin(pin: str) -> str:
    salt = os.urandom(16)
    digest = _pin_digest(pin, salt)
    return f"{base64.b64encode(salt).decode()}${base64.b64encode(digest).decode()}"

def verify_pin(pin: str, stored: str | None) -> bool:
    if not stored or "$" not in stored:
        return False
    salt_b64, digest_b64 = stored.split("$", 1)
    expected = base64.b64decode(digest_b64)
    return hmac.compare_digest(_pin_digest(pin, base64.b64decode(salt_b64)), expected)
