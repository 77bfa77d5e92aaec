# convert_server/crypto.py
import hashlib
import re
import secrets

API_KEY_PREFIX = "sk-"
_API_KEY_PATTERN = re.compile(r"^sk-[a-f0-9]{32}$")


def hash_api_key(key: str) -> str:
    """Hash an API key for storage (one-way)."""
    return hashlib.sha256(key.encode()).hexdigest()


def generate_api_key() -> str:
    """Generate a new API key with sk- prefix."""
    random_part = secrets.token_hex(16)
    return f"{API_KEY_PREFIX}{random_part}"


def is_valid_api_key_format(key: str) -> bool:
    return bool(_API_KEY_PATTERN.match(key))


def get_key_prefix(key: str) -> str:
    """Get the prefix of an API key for identification."""
    return key[:11]


def generate_id(kind: str) -> str:
    """Opaque, non-sequential identifier such as usr_<hex> or job_<hex>."""
    length = 16 if kind == "job" else 12
    return f"{kind}_{secrets.token_hex(length)}"
