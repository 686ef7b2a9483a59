"""
Tool JWKS for LTI 1.3 tool registration.
Either the literal JSON from TOOL_PUBLIC_JWKS_JSON, or the public half of the PEM key at
TOOL_SIGNING_KEY_PATH. No key material in code.
"""
import base64
import json
import logging
from pathlib import Path

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey

logger = logging.getLogger(__name__)


class JwksUnavailable(Exception):
    """No usable tool JWKS is configured."""


def _b64url_uint(value: int) -> str:
    return base64.urlsafe_b64encode(value.to_bytes((value.bit_length() + 7) // 8, "big")).rstrip(b"=").decode("ascii")


def public_key_to_jwk(public_key: RSAPublicKey, kid: str) -> dict:
    """Export cryptography RSA public key to JWK with given kid."""
    numbers = public_key.public_numbers()
    return {
        "kty": "RSA",
        "kid": kid,
        "alg": "RS256",
        "use": "sig",
        "n": _b64url_uint(numbers.n),
        "e": _b64url_uint(numbers.e),
    }


def load_public_key(path: str) -> RSAPublicKey:
    """Public key from a PEM file holding either a private or a public RSA key."""
    pem = Path(path).read_bytes()
    if b"PRIVATE KEY" in pem:
        key = serialization.load_pem_private_key(pem, password=None, backend=default_backend())
        if not isinstance(key, RSAPrivateKey):
            raise ValueError("tool signing key must be RSA")
        return key.public_key()
    key = serialization.load_pem_public_key(pem, backend=default_backend())
    if not isinstance(key, RSAPublicKey):
        raise ValueError("tool signing key must be RSA")
    return key


def build_tool_jwks(jwks_json: str, key_path: str | None, kid: str) -> dict:
    """Resolve the tool JWKS. Raises JwksUnavailable when nothing usable is configured."""
    if jwks_json:
        try:
            jwks = json.loads(jwks_json)
        except ValueError as e:
            raise JwksUnavailable("TOOL_PUBLIC_JWKS_JSON is not valid JSON") from e
        if not isinstance(jwks, dict) or not isinstance(jwks.get("keys"), list):
            raise JwksUnavailable("TOOL_PUBLIC_JWKS_JSON must be an object with a keys array")
        return jwks
    if key_path:
        try:
            public_key = load_public_key(key_path)
        except (OSError, ValueError) as e:
            logger.warning("Failed to load tool key from %s: %s", key_path, e)
            raise JwksUnavailable("Tool signing key could not be loaded") from e
        return {"keys": [public_key_to_jwk(public_key, kid)]}
    raise JwksUnavailable("Missing TOOL_PUBLIC_JWKS_JSON env var")
