from __future__ import annotations

import base64
import json
import time
import uuid
from typing import Any, Optional

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa


JWT_BEARER_ASSERTION_TYPE = "urn:ietf:params:oauth:client-assertion-type:jwt-bearer"
ASSERTION_LIFETIME_SECONDS = 300


def b64url(data: bytes | str) -> str:
    if isinstance(data, str):
        data = data.encode("utf-8")
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def decode_segment(segment: str) -> bytes:
    pad = "=" * (-len(segment) % 4)
    return base64.urlsafe_b64decode((segment + pad).encode("ascii"))


def _compact_json(obj: dict[str, Any]) -> str:
    return json.dumps(obj, separators=(",", ":"))


def load_private_key(pem: bytes | str) -> rsa.RSAPrivateKey:
    if isinstance(pem, str):
        pem = pem.encode("utf-8")
    key = serialization.load_pem_private_key(pem, password=None)
    if not isinstance(key, rsa.RSAPrivateKey):
        raise ValueError("Client assertion signing requires an RSA private key")
    return key


def sign_rs256(key: rsa.RSAPrivateKey, signing_input: bytes) -> bytes:
    return key.sign(signing_input, padding.PKCS1v15(), hashes.SHA256())


def build_client_assertion(
    *,
    client_id: str,
    audience: str,
    key: rsa.RSAPrivateKey,
    kid: str,
    now: Optional[int] = None,
    lifetime: int = ASSERTION_LIFETIME_SECONDS,
    jti: Optional[str] = None,
) -> str:
    """
    Compact RS256 JWT used as `client_assertion` in a client-credentials grant.
    iss and sub are both the client id; aud is the token endpoint URL.
    """
    issued_at = int(time.time()) if now is None else int(now)
    header = {"alg": "RS256", "typ": "JWT", "kid": kid}
    payload = {
        "iss": client_id,
        "sub": client_id,
        "aud": audience,
        "iat": issued_at,
        "exp": issued_at + lifetime,
        "jti": jti or str(uuid.uuid4()),
    }
    signing_input = f"{b64url(_compact_json(header))}.{b64url(_compact_json(payload))}"
    signature = sign_rs256(key, signing_input.encode("ascii"))
    return f"{signing_input}.{b64url(signature)}"
