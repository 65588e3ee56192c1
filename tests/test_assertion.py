import json
import uuid

import pytest
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa

from blueidp.assertion import b64url, build_client_assertion, decode_segment, load_private_key, sign_rs256


AUDIENCE = "https://example.okta.com/oauth2/v1/token"


def test_b64url_known_vectors():
    # JOSE header example from RFC 7515 appendix A.1
    header = b'{"typ":"JWT",\r\n "alg":"HS256"}'
    assert b64url(header) == "eyJ0eXAiOiJKV1QiLA0KICJhbGciOiJIUzI1NiJ9"
    assert b64url(b"\xfb\xff") == "-_8"
    assert b64url(b"f") == "Zg"
    assert b64url(b"fo") == "Zm8"
    assert b64url("") == ""


def test_decode_segment_restores_padding():
    assert decode_segment("Zg") == b"f"
    assert decode_segment("-_8") == b"\xfb\xff"


def test_assertion_header_and_claims(rsa_key):
    token = build_client_assertion(client_id="0oa123", audience=AUDIENCE, key=rsa_key, kid="kid-1", now=1_700_000_000)
    parts = token.split(".")
    assert len(parts) == 3
    assert all("=" not in p for p in parts)

    header = json.loads(decode_segment(parts[0]))
    payload = json.loads(decode_segment(parts[1]))
    assert header == {"alg": "RS256", "typ": "JWT", "kid": "kid-1"}
    assert payload["iss"] == payload["sub"] == "0oa123"
    assert payload["aud"] == AUDIENCE
    assert payload["iat"] == 1_700_000_000
    assert payload["exp"] == 1_700_000_300
    uuid.UUID(payload["jti"])


def test_assertion_signature_verifies_with_public_key(rsa_key):
    token = build_client_assertion(client_id="0oa123", audience=AUDIENCE, key=rsa_key, kid="kid-1")
    signing_input, sig = token.rsplit(".", 1)
    rsa_key.public_key().verify(decode_segment(sig), signing_input.encode("ascii"), padding.PKCS1v15(), hashes.SHA256())


def test_assertion_is_deterministic_for_fixed_inputs(rsa_key):
    kwargs = dict(client_id="0oa123", audience=AUDIENCE, key=rsa_key, kid="kid-1", now=1_700_000_000, jti="fixed-jti")
    assert build_client_assertion(**kwargs) == build_client_assertion(**kwargs)


def test_jti_is_unique_per_assertion(rsa_key):
    a = build_client_assertion(client_id="c", audience=AUDIENCE, key=rsa_key, kid="k", now=1)
    b = build_client_assertion(client_id="c", audience=AUDIENCE, key=rsa_key, kid="k", now=1)
    jti_a = json.loads(decode_segment(a.split(".")[1]))["jti"]
    jti_b = json.loads(decode_segment(b.split(".")[1]))["jti"]
    assert jti_a != jti_b


def test_load_private_key_round_trips_pem(rsa_key):
    pem = rsa_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
    loaded = load_private_key(pem.decode("ascii"))
    assert loaded.public_key().public_numbers() == rsa_key.public_key().public_numbers()


def test_load_private_key_rejects_non_rsa_keys():
    pem = ec.generate_private_key(ec.SECP256R1()).private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
    with pytest.raises(ValueError):
        load_private_key(pem)


# RFC 7515 appendix A.2: RSASSA-PKCS1-v1_5 using SHA-256
RFC7515_A2_JWK = {
    "n": "ofgWCuLjybRlzo0tZWJjNiuSfb4p4fAkd_wWJcyQoTbji9k0l8W26mPddxHmfHQp-Vaw-4qPCJrcS2mJPMEzP1Pt0Bm4d4QlL-yRT-SFd2lZS-pCgNMsD1W_YpRPEwOWvG6b32690r2jZ47soMZo9wGzjb_7OMg0LOL-bSf63kpaSHSXndS5z5rexMdbBYUsLA9e-KXBdQOS-UTo7WTBEMa2R2CapHg665xsmtdVMTBQY4uDZlxvb3qCo5ZwKh9kG4LT6_I5IhlJH7aGhyxXFvUK-DWNmoudF8NAco9_h9iaGNj8q2ethFkMLs91kzk2PAcDTW9gb54h4FRWyuXpoQ",
    "e": "AQAB",
    "d": "Eq5xpGnNCivDflJsRQBXHx1hdR1k6Ulwe2JZD50LpXyWPEAeP88vLNO97IjlA7_GQ5sLKMgvfTeXZx9SE-7YwVol2NXOoAJe46sui395IW_GO-pWJ1O0BkTGoVEn2bKVRUCgu-GjBVaYLU6f3l9kJfFNS3E0QbVdxzubSu3Mkqzjkn439X0M_V51gfpRLI9JYanrC4D4qAdGcopV_0ZHHzQlBjudU2QvXt4ehNYTCBr6XCLQUShb1juUO1ZdiYoFaFQT5Tw8bGUl_x_jTj3ccPDVZFD9pIuhLhBOneufuBiB4cS98l2SR_RQyGWSeWjnczT0QU91p1DhOVRuOopznQ",
    "p": "4BzEEOtIpmVdVEZNCqS7baC4crd0pqnRH_5IB3jw3bcxGn6QLvnEtfdUdiYrqBdss1l58BQ3KhooKeQTa9AB0Hw_Py5PJdTJNPY8cQn7ouZ2KKDcmnPGBY5t7yLc1QlQ5xHdwW1VhvKn-nXqhJTBgIPgtldC-KDV5z-y2XDwGUc",
    "q": "uQPEfgmVtjL0Uyyx88GZFF1fOunH3-7cepKmtH4pxhtCoHqpWmT8YAmZxaewHgHAjLYsp1ZSe7zFYHj7C6ul7TjeLQeZD_YwD66t62wDmpe_HlB-TnBA-njbglfIsRLtXlnDzQkv5dTltRJ11BKBBypeeF6689rjcJIDEz9RWdc",
    "dp": "BwKfV3Akq5_MFZDFZCnW-wzl-CCo83WoZvnLQwCTeDv8uzluRSnm71I3QCLdhrqE2e9YkxvuxdBfpT_PI7Yz-FOKnu1R6HsJeDCjn12Sk3vmAktV2zb34MCdy7cpdTh_YVr7tss2u6vneTwrA86rZtu5Mbr1C1XsmvkxHQAdYo0",
    "dq": "h_96-mK1R_7glhsum81dZxjTnYynPbZpHziZjeeHcXYsXaaMwkOlODsWa7I9xXDoRwbKgB719rrmI2oKr6N3Do9U0ajaHF-NKJnwgjMd2w9cjz3_-kyNlxAr2v4IKhGNpmM5iIgOS1VZnOZ68m6_pbLBSp3nssTdlqvd0tIiTHU",
    "qi": "IYd7DHOhrWvxkwPQsRM2tOgrjbcrfvtQJipd-DlcxyVuuM9sQLdgjVk2oy26F0EmpScGLq2MowX7fhd_QJQ3ydy5cY7YIBi87w93IKLEdfnbJtoOPLUW0ITrJReOgo1cq9SbsxYawBgfp_gh6A5603k2-ZQwVK0JKSHuLFkuQ3U",
}
RFC7515_A2_SIGNING_INPUT = (
    "eyJhbGciOiJSUzI1NiJ9"
    ".eyJpc3MiOiJqb2UiLA0KICJleHAiOjEzMDA4MTkzODAsDQogImh0dHA6Ly9leGFtcGxlLmNvbS9pc19yb290Ijp0cnVlfQ"
)
RFC7515_A2_SIGNATURE = (
    "cC4hiUPoj9Eetdgtv3hF80EGrhuB__dzERat0XF9g2VtQgr9PJbu3XOiZj5RZmh7AAuHIm4Bh-0Qc_lF5YKt_O8W2Fp5jujGbds9uJdbF9CUAr7t"
    "1dnZcAcQjbKBYNX4BAynRFdiuB--f_nZLgrnbyTyWzO75vRK5h6xBArLIARNPvkSjtQBMHlb1L07Qe7K0GarZRmB_eSN9383LcOLn6_dO--xi12jz"
    "DwusC-eOkHWEsqtFZESc6BfI7noOPqvhJ1phCnvWh6IeYI2w9QOYEUipUTI8np6LbgGY9Fs98rqVt5AXLIhWkWywlVmtVrBp0igcN_IoypGlUPQGe77Rw"
)


def _jwk_int(name):
    return int.from_bytes(decode_segment(RFC7515_A2_JWK[name]), "big")


def _rfc7515_a2_key():
    public = rsa.RSAPublicNumbers(e=_jwk_int("e"), n=_jwk_int("n"))
    return rsa.RSAPrivateNumbers(
        p=_jwk_int("p"),
        q=_jwk_int("q"),
        d=_jwk_int("d"),
        dmp1=_jwk_int("dp"),
        dmq1=_jwk_int("dq"),
        iqmp=_jwk_int("qi"),
        public_numbers=public,
    ).private_key()


def test_sign_rs256_matches_rfc7515_vector():
    sig = sign_rs256(_rfc7515_a2_key(), RFC7515_A2_SIGNING_INPUT.encode("ascii"))
    assert b64url(sig) == RFC7515_A2_SIGNATURE


def test_rfc7515_signature_verifies_with_published_modulus():
    public = rsa.RSAPublicNumbers(e=_jwk_int("e"), n=_jwk_int("n")).public_key()
    public.verify(
        decode_segment(RFC7515_A2_SIGNATURE),
        RFC7515_A2_SIGNING_INPUT.encode("ascii"),
        padding.PKCS1v15(),
        hashes.SHA256(),
    )
