from datetime import datetime, timedelta, timezone

from shoppingbird.core.auth import create_access_token, decode_access_token, get_password_hash, verify_password


def test_token_expiry_is_relative_to_utc_now():
    before = datetime.now(timezone.utc).replace(microsecond=0)

    payload = decode_access_token(create_access_token({"user_id": 7}, expires_delta=timedelta(minutes=30)))

    issued = datetime.fromtimestamp(payload["iat"], tz=timezone.utc)
    expires = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
    assert payload["user_id"] == 7
    assert payload["type"] == "access"
    assert before <= issued <= before + timedelta(minutes=1)
    assert abs(expires - issued - timedelta(minutes=30)) <= timedelta(seconds=1)


def test_password_hash_round_trip():
    hashed = get_password_hash("secret123")

    assert hashed.startswith("$2b$")
    assert verify_password("secret123", hashed) is True
    assert verify_password("secret124", hashed) is False
    assert verify_password("secret123", "") is False
