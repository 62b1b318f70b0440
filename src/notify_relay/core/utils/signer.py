import hashlib
import hmac


def sign(secret: str | bytes, payload: str | bytes) -> str:
    """HMAC-SHA1 of `payload` keyed with `secret`, as lowercase hex.

    Strings are encoded as UTF-8. This is the signature scheme Transloadit
    receivers verify notifications with.
    """
    key = secret.encode("utf-8") if isinstance(secret, str) else secret
    message = payload.encode("utf-8") if isinstance(payload, str) else payload
    return hmac.new(key, message, hashlib.sha1).hexdigest()
