import hashlib
import hmac

from notify_relay.core.utils.signer import sign


def test_known_vector():
    # Published HMAC-SHA1 test value
    assert (
        sign("key", "The quick brown fox jumps over the lazy dog")
        == "de7c9b85b8b78aa6bc8a7a36f70a90701c9db4d9"
    )


def test_empty_secret_and_payload():
    assert sign("", "") == "fbdb1d1b18aa6c08324b7d64b71fb76370690e1d"


def test_is_deterministic():
    payload = '{"ok":"ASSEMBLY_COMPLETED","data":1}'
    assert sign("s3cret", payload) == sign("s3cret", payload)


def test_changing_one_byte_changes_signature():
    payload = '{"ok":"ASSEMBLY_COMPLETED","data":1}'
    base = sign("s3cret", payload)

    assert sign("s3cres", payload) != base
    assert sign("s3cret", payload.replace("1", "2")) != base


def test_str_and_bytes_inputs_agree():
    payload = '{"name":"café"}'
    assert sign("k", payload) == sign(b"k", payload.encode("utf-8"))
    assert sign("k", payload) == hmac.new(b"k", payload.encode("utf-8"), hashlib.sha1).hexdigest()


def test_signature_is_lowercase_hex():
    signature = sign("k", "payload")
    assert len(signature) == 40
    assert signature == signature.lower()
    int(signature, 16)
