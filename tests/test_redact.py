from __future__ import annotations

from iotadmin._redact import MASK, redact_document


def test_instance_native_masks_declared_and_sensitive_keys() -> None:
    document = {
        "_id": "system.adapter.mqtt.0",
        "common": {"name": "mqtt", "encryptedNative": ["user"], "protectedNative": ["webhook"]},
        "native": {"user": "bob", "webhook": "https://x", "pass": "pw", "certPrivate": "-----BEGIN", "port": 1883},
    }

    redacted = redact_document("system.adapter.mqtt.0", document)

    assert redacted["native"] == {
        "user": MASK,
        "webhook": MASK,
        "pass": MASK,
        "certPrivate": MASK,
        "port": 1883,
    }
    assert redacted["common"]["name"] == "mqtt"
    assert document["native"]["pass"] == "pw"


def test_descriptor_native_is_not_masked() -> None:
    redacted = redact_document("system.adapter.mqtt", {"native": {"pass": ""}})
    assert redacted["native"]["pass"] == ""


def test_system_config_secret_and_user_password() -> None:
    config = redact_document("system.config", {"native": {"secret": "s3"}, "common": {"language": "de"}})
    user = redact_document("system.user.bob", {"common": {"name": "bob", "password": "pbkdf2$..."}})

    assert config["native"]["secret"] == MASK
    assert config["common"]["language"] == "de"
    assert user["common"] == {"name": "bob", "password": MASK}


def test_long_strings_are_truncated() -> None:
    redacted = redact_document("alias.0.a", {"native": {"script": "x" * 600}}, max_string=10)
    assert redacted["native"]["script"].startswith("x" * 10)
    assert "<truncated>" in redacted["native"]["script"]


def test_non_mapping_document_is_returned_clipped() -> None:
    assert redact_document("alias.0.a", ["a", b"\x00\x01"]) == ["a", "<bytes:2b>"]
