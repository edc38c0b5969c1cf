"""Shared fixtures: a real protobuf MigrationPayload and an in-memory store."""

from __future__ import annotations

import base64
from collections.abc import Callable

import pytest
from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

HELLO_SECRET = b"Hello!\xde\xad\xbe\xef"  # JBSWY3DPEHPK3PXP

_F = descriptor_pb2.FieldDescriptorProto


def _build_migration_payload_class() -> type:
    """Build the MigrationPayload message class without generated _pb2 code."""
    fdp = descriptor_pb2.FileDescriptorProto(
        name="twofactor_auth_tests/migration.proto",
        package="twofactor_auth_tests",
        syntax="proto3",
    )
    payload = fdp.message_type.add(name="MigrationPayload")
    otp = payload.nested_type.add(name="OtpParameters")
    for name, number, field_type in [
        ("secret", 1, _F.TYPE_BYTES),
        ("name", 2, _F.TYPE_STRING),
        ("issuer", 3, _F.TYPE_STRING),
        ("algorithm", 4, _F.TYPE_INT32),
        ("digits", 5, _F.TYPE_INT32),
        ("type", 6, _F.TYPE_INT32),
        ("counter", 7, _F.TYPE_INT64),
        ("period", 8, _F.TYPE_INT32),
    ]:
        otp.field.add(name=name, number=number, type=field_type, label=_F.LABEL_OPTIONAL)
    payload.field.add(
        name="otp_parameters",
        number=1,
        type=_F.TYPE_MESSAGE,
        label=_F.LABEL_REPEATED,
        type_name=".twofactor_auth_tests.MigrationPayload.OtpParameters",
    )
    for name, number in [("version", 2), ("batch_size", 3), ("batch_index", 4), ("batch_id", 5)]:
        payload.field.add(name=name, number=number, type=_F.TYPE_INT32, label=_F.LABEL_OPTIONAL)

    pool = descriptor_pool.DescriptorPool()
    pool.AddSerializedFile(fdp.SerializeToString())
    descriptor = pool.FindMessageTypeByName("twofactor_auth_tests.MigrationPayload")
    return message_factory.GetMessageClass(descriptor)


MigrationPayload = _build_migration_payload_class()


def _make_payload(*otp_params: dict, **batch: int) -> bytes:
    """Serialize a MigrationPayload from dicts of OtpParameters fields."""
    payload = MigrationPayload()
    for params in otp_params:
        otp = payload.otp_parameters.add()
        otp.secret = params.get("secret", HELLO_SECRET)
        otp.name = params.get("name", "user@example.com")
        otp.issuer = params.get("issuer", "ExampleIssuer")
        otp.algorithm = params.get("algorithm", 1)
        otp.digits = params.get("digits", 1)
        otp.type = params.get("type", 2)
        otp.counter = params.get("counter", 0)
        otp.period = params.get("period", 0)
    for key, value in batch.items():
        setattr(payload, key, value)
    return payload.SerializeToString()


def _migration_uri(raw: bytes) -> str:
    """URL-safe, unpadded, as the authenticator app emits it."""
    data = base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")
    return f"otpauth-migration://offline?data={data}"


class MemoryStore:
    """Dict-backed SecretStore."""

    def __init__(self) -> None:
        self.items: dict[str, bytes] = {}

    def put(self, key: str, value: bytes) -> None:
        self.items[key] = value

    def get(self, key: str) -> bytes | None:
        return self.items.get(key)

    def delete(self, key: str) -> None:
        self.items.pop(key, None)


@pytest.fixture
def make_payload() -> Callable[..., bytes]:
    return _make_payload


@pytest.fixture
def migration_uri() -> Callable[[bytes], str]:
    return _migration_uri


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()
