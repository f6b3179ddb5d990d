"""Protobuf messages of the serverless containers API.

The messages are built at import time from a descriptor that mirrors
``containers/v1/containers.proto`` (only the messages this client uses, with
the published field numbers), so no generated ``_pb2`` module is needed.
Requests and responses cross this module as plain dicts keyed by the proto
field names.
"""

from collections.abc import Callable
from typing import Any

from google.protobuf import descriptor_pb2, descriptor_pool, json_format, message_factory
from google.protobuf.message import Message

PACKAGE = "com.docker.api.protos.containers.v1"

_Field = descriptor_pb2.FieldDescriptorProto

# message name -> [(field name, number, type, repeated, message type)]
_MESSAGES: dict[str, list[tuple[str, int, int, bool, str | None]]] = {
    "Port": [
        ("host_port", 1, _Field.TYPE_UINT32, False, None),
        ("container_port", 2, _Field.TYPE_UINT32, False, None),
        ("protocol", 3, _Field.TYPE_STRING, False, None),
        ("host_ip", 4, _Field.TYPE_STRING, False, None),
    ],
    "Container": [
        ("id", 1, _Field.TYPE_STRING, False, None),
        ("image", 2, _Field.TYPE_STRING, False, None),
        ("status", 3, _Field.TYPE_STRING, False, None),
        ("command", 4, _Field.TYPE_STRING, False, None),
        ("labels", 9, _Field.TYPE_STRING, True, None),
        ("ports", 10, _Field.TYPE_MESSAGE, True, "Port"),
        ("platform", 11, _Field.TYPE_STRING, False, None),
    ],
    "ListRequest": [("all", 1, _Field.TYPE_BOOL, False, None)],
    "ListResponse": [("containers", 1, _Field.TYPE_MESSAGE, True, "Container")],
    "StopRequest": [
        ("id", 1, _Field.TYPE_STRING, False, None),
        ("timeout", 2, _Field.TYPE_UINT32, False, None),
    ],
    "StopResponse": [],
    "DeleteRequest": [
        ("id", 1, _Field.TYPE_STRING, False, None),
        ("force", 2, _Field.TYPE_BOOL, False, None),
    ],
    "DeleteResponse": [],
}

# rpc name -> (request message, response message)
METHODS = {
    "List": ("ListRequest", "ListResponse"),
    "Stop": ("StopRequest", "StopResponse"),
    "Delete": ("DeleteRequest", "DeleteResponse"),
}


def _build_pool() -> descriptor_pool.DescriptorPool:
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="containers/v1/containers.proto", package=PACKAGE, syntax="proto3"
    )
    for message_name, fields in _MESSAGES.items():
        message = file_proto.message_type.add(name=message_name)
        for field_name, number, field_type, repeated, type_name in fields:
            field = message.field.add(
                name=field_name,
                number=number,
                type=field_type,
                label=_Field.LABEL_REPEATED if repeated else _Field.LABEL_OPTIONAL,
            )
            if type_name:
                field.type_name = f".{PACKAGE}.{type_name}"

    pool = descriptor_pool.DescriptorPool()
    pool.AddSerializedFile(file_proto.SerializeToString())
    return pool


_POOL = _build_pool()


def message_class(name: str) -> type[Message]:
    return message_factory.GetMessageClass(_POOL.FindMessageTypeByName(f"{PACKAGE}.{name}"))


def request_serializer(method: str) -> Callable[[dict[str, Any]], bytes]:
    """Encode a request dict as the protobuf request message of ``method``."""
    request_class = message_class(METHODS[method][0])

    def serialize(request: dict[str, Any]) -> bytes:
        return json_format.ParseDict(request, request_class()).SerializeToString()

    return serialize


def response_deserializer(method: str) -> Callable[[bytes], dict[str, Any]]:
    """Decode the protobuf response of ``method`` into a dict; unset fields are omitted."""
    response_class = message_class(METHODS[method][1])

    def deserialize(data: bytes) -> dict[str, Any]:
        return json_format.MessageToDict(
            response_class.FromString(data), preserving_proto_field_name=True
        )

    return deserialize
