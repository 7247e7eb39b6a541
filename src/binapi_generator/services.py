"""Build client methods for the RPC services of a module."""

from __future__ import annotations

from binapi_generator import helper
from binapi_generator.schema import Service
from binapi_generator.writer_dto import ServiceMethod

DUMP_AFFIX = "Dump"
SERVICE_PROTOCOL_NAME = "Service"
SERVICE_CLIENT_NAME = "ServiceClient"
SERVICE_FACTORY_NAME = "new_service"


def method_name(service: Service) -> str:
    """Exported method name of a service.

    The name is the request type name; for streams a `Dump` suffix is moved to the front,
    e.g. `SwInterfaceDump` becomes `DumpSwInterface`.
    """
    name = helper.camel_case_name(service.request_type)
    if service.stream:
        trimmed = name.removesuffix(DUMP_AFFIX)
        if trimmed != name:
            name = DUMP_AFFIX + trimmed
    return name


def synthesize(service: Service) -> ServiceMethod:
    """Signature of the client method for a service."""
    name = method_name(service)
    reply = helper.camel_case_name(service.reply_type) if service.reply_type else ""
    return ServiceMethod(
        name=name,
        py_name=helper.snake_case_name(name),
        request=helper.camel_case_name(service.request_type),
        reply=reply,
        stream=service.stream,
    )


def method_body(method: ServiceMethod) -> list[str]:
    """Body of a client method, one statement per line, without indentation.

    Streams send one multi-request and collect replies until the stop signal, unary
    requests wait for exactly one reply, and requests without a reply return at once.
    Errors are raised by the channel and propagate out of the method.
    """
    if method.stream and method.reply:
        return [
            f"dump: list[{method.reply}] = []",
            "req = self.ch.send_multi_request(in_)",
            "while True:",
            f"    m = {method.reply}()",
            "    stop = req.receive_reply(m)",
            "    if stop:",
            "        break",
            "    dump.append(m)",
            "return dump",
        ]

    if method.reply:
        return [
            f"out = {method.reply}()",
            "self.ch.send_request(in_).receive_reply(out)",
            "return out",
        ]

    return [
        "self.ch.send_request(in_)",
        "return None",
    ]
