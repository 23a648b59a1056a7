"""Caller-facing error taxonomy for the AI gateway.

Every error that leaves the gateway is a ``GatewayError`` whose ``code`` is one
of the callable-function status strings understood by the web client. The
message is safe to show to the caller; provider and storage details are logged
server-side and never attached here.
"""
from __future__ import annotations


class GatewayError(Exception):
    """Base class for errors returned to the caller."""

    code = "internal"
    http_status = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_api_dict(self) -> dict:
        return {"error": {"status": self.code, "message": self.message}}


class Unauthenticated(GatewayError):
    code = "unauthenticated"
    http_status = 401


class InvalidArgument(GatewayError):
    code = "invalid-argument"
    http_status = 400


class PermissionDenied(GatewayError):
    code = "permission-denied"
    http_status = 403


class ResourceExhausted(GatewayError):
    code = "resource-exhausted"
    http_status = 429


class FailedPrecondition(GatewayError):
    code = "failed-precondition"
    http_status = 412


class Internal(GatewayError):
    code = "internal"
    http_status = 500
