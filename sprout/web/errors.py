"""Errors raised by request handlers and their conversion to responses."""

from __future__ import annotations

import logging
from collections.abc import Callable
from http import HTTPStatus
from typing import Any

logger = logging.getLogger(__name__)


class WebError(Exception):
    """Base class for errors a web handler can raise."""


def _status_constructor(code: int) -> Any:
    status = HTTPStatus(code)

    def make(cls: type["KnownWebError"], message: str) -> "KnownWebError":
        return cls(status, message)

    make.__doc__ = f"Error answered with {status.value} {status.phrase}."
    return classmethod(make)


class KnownWebError(WebError):
    """An error answered with a specific HTTP status and message."""

    def __init__(self, status_code: int | HTTPStatus, message: str) -> None:
        self.status_code = HTTPStatus(status_code)
        self.message = str(message)
        super().__init__(
            f"request error, status code is {self.status_code.value} "
            f"{self.status_code.phrase}: {self.message}"
        )

    @classmethod
    def bad_request(cls, message: str) -> "KnownWebError":
        """Error answered with 400 Bad Request."""
        return cls(HTTPStatus.BAD_REQUEST, message)

    @classmethod
    def not_found(cls, message: str) -> "KnownWebError":
        """Error answered with 404 Not Found."""
        return cls(HTTPStatus.NOT_FOUND, message)

    @classmethod
    def internal_server_error(cls, message: str) -> "KnownWebError":
        """Error answered with 500 Internal Server Error."""
        return cls(HTTPStatus.INTERNAL_SERVER_ERROR, message)

    ok = _status_constructor(200)
    created = _status_constructor(201)
    accepted = _status_constructor(202)
    non_authoritative_information = _status_constructor(203)
    no_content = _status_constructor(204)
    reset_content = _status_constructor(205)
    partial_content = _status_constructor(206)
    multi_status = _status_constructor(207)
    already_reported = _status_constructor(208)
    im_used = _status_constructor(226)
    multiple_choices = _status_constructor(300)
    moved_permanently = _status_constructor(301)
    found = _status_constructor(302)
    see_other = _status_constructor(303)
    not_modified = _status_constructor(304)
    use_proxy = _status_constructor(305)
    temporary_redirect = _status_constructor(307)
    permanent_redirect = _status_constructor(308)
    unauthorized = _status_constructor(401)
    payment_required = _status_constructor(402)
    forbidden = _status_constructor(403)
    method_not_allowed = _status_constructor(405)
    not_acceptable = _status_constructor(406)
    proxy_authentication_required = _status_constructor(407)
    request_timeout = _status_constructor(408)
    conflict = _status_constructor(409)
    gone = _status_constructor(410)
    length_required = _status_constructor(411)
    precondition_failed = _status_constructor(412)
    payload_too_large = _status_constructor(413)
    uri_too_long = _status_constructor(414)
    unsupported_media_type = _status_constructor(415)
    range_not_satisfiable = _status_constructor(416)
    expectation_failed = _status_constructor(417)
    im_a_teapot = _status_constructor(418)
    misdirected_request = _status_constructor(421)
    unprocessable_entity = _status_constructor(422)
    locked = _status_constructor(423)
    failed_dependency = _status_constructor(424)
    upgrade_required = _status_constructor(426)
    precondition_required = _status_constructor(428)
    too_many_requests = _status_constructor(429)
    request_header_fields_too_large = _status_constructor(431)
    unavailable_for_legal_reasons = _status_constructor(451)
    not_implemented = _status_constructor(501)
    bad_gateway = _status_constructor(502)
    service_unavailable = _status_constructor(503)
    gateway_timeout = _status_constructor(504)
    http_version_not_supported = _status_constructor(505)
    variant_also_negotiates = _status_constructor(506)
    insufficient_storage = _status_constructor(507)
    loop_detected = _status_constructor(508)
    not_extended = _status_constructor(510)
    network_authentication_required = _status_constructor(511)


class ConfigDeserializeError(WebError):
    """A configuration section requested by a handler could not be read."""

    def __init__(self, type_name: str, cause: BaseException | str) -> None:
        super().__init__(f"get server config failed for typeof {type_name}, {cause}")
        self.type_name = type_name
        self.cause = cause


class ServerError(WebError):
    """Any other failure while handling a request."""

    def __init__(self, cause: BaseException | str) -> None:
        super().__init__(str(cause))
        self.cause = cause


def into_response(error: BaseException) -> tuple[HTTPStatus, str]:
    """Turn an error into a status and a body.

    Known errors keep their status and message; anything else becomes a 500.
    """
    if isinstance(error, KnownWebError):
        logger.warning("handler error:%r", error)
        return error.status_code, error.message
    logger.error("internal server error:%r", error)
    return HTTPStatus.INTERNAL_SERVER_ERROR, f"Something went wrong: {error}"


_Constructor = Callable[[str], KnownWebError]