"""Recover the client's original protocol and host behind proxies."""

from typing import Any, Callable, Iterable, MutableMapping

_DEFAULT_PORTS = {"http": "80", "https": "443"}


def _protocol(environ: MutableMapping[str, Any]) -> str:
    protocol = environ.get("HTTP_X_FORWARDED_PROTO", "")
    if not protocol and (
        environ.get("wsgi.url_scheme") == "https"
        or str(environ.get("HTTPS", "")).lower() in ("on", "1")
    ):
        protocol = "https"
    return protocol or "http"


def _host(environ: MutableMapping[str, Any]) -> str:
    host = environ.get("HTTP_X_FLYTE_HOST") or environ.get("HTTP_X_FORWARDED_HOST")
    if host:
        return host
    host = environ.get("HTTP_HOST")
    if host:
        return host
    name = environ.get("SERVER_NAME", "")
    port = str(environ.get("SERVER_PORT", ""))
    scheme = environ.get("wsgi.url_scheme", "http")
    if port and port != _DEFAULT_PORTS.get(scheme):
        return f"{name}:{port}"
    return name


def set_protocol_and_host(environ: MutableMapping[str, Any]) -> None:
    """Store the (possibly forwarded) protocol and host in the WSGI environ."""
    protocol = _protocol(environ)
    host = _host(environ)
    environ["wsgi.url_scheme"] = protocol
    environ["HTTP_HOST"] = host


class RequestInterceptor:
    """WSGI middleware that sets the original protocol and host before the app runs."""

    def __init__(self, app: Callable[..., Iterable[bytes]]):
        self.app = app

    def __call__(self, environ, start_response):
        set_protocol_and_host(environ)
        return self.app(environ, start_response)