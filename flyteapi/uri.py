"""Hypermedia links and a builder for absolute URIs."""

import posixpath
from dataclasses import dataclass
from typing import Any, Mapping

_DEFAULT_PORTS = {"http": "80", "https": "443"}


def _environ_of(request: Any) -> Mapping[str, Any]:
    return getattr(request, "environ", request)


def _request_host(environ: Mapping[str, Any]) -> str:
    host = environ.get("HTTP_HOST")
    if host:
        return host
    name = environ.get("SERVER_NAME", "")
    port = str(environ.get("SERVER_PORT", ""))
    scheme = environ.get("wsgi.url_scheme", "http")
    if port and port != _DEFAULT_PORTS.get(scheme):
        return f"{name}:{port}"
    return name


def _clean(path: str) -> str:
    if not path:
        return "."
    cleaned = posixpath.normpath(path)
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


@dataclass
class Link:
    """A hypermedia link with an optional relation."""

    href: str
    rel: str = ""

    def to_dict(self) -> dict:
        data = {"href": self.href}
        if self.rel:
            data["rel"] = self.rel
        return data


class UriBuilder:
    """Builds absolute URIs on top of a request's scheme and host."""

    def __init__(self, base_uri: str):
        self._base_uri = base_uri
        self._path = ""

    def path(self, *args: str) -> "UriBuilder":
        """Set the path to the given segments joined together."""
        parts = [p for p in args if p]
        self._path = _clean("/".join(parts)) if parts else ""
        return self

    def parent(self) -> "UriBuilder":
        """Move the path one level up, stopping at the root."""
        parent = _clean(posixpath.dirname(self._path))
        self._path = "/" if parent == "." else parent
        return self

    def replace(self, path_param: str, value: str) -> "UriBuilder":
        """Replace the first occurrence of a path parameter, dropping a trailing slash."""
        replaced = self._path.replace(path_param, value, 1)
        self._path = replaced[:-1] if replaced.endswith("/") else replaced
        return self

    def build(self) -> str:
        path = self._path[1:] if self._path.startswith("/") else self._path
        return self._base_uri + path


def uri_builder(request: Any) -> UriBuilder:
    """Start a builder from a request (or WSGI environ) scheme and host."""
    environ = _environ_of(request)
    scheme = environ.get("wsgi.url_scheme", "http")
    return UriBuilder(f"{scheme}://{_request_host(environ)}/")