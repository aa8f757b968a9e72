"""Pagination of listings driven by request query parameters."""

import re
from dataclasses import dataclass
from typing import Any
from urllib.parse import parse_qs

from .uri import Link

DEFAULT_MAX_LIMIT = 300
DEFAULT_MIN_LIMIT = 30
DEFAULT_PAGE_NUMBER = 1

_INTEGER = re.compile(r"[+-]?\d+")


def _to_int(value: str) -> int:
    return int(value) if _INTEGER.fullmatch(value) else 0


def _query_value(request: Any, name: str) -> str:
    environ = getattr(request, "environ", request)
    values = parse_qs(environ.get("QUERY_STRING", ""), keep_blank_values=True).get(name)
    return values[0] if values else ""


@dataclass
class Page:
    """One page of a listing: its number, size, page count and first index."""

    page_number: int = DEFAULT_PAGE_NUMBER
    per_page: int = DEFAULT_MIN_LIMIT
    total_pages: int = 0
    start_index: int = 0

    def _initialize(self, total_items: int) -> None:
        if total_items < 1:
            self.total_pages = 0
            self.page_number = 1
            self.start_index = 0
            return
        self.total_pages = -(-total_items // self.per_page)
        self.page_number = min(self.page_number, self.total_pages)
        self.start_index = (self.page_number - 1) * self.per_page

    def links_for(self, uri: str, default_links: list) -> list:
        """Return the default links plus first, prev, next and last where they apply."""
        links = list(default_links)

        def href(number: int) -> str:
            return f"{uri}?page={number}&per_page={self.per_page}"

        if self.page_number != 1 and self.total_pages > 1:
            links.append(Link(href(1), "first"))
            links.append(Link(href(self.page_number - 1), "prev"))
        if self.page_number != self.total_pages and self.total_pages > 1:
            links.append(Link(href(self.page_number + 1), "next"))
            links.append(Link(href(self.total_pages), "last"))
        return links


def new_page(request: Any, total_items: int) -> Page:
    """Create a page from the request's 'page' and 'per_page' query parameters."""
    page_number = _to_int(_query_value(request, "page"))
    per_page = _to_int(_query_value(request, "per_page"))

    if page_number < DEFAULT_PAGE_NUMBER:
        page_number = DEFAULT_PAGE_NUMBER
    if per_page < 1:
        per_page = DEFAULT_MIN_LIMIT
    if per_page > DEFAULT_MAX_LIMIT:
        per_page = DEFAULT_MAX_LIMIT

    page = Page(page_number=page_number, per_page=per_page)
    page._initialize(total_items)
    return page