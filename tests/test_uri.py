from werkzeug.test import EnvironBuilder
from werkzeug.wrappers import Request

from flyteapi.uri import Link, uri_builder


def _request():
    return {"wsgi.url_scheme": "http", "HTTP_HOST": "www.example.com"}


def test_uri_built_from_protocol_and_host():
    assert uri_builder(_request()).build() == "http://www.example.com/"


def test_uri_with_path():
    builder = uri_builder(_request())
    builder.path("/packs", "/hipchat")
    assert builder.build() == "http://www.example.com/packs/hipchat"


def test_uri_with_parent_path():
    builder = uri_builder(_request())
    builder.path("/packs")
    builder.parent()
    assert builder.build() == "http://www.example.com/"


def test_uri_with_parent_path_with_no_trailing_slash():
    builder = uri_builder(_request())
    builder.path("/")
    builder.parent()
    assert builder.build() == "http://www.example.com/"


def test_uri_with_path_parameter_replaced():
    builder = uri_builder(_request())
    builder.path("/packs/:pack")
    builder.replace(":pack", "hipchat")
    assert builder.build() == "http://www.example.com/packs/hipchat"


def test_uri_with_path_parameter_removed_when_value_empty():
    builder = uri_builder(_request())
    builder.path("/packs/:pack")
    builder.replace(":pack", "")
    assert builder.build() == "http://www.example.com/packs"


def test_chained_calls_and_nested_parent():
    uri = uri_builder(_request()).path("/v1/flows/:flowName").parent().build()
    assert uri == "http://www.example.com/v1/flows"


def test_empty_path_builds_root():
    assert uri_builder(_request()).path("").build() == "http://www.example.com/"


def test_accepts_werkzeug_request():
    env = EnvironBuilder(path="/", base_url="https://example.com/").get_environ()
    uri = uri_builder(Request(env)).path("/v1").build()
    assert uri == "https://example.com/v1"


def test_link_to_dict_omits_empty_rel():
    assert Link("http://example.com/").to_dict() == {"href": "http://example.com/"}
    assert Link("http://example.com/", "self").to_dict() == {
        "href": "http://example.com/",
        "rel": "self",
    }