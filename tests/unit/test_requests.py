"""
Unit tests for the HttpRequest model and its URL/body/cookie parsing.
"""

import pytest

from dupemark.protocols import HttpParameter, HttpRequest, ParameterType, parse_cookie_header

from tests.helpers.builders import make_request


class TestFromUrl:
    """HttpRequest.from_url parameter extraction."""

    def test_service_and_path(self):
        request = make_request("https://Shop.Example.com/cart/items?page=2#frag")

        assert request.method == "GET"
        assert request.host == "shop.example.com"
        assert request.port == 443
        assert request.secure is True
        assert request.scheme == "https"
        assert request.path == "/cart/items?page=2"
        assert request.path_without_query == "/cart/items"

    @pytest.mark.parametrize(
        "url, port, secure",
        [
            ("http://example.com/", 80, False),
            ("https://example.com/", 443, True),
            ("http://example.com:8080/", 8080, False),
        ],
    )
    def test_default_ports(self, url, port, secure):
        request = make_request(url)

        assert request.port == port
        assert request.secure is secure

    def test_empty_path_becomes_root(self):
        assert make_request("https://example.com").path == "/"

    def test_method_is_upper_cased(self):
        assert make_request("https://example.com/", method="post").method == "POST"

    def test_query_parameters_in_order(self):
        request = make_request("https://example.com/?b=2&a=1&flag=")

        assert request.parameters_of(ParameterType.URL) == [
            HttpParameter("b", "2", ParameterType.URL),
            HttpParameter("a", "1", ParameterType.URL),
            HttpParameter("flag", "", ParameterType.URL),
        ]

    def test_form_body_parameters(self):
        request = make_request(
            "https://example.com/login",
            method="POST",
            headers=[("Content-Type", "application/x-www-form-urlencoded; charset=UTF-8")],
            body="user=bob&pass=s%20ecret",
        )

        assert request.parameters_of(ParameterType.BODY) == [
            HttpParameter("user", "bob", ParameterType.BODY),
            HttpParameter("pass", "s ecret", ParameterType.BODY),
        ]
        assert request.body == b"user=bob&pass=s%20ecret"

    def test_non_form_body_has_no_body_parameters(self):
        request = make_request(
            "https://example.com/api",
            method="POST",
            headers=[("Content-Type", "application/json")],
            body='{"user":"bob"}',
        )

        assert request.parameters_of(ParameterType.BODY) == []
        assert {p.type for p in request.parameters} <= {ParameterType.URL, ParameterType.COOKIE}
        assert [t.value for t in ParameterType] == ["url", "body", "cookie"]

    def test_cookie_parameters_from_every_cookie_header(self):
        request = make_request(
            "https://example.com/",
            headers=[("Cookie", "sid=abc; theme=dark"), ("cookie", "lang=en")],
        )

        names = [p.name for p in request.parameters_of(ParameterType.COOKIE)]
        assert names == ["sid", "theme", "lang"]

    @pytest.mark.parametrize("url", ["/relative/path", "ftp://example.com/file", "https:///nohost"])
    def test_rejects_non_http_urls(self, url):
        with pytest.raises(ValueError):
            make_request(url)


class TestRequestAccessors:
    def test_header_value_case_insensitive_first_match(self):
        request = make_request("https://example.com/", headers=[("X-Id", "1"), ("x-id", "2")])

        assert request.header_value("X-ID") == "1"
        assert request.header_value("Missing") is None

    def test_url_round_trip(self):
        request = HttpRequest(method="GET", host="example.com", port=8443, secure=True, path="/a?b=c")

        assert request.url == "https://example.com:8443/a?b=c"


class TestCookieHeaderParsing:
    def test_tolerates_blank_pairs_and_missing_values(self):
        cookies = parse_cookie_header("a=1;; flag ; b = 2 ")

        assert [(c.name, c.value) for c in cookies] == [("a", "1"), ("flag", ""), ("b", "2")]
        assert all(c.type is ParameterType.COOKIE for c in cookies)
