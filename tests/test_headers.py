"""Tests for waypoint.http.headers — immutable, case-insensitive Headers."""

import pytest

from waypoint.http.headers import Headers


def _h(*pairs: tuple[str, str]) -> Headers:
    raw = tuple((k.encode("latin-1"), v.encode("latin-1")) for k, v in pairs)
    return Headers(raw)


class TestHeaders:
    def test_case_insensitive(self) -> None:
        h = _h(("If-None-Match", '"abc"'))
        assert h["if-none-match"] == '"abc"'
        assert h["IF-NONE-MATCH"] == '"abc"'

    def test_missing_key_raises(self) -> None:
        with pytest.raises(KeyError):
            _h(("Accept", "*/*"))["X-Missing"]

    def test_contains(self) -> None:
        h = _h(("Accept", "*/*"))
        assert "Accept" in h
        assert "x-missing" not in h
        assert 42 not in h  # type: ignore[operator]

    def test_iter_yields_unique_lowercase_keys(self) -> None:
        h = _h(("Accept", "*/*"), ("Content-Type", "text/html"), ("Accept", "text/xml"))
        assert list(h) == ["accept", "content-type"]
        assert len(h) == 2

    def test_get_first_value_and_default(self) -> None:
        h = _h(("Accept", "*/*"), ("Accept", "text/xml"))
        assert h.get("accept") == "*/*"
        assert h.get("x-missing") is None
        assert h.get("x-missing", "fallback") == "fallback"

    def test_get_list(self) -> None:
        h = _h(("If-None-Match", '"a"'), ("If-None-Match", '"b"'))
        assert h.get_list("if-none-match") == ['"a"', '"b"']
        assert h.get_list("x-missing") == []

    def test_raw_property(self) -> None:
        raw = ((b"a", b"1"),)
        assert Headers(raw).raw is raw

    def test_from_mapping(self) -> None:
        h = Headers.from_mapping({"If-Modified-Since": "Wed, 01 May 2024 12:30:15 GMT"})
        assert h.raw == ((b"if-modified-since", b"Wed, 01 May 2024 12:30:15 GMT"),)

    def test_immutable(self) -> None:
        h = Headers()
        with pytest.raises(AttributeError):
            h._raw = ()  # type: ignore[misc]

    def test_repr(self) -> None:
        assert "accept" in repr(_h(("Accept", "*/*")))
