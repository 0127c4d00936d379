"""Tests for post-id extraction and the bounded comment listing decode.

Network calls are mocked with ``respx``; ``parse_listing`` is exercised
directly with in-memory documents.
"""

from __future__ import annotations

import httpx
import pytest
import respx

from threadscrape.exceptions import FormatError, ProtocolError, TransportError
from threadscrape.scraper.comments import (
    MAX_COMMENTS,
    extract_post_id,
    fetch_comments,
    parse_listing,
)
from threadscrape.scraper.models import Comment


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _listing(*children: object) -> list:
    return [{"kind": "Listing"}, {"data": {"children": list(children)}}]


def _child(comment_id: str, body: str, **extra: object) -> dict:
    return {"kind": "t1", "data": {"id": comment_id, "body": body, **extra}}


# ---------------------------------------------------------------------------
# extract_post_id
# ---------------------------------------------------------------------------

class TestExtractPostId:
    def test_segment_after_comments(self) -> None:
        url = "https://www.reddit.com/r/python/comments/abc123/title"
        assert extract_post_id(url) == "abc123"

    def test_relative_style_path(self) -> None:
        assert extract_post_id("/r/x/comments/abc123/title") == "abc123"

    def test_ignores_query_and_fragment(self) -> None:
        url = "https://www.reddit.com/comments/abc123?sort=top#c1"
        assert extract_post_id(url) == "abc123"

    def test_no_comments_segment_fails(self) -> None:
        with pytest.raises(FormatError):
            extract_post_id("https://www.reddit.com/r/python/hot")

    def test_comments_without_id_fails(self) -> None:
        with pytest.raises(FormatError):
            extract_post_id("https://www.reddit.com/r/python/comments/")

    def test_comments_in_hostname_does_not_count(self) -> None:
        with pytest.raises(FormatError):
            extract_post_id("https://comments/abc123")


# ---------------------------------------------------------------------------
# parse_listing
# ---------------------------------------------------------------------------

class TestParseListing:
    def test_keeps_first_two_in_source_order(self) -> None:
        doc = _listing(
            _child("c1", "first"),
            _child("c2", "second"),
            _child("c3", "ignored"),
        )
        comments = parse_listing(doc)
        assert [c.comment_id for c in comments] == ["c1", "c2"]
        assert [c.body for c in comments] == ["first", "second"]

    def test_bound_is_two(self) -> None:
        assert MAX_COMMENTS == 2
        doc = _listing(*(_child(f"c{i}", f"body {i}") for i in range(50)))
        assert len(parse_listing(doc)) == 2

    def test_fewer_children_than_bound(self) -> None:
        comments = parse_listing(_listing(_child("only", "one")))
        assert comments == [Comment(comment_id="only", body="one")]

    def test_no_children(self) -> None:
        assert parse_listing(_listing()) == []

    def test_repeat_decode_is_identical(self) -> None:
        doc = _listing(_child("c1", "a"), _child("c2", "b"), _child("c3", "c"))
        assert parse_listing(doc) == parse_listing(doc)

    def test_children_past_bound_are_not_validated(self) -> None:
        doc = _listing(
            _child("c1", "first"),
            _child("c2", "second"),
            {"kind": "more", "data": {"count": 12}},
            "not even an object",
        )
        assert [c.comment_id for c in parse_listing(doc)] == ["c1", "c2"]

    def test_depth_is_copied_through(self) -> None:
        comments = parse_listing(_listing(_child("c1", "a", depth=0), _child("c2", "b")))
        assert comments[0].depth == 0
        assert comments[1].depth is None

    def test_replies_are_not_descended(self) -> None:
        reply_tree = {"data": {"children": [_child("r1", "nested reply")]}}
        doc = _listing(_child("c1", "top", replies=reply_tree))
        comments = parse_listing(doc)
        assert [c.comment_id for c in comments] == ["c1"]

    @pytest.mark.parametrize("document", [[], [{}], {"data": {}}, "nope", None])
    def test_fewer_than_two_entries_fails(self, document: object) -> None:
        with pytest.raises(FormatError):
            parse_listing(document)

    def test_missing_children_array_fails(self) -> None:
        with pytest.raises(FormatError):
            parse_listing([{}, {"data": {}}])

    def test_children_not_array_fails(self) -> None:
        with pytest.raises(FormatError):
            parse_listing([{}, {"data": {"children": "x"}}])

    def test_missing_body_within_bound_fails(self) -> None:
        doc = _listing(_child("c1", "ok"), {"data": {"id": "c2"}})
        with pytest.raises(FormatError):
            parse_listing(doc)

    def test_wrong_type_id_fails(self) -> None:
        with pytest.raises(FormatError):
            parse_listing(_listing({"data": {"id": 42, "body": "x"}}))

    def test_wrong_type_depth_fails(self) -> None:
        with pytest.raises(FormatError):
            parse_listing(_listing(_child("c1", "x", depth="zero")))


# ---------------------------------------------------------------------------
# fetch_comments
# ---------------------------------------------------------------------------

class TestFetchComments:
    _BASE = "https://comments.test/comments"

    def test_fetches_listing_for_post(self) -> None:
        doc = _listing(_child("c1", "first"), _child("c2", "second"), _child("c3", "x"))
        with respx.mock:
            route = respx.get(f"{self._BASE}/abc123.json").mock(
                return_value=httpx.Response(200, json=doc)
            )
            comments = fetch_comments("abc123", base_url=self._BASE, user_agent="UA/1.0")

        assert route.called
        assert route.calls.last.request.headers["User-Agent"] == "UA/1.0"
        assert [c.comment_id for c in comments] == ["c1", "c2"]

    def test_unreachable_service_raises_transport_error(self) -> None:
        with respx.mock:
            respx.get(f"{self._BASE}/abc123.json").mock(
                side_effect=httpx.ConnectError("unreachable")
            )
            with pytest.raises(TransportError):
                fetch_comments("abc123", base_url=self._BASE)

    def test_http_error_raises_transport_error(self) -> None:
        with respx.mock:
            respx.get(f"{self._BASE}/abc123.json").mock(
                return_value=httpx.Response(429, text="Too Many Requests")
            )
            with pytest.raises(TransportError) as excinfo:
                fetch_comments("abc123", base_url=self._BASE)

        assert excinfo.value.status_code == 429

    def test_non_json_body_raises_protocol_error(self) -> None:
        with respx.mock:
            respx.get(f"{self._BASE}/abc123.json").mock(
                return_value=httpx.Response(200, text="<html>blocked</html>")
            )
            with pytest.raises(ProtocolError):
                fetch_comments("abc123", base_url=self._BASE)

    def test_short_listing_raises_format_error(self) -> None:
        with respx.mock:
            respx.get(f"{self._BASE}/abc123.json").mock(
                return_value=httpx.Response(200, json=[{}])
            )
            with pytest.raises(FormatError):
                fetch_comments("abc123", base_url=self._BASE)

    def test_unparseable_listing_url_raises_format_error(self) -> None:
        with pytest.raises(FormatError, match="invalid URL"):
            fetch_comments("abc123", base_url="http://[::1")
