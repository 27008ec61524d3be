import os
import sys
from datetime import datetime, timezone

import pytest
from jinja2 import TemplateError

sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from ga_beacon import responses
from ga_beacon.errors import TemplateRenderError


NOW = datetime(2025, 1, 1, 12, 30, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "query, filename, media_type",
    [
        ({"pixel": [""]}, "pixel.gif", "image/gif"),
        ({"gif": [""]}, "badge.gif", "image/gif"),
        ({"flat": [""]}, "badge-flat.svg", "image/svg+xml"),
        ({"flat-gif": [""]}, "badge-flat.gif", "image/gif"),
        ({}, "badge.svg", "image/svg+xml"),
        ({"src": ["x"]}, "badge.svg", "image/svg+xml"),
    ],
)
def test_select_badge(query, filename, media_type):
    badge = responses.select_badge(query)
    assert (badge.filename, badge.media_type) == (filename, media_type)


def test_select_badge_priority():
    query = {"flat-gif": [""], "flat": [""], "gif": [""], "pixel": [""]}
    assert responses.select_badge(query).filename == "pixel.gif"
    del query["pixel"]
    assert responses.select_badge(query).filename == "badge.gif"
    del query["gif"]
    assert responses.select_badge(query).filename == "badge-flat.svg"
    del query["flat"]
    assert responses.select_badge(query).filename == "badge-flat.gif"


def test_assets_are_distinct_images():
    responses.preload_assets()
    names = ["pixel.gif", "badge.gif", "badge-flat.svg", "badge-flat.gif", "badge.svg"]
    contents = [responses.asset_bytes(name) for name in names]
    assert len(set(contents)) == len(names)
    for name, content in zip(names, contents):
        if name.endswith(".gif"):
            assert content.startswith(b"GIF89a")
        else:
            assert b"<svg" in content


def test_tracked_response_is_not_cacheable():
    resp = responses.beacon_response({"pixel": [""]}, "abc", NOW)

    assert resp.media_type == "image/gif"
    assert resp.body == responses.asset_bytes("pixel.gif")
    assert resp.headers["cache-control"] == "no-cache, no-store, must-revalidate, private"
    assert resp.headers["expires"] == "Wed, 01 Jan 2025 12:30:00 GMT"
    assert resp.headers["cid"] == "abc"


def test_untracked_response_has_no_cache_headers():
    resp = responses.beacon_response({}, "", NOW)

    assert resp.body == responses.asset_bytes("badge.svg")
    assert "cid" not in resp.headers
    assert "expires" not in resp.headers


def test_render_account_page():
    resp = responses.render_account_page("octocat", "https://example.com/")

    assert resp.status_code == 200
    body = resp.body.decode()
    assert "account=octocat" in body
    assert "https://example.com/" in body


def test_render_account_page_escapes_input():
    body = responses.render_account_page("<script>", "").body.decode()
    assert "<script>" not in body
    assert "&lt;script&gt;" in body


def test_render_account_page_failure(monkeypatch):
    def _broken(name):
        raise TemplateError("broken template")

    monkeypatch.setattr(responses.templates, "get_template", _broken)
    with pytest.raises(TemplateRenderError):
        responses.render_account_page("octocat")


def test_render_account_page_links_only_web_referers():
    body = responses.render_account_page("octocat", "javascript:alert(1)").body.decode()
    assert 'href="javascript:' not in body
    assert "javascript:alert(1)" in body

    body = responses.render_account_page("octocat", "http://example.com/").body.decode()
    assert 'href="http://example.com/"' in body
