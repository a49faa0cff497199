"""
Blog list tests

GET /api/blog summaries, ordering and resilience to bad records.
"""

import pytest

import apps.blog.posts as posts


def test_empty_store_returns_empty_list(blog_client):
    resp = blog_client.get("/api/blog")

    assert resp.status_code == 200
    assert resp.json() == []


def test_posts_are_newest_first(blog_client, blog_store, put_post):
    put_post(blog_store, "old", title="Old", content="x", datePublished="2024-01-01T00:00:00.000Z")
    put_post(blog_store, "new", title="New", content="x", datePublished="2026-03-01T00:00:00.000Z")
    put_post(blog_store, "mid", title="Mid", content="x", datePublished="2025-05-01T10:30:00.000Z")

    slugs = [p["slug"] for p in blog_client.get("/api/blog").json()]

    assert slugs == ["new", "mid", "old"]


def test_posts_created_via_api_are_newest_first(blog_client, auth_headers, monkeypatch):
    for slug, now in [("first", "2026-01-01T00:00:00.000Z"), ("second", "2026-01-02T00:00:00.000Z")]:
        monkeypatch.setattr(posts, "utc_now_iso", lambda now=now: now)
        resp = blog_client.post(
            "/api/blog",
            json={"slug": slug, "title": slug, "content": "x"},
            headers=auth_headers,
        )
        assert resp.status_code == 201

    slugs = [p["slug"] for p in blog_client.get("/api/blog").json()]

    assert slugs == ["second", "first"]


def test_summaries_omit_content_and_fill_defaults(blog_client, blog_store, put_post):
    put_post(blog_store, "bare", content="secret body", datePublished="2026-01-01T00:00:00.000Z")

    [summary] = blog_client.get("/api/blog").json()

    assert "content" not in summary
    assert summary == {
        "title": "Untitled",
        "slug": "bare",
        "metaDescription": "No description available",
        "metaKeywords": [],
        "coverImageUrl": "",
        "author": "Unknown",
        "datePublished": "2026-01-01T00:00:00.000Z",
        "lastUpdated": None,
    }


def test_stored_values_win_over_defaults(blog_client, blog_store, put_post):
    put_post(blog_store, "set", title="", author="Grace", extra="kept")

    [summary] = blog_client.get("/api/blog").json()

    assert summary["title"] == ""
    assert summary["author"] == "Grace"
    assert summary["extra"] == "kept"


def test_unreadable_record_is_skipped(blog_client, blog_store, put_post):
    put_post(blog_store, "good", title="Good", datePublished="2026-01-01T00:00:00.000Z")
    blog_store.put("post:broken", "{not json")
    blog_store.put("post:scalar", "42")

    resp = blog_client.get("/api/blog")

    assert resp.status_code == 200
    assert [p["slug"] for p in resp.json()] == ["good"]


def test_empty_record_is_listed_with_defaults(blog_client, blog_store):
    blog_store.put("post:e", "{}")

    [summary] = blog_client.get("/api/blog").json()

    assert summary["slug"] == "e"
    assert summary["title"] == "Untitled"
    assert summary["author"] == "Unknown"


def test_only_post_keys_are_listed(blog_client, blog_store, put_post):
    put_post(blog_store, "a", title="A")
    blog_store.put("config:theme", '{"title": "not a post"}')

    assert [p["slug"] for p in blog_client.get("/api/blog").json()] == ["a"]


@pytest.mark.parametrize("method", ["put", "delete"])
def test_other_methods_not_allowed(blog_client, auth_headers, method):
    resp = blog_client.request(method.upper(), "/api/blog", headers=auth_headers)

    assert resp.status_code == 405
    assert resp.json() == {"error": "Method not allowed"}


def test_equal_dates_keep_key_order(blog_store, put_post):
    same = "2026-01-01T00:00:00.000Z"
    for slug in ["c", "a", "b"]:
        put_post(blog_store, slug, title=slug, datePublished=same)

    assert [p["slug"] for p in posts.list_post_summaries(blog_store)] == ["a", "b", "c"]


def test_unparseable_dates_sort_last(blog_store, put_post):
    put_post(blog_store, "weird", datePublished="yesterday-ish")
    put_post(blog_store, "real", datePublished="2020-01-01T00:00:00Z")

    assert [p["slug"] for p in posts.list_post_summaries(blog_store)] == ["real", "weird"]
