"""Public read-only JSON API."""

from __future__ import annotations

from ivc.models.blog import Post


def test_only_published_posts_are_listed(client, make_post):
    make_post("Visible post")
    make_post("Hidden draft", status="draft")

    body = client.get("/api/posts").json()

    assert [p["title"] for p in body["posts"]] == ["Visible post"]
    assert body["pagination"]["total"] == 1
    assert "<h2" in body["posts"][0]["content_html"]


def test_newest_first_and_paginated(client, make_post):
    for title in ("First", "Second", "Third"):
        make_post(title)

    page_one = client.get("/api/posts", params={"limit": 2}).json()
    page_two = client.get("/api/posts", params={"limit": 2, "page": 2}).json()

    assert [p["title"] for p in page_one["posts"]] == ["Third", "Second"]
    assert [p["title"] for p in page_two["posts"]] == ["First"]
    assert page_one["pagination"]["total_pages"] == 2


def test_filters_by_category_tag_and_search(client, make_post, make_category, db_session):
    from ivc.services.blog_service import blog_service

    payroll = make_category("Payroll")
    tag = blog_service.create_tag(db_session, "Pensions")
    make_post("Auto enrolment duties", category_ids=[payroll.id], tag_ids=[tag.id])
    make_post("Dividend tax")

    by_category = client.get("/api/posts", params={"category": "payroll"}).json()
    by_tag = client.get("/api/posts", params={"tag": "pensions"}).json()
    by_search = client.get("/api/posts", params={"search": "dividend"}).json()

    assert [p["title"] for p in by_category["posts"]] == ["Auto enrolment duties"]
    assert [p["title"] for p in by_tag["posts"]] == ["Auto enrolment duties"]
    assert [p["title"] for p in by_search["posts"]] == ["Dividend tax"]


def test_post_detail_counts_views_and_lists_related(
    client, make_post, make_category, db_session
):
    tax = make_category("Tax")
    make_post("Related reading", category_ids=[tax.id])
    post = make_post("Main article", category_ids=[tax.id])
    make_post("Unrelated", category_ids=[make_category("Other").id])

    first = client.get(f"/api/posts/{post.slug}").json()
    second = client.get(f"/api/posts/{post.slug}").json()

    assert first["post"]["view_count"] == 1
    assert second["post"]["view_count"] == 2
    assert [p["title"] for p in first["related"]] == ["Related reading"]
    db_session.expire_all()
    assert db_session.get(Post, post.id).view_count == 2


def test_draft_detail_is_404(client, make_post):
    draft = make_post("Work in progress", status="draft")
    response = client.get(f"/api/posts/{draft.slug}")
    assert response.status_code == 404
    assert response.json() == {"error": "Post not found"}


def test_categories_are_visible_only(client, make_category):
    make_category("Shown")
    make_category("Secret", is_visible=False)

    names = [c["name"] for c in client.get("/api/categories").json()]

    assert names == ["Shown"]


def test_tags_with_counts(client, make_post, db_session):
    from ivc.services.blog_service import blog_service

    tag = blog_service.create_tag(db_session, "VAT")
    make_post("VAT basics", tag_ids=[tag.id])

    tags = client.get("/api/tags").json()

    assert [(t["slug"], t["post_count"]) for t in tags] == [("vat", 1)]
