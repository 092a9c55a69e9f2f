"""Tests for the public blog pages."""

from __future__ import annotations

from fastapi.testclient import TestClient

from ivc.routers.blog import POSTS_PER_PAGE


def test_blog_index_lists_published_posts(client: TestClient, make_post):
    make_post("Capital gains on property")
    make_post("Secret draft", status="draft")

    response = client.get("/blog")

    assert response.status_code == 200
    assert "Capital gains on property" in response.text
    assert "Secret draft" not in response.text


def test_blog_index_pagination(client: TestClient, make_post):
    for i in range(POSTS_PER_PAGE + 1):
        make_post(f"Post number {i}")

    first = client.get("/blog")
    second = client.get("/blog", params={"page": 2})

    assert "Page 1 of 2" in first.text
    assert "Post number 0" not in first.text
    assert "Post number 0" in second.text


def test_blog_search(client: TestClient, make_post):
    make_post("Making Tax Digital for landlords")
    make_post("Payroll year end")

    response = client.get("/blog", params={"q": "landlords"})

    assert "Making Tax Digital for landlords" in response.text
    assert "Payroll year end" not in response.text


def test_blog_post_renders_markdown_and_counts_views(client: TestClient, make_post, db_session):
    post = make_post("Deadlines")

    response = client.get(f"/blog/{post.slug}")

    assert response.status_code == 200
    assert "<strong>31 January</strong>" in response.text
    db_session.refresh(post)
    assert post.view_count == 1


def test_draft_post_is_404(client: TestClient, make_post):
    draft = make_post("Not yet", status="draft")
    response = client.get(f"/blog/{draft.slug}", headers={"Accept": "text/html"})
    assert response.status_code == 404
    assert "Post not found" in response.text


def test_category_page(client: TestClient, make_post, make_category):
    visible = make_category("Business Growth")
    hidden = make_category("Internal", is_visible=False)
    make_post("Scaling up", category_ids=[visible.id])
    make_post("Elsewhere")

    response = client.get("/blog/category/business-growth")
    assert response.status_code == 200
    assert "Scaling up" in response.text
    assert "Elsewhere" not in response.text

    assert client.get(f"/blog/category/{hidden.slug}").status_code == 404


def test_tag_page(client: TestClient, make_post, db_session):
    from ivc.services.blog_service import blog_service

    tag = blog_service.create_tag(db_session, "Self Assessment")
    make_post("Filing online", tag_ids=[tag.id])

    response = client.get("/blog/tag/self-assessment")
    assert response.status_code == 200
    assert "Filing online" in response.text
    assert client.get("/blog/tag/missing").status_code == 404
