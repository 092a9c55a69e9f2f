"""Admin category API: slugs, hierarchy, guarded deletes."""

from __future__ import annotations

from ivc.models.blog import Category


def _create(client, **payload):
    response = client.post("/api/admin/categories", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


class TestCreateCategory:
    def test_slug_derived_from_name(self, admin_client):
        body = _create(admin_client, name="Business Growth")
        assert body["slug"] == "business-growth"
        assert body["post_count"] == 0

    def test_colliding_slugs_are_suffixed(self, admin_client):
        slugs = [_create(admin_client, name="Tax Planning")["slug"] for _ in range(3)]
        assert slugs == ["tax-planning", "tax-planning-1", "tax-planning-2"]

    def test_explicit_slug_is_still_made_unique(self, admin_client):
        _create(admin_client, name="VAT")
        body = _create(admin_client, name="Value Added Tax", slug="vat")
        assert body["slug"] == "vat-1"

    def test_unknown_parent_rejected(self, admin_client):
        response = admin_client.post(
            "/api/admin/categories", json={"name": "Orphan", "parent_id": 999}
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Parent category not found"

    def test_missing_name_is_validation_error(self, admin_client):
        response = admin_client.post("/api/admin/categories", json={})
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Validation failed"
        assert body["details"]


class TestUpdateCategory:
    def test_rename_keeps_slug(self, admin_client):
        created = _create(admin_client, name="Payroll")
        response = admin_client.put(
            f"/api/admin/categories/{created['id']}", json={"name": "Payroll & Pensions"}
        )
        assert response.status_code == 200
        assert response.json()["name"] == "Payroll & Pensions"
        assert response.json()["slug"] == "payroll"

    def test_cannot_be_own_parent(self, admin_client):
        created = _create(admin_client, name="Loop")
        response = admin_client.put(
            f"/api/admin/categories/{created['id']}", json={"parent_id": created["id"]}
        )
        assert response.status_code == 400

    def test_cannot_move_under_own_descendant(self, admin_client):
        top = _create(admin_client, name="Advisory")
        child = _create(admin_client, name="Exit Planning", parent_id=top["id"])
        grandchild = _create(admin_client, name="Valuations", parent_id=child["id"])

        response = admin_client.put(
            f"/api/admin/categories/{top['id']}", json={"parent_id": grandchild["id"]}
        )

        assert response.status_code == 400
        assert response.json()["error"] == (
            "A category cannot be moved under its own descendant"
        )
        tree = admin_client.get("/api/admin/categories/tree").json()
        assert [node["slug"] for node in tree] == ["advisory"]

    def test_null_for_required_field_is_validation_error(self, admin_client):
        created = _create(admin_client, name="Audit")
        for field in ("name", "is_visible", "sort_order"):
            response = admin_client.put(
                f"/api/admin/categories/{created['id']}", json={field: None}
            )
            assert response.status_code == 400, field
            assert response.json()["error"] == "Validation failed"
        body = admin_client.get(f"/api/admin/categories/{created['id']}").json()
        assert body["name"] == "Audit"
        assert body["is_visible"] is True

    def test_missing_category_404(self, admin_client):
        response = admin_client.put("/api/admin/categories/4242", json={"name": "x"})
        assert response.status_code == 404
        assert response.json() == {"error": "Category not found"}


class TestDeleteCategory:
    def test_delete_empty_category(self, admin_client, db_session):
        created = _create(admin_client, name="Temporary")
        response = admin_client.delete(f"/api/admin/categories/{created['id']}")
        assert response.status_code == 200
        assert db_session.get(Category, created["id"]) is None

    def test_category_with_posts_is_kept(self, admin_client, db_session, make_post):
        created = _create(admin_client, name="Tax")
        make_post("Self assessment tips", category_ids=[created["id"]])

        response = admin_client.delete(f"/api/admin/categories/{created['id']}")

        assert response.status_code == 400
        assert response.json()["error"] == (
            "Cannot delete category with posts. Please reassign posts first."
        )
        assert db_session.get(Category, created["id"]) is not None

    def test_children_survive_parent_delete(self, admin_client, db_session):
        parent = _create(admin_client, name="Parent")
        child = _create(admin_client, name="Child", parent_id=parent["id"])

        admin_client.delete(f"/api/admin/categories/{parent['id']}")

        db_session.expire_all()
        assert db_session.get(Category, child["id"]).parent_id is None


class TestBulkOperations:
    def test_bulk_delete(self, admin_client):
        ids = [_create(admin_client, name=f"Bulk {i}")["id"] for i in range(3)]
        response = admin_client.post("/api/admin/categories/bulk-delete", json={"ids": ids})
        assert response.status_code == 200
        assert response.json() == {"success": True, "deleted_count": 3}

    def test_bulk_delete_refused_when_any_has_posts(
        self, admin_client, db_session, make_post
    ):
        empty = _create(admin_client, name="Empty")
        used = _create(admin_client, name="Used")
        make_post("Used post", category_ids=[used["id"]])

        response = admin_client.post(
            "/api/admin/categories/bulk-delete", json={"ids": [empty["id"], used["id"]]}
        )

        assert response.status_code == 400
        assert response.json()["categories_with_posts"] == [used["id"]]
        assert db_session.get(Category, empty["id"]) is not None

    def test_bulk_delete_requires_ids(self, admin_client):
        response = admin_client.post("/api/admin/categories/bulk-delete", json={"ids": []})
        assert response.status_code == 400

    def test_reorder(self, admin_client):
        a = _create(admin_client, name="A")
        b = _create(admin_client, name="B")
        response = admin_client.post(
            "/api/admin/categories/reorder",
            json={"items": [{"id": a["id"], "sort_order": 2}, {"id": b["id"], "sort_order": 1}]},
        )
        assert response.status_code == 200
        names = [c["name"] for c in admin_client.get("/api/admin/categories").json()]
        assert names == ["B", "A"]

    def test_reorder_unknown_id_404(self, admin_client):
        a = _create(admin_client, name="A")
        response = admin_client.post(
            "/api/admin/categories/reorder",
            json={"items": [{"id": a["id"], "sort_order": 1}, {"id": 9999, "sort_order": 0}]},
        )
        assert response.status_code == 404


class TestListingAndTree:
    def test_tree_nests_children_and_promotes_orphans(self, admin_client):
        root = _create(admin_client, name="Root")
        _create(admin_client, name="Leaf", parent_id=root["id"])

        tree = admin_client.get("/api/admin/categories/tree").json()

        assert [n["name"] for n in tree] == ["Root"]
        assert [c["name"] for c in tree[0]["children"]] == ["Leaf"]

    def test_filters_and_post_counts(self, admin_client, make_post):
        featured = _create(admin_client, name="Featured", is_featured=True)
        _create(admin_client, name="Hidden", is_visible=False)
        make_post("Counted", category_ids=[featured["id"]])

        only_featured = admin_client.get(
            "/api/admin/categories", params={"featured": "true"}
        ).json()
        assert [c["name"] for c in only_featured] == ["Featured"]
        assert only_featured[0]["post_count"] == 1

        searched = admin_client.get("/api/admin/categories", params={"search": "hid"}).json()
        assert [c["name"] for c in searched] == ["Hidden"]

    def test_stats(self, admin_client, make_post):
        used = _create(admin_client, name="Used", is_featured=True)
        _create(admin_client, name="Hidden", is_visible=False)
        make_post("Counted", category_ids=[used["id"]])

        stats = admin_client.get("/api/admin/categories/stats").json()

        assert stats == {"total": 2, "featured": 1, "visible": 1, "with_posts": 1}
