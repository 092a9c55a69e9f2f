"""Tests for slug generation and collision handling."""

from __future__ import annotations

from ivc.models.blog import Category, Tag
from ivc.services.slugs import slugify_name, unique_slug


class TestSlugifyName:
    def test_collapses_punctuation_and_spaces(self):
        assert slugify_name("  VAT & Payroll -- 2025!  ") == "vat-payroll-2025"

    def test_empty_input(self):
        assert slugify_name("") == ""
        assert slugify_name("!!!") == ""

    def test_truncates(self):
        assert len(slugify_name("a" * 300, max_length=50)) == 50


class TestUniqueSlug:
    def test_free_slug_is_returned_as_is(self, db_session):
        assert unique_slug(db_session, Tag, "Making Tax Digital") == "making-tax-digital"

    def test_collisions_get_numeric_suffixes(self, db_session):
        db_session.add_all(
            [
                Category(name="Tax", slug="tax"),
                Category(name="Tax", slug="tax-1"),
            ]
        )
        db_session.commit()

        assert unique_slug(db_session, Category, "Tax") == "tax-2"

    def test_excluded_row_does_not_collide_with_itself(self, db_session):
        category = Category(name="Tax", slug="tax")
        db_session.add(category)
        db_session.commit()

        assert unique_slug(db_session, Category, "tax", exclude_id=category.id) == "tax"

    def test_unsluggable_base_falls_back(self, db_session):
        assert unique_slug(db_session, Tag, "???") == "item"
