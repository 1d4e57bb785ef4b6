"""Tests for inflection helpers."""

import pytest

from apiresource.core.inflection import ids_accessor, singularize


class TestSingularize:
    """singularize() tests."""

    @pytest.mark.parametrize(
        ("plural", "singular"),
        [
            ("comments", "comment"),
            ("categories", "category"),
            ("addresses", "address"),
            ("boxes", "box"),
            ("matches", "match"),
            ("wishes", "wish"),
            ("buzzes", "buzz"),
            ("people", "person"),
            ("children", "child"),
            ("series", "series"),
            ("status", "status"),
            ("class", "class"),
            ("blog_posts", "blog_post"),
            ("user_categories", "user_category"),
            ("post", "post"),
        ],
    )
    def test_given_plural_when_singularized_then_singular(self, plural: str, singular: str) -> None:
        """Common English plurals are reduced to their singular."""
        assert singularize(plural) == singular

    def test_given_prefix_when_singularized_then_only_last_segment_changes(self) -> None:
        """Earlier snake_case segments are left alone."""
        assert singularize("news_items") == "news_item"


class TestIdsAccessor:
    """ids_accessor() tests."""

    def test_given_relation_when_default_suffix_then_ids(self) -> None:
        """Collection relations map to <singular>_ids."""
        assert ids_accessor("comments") == "comment_ids"

    def test_given_custom_suffix_when_called_then_used(self) -> None:
        """Suffix is configurable."""
        assert ids_accessor("tags", "_id_list") == "tag_id_list"
