"""Tests for the ResourceModel mixin and registration helpers."""

import datetime
from types import SimpleNamespace

import pytest
from sqlalchemy import Column, Integer, String, select
from sqlalchemy.orm import DeclarativeBase, Session

from apiresource.core.errors import DefinitionError, ErrorCode
from apiresource.resource import ResourceModel, scope
from apiresource.resource.model import assign_attributes, virtual_attribute
from apiresource.resource.scopes import scopes_for


class TestVirtualAttribute:
    """Virtual field declaration and accessors."""

    def test_given_accessors_when_declared_then_read_write(self, models: SimpleNamespace) -> None:
        """Declared virtual fields get a property backed by the instance."""
        post = models.Post()

        post.v_field = 3

        assert post.v_field == 3

    def test_given_fresh_instance_when_read_then_none(self, models: SimpleNamespace) -> None:
        """Unset virtual fields read as None."""
        assert models.Post().v_field is None

    def test_given_constructor_kwarg_when_created_then_assigned(
        self, models: SimpleNamespace
    ) -> None:
        """The declarative constructor accepts virtual fields."""
        post = models.Post(title="t", v_field="computed")

        assert post.v_field == "computed"

    def test_given_no_accessors_when_declared_then_none_defined(
        self, models: SimpleNamespace
    ) -> None:
        """define_accessors=False leaves the class alone."""
        assert not hasattr(models.Post, "v_field_no_definition")

    def test_given_existing_accessor_when_declared_then_not_replaced(
        self, models: SimpleNamespace
    ) -> None:
        """Hand-written accessors survive a virtual declaration."""
        seen: list[str] = []
        models.Post.abc = property(
            lambda self: seen.append("get") or "mine",
            lambda self, value: seen.append("set"),
        )

        models.Post.virtual_attribute("abc")
        post = models.Post()
        value = post.abc
        post.abc = 100

        assert value == "mine"
        assert seen == ["get", "set"]

    def test_given_type_when_declared_then_descriptor_returned(
        self, models: SimpleNamespace
    ) -> None:
        """The declaration reports its resolved type."""
        virtual = virtual_attribute(models.Post, "published_on", type=datetime.date)

        assert virtual.type_tag.value == "date"
        assert virtual.define_accessors

    def test_given_unmapped_class_when_declared_then_rejected(self) -> None:
        """Only mapped classes accept declarations."""

        class Plain:
            pass

        with pytest.raises(DefinitionError) as exc_info:
            virtual_attribute(Plain, "x")
        assert exc_info.value.code == ErrorCode.NOT_A_RECORD_TYPE


class TestAliasAttribute:
    """Aliases over columns and virtual fields."""

    def test_given_column_alias_when_used_then_shares_storage(
        self, models: SimpleNamespace
    ) -> None:
        """Reads and writes go through to the target column."""
        models.Post.alias_attribute("blahblah", "body")
        post = models.Post(body="B")

        assert post.blahblah == "B"
        post.blahblah = "X"
        assert post.body == "X"

    def test_given_column_alias_when_constructed_then_accepted(
        self, models: SimpleNamespace
    ) -> None:
        """The constructor accepts the alias name."""
        models.Post.alias_attribute("name", "title")

        assert models.Post(name="New").title == "New"

    def test_given_column_alias_when_queried_then_usable(
        self, models: SimpleNamespace, session: Session
    ) -> None:
        """Column aliases work in query criteria."""
        models.Post.alias_attribute("name", "title")
        session.add(models.Post(title="Found"))
        session.add(models.Post(title="Other"))
        session.commit()

        found = session.scalars(select(models.Post).where(models.Post.name == "Found")).all()

        assert [p.title for p in found] == ["Found"]

    def test_given_virtual_alias_when_used_then_proxies(self, models: SimpleNamespace) -> None:
        """Aliases of non-column attributes proxy through a property."""
        models.Post.alias_attribute("vf_alias", "v_field")
        post = models.Post()

        post.vf_alias = 11

        assert post.v_field == 11

    def test_given_virtual_without_accessors_when_aliased_then_proxies(
        self, models: SimpleNamespace
    ) -> None:
        """A declared virtual field without accessors is still a valid target."""
        models.Post.alias_attribute("nd_alias", "v_field_no_definition")
        post = models.Post()

        post.nd_alias = "x"

        assert post.v_field_no_definition == "x"
        assert "nd_alias" in models.Post.resource_definition(True).attribute_names()

    def test_given_unknown_target_when_aliased_then_rejected(self, models: SimpleNamespace) -> None:
        """Aliasing a missing attribute is a definition error."""
        with pytest.raises(DefinitionError) as exc_info:
            models.Post.alias_attribute("ghost", "does_not_exist")
        assert exc_info.value.code == ErrorCode.UNKNOWN_ALIAS_TARGET


class TestAssignAttributes:
    """Mass assignment honoring visibility."""

    def test_given_public_values_when_assigned_then_set(self, models: SimpleNamespace) -> None:
        """Public columns and virtual fields are assigned."""
        post = models.Post()

        assigned = post.assign_attributes({"title": "T", "v_field": 1})

        assert assigned == ["title", "v_field"]
        assert post.title == "T"
        assert post.v_field == 1

    def test_given_protected_value_when_not_allowed_then_skipped(
        self, models: SimpleNamespace
    ) -> None:
        """Protected fields need explicit permission."""
        post = models.Post()

        assigned = post.assign_attributes({"protected_field": "P"})

        assert assigned == []
        assert post.protected_field is None

    def test_given_private_value_when_allowed_then_still_skipped(
        self, models: SimpleNamespace
    ) -> None:
        """Private fields are never mass-assigned."""
        post = models.Post()

        assigned = assign_attributes(post, {"private_field": "X"}, include_protected=True)

        assert assigned == []
        assert post.private_field is None

    def test_given_unknown_and_relationship_keys_when_assigned_then_skipped(
        self, models: SimpleNamespace
    ) -> None:
        """Only fields are assignable."""
        post = models.Post()

        assigned = post.assign_attributes({"nope": 1, "comments": [], "title": "ok"})

        assert assigned == ["title"]
        assert not hasattr(post, "nope")

    def test_given_alias_when_assigned_then_target_set(self, models: SimpleNamespace) -> None:
        """Aliases are assignable and write the target."""
        models.Post.alias_attribute("name", "title")
        post = models.Post()

        post.assign_attributes({"name": "New Post", "body": "New Body"})

        assert post.title == "New Post"
        assert post.body == "New Body"

    def test_given_alias_of_protected_when_assigned_then_skipped(
        self, models: SimpleNamespace
    ) -> None:
        """An alias cannot bypass its target's visibility."""
        models.Post.alias_attribute("guarded", "protected_field")
        post = models.Post()

        assert post.assign_attributes({"guarded": "x"}) == []

    def test_given_protected_update_when_allowed_then_persisted(
        self, models: SimpleNamespace, session: Session
    ) -> None:
        """update_attributes_with_protected writes protected fields when allowed."""
        post = models.Post(title="p")
        session.add(post)
        session.commit()

        post.update_attributes_with_protected({"protected_field": "Test"}, True)
        session.commit()
        session.refresh(post)

        assert post.protected_field == "Test"

    def test_given_protected_update_when_denied_then_unchanged(
        self, models: SimpleNamespace, session: Session
    ) -> None:
        """Without permission protected fields are left alone."""
        post = models.Post(title="p", protected_field="keep")
        session.add(post)
        session.commit()

        post.update_attributes_with_protected({"protected_field": "Test", "title": "q"}, False)
        session.commit()
        session.refresh(post)

        assert post.protected_field == "keep"
        assert post.title == "q"


class TestResourceModel:
    """Mixin wiring."""

    def test_given_class_body_scopes_when_created_then_registered(
        self, models: SimpleNamespace
    ) -> None:
        """Declared scopes are registered at class creation."""
        scopes = scopes_for(models.Post)

        assert {"user_id_scope", "no_param_scope", "nonsense"} <= set(scopes)

    def test_given_mixin_on_base_when_subclassed_then_works(self) -> None:
        """The mixin may sit on the declarative base itself."""

        class Base(ResourceModel, DeclarativeBase):
            pass

        class Tag(Base):
            __tablename__ = "tags"
            id = Column(Integer, primary_key=True)
            label = Column(String(30))

            @scope
            def labelled(query, label):
                return query.where(Tag.label == label)

        definition = Tag.resource_definition()

        assert definition.scopes == {"labelled": {"label": "req"}}
        assert ("label", "string") in definition.attributes.public

    def test_given_records_when_scoped_then_rows_filtered(
        self, models: SimpleNamespace, session: Session
    ) -> None:
        """Dispatched queries run against a real database."""
        user = models.User(name="Dan")
        session.add(user)
        session.flush()
        session.add_all(
            [
                models.Post(title="a", user_id=user.id),
                models.Post(title="b", user_id=user.id),
                models.Post(title="c"),
            ]
        )
        session.commit()

        query = models.Post.add_scopes({"user_id_scope": {"user_id": user.id}})
        titles = sorted(p.title for p in session.scalars(query))

        assert titles == ["a", "b"]

    def test_given_subtype_rows_when_type_filtered_then_only_subtype(
        self, models: SimpleNamespace, session: Session
    ) -> None:
        """The subtype filter narrows a parent query to subtype rows."""
        session.add_all([models.User(name="u"), models.Admin(name="a")])
        session.commit()

        query = models.User.add_scopes({"type": "Admin"})
        rows = session.scalars(query).all()

        assert [type(r).__name__ for r in rows] == ["Admin"]

    def test_given_ids_when_static_scoped_then_rows_filtered(
        self, models: SimpleNamespace, session: Session
    ) -> None:
        """The ids filter selects rows by primary key."""
        posts = [models.Post(title=t) for t in ("a", "b", "c")]
        session.add_all(posts)
        session.commit()

        query = models.Post.add_static_scopes({"ids": f"{posts[0].id},{posts[2].id}"})
        titles = sorted(p.title for p in session.scalars(query))

        assert titles == ["a", "c"]
