"""Shared fixtures for resource engine tests.

Every test gets its own declarative base and freshly mapped classes, so
registrations made in one test never leak into another.
"""

from collections.abc import Iterator
from pathlib import Path
from types import SimpleNamespace

import pytest
from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    create_engine,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Session, relationship

from apiresource.config import reset_config
from apiresource.resource import ResourceModel, invalidate, protected_scope, scope


def build_models() -> SimpleNamespace:
    """Blog schema: users (with an Admin subtype), posts and comments."""

    class Base(DeclarativeBase):
        pass

    class User(ResourceModel, Base):
        __tablename__ = "users"
        __mapper_args__ = {"polymorphic_on": "type", "polymorphic_identity": "User"}

        id = Column(Integer, primary_key=True)
        name = Column(String(100))
        bday = Column(Date)
        type = Column(String(50))
        created_at = Column(DateTime)
        updated_at = Column(DateTime)

        posts = relationship("Post", back_populates="user")

        @scope
        def by_name(query, name):
            return query.where(User.name == name)

    class Admin(User):
        __mapper_args__ = {"polymorphic_identity": "Admin"}

    class Post(ResourceModel, Base):
        __tablename__ = "posts"

        id = Column(Integer, primary_key=True)
        title = Column(String(200))
        body = Column(Text)
        user_id = Column(Integer, ForeignKey("users.id"))
        protected_field = Column(String(50))
        private_field = Column(String(50))
        created_at = Column(DateTime)
        updated_at = Column(DateTime)

        user = relationship("User", back_populates="posts")
        comments = relationship("Comment", back_populates="post")

        @scope
        def user_id_scope(query, user_id):
            return query.where(Post.user_id == user_id)

        @scope
        def vararg_scope(query, *ids):
            return query.where(Post.id.in_(ids))

        @scope
        def two_param_scope(query, id1, id2):
            return query.where(Post.id.in_([id1, id2]))

        @scope
        def optional_arg_scope(query, a, b=5):
            return query.where(Post.title == a)

        no_param_scope = scope(text("posts.title IS NOT NULL"))

        @scope
        def empty_lambda_scope(query):
            return query.where(Post.created_at.is_not(None))

        @protected_scope
        def nonsense(query, id, test):
            return query.where(Post.user_id == id)

    class Comment(ResourceModel, Base):
        __tablename__ = "comments"

        id = Column(Integer, primary_key=True)
        body = Column(Text)
        post_id = Column(Integer, ForeignKey("posts.id"))

        post = relationship("Post", back_populates="comments")

    Admin.scope("bday", lambda query, bday: query.where(User.bday == bday))

    Post.attr_protected("protected_field")
    Post.attr_private("private_field")
    Post.virtual_attribute("v_field")
    Post.virtual_attribute("v_field_no_definition", define_accessors=False)
    Post.belongs_to_remote("remote_comment")

    return SimpleNamespace(Base=Base, User=User, Admin=Admin, Post=Post, Comment=Comment)


@pytest.fixture(autouse=True)
def _fresh_engine_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Default config and an empty definition cache around every test."""
    monkeypatch.chdir(tmp_path)
    reset_config()
    invalidate()
    yield
    invalidate()
    reset_config()


@pytest.fixture
def models() -> SimpleNamespace:
    return build_models()


@pytest.fixture
def session(models: SimpleNamespace) -> Iterator[Session]:
    """In-memory SQLite session with the schema created."""
    engine = create_engine("sqlite://")
    models.Base.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    engine.dispose()
