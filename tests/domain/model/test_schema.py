from __future__ import annotations

import pytest

from diffset.domain.errors import UnknownFieldError
from diffset.domain.model import Cardinality, NotLoaded, RecordState, Schema, has_many
from tests.helpers.blog import BlogSchemas  # noqa: TC001


def test_build_defaults_embedded_relations_to_empty(blog: BlogSchemas) -> None:
    post = blog.post.build(title="Hello")

    assert post.state is RecordState.BUILT
    assert post["tags"] == ()
    assert post["id"] is None
    assert post.is_loaded("tags")


def test_build_defaults_referenced_relations_to_not_loaded(blog: BlogSchemas) -> None:
    author = blog.author.build(name="Ada")

    assert author["posts"] == NotLoaded("posts", Cardinality.MANY)
    assert author["profile"] == NotLoaded("profile", Cardinality.ONE)
    assert author["address"] is None
    assert not author.is_loaded("posts")


def test_load_marks_record_as_persisted(blog: BlogSchemas) -> None:
    author = blog.author.load(id=7, name="Ada")

    assert author.state is RecordState.LOADED
    assert author.persisted is True
    assert author.identity == (7,)
    assert author.has_identity is True


def test_unknown_fields_are_rejected(blog: BlogSchemas) -> None:
    with pytest.raises(UnknownFieldError, match="nickname"):
        blog.author.build(nickname="ada")

    with pytest.raises(UnknownFieldError):
        blog.author.field_type("posts")


def test_primary_key_must_be_a_declared_field() -> None:
    with pytest.raises(UnknownFieldError, match="`id`"):
        Schema("Orphan", {"name": str})


def test_composite_primary_key_identity() -> None:
    membership = Schema(
        "Membership", {"group_id": int, "user_id": int}, primary_key=("group_id", "user_id")
    )

    record = membership.load(group_id=1, user_id=None)

    assert record.identity == (1, None)
    assert record.has_identity is False


def test_relation_name_cannot_clash_with_field(blog: BlogSchemas) -> None:
    with pytest.raises(ValueError, match="clashes"):
        blog.author.add_relation(has_many("name", blog.post, related_key="author_id"))


def test_record_replace_is_functional(blog: BlogSchemas) -> None:
    original = blog.author.load(id=1, name="Ada")

    renamed = original.replace(name="Grace")

    assert original["name"] == "Ada"
    assert renamed["name"] == "Grace"
    assert renamed.state is RecordState.LOADED


def test_many_relation_lists_are_stored_as_tuples(blog: BlogSchemas) -> None:
    post = blog.post.load(id=1, title="a")

    author = blog.author.load(id=1, posts=[post])

    assert author["posts"] == (post,)


def test_with_state_keeps_values(blog: BlogSchemas) -> None:
    author = blog.author.load(id=1, name="Ada")

    deleted = author.with_state(RecordState.DELETED)

    assert deleted.state is RecordState.DELETED
    assert deleted["name"] == "Ada"
