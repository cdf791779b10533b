from __future__ import annotations

from diffset.domain.changeset import (
    Action,
    Changeset,
    cast,
    cast_relation,
    relation_is_empty,
    traverse_errors,
    validate_required,
)
from tests.helpers.blog import BlogSchemas, loaded_author, loaded_posts


def test_required_one_relation_missing_everywhere_is_an_error(blog: BlogSchemas) -> None:
    author = loaded_author(blog)

    changeset = cast_relation(cast(author, {}, []), "profile", required=True)

    assert dict(changeset.changes) == {}
    assert changeset.valid is False
    assert "profile" in changeset.required
    (error,) = changeset.errors
    assert (error.field, error.message) == ("profile", "can't be blank")
    assert dict(error.metadata) == {"validation": "required"}


def test_required_one_relation_with_current_value_and_absent_input(blog: BlogSchemas) -> None:
    author = loaded_author(blog, profile=blog.profile.load(id=1, author_id=1))

    changeset = cast_relation(cast(author, {}, []), "profile", required=True)

    assert dict(changeset.changes) == {}
    assert changeset.errors == ()
    assert changeset.valid is True


def test_explicit_empty_on_required_relation_changes_and_errors(blog: BlogSchemas) -> None:
    author = loaded_author(blog, profile=blog.profile.load(id=1, author_id=1))

    changeset = cast_relation(
        cast(author, {"profile": None}, []),
        "profile",
        required=True,
        required_message="is required",
    )

    removal = changeset.changes["profile"]
    assert isinstance(removal, Changeset)
    assert removal.action is Action.REPLACE
    assert traverse_errors(changeset) == {"profile": ["is required"]}


def test_required_many_relation_with_every_item_removed(blog: BlogSchemas) -> None:
    author = loaded_author(blog, posts=loaded_posts(blog, "a", "b"))

    changeset = cast_relation(cast(author, {"posts": []}, []), "posts", required=True)

    assert len(changeset.changes["posts"]) == 2  # type: ignore[arg-type]
    assert changeset.valid is False


def test_required_many_relation_with_new_item(blog: BlogSchemas) -> None:
    author = loaded_author(blog)

    changeset = cast_relation(
        cast(author, {"posts": [{"title": "a"}]}, []), "posts", required=True
    )

    assert changeset.valid is True
    assert relation_is_empty(changeset, blog.author.relations["posts"]) is False


def test_relation_emptiness_is_unknown_when_not_loaded(blog: BlogSchemas) -> None:
    changeset = cast(blog.author.load(id=1), {}, [])

    assert relation_is_empty(changeset, blog.author.relations["posts"]) is None


def test_validate_required_handles_relation_fields(blog: BlogSchemas) -> None:
    author = loaded_author(blog, name=None)

    changeset = validate_required(cast(author, {}, []), ["name", "posts", "profile"])

    assert traverse_errors(changeset) == {
        "name": ["can't be blank"],
        "posts": ["can't be blank"],
        "profile": ["can't be blank"],
    }
    assert changeset.required == frozenset({"name", "posts", "profile"})
