from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

import pytest

from diffset.domain.changeset import (
    Action,
    Changeset,
    add_error,
    apply_changes,
    cast,
    cast_relation,
    change,
    put_relation,
)
from diffset.domain.errors import DuplicateIdentityError
from diffset.domain.model import OnReplace, RecordState
from tests.helpers.blog import (
    BlogSchemas,
    blog_schemas,
    loaded_author,
    loaded_posts,
    post_with_required_title,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from diffset.domain.model import Record


def _posts(changeset: Changeset) -> tuple[Changeset, ...]:
    value = changeset.changes["posts"]
    assert isinstance(value, tuple)
    return value


def test_mixed_list_replaces_inserts_and_updates_in_order() -> None:
    schemas = blog_schemas(posts=OnReplace.DELETE)
    posts = loaded_posts(schemas, "first", "second", "third")
    author = loaded_author(schemas, posts=posts)
    params = {
        "posts": [
            {"title": "new"},
            {"id": 2, "title": None},
            {"id": 3, "title": "new name"},
        ]
    }

    changeset = cast_relation(cast(author, params, []), "posts", resolver=post_with_required_title)

    removed, inserted, blanked, renamed = _posts(changeset)
    assert removed.action is Action.REPLACE
    assert removed.replace_action is Action.DELETE
    assert removed.data is posts[0]
    assert inserted.action is Action.INSERT
    assert dict(inserted.changes) == {"title": "new"}
    assert inserted.data["author_id"] == 1
    assert blanked.action is Action.UPDATE
    assert dict(blanked.changes) == {"title": None}
    assert blanked.valid is False
    assert blanked.errors[0].metadata["validation"] == "required"
    assert renamed.action is Action.UPDATE
    assert dict(renamed.changes) == {"title": "new name"}
    assert renamed.valid is True
    assert changeset.valid is False
    assert changeset.force_update is True


def test_unmatched_current_items_come_first_in_original_order(blog: BlogSchemas) -> None:
    posts = loaded_posts(blog, "one", "two", "three", "four")
    author = loaded_author(blog, posts=posts)
    params = {"posts": [{"id": 3}, {"title": "fresh"}, {"id": 1}]}

    changeset = cast_relation(cast(author, params, []), "posts")

    result = _posts(changeset)
    assert [item.action for item in result] == [
        Action.REPLACE,
        Action.REPLACE,
        Action.UPDATE,
        Action.INSERT,
        Action.UPDATE,
    ]
    assert [item.data["id"] for item in result] == [2, 4, 3, None, 1]


def test_identical_list_is_no_relation_change(blog: BlogSchemas) -> None:
    posts = loaded_posts(blog, "first", "second")
    author = loaded_author(blog, posts=posts)
    params = {"posts": [{"id": 1, "title": "first"}, {"id": 2, "title": "second"}]}

    changeset = cast_relation(cast(author, params, []), "posts")

    assert "posts" not in changeset.changes
    assert changeset.force_update is False
    assert changeset.valid is True


def test_identical_records_are_no_relation_change(blog: BlogSchemas) -> None:
    posts = loaded_posts(blog, "first", "second")
    author = loaded_author(blog, posts=posts)

    changeset = put_relation(change(author), "posts", list(posts))

    assert "posts" not in changeset.changes


def test_identity_params_are_cast_before_matching(blog: BlogSchemas) -> None:
    posts = loaded_posts(blog, "first")
    author = loaded_author(blog, posts=posts)

    changeset = cast_relation(
        cast(author, {"posts": [{"id": "1", "title": "renamed"}]}, []), "posts"
    )

    (updated,) = _posts(changeset)
    assert updated.action is Action.UPDATE
    assert updated.data is posts[0]
    assert dict(updated.changes) == {"title": "renamed"}


def test_matched_items_are_never_inserted_or_deleted(blog: BlogSchemas) -> None:
    posts = loaded_posts(blog, "a", "b", "c")
    author = loaded_author(blog, posts=posts)
    params = {"posts": [{"id": 3, "title": "C"}, {"id": 1}, {"id": 2, "title": "B"}]}

    changeset = cast_relation(cast(author, params, []), "posts")

    assert {item.action for item in _posts(changeset)} == {Action.UPDATE}


def test_ignored_items_are_dropped_and_do_not_affect_validity(blog: BlogSchemas) -> None:
    def resolver(record: Record, params: Mapping[str, object]) -> Changeset:
        changeset = cast(record, params, ["title"])
        if params.get("title") == "skip":
            return replace(add_error(changeset, "title", "is bad"), action=Action.IGNORE)
        return changeset

    author = loaded_author(blog)
    params = {"posts": [{"title": "keep"}, {"title": "skip"}]}

    changeset = cast_relation(cast(author, params, []), "posts", resolver=resolver)

    (kept,) = _posts(changeset)
    assert kept.changes["title"] == "keep"
    assert changeset.valid is True


def test_only_ignored_items_is_no_relation_change(blog: BlogSchemas) -> None:
    def resolver(record: Record, params: Mapping[str, object]) -> Changeset:
        return Changeset(data=record, action=Action.IGNORE)

    author = loaded_author(blog)

    changeset = cast_relation(
        cast(author, {"posts": [{"title": "x"}]}, []), "posts", resolver=resolver
    )

    assert "posts" not in changeset.changes


def test_duplicate_proposed_identities_are_rejected(blog: BlogSchemas) -> None:
    author = loaded_author(blog, posts=loaded_posts(blog, "a"))
    params = {"posts": [{"id": 1, "title": "x"}, {"id": "1", "title": "y"}]}

    with pytest.raises(DuplicateIdentityError, match="posts"):
        cast_relation(cast(author, params, []), "posts")


def test_index_keyed_maps_are_ordered_by_index(blog: BlogSchemas) -> None:
    author = loaded_author(blog)
    params = {"posts": {"10": {"title": "c"}, "2": {"title": "b"}, "0": {"title": "a"}}}

    changeset = cast_relation(cast(author, params, []), "posts")

    assert [item.changes["title"] for item in _posts(changeset)] == ["a", "b", "c"]


def test_empty_list_removes_every_current_item(blog: BlogSchemas) -> None:
    posts = loaded_posts(blog, "a", "b")
    author = loaded_author(blog, posts=posts)

    changeset = cast_relation(cast(author, {"posts": []}, []), "posts")

    result = _posts(changeset)
    assert [item.action for item in result] == [Action.REPLACE, Action.REPLACE]
    assert apply_changes(changeset)["posts"] == ()


def test_none_for_many_relation_is_explicit_empty(blog: BlogSchemas) -> None:
    author = loaded_author(blog, posts=loaded_posts(blog, "a"))

    changeset = cast_relation(cast(author, {"posts": None}, []), "posts")

    (removed,) = _posts(changeset)
    assert removed.action is Action.REPLACE


def test_matched_item_tagged_for_removal_goes_through_policy(blog: BlogSchemas) -> None:
    posts = loaded_posts(blog, "a", "b")
    author = loaded_author(blog, posts=posts)

    changeset = put_relation(
        change(author), "posts", [posts[0].with_state(RecordState.DELETED), posts[1]]
    )

    removed, kept = _posts(changeset)
    assert removed.action is Action.REPLACE
    assert removed.replace_action is Action.DELETE
    assert kept.action is Action.UPDATE
    assert dict(kept.changes) == {}


def test_apply_changes_rebuilds_nested_list(blog: BlogSchemas) -> None:
    posts = loaded_posts(blog, "a", "b")
    author = loaded_author(blog, posts=posts)
    params = {"posts": [{"id": 2, "title": "B"}, {"title": "c"}]}

    applied = apply_changes(cast_relation(cast(author, params, []), "posts"))

    titles = [post["title"] for post in applied["posts"]]  # type: ignore[union-attr]
    assert titles == ["B", "c"]
