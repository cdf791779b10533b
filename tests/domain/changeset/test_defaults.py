from __future__ import annotations

import pytest

from diffset.domain.changeset import Action, Changeset, cast, cast_relation
from diffset.domain.errors import ChangesetMismatchError
from diffset.domain.model import DefaultFactory, Record
from tests.helpers.blog import blog_schemas, loaded_author, loaded_posts


def _assign_id(record: Record, owner: Record, start: int) -> Record:
    return record.replace(id=start + int(owner["id"]), status="draft")  # type: ignore[call-overload]


def test_static_defaults_seed_new_items() -> None:
    schemas = blog_schemas(post_defaults={"status": "draft"})
    author = loaded_author(schemas)

    changeset = cast_relation(cast(author, {"posts": [{"title": "a"}]}, []), "posts")

    (inserted,) = changeset.changes["posts"]  # type: ignore[misc]
    assert inserted.action is Action.INSERT
    assert inserted.data["status"] == "draft"
    assert dict(inserted.changes) == {"title": "a"}


def test_dynamic_defaults_receive_owner_and_extra_arguments() -> None:
    schemas = blog_schemas(post_defaults=DefaultFactory(_assign_id, (100,)))
    author = loaded_author(schemas)

    changeset = cast_relation(cast(author, {"posts": [{"title": "a"}]}, []), "posts")

    (inserted,) = changeset.changes["posts"]  # type: ignore[misc]
    assert inserted.action is Action.INSERT
    assert inserted.data.identity == (101,)
    assert inserted.data["author_id"] == 1


def test_defaults_are_not_applied_to_existing_items() -> None:
    schemas = blog_schemas(post_defaults={"status": "draft"})
    posts = loaded_posts(schemas, "a")
    author = loaded_author(schemas, posts=posts)

    changeset = cast_relation(
        cast(author, {"posts": [{"id": 1, "title": "b"}]}, []), "posts"
    )

    (updated,) = changeset.changes["posts"]  # type: ignore[misc]
    assert isinstance(updated, Changeset)
    assert updated.data["status"] is None


def test_defaults_must_return_related_record() -> None:
    def wrong(record: Record, owner: Record) -> Record:
        return owner

    schemas = blog_schemas(post_defaults=wrong)
    author = loaded_author(schemas)

    with pytest.raises(ChangesetMismatchError, match="defaults for `posts`"):
        cast_relation(cast(author, {"posts": [{"title": "a"}]}, []), "posts")
