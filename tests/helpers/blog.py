from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from diffset.domain.changeset import cast, validate_required
from diffset.domain.model import OnReplace, Schema, embeds_many, embeds_one, has_many, has_one

if TYPE_CHECKING:
    from collections.abc import Mapping

    from diffset.domain.changeset import Changeset
    from diffset.domain.model import Defaults, Record


@dataclass(frozen=True, slots=True)
class BlogSchemas:
    author: Schema
    post: Schema
    profile: Schema
    address: Schema
    tag: Schema


def blog_schemas(
    *,
    posts: OnReplace = OnReplace.DELETE,
    profile: OnReplace = OnReplace.NILIFY,
    address: OnReplace = OnReplace.DELETE,
    tags: OnReplace = OnReplace.DELETE,
    post_defaults: Defaults | None = None,
) -> BlogSchemas:
    tag_schema = Schema("Tag", {"id": int, "label": str | None})
    address_schema = Schema("Address", {"id": int, "street": str | None, "city": str | None})
    post_schema = Schema(
        "Post", {"id": int, "title": str | None, "author_id": int | None, "status": str | None}
    )
    profile_schema = Schema("Profile", {"id": int, "bio": str | None, "author_id": int | None})
    author_schema = Schema(
        "Author", {"id": int, "name": str | None, "email": str | None, "age": int | None}
    )

    author_schema.add_relation(
        has_many(
            "posts", post_schema, related_key="author_id", on_replace=posts, defaults=post_defaults
        )
    )
    author_schema.add_relation(
        has_one("profile", profile_schema, related_key="author_id", on_replace=profile)
    )
    author_schema.add_relation(embeds_one("address", address_schema, on_replace=address))
    post_schema.add_relation(embeds_many("tags", tag_schema, on_replace=tags))
    return BlogSchemas(
        author=author_schema,
        post=post_schema,
        profile=profile_schema,
        address=address_schema,
        tag=tag_schema,
    )


def post_with_required_title(record: Record, params: Mapping[str, object]) -> Changeset:
    changeset = cast(record, params, ["id", "title", "status"])
    return validate_required(changeset, "title")


def loaded_author(schemas: BlogSchemas, **values: object) -> Record:
    defaults: dict[str, object] = {"id": 1, "name": "Ada", "posts": (), "profile": None}
    defaults.update(values)
    return schemas.author.load(**defaults)


def loaded_posts(schemas: BlogSchemas, *titles: str, author_id: int = 1) -> tuple[Record, ...]:
    return tuple(
        schemas.post.load(id=index, title=title, author_id=author_id, tags=())
        for index, title in enumerate(titles, start=1)
    )
