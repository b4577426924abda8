"""Unit tests for the Query builder."""

from __future__ import annotations

import pytest

from doc_query.core.exceptions import InvalidParameterError, MissingDatabaseRowError, RelationNotFoundError
from doc_query.core.registry import ModelRegistry
from doc_query.model.base import Model
from doc_query.model.serializer import Pages, Serializer


class Post(Model):
    pass


@pytest.fixture(autouse=True)
async def posts(registry: ModelRegistry) -> None:
    registry.register(Post)
    await Post.create_many(
        [
            {"title": "A", "likes": 3, "tag": "x"},
            {"title": "B", "likes": 1, "tag": "y"},
            {"title": "C", "likes": 5},
            {"title": "D", "likes": 2, "tag": "x"},
        ]
    )


class TestBuilder:
    async def test_where_forms(self) -> None:
        assert (await Post.query().where("title", "A").fetch()).size() == 1
        assert (await Post.query().where("likes", ">", 2).fetch()).size() == 2
        assert (await Post.query().where({"likes": {"$lte": 2}}).fetch()).size() == 2

    async def test_where_in_and_not_in(self) -> None:
        assert (await Post.query().where_in("title", ["A", "B"]).count()) == 2
        assert (await Post.query().where_not_in("title", ["A", "B"]).count()) == 2

    async def test_where_null(self) -> None:
        assert (await Post.query().where_null("tag").count()) == 1
        assert (await Post.query().where_not_null("tag").count()) == 3

    async def test_sort_skip_limit(self) -> None:
        rows = await Post.query().sort("likes", "desc").skip(1).limit(2).fetch()
        assert [row.title for row in rows] == ["A", "D"]

    async def test_invalid_sort_direction(self) -> None:
        with pytest.raises(InvalidParameterError):
            Post.query().sort("likes", "up")

    async def test_select(self) -> None:
        row = await Post.query().select("title").where("title", "A").first()
        assert row is not None
        assert set(row.attributes) == {"_id", "title"}

    async def test_callback_groups_conditions(self) -> None:
        query = Post.query().where("tag", "x")
        rows = await query.where(lambda q: q.where("likes", ">", 2).or_where("title", "D")).fetch()
        assert sorted(row.title for row in rows) == ["A", "D"]

    async def test_or_where(self) -> None:
        rows = await Post.query().where("likes", ">", 4).or_where("title", "B").sort("title").fetch()
        assert [row.title for row in rows] == ["B", "C"]

    async def test_or_where_on_empty_query(self) -> None:
        assert await Post.query().or_where("title", "A").count() == 1

    async def test_clone_does_not_share_eager_loads(self) -> None:
        base = Post.query().where("tag", "x")
        extended = base.clone().with_("comments")
        assert base._eager.is_empty()
        assert (await base.fetch()).size() == 2
        with pytest.raises(RelationNotFoundError):
            await extended.fetch()

    async def test_first_or_fail(self) -> None:
        with pytest.raises(MissingDatabaseRowError):
            await Post.query().where("title", "Z").first_or_fail()


class TestExecution:
    async def test_fetch_returns_serializer(self) -> None:
        rows = await Post.query().fetch()
        assert isinstance(rows, Serializer)
        assert rows.first() is not None
        assert rows.last() is not None
        assert not rows.is_empty()
        assert len(rows) == 4

    async def test_paginate(self) -> None:
        page = await Post.query().sort("title").paginate(2, 3)
        assert page.pages == Pages(total=4, per_page=3, page=2, last_page=2)
        assert [row.title for row in page] == ["D"]
        data = page.to_dict()
        assert data["total"] == 4
        assert data["last_page"] == 2
        assert len(data["data"]) == 1

    async def test_paginate_rejects_bad_page(self) -> None:
        with pytest.raises(InvalidParameterError):
            await Post.query().paginate(0, 10)

    async def test_aggregates(self) -> None:
        query = Post.query()
        assert await query.sum("likes") == 11
        assert await query.avg("likes") == 2.75
        assert await query.max("likes") == 5
        assert await query.min("likes") == 1

    async def test_distinct(self) -> None:
        assert await Post.query().sort("title").distinct("tag") == ["x", "y"]
        assert await Post.query().where("likes", ">", 10).distinct("tag") == []

    async def test_ids_and_pair(self) -> None:
        assert len(await Post.query().ids()) == 4
        pairs = await Post.query().where("tag", "x").pair("title", "likes")
        assert pairs == {"A": 3, "D": 2}

    async def test_update_stamps_updated_at(self) -> None:
        before = (await Post.query().where("title", "A").first_or_fail()).updated_at
        updated = await Post.query().where("tag", "x").update({"likes": 10})
        assert updated == 2
        row = await Post.query().where("title", "A").first_or_fail()
        assert row.likes == 10
        assert row.updated_at >= before

    async def test_delete(self) -> None:
        assert await Post.query().where("likes", "<", 3).delete() == 2
        assert await Post.count() == 2

    async def test_fetch_hooks(self, registry: ModelRegistry) -> None:
        seen: list[int] = []
        Post.add_hook("after_fetch", lambda rows: seen.append(len(rows)))
        try:
            await Post.query().fetch()
        finally:
            Post._hooks.remove("after_fetch")
        assert seen == [4]
