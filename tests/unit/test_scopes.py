"""Unit tests for global and local query scopes."""

from __future__ import annotations

from typing import Any

import pytest

from doc_query.core.engine import Engine
from doc_query.core.exceptions import InvalidParameterError
from doc_query.core.registry import ModelRegistry
from doc_query.model.base import Model, relation
from doc_query.model.query import Query


class Post(Model):
    @staticmethod
    def scope_popular(query: Query, likes: int = 5) -> None:
        query.where("likes", ">=", likes)

    @staticmethod
    def scope_tagged(query: Query, *, tag: str) -> None:
        query.where("tag", tag)


Post.add_global_scope(lambda query: query.where("published", True), "published")


class User(Model):
    @relation
    def posts(self) -> Any:
        return self.has_many(Post)


@pytest.fixture(autouse=True)
async def seeded(registry: ModelRegistry, engine: Engine) -> None:
    registry.register(User, Post)
    await engine.insert("users", {"_id": "u1", "username": "virk"})
    await engine.insert(
        "posts",
        [
            {"_id": "p1", "user_id": "u1", "title": "A", "likes": 9, "tag": "x", "published": True},
            {"_id": "p2", "user_id": "u1", "title": "B", "likes": 1, "tag": "y", "published": True},
            {"_id": "p3", "user_id": "u1", "title": "C", "likes": 20, "tag": "x", "published": False},
        ],
    )


class TestGlobalScopes:
    async def test_applied_to_every_read(self) -> None:
        assert await Post.count() == 2
        assert [post.title for post in await Post.query().sort("title").fetch()] == ["A", "B"]
        assert await Post.find("p3") is None

    async def test_applied_to_writes(self, engine: Engine) -> None:
        assert await Post.query().update({"flag": True}) == 2
        assert await Post.query().delete() == 2
        assert await engine.count("posts") == 1

    async def test_ignore_named_scope(self) -> None:
        assert await Post.query().ignore_scopes("published").count() == 3
        assert await Post.query().ignore_scopes("other").count() == 2

    async def test_ignore_every_scope(self) -> None:
        assert await Post.query().ignore_scopes().count() == 3

    async def test_query_state_is_not_changed(self) -> None:
        query = Post.query()
        await query.fetch()
        await query.fetch()
        assert query._conditions == []

    def test_scopes_do_not_leak_to_other_models(self) -> None:
        assert "published" in Post._global_scopes
        assert User._global_scopes == {}
        assert Model._global_scopes == {}

    def test_unnamed_scope_gets_a_name(self) -> None:
        class Tagged(Model):
            pass

        Tagged.add_global_scope(lambda query: query.where_not_null("tag"))
        assert list(Tagged._global_scopes) == ["scope_0"]


class TestLocalScopes:
    async def test_scope_with_arguments(self) -> None:
        assert [post.title for post in await Post.query().popular(5).fetch()] == ["A"]
        assert await Post.query().popular(0).count() == 2
        assert await Post.query().scope("popular", likes=2).count() == 1

    async def test_keyword_scope_arguments(self) -> None:
        assert await Post.query().tagged(tag="y").count() == 1

    async def test_scopes_chain(self) -> None:
        rows = await Post.query().ignore_scopes().tagged(tag="x").popular(10).fetch()
        assert [post.title for post in rows] == ["C"]

    def test_unknown_scope(self) -> None:
        with pytest.raises(InvalidParameterError) as exc_info:
            Post.query().scope("trending")
        assert str(exc_info.value) == "E_INVALID_PARAMETER: trending is not a scope on Post model"
        with pytest.raises(AttributeError):
            Post.query().trending()


class TestRelationQueries:
    async def test_global_scope_on_relation_reads(self) -> None:
        user = await User.find_or_fail("u1")
        assert [post.title for post in await user.posts().fetch()] == ["A", "B"]
        assert await user.posts().count() == 2
        assert await user.posts().ignore_scopes().count() == 3

    async def test_local_scope_on_relation(self) -> None:
        user = await User.find_or_fail("u1")
        assert [post.title for post in await user.posts().popular(5).fetch()] == ["A"]
        assert await user.posts().scope("tagged", tag="x").count() == 1

    async def test_global_scope_on_eager_load(self) -> None:
        user = await User.with_("posts").first_or_fail()
        assert [post.title for post in user.get_related("posts")] == ["A", "B"]

    async def test_eager_constraint_can_ignore_scopes(self) -> None:
        user = await User.with_("posts", lambda posts: posts.ignore_scopes()).first_or_fail()
        assert user.get_related("posts").size() == 3
