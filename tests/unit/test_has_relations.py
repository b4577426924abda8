"""Unit tests for HasOne, HasMany and BelongsTo."""

from __future__ import annotations

import pytest

from doc_query.core.engine import Engine
from doc_query.core.exceptions import InvalidParameterError, UnsavedModelInstanceError
from doc_query.core.registry import ModelRegistry
from doc_query.model.base import Model, relation
from doc_query.model.serializer import Serializer
from doc_query.relations import BelongsTo, HasMany, HasOne


class Profile(Model):
    pass


class Post(Model):
    @relation
    def author(self) -> BelongsTo:
        return self.belongs_to(User)


class User(Model):
    @relation
    def profile(self) -> HasOne:
        return self.has_one(Profile)

    @relation
    def posts(self) -> HasMany:
        return self.has_many("Post")


@pytest.fixture(autouse=True)
def models(registry: ModelRegistry) -> None:
    registry.register(User, Profile, Post)


class TestHasOne:
    def test_defaults(self) -> None:
        relation = User(_id="1").profile()
        assert relation.primary_key == "_id"
        assert relation.foreign_key == "user_id"
        assert relation.related is Profile

    def test_relation_is_fresh_per_call(self) -> None:
        user = User(_id="1")
        assert user.profile() is not user.profile()

    async def test_fetch_is_alias_of_first(self, engine: Engine) -> None:
        user = await User.create(username="virk")
        await engine.insert("profiles", {"user_id": user._id, "name": "virk"})
        profile = await user.profile().fetch()
        assert isinstance(profile, Profile)
        assert profile.parent == "User"
        assert (await user.profile().first()).name == "virk"

    async def test_unsaved_parent_raises(self) -> None:
        with pytest.raises(UnsavedModelInstanceError) as exc_info:
            await User(username="virk").profile().fetch()
        assert str(exc_info.value) == (
            "E_UNSAVED_MODEL_INSTANCE: Cannot process relation, since User model is not "
            "persisted to database or relational value is undefined"
        )

    async def test_save_persists_parent_first(self, engine: Engine) -> None:
        user = User(username="virk")
        profile = await user.profile().save(Profile(name="virk"))
        assert user.persisted
        assert profile.user_id == user._id
        assert await engine.count("profiles", {"user_id": user._id}) == 1

    async def test_create(self) -> None:
        user = await User.create(username="virk")
        profile = await user.profile().create({"name": "v"})
        assert profile.persisted
        assert profile.user_id == user._id

    async def test_load_with_constraint(self, engine: Engine) -> None:
        user = await User.create(username="virk")
        await engine.insert("profiles", {"user_id": user._id, "name": "virk"})
        await user.load("profile", lambda rel: rel.where("name", "nikk"))
        assert user.get_related("profile") is None

    async def test_relation_scoped_update(self, engine: Engine) -> None:
        user = await User.create(username="virk")
        other = await User.create(username="nikk")
        await engine.insert("profiles", [{"user_id": user._id, "n": 1}, {"user_id": other._id, "n": 1}])
        assert await user.profile().update({"n": 2}) == 1
        assert await engine.count("profiles", {"n": 2}) == 1


class TestHasMany:
    async def test_fetch_only_parent_rows(self, engine: Engine) -> None:
        user = await User.create(username="virk")
        other = await User.create(username="nikk")
        await engine.insert(
            "posts",
            [{"user_id": user._id, "title": "a"}, {"user_id": other._id, "title": "b"}, {"user_id": user._id, "title": "c"}],
        )
        posts = await user.posts().fetch()
        assert isinstance(posts, Serializer)
        assert [post.title for post in posts] == ["a", "c"]
        assert all(post.parent == "User" for post in posts)

    async def test_where_is_scoped(self, engine: Engine) -> None:
        user = await User.create(username="virk")
        await engine.insert("posts", [{"user_id": user._id, "likes": 1}, {"user_id": user._id, "likes": 5}])
        assert (await user.posts().where("likes", ">", 2).fetch()).size() == 1
        assert await user.posts().count() == 2

    async def test_save_many_and_create_many(self) -> None:
        user = await User.create(username="virk")
        await user.posts().save_many([Post(title="a"), Post(title="b")])
        await user.posts().create_many([{"title": "c"}])
        assert await user.posts().count() == 3

    async def test_save_many_requires_list(self) -> None:
        user = await User.create(username="virk")
        with pytest.raises(InvalidParameterError):
            await user.posts().save_many(Post(title="a"))  # type: ignore[arg-type]

    async def test_paginate(self) -> None:
        user = await User.create(username="virk")
        await user.posts().create_many([{"title": str(n)} for n in range(5)])
        page = await user.posts().paginate(1, 2)
        assert page.size() == 2
        assert page.pages is not None
        assert page.pages.total == 5
        assert page.pages.last_page == 3

    async def test_first(self) -> None:
        user = await User.create(username="virk")
        assert await user.posts().first() is None
        await user.posts().create({"title": "a"})
        assert (await user.posts().first()).title == "a"

    async def test_delete_is_scoped(self, engine: Engine) -> None:
        user = await User.create(username="virk")
        other = await User.create(username="nikk")
        await user.posts().create({"title": "a"})
        await other.posts().create({"title": "b"})
        assert await user.posts().delete() == 1
        assert await engine.count("posts") == 1


class TestBelongsTo:
    def test_defaults(self) -> None:
        relation = Post(user_id="1").author()
        assert relation.primary_key == "_id"
        assert relation.foreign_key == "user_id"

    async def test_fetch(self) -> None:
        user = await User.create(username="virk")
        post = await Post.create(title="a", user_id=user._id)
        author = await post.author().fetch()
        assert author is not None
        assert author._id == user._id
        assert author.parent == "Post"

    async def test_missing_foreign_key_raises(self) -> None:
        post = await Post.create(title="a")
        with pytest.raises(UnsavedModelInstanceError):
            await post.author().first()

    async def test_associate_and_dissociate(self, engine: Engine) -> None:
        post = await Post.create(title="a")
        user = User(username="virk")
        await post.author().associate(user)
        assert user.persisted
        assert post.user_id == user._id
        stored = await engine.find_one("posts", {"_id": post._id})
        assert stored is not None
        assert stored["user_id"] == user._id

        await post.author().dissociate()
        stored = await engine.find_one("posts", {"_id": post._id})
        assert stored is not None
        assert "user_id" not in stored

    async def test_eager_load(self) -> None:
        virk = await User.create(username="virk")
        nikk = await User.create(username="nikk")
        await Post.create_many([{"user_id": virk._id}, {"user_id": nikk._id}, {"title": "orphan"}])
        posts = await Post.with_("author").fetch()
        assert posts[0].get_related("author").username == "virk"
        assert posts[1].get_related("author").username == "nikk"
        assert posts[2].get_related("author") is None
