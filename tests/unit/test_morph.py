"""Unit tests for MorphOne, MorphMany and MorphTo."""

from __future__ import annotations

import pytest

from doc_query.core.engine import Engine
from doc_query.core.exceptions import (
    InvalidRelationMethodError,
    UnsavedModelInstanceError,
)
from doc_query.core.registry import ModelRegistry
from doc_query.model.base import Model, relation
from doc_query.relations import MorphMany, MorphOne, MorphTo


class Picture(Model):
    @relation
    def pictureable(self) -> MorphTo:
        return self.morph_to()


class Comment(Model):
    @relation
    def commentable(self) -> MorphTo:
        return self.morph_to("commentable_type", "_id", "commentable_id")


class User(Model):
    @relation
    def picture(self) -> MorphOne:
        return self.morph_one(Picture)

    @relation
    def comments(self) -> MorphMany:
        return self.morph_many(Comment, "commentable_type", foreign_key="commentable_id")


class Post(Model):
    @relation
    def picture(self) -> MorphOne:
        return self.morph_one("Picture")

    @relation
    def pictures(self) -> MorphMany:
        return self.morph_many(Picture)


@pytest.fixture(autouse=True)
def models(registry: ModelRegistry) -> None:
    registry.register(Picture, Comment, User, Post)


class TestMorphOne:
    def test_defaults(self) -> None:
        picture = User(_id="1").picture()
        assert picture.foreign_key == "parent_id"
        assert picture.determiner == "determiner"
        assert picture.determiner_value == "User"
        assert picture.primary_key == "_id"

    async def test_fetch_matches_key_and_determiner(self, engine: Engine) -> None:
        user = await User.create(_id="1", username="virk")
        await engine.insert(
            "pictures",
            [
                {"parent_id": "1", "determiner": "Post", "file": "post.png"},
                {"parent_id": "1", "determiner": "User", "file": "user.png"},
            ],
        )
        picture = await user.picture().fetch()
        assert picture is not None
        assert picture.file == "user.png"
        assert picture.parent == "User"

    async def test_save_stamps_key_and_determiner(self, engine: Engine) -> None:
        post = await Post.create(title="A")
        picture = await post.picture().create(file="a.png")
        document = await engine.find_one("pictures", {"_id": picture._id})
        assert document is not None
        assert document["parent_id"] == post._id
        assert document["determiner"] == "Post"

    async def test_save_persists_new_parent(self) -> None:
        user = User(username="new")
        picture = await user.picture().save(Picture(file="a.png"))
        assert user.persisted
        assert picture.parent_id == user._id

    async def test_unsaved_parent(self) -> None:
        with pytest.raises(UnsavedModelInstanceError):
            await User().picture().fetch()

    async def test_group_keeps_last_row(self) -> None:
        user = await User.create(username="virk")
        relation = user.picture()
        first = Picture.new_up({"_id": "p1", "parent_id": user._id})
        last = Picture.new_up({"_id": "p2", "parent_id": user._id})
        grouped = relation.group([first, last])
        assert len(grouped) == 1
        assert grouped.get(user._id) is last

    async def test_map_values(self) -> None:
        users = [User.new_up({"_id": "1"}), User.new_up({"_id": "2"}), User.new_up({"_id": "1"})]
        assert users[0].picture().map_values(users) == ["1", "2"]

    async def test_load_with_constraint(self) -> None:
        user = await User.create(username="virk")
        await user.picture().create(file="a.png")
        await user.load("picture", lambda relation: relation.where("file", "b.png"))
        assert user.get_related("picture") is None

    async def test_create_many_is_unsupported(self) -> None:
        with pytest.raises(InvalidRelationMethodError) as exc_info:
            User(_id="1").picture().create_many([{"file": "a"}])
        assert str(exc_info.value) == "E_INVALID_RELATION_METHOD: create_many is not supported by MorphOne relation"


class TestMorphMany:
    async def test_fetch(self, engine: Engine) -> None:
        post = await Post.create(_id="1", title="A")
        await engine.insert(
            "pictures",
            [
                {"parent_id": "1", "determiner": "Post", "file": "a.png"},
                {"parent_id": "1", "determiner": "User", "file": "b.png"},
                {"parent_id": "1", "determiner": "Post", "file": "c.png"},
            ],
        )
        pictures = await post.pictures().fetch()
        assert [p.file for p in pictures] == ["a.png", "c.png"]

    async def test_custom_keys(self, engine: Engine) -> None:
        user = await User.create(username="virk")
        await user.comments().create_many([{"body": "a"}, {"body": "b"}])
        rows = await engine.find("comments")
        assert all(row["commentable_id"] == user._id for row in rows)
        assert all(row["commentable_type"] == "User" for row in rows)
        assert await user.comments().count() == 2

    async def test_paginate(self) -> None:
        post = await Post.create(title="A")
        await post.pictures().create_many([{"file": str(n)} for n in range(5)])
        page = await post.pictures().paginate(1, 2)
        assert page.size() == 2
        assert page.pages is not None
        assert page.pages.last_page == 3

    async def test_eager_load_scopes_by_type(self, engine: Engine) -> None:
        post = await Post.create(_id="1", title="A")
        user = await User.create(_id="1", username="virk")
        await post.pictures().create({"file": "post.png"})
        await user.picture().create({"file": "user.png"})
        loaded = await Post.with_("pictures").fetch()
        assert [p.file for p in loaded.first().get_related("pictures")] == ["post.png"]


class TestMorphTo:
    async def test_first_resolves_owner_type(self) -> None:
        post = await Post.create(title="A")
        picture = await post.picture().create(file="a.png")
        owner = await picture.pictureable().first()
        assert isinstance(owner, Post)
        assert owner._id == post._id

    async def test_missing_determiner(self) -> None:
        with pytest.raises(UnsavedModelInstanceError):
            await Picture(parent_id="1").pictureable().fetch()

    async def test_custom_keys(self) -> None:
        user = await User.create(username="virk")
        comment = await user.comments().create({"body": "hi"})
        owner = await comment.commentable().fetch()
        assert isinstance(owner, User)

    async def test_eager_load_across_types(self, find_calls: list[str]) -> None:
        post = await Post.create(title="A")
        user = await User.create(username="virk")
        await post.picture().create(file="post.png")
        await user.picture().create(file="user.png")
        await post.pictures().create(file="post2.png")

        find_calls.clear()
        pictures = await Picture.with_("pictureable").fetch()
        assert find_calls == ["pictures", "posts", "users"]
        owners = [type(p.get_related("pictureable")).__name__ for p in pictures]
        assert owners == ["Post", "User", "Post"]
        assert pictures[0].get_related("pictureable") is pictures[2].get_related("pictureable")

    async def test_eager_load_constraint_applies_per_type(self) -> None:
        post = await Post.create(title="A")
        await post.picture().create(file="a.png")
        loaded = await Picture.with_("pictureable", lambda query: query.where("title", "B")).first()
        assert loaded is not None
        assert loaded.get_related("pictureable") is None

    async def test_unsupported_verbs(self) -> None:
        relation = Picture(parent_id="1", determiner="Post").pictureable()
        with pytest.raises(InvalidRelationMethodError) as exc_info:
            relation.save(Post())
        assert str(exc_info.value) == "E_INVALID_RELATION_METHOD: save is not supported by MorphTo relation"
        with pytest.raises(InvalidRelationMethodError) as exc_info:
            relation.paginate()
        assert str(exc_info.value) == "E_INVALID_RELATION_METHOD: paginate is not supported by MorphTo relation"
