"""
Example 03: Many-to-Many and Polymorphic Relations

This example demonstrates BelongsToMany with a pivot collection, plus
MorphMany and MorphTo.
"""

import asyncio

from doc_query import Engine, Model, ModelRegistry, StoreConfig, relation


class Skill(Model):
    pass


class Comment(Model):
    @relation
    def commentable(self):
        return self.morph_to()


class Video(Model):
    @relation
    def comments(self):
        return self.morph_many(Comment)


class User(Model):
    @relation
    def skills(self):
        return self.belongs_to_many(Skill).with_timestamps()

    @relation
    def comments(self):
        return self.morph_many(Comment)


async def main():
    engine = Engine.from_config(StoreConfig(driver="memory"))
    ModelRegistry(engine).register(User, Skill, Comment, Video)

    print("=== Many-to-Many ===\n")

    user = await User.create(username="virk")
    python = await Skill.create(name="python")
    mongo = await Skill.create(name="mongodb")
    rust = await Skill.create(name="rust")

    # attach is idempotent per related id
    skills = user.skills()
    await skills.attach([python, mongo], lambda pivot: pivot.set("level", "expert"))
    await skills.attach(python)
    print(f"pivot rows: {await engine.count('skill_user')}")

    names = [s.name for s in await user.skills().with_pivot("level").fetch()]
    print(f"skills: {names}")

    # sync keeps python, drops mongodb, adds rust
    await user.skills().sync([python, rust])
    names = [s.name for s in await user.skills().fetch()]
    print(f"after sync: {names}\n")

    print("=== Polymorphic ===\n")

    video = await Video.create(title="Intro")
    await video.comments().create(body="Nice video")
    await user.comments().create(body="Nice profile")

    for comment in await Comment.with_("commentable").fetch():
        owner = comment.get_related("commentable")
        print(f"'{comment.body}' -> {type(owner).__name__}")

    await engine.close()


if __name__ == "__main__":
    asyncio.run(main())
