"""
Example 04: Eager Loading

This example demonstrates loading relations for many parents with one
query per relation, nested paths and constraints.
"""

import asyncio
import logging

from doc_query import Engine, Model, ModelRegistry, StoreConfig, relation


class Comment(Model):
    pass


class Post(Model):
    @relation
    def comments(self):
        return self.has_many(Comment)


class User(Model):
    @relation
    def posts(self):
        return self.has_many(Post)


async def main():
    logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    engine = Engine.from_config(StoreConfig(driver="memory"))
    ModelRegistry(engine).register(User, Post, Comment)

    for name in ["virk", "nikk", "romain"]:
        user = await User.create(username=name)
        for n in range(2):
            post = await user.posts().create({"title": f"{name} #{n}", "likes": n * 5})
            await post.comments().create({"body": f"comment on {post.title}"})

    print("=== Eager Loading ===\n")

    # one query for users, one for posts and one for comments
    users = await User.with_("posts.comments").fetch()
    for user in users:
        for post in user.get_related("posts"):
            bodies = [c.body for c in post.get_related("comments")]
            print(f"{user.username}: {post.title} {bodies}")
    print()

    # constraints apply to the last path segment
    users = await User.with_("posts", {"where": ("likes", ">", 0), "sort": {"likes": "desc"}}).fetch()
    print(f"liked posts: {[[p.title for p in u.get_related('posts')] for u in users]}")

    # lazily load onto an existing instance
    user = await User.find_by("username", "nikk")
    await user.load("posts", lambda posts: posts.limit(1))
    print(f"nikk: {user.to_dict()}")

    await engine.close()


if __name__ == "__main__":
    asyncio.run(main())
