"""
Example 05: SQLite Backend

This example demonstrates running the same models against a SQLite
database file through the aiosqlite adapter.
"""

import asyncio
import tempfile
from pathlib import Path

from doc_query import Engine, Model, ModelRegistry, StoreConfig, relation


class Post(Model):
    pass


class User(Model):
    @relation
    def posts(self):
        return self.has_many(Post)


async def main():
    db_path = Path(tempfile.mkdtemp()) / "docs.db"
    config = StoreConfig(driver="sqlite", database=str(db_path), pool_size=2)
    engine = Engine.from_config(config)
    ModelRegistry(engine).register(User, Post)

    print("=== SQLite Backend ===\n")

    user = await User.create(username="virk")
    await user.posts().create_many([{"title": "First"}, {"title": "Second"}])

    loaded = await User.with_("posts").first()
    print(f"user: {loaded.username}, created_at: {loaded.created_at!r}")
    print(f"posts: {[p.title for p in loaded.get_related('posts')]}")
    print(f"database file: {db_path}")

    await engine.close()


if __name__ == "__main__":
    asyncio.run(main())
