"""
Example 01: Basic Models

This example demonstrates defining models, persisting them and querying
them through DocQuery's Engine and ModelRegistry.
"""

import asyncio

from doc_query import Engine, Model, ModelRegistry, StoreConfig


class User(Model):
    hidden = ["password"]

    def set_username_attribute(self, value):
        return value.lower()


async def main():
    engine = Engine.from_config(StoreConfig(driver="memory"))
    registry = ModelRegistry(engine)
    registry.register(User)

    print("=== Basic Models ===\n")

    # create: insert a new document
    alice = await User.create(username="Alice", password="secret", age=31)
    print(f"created: {alice}")

    await User.create_many(
        [
            {"username": "bob", "password": "x", "age": 25},
            {"username": "charlie", "password": "y", "age": 40},
        ]
    )

    # find / find_by
    found = await User.find(alice._id)
    print(f"find: {found.username}")
    bob = await User.find_by("username", "bob")
    print(f"find_by: {bob.to_dict()}\n")

    # query builder
    adults = await User.query().where("age", ">=", 30).sort("age", "desc").fetch()
    print(f"age >= 30: {[u.username for u in adults]}")
    print(f"count: {await User.count()}")
    print(f"max age: {await User.query().max('age')}\n")

    # update dirty attributes only
    bob.age = 26
    print(f"dirty before save: {bob.dirty}")
    await bob.save()

    # pagination
    page = await User.paginate(1, 2)
    print(f"page 1: {page.to_dict()}\n")

    # delete
    await bob.delete()
    print(f"after delete: {await User.count()} users")

    await engine.close()


if __name__ == "__main__":
    asyncio.run(main())
