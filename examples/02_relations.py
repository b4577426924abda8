"""
Example 02: Relations

This example demonstrates HasOne, HasMany, BelongsTo and EmbedsMany relations.
"""

import asyncio

from doc_query import Engine, Model, ModelRegistry, StoreConfig, relation


class Profile(Model):
    pass


class Address(Model):
    pass


class Post(Model):
    @relation
    def author(self):
        return self.belongs_to("User")


class User(Model):
    @relation
    def profile(self):
        return self.has_one(Profile)

    @relation
    def posts(self):
        return self.has_many(Post)

    @relation
    def addresses(self):
        return self.embeds_many(Address)


async def main():
    engine = Engine.from_config(StoreConfig(driver="memory"))
    ModelRegistry(engine).register(User, Profile, Post, Address)

    print("=== Relations ===\n")

    user = await User.create(username="virk")

    # HasOne
    await user.profile().create(bio="Python developer")
    profile = await user.profile().fetch()
    print(f"profile: {profile.bio} (user_id={profile.user_id})")

    # HasMany
    await user.posts().create_many([{"title": "Hello", "likes": 3}, {"title": "World", "likes": 10}])
    popular = await user.posts().where("likes", ">", 5).fetch()
    print(f"popular posts: {[p.title for p in popular]}")
    print(f"post count: {await user.posts().count()}")

    # BelongsTo
    post = popular.first()
    author = await post.author().fetch()
    print(f"author of '{post.title}': {author.username}")

    draft = Post(title="Draft")
    await draft.author().associate(user)
    print(f"associated draft user_id: {draft.user_id}\n")

    # EmbedsMany: rows live inside the user document
    await user.addresses().create(city="Pune")
    await user.addresses().create(city="Berlin")
    cities = [a.city for a in await user.addresses().fetch()]
    print(f"embedded addresses: {cities}")

    await engine.close()


if __name__ == "__main__":
    asyncio.run(main())
