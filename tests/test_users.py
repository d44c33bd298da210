from auth.identity_providers import ExternalIdentity

BOB = ExternalIdentity(uid="uid-b", email="b@x.com", name="Bob", picture="https://img.example/b.png")


async def count_users(ctx):
    return await ctx.db.fetch_val("SELECT COUNT(*) FROM users")


class TestGetOrProvision:
    async def test_creates_on_first_sight(self, ctx):
        user, created = await ctx.users.get_or_provision(BOB, default_name="User")

        assert created is True
        assert user.email == "b@x.com"
        assert user.uid == "uid-b"
        assert user.name == "Bob"
        assert user.photo_url == "https://img.example/b.png"

    async def test_existing_user_returned_untouched(self, ctx, alice):
        identity = ExternalIdentity(uid="other-uid", email="a@x.com", name="Someone")
        user, created = await ctx.users.get_or_provision(identity, default_name="User", name="New")

        assert created is False
        assert user == alice
        assert await count_users(ctx) == 1

    async def test_explicit_values_win_over_claims(self, ctx):
        user, _ = await ctx.users.get_or_provision(
            BOB,
            default_name="User",
            name="Robert",
            photo_url="https://img.example/robert.png",
        )
        assert user.name == "Robert"
        assert user.photo_url == "https://img.example/robert.png"

    async def test_default_name_when_claim_has_none(self, ctx):
        identity = ExternalIdentity(uid="uid-x", email="x@x.com")
        user, _ = await ctx.users.get_or_provision(identity, default_name="Firebase User")

        assert user.name == "Firebase User"
        assert user.photo_url == ""


class TestApplyLoginProfile:
    async def test_nothing_supplied_is_a_no_op(self, ctx, alice):
        assert await ctx.users.apply_login_profile(alice) is alice

    async def test_picture_only_fills_empty_photo(self, ctx, alice):
        updated = await ctx.users.apply_login_profile(alice, picture="https://img.example/a.png")
        assert updated.photo_url == "https://img.example/a.png"

        again = await ctx.users.apply_login_profile(updated, picture="https://img.example/other.png")
        assert again.photo_url == "https://img.example/a.png"

        stored = await ctx.users.get_by_id(alice.id)
        assert stored.photo_url == "https://img.example/a.png"
