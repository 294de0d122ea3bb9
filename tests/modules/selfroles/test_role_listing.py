from modules.selfroles import listing


def test_empty_listing_has_placeholder():
    embed = listing.build_listing_embed([])

    assert embed.title == "Available Roles"
    assert embed.description == listing.EMPTY_TEXT


def test_role_lines_sort_aliases(fake_discord):
    guild = fake_discord.Guild(roles=[fake_discord.Role(1, "Gamer")])

    lines = listing.role_lines(guild, [1], {"zeta": 1, "alpha": 1})

    assert lines == ["`Gamer` - aliases: `alpha`,`zeta`"]


def test_role_lines_keep_allow_list_order(fake_discord):
    guild = fake_discord.Guild(roles=[fake_discord.Role(1, "B"), fake_discord.Role(2, "A")])

    assert listing.role_lines(guild, [2, 1], {}) == ["`A`", "`B`"]


def test_long_listing_is_truncated():
    lines = [f"`role-{index:04d}` - aliases: `{'x' * 40}`" for index in range(400)]

    embed = listing.build_listing_embed(lines)

    assert len(embed.description) <= 4096
    assert embed.description.splitlines()[0] == lines[0]
    assert embed.description.endswith("more…")


def test_overflowing_last_line_is_counted():
    lines = ["`r` - aliases: " + "x" * 985] * 5

    embed = listing.build_listing_embed(lines)

    assert len(embed.description) <= 4096
    assert embed.description.splitlines()[:4] == lines[:4]
    assert embed.description.endswith("\n+1 more…")


def test_single_oversized_line_is_clipped():
    aliases = ",".join(f"`alias-{index:04d}`" for index in range(1200))
    line = "`Gamer` - aliases: " + aliases

    embed = listing.build_listing_embed([line])

    assert len(embed.description) == 4096
    assert embed.description.startswith("`Gamer` - aliases: `alias-0000`")
    assert embed.description.endswith("…")


def test_oversized_first_line_leaves_room_for_tail():
    lines = ["`Gamer` - aliases: " + "y" * 5000, "`Artist`"]

    embed = listing.build_listing_embed(lines)

    assert len(embed.description) == 4096
    assert embed.description.endswith("…\n+1 more…")
