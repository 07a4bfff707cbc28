import random
from datetime import datetime, timezone

import pytest

from livefeed.schemas import ActivityKind
from livefeed.services.catalog import CATALOGS, SourceDescriptor, get_source
from livefeed.services.normalizer import (
    MAPPERS,
    coerce_amount,
    normalize,
    normalize_rows,
    parse_timestamp,
    resolve_actor,
    stake_symbol_from_pool_title,
    truncate_address,
    truncate_preview,
)

TS = "2025-03-01T12:00:05+00:00"


class TestParseTimestamp:
    def test_iso_with_offset(self):
        assert parse_timestamp(TS) == datetime(2025, 3, 1, 12, 0, 5, tzinfo=timezone.utc)

    def test_zulu_suffix(self):
        assert parse_timestamp("2025-03-01T12:00:05Z") == parse_timestamp(TS)

    def test_naive_treated_as_utc(self):
        parsed = parse_timestamp(datetime(2025, 3, 1, 12, 0, 5))
        assert parsed.tzinfo is not None
        assert parsed == parse_timestamp(TS)

    def test_garbage_returns_none(self):
        assert parse_timestamp("not-a-date") is None
        assert parse_timestamp("") is None
        assert parse_timestamp(None) is None
        assert parse_timestamp(12345) is None

    def test_short_fractional_seconds(self):
        parsed = parse_timestamp("2025-03-01T12:00:05.7891+00:00")
        assert parsed == datetime(2025, 3, 1, 12, 0, 5, 789100, tzinfo=timezone.utc)

    def test_long_fractional_seconds_cut_to_microseconds(self):
        parsed = parse_timestamp("2025-03-01T12:00:05.123456789Z")
        assert parsed.microsecond == 123456


class TestFieldHelpers:
    def test_truncate_long_wallet(self):
        assert truncate_address("0x1234567890abcdef1234") == "0x1234...1234"

    def test_short_names_untouched(self):
        assert truncate_address("ana") == "ana"
        assert truncate_address("0x12") == "0x12"

    def test_resolve_actor_prefers_display_name(self):
        actor = resolve_actor({"display_name": "Ana", "username": "ana_1", "avatar_url": "a.png"})
        assert actor.display_name == "Ana"
        assert actor.avatar_url == "a.png"

    def test_resolve_actor_falls_back_to_username(self):
        assert resolve_actor({"display_name": None, "username": "ben"}).display_name == "ben"

    def test_resolve_actor_falls_back_to_wallet(self):
        actor = resolve_actor({"wallet_address": "0xabcdef0123456789abcd"})
        assert actor.display_name == "0xabcd...abcd"

    def test_resolve_actor_default_name(self):
        assert resolve_actor({}).display_name == "Someone"

    def test_resolve_actor_missing_join(self):
        assert resolve_actor(None) is None

    def test_coerce_amount_takes_first_nonzero(self):
        assert coerce_amount(None, 0, "2500") == 2500
        assert coerce_amount("abc", float("nan")) == 0

    def test_truncate_preview(self):
        assert truncate_preview("short") == "short"
        assert truncate_preview("x" * 30, 25) == "x" * 25 + "..."
        assert truncate_preview(None) == ""

    def test_stake_symbol_from_title(self):
        assert stake_symbol_from_pool_title("Stake AVLO { #1 EPOCH }") == "AVLO"
        assert stake_symbol_from_pool_title("Stake $arena pool") == "ARENA"
        assert stake_symbol_from_pool_title("Community pool") is None


class TestRegistry:
    def test_every_catalog_mapper_is_registered(self):
        for sources in CATALOGS.values():
            for source in sources:
                assert source.mapper in MAPPERS, source.source_id

    def test_unknown_mapper_raises(self):
        source = SourceDescriptor("bogus", "tips", "no_such_mapper")
        with pytest.raises(KeyError):
            normalize(source, {"id": 1})


class TestIncrementalMappers:
    def test_swipe(self):
        row = {
            "id": 42,
            "created_at": TS,
            "direction": "right",
            "token_amount": 2500,
            "swiper": {"display_name": "Ana"},
            "swiped": {"display_name": None, "username": "ben"},
            "payment_token": None,
            "token": None,
        }
        item = normalize(get_source("swipes"), row)
        assert item.kind == ActivityKind.SWIPE
        assert item.id == "swipes:42"
        assert item.actor_primary.display_name == "Ana"
        assert item.actor_secondary.display_name == "ben"
        assert item.amount == 2500
        assert item.extra["token_symbol"] == "AVLO"

    def test_missing_primary_actor_drops_row(self):
        row = {"id": 1, "created_at": TS, "author": None, "content": "hi"}
        assert normalize(get_source("posts"), row) is None

    def test_unparseable_timestamp_drops_row(self):
        row = {"id": 1, "created_at": "yesterday-ish", "author": {"username": "ana"}}
        assert normalize(get_source("posts"), row) is None

    def test_missing_id_drops_row(self):
        row = {"created_at": TS, "author": {"username": "ana"}}
        assert normalize(get_source("posts"), row) is None

    def test_post_preview(self):
        row = {"id": 7, "created_at": TS, "author": {"username": "ana"},
               "content": "a fairly long post about nothing in particular"}
        item = normalize(get_source("posts"), row)
        assert item.extra["preview"] == "a fairly long post about ..."

    def test_pixel_uses_placed_at(self):
        row = {"id": 3, "placed_at": TS, "color": "#ff0000", "artist": {"username": "ana"}}
        item = normalize(get_source("pixels"), row)
        assert item.kind == ActivityKind.PIXEL
        assert item.timestamp == parse_timestamp(TS)

    def test_follow_secondary_optional(self):
        row = {"id": 9, "created_at": TS, "follower": {"username": "ana"}, "following": None}
        item = normalize(get_source("follows"), row)
        assert item.kind == ActivityKind.FOLLOW
        assert item.actor_secondary is None


class TestSnapshotMappers:
    def test_tip_requires_both_actors(self):
        source = get_source("tips", "snapshot")
        row = {"id": 1, "created_at": TS, "amount": 10, "sender": {"username": "ana"}, "receiver": None}
        assert normalize(source, row) is None

    def test_left_swipe_has_no_amount(self):
        row = {
            "id": 5, "created_at": TS, "direction": "left", "amount": 100,
            "swiper": {"username": "ana"}, "swiped": {"username": "ben"},
        }
        item = normalize(get_source("swipes", "snapshot"), row)
        assert item.kind == ActivityKind.SWIPE_LEFT
        assert item.amount == 0

    def test_payment_resolves_nested_swipe(self):
        row = {
            "id": 2, "created_at": TS, "amount": 50,
            "user": {"username": "ana"},
            "token": {"token_symbol": "ARENA", "logo_url": None},
            "swipe": {"swiped_id": 4, "swiped": {"username": "ben"}},
        }
        item = normalize(get_source("payments", "snapshot"), row)
        assert item.kind == ActivityKind.PAYMENT
        assert item.actor_secondary.display_name == "ben"
        assert item.extra["token_symbol"] == "ARENA"

    def test_burn_type_selects_kind(self):
        source = get_source("burns", "snapshot")
        base = {"id": 1, "created_at": TS, "amount": 5, "user": {"username": "ana"}}
        assert normalize(source, {**base, "burn_type": "ai_chat"}).kind == ActivityKind.AI_CHAT
        assert normalize(source, {**base, "burn_type": "post_image"}).kind == ActivityKind.POST_CREATED

    def test_blackjack_win_and_loss(self):
        source = get_source("blackjack", "snapshot")
        base = {"id": 1, "completed_at": TS, "bet_amount": 100, "payout_amount": 250,
                "user": {"username": "ana"}}
        win = normalize(source, {**base, "result": "blackjack"})
        loss = normalize(source, {**base, "result": "lose"})
        assert win.kind == ActivityKind.BLACKJACK_WIN
        assert win.amount == 150
        assert loss.kind == ActivityKind.BLACKJACK_LOSS
        assert loss.amount == 100

    def test_swap_direction(self):
        source = get_source("swaps", "snapshot")
        base = {"id": 1, "created_at": TS, "user": {"username": "ana"},
                "src_amount": "10", "dest_amount": "2500"}
        bought = normalize(source, {**base, "src_token": "AVAX", "dest_token": "AVLO"})
        sold = normalize(source, {**base, "src_token": "AVLO", "dest_token": "AVAX"})
        assert bought.kind == ActivityKind.SWAP_BOUGHT
        assert bought.amount == 2500
        assert sold.kind == ActivityKind.SWAP_SOLD
        assert sold.amount == 10

    def test_raffle_places(self):
        row = {"id": 1, "completed_at": TS, "winner_1_amount": 900, "winner_2_amount": 100,
               "winner1": {"username": "ana"}, "winner2": {"username": "ben"}}
        first = normalize(get_source("raffle_first", "snapshot"), row)
        second = normalize(get_source("raffle_second", "snapshot"), row)
        assert (first.actor_primary.display_name, first.amount) == ("ana", 900)
        assert (second.actor_primary.display_name, second.amount) == ("ben", 100)
        assert first.id != second.id

    def test_stake_symbol_from_pool(self):
        row = {"id": 1, "created_at": TS, "amount": 2, "transaction_type": "stake",
               "user": {"username": "ana"}, "pool": {"title": "Stake ARENA pool"}}
        item = normalize(get_source("stakes", "snapshot"), row)
        assert item.kind == ActivityKind.STAKED
        assert item.extra["token_symbol"] == "ARENA"

    def test_agent_stats_sample_is_seeded(self):
        source = get_source("agent_stats", "snapshot")
        rows = [
            {"id": i, "created_at": TS, "agent_handle": f"bot{i}", "total_posts": i,
             "total_likes_received": i, "follower_count": i, "following_count": i}
            for i in range(10)
        ]
        first = normalize_rows(source, rows, random.Random(3))
        second = normalize_rows(source, rows, random.Random(3))
        assert len(first) == source.sample
        assert [i.id for i in first] == [i.id for i in second]
        assert [i.extra["stat"] for i in first] == [i.extra["stat"] for i in second]

    def test_agent_created_uses_handle_when_unnamed(self):
        row = {"id": 1, "created_at": TS, "agent_handle": "bot7", "creator": {"username": "ana"}}
        item = normalize(get_source("agents", "snapshot"), row)
        assert item.kind == ActivityKind.AGENT_CREATED
        assert item.actor_secondary.display_name == "@bot7"

    def test_agent_created_without_name_or_handle_drops_row(self):
        row = {"id": 1, "created_at": TS, "creator": {"username": "ana"}}
        assert normalize(get_source("agents", "snapshot"), row) is None
