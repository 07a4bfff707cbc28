"""
Fixed tables of activity sources.

Each SourceDescriptor tells an event store which table to read, which column
orders it, how to filter it, which foreign keys to resolve into actor fields,
and which normalizer mapping turns a row into an ActivityItem.
"""
import logging
from dataclasses import dataclass, replace
from typing import Any, Iterable

import yaml

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("username", "display_name", "avatar_url", "wallet_address")


@dataclass(frozen=True)
class Filter:
    column: str
    op: str  # "eq" | "in" | "not_null"
    value: Any = None


@dataclass(frozen=True)
class Join:
    alias: str
    column: str
    table: str
    fields: tuple[str, ...] = PROFILE_FIELDS
    joins: tuple["Join", ...] = ()


@dataclass(frozen=True)
class SourceDescriptor:
    source_id: str
    table: str
    mapper: str
    timestamp_column: str = "created_at"
    filters: tuple[Filter, ...] = ()
    joins: tuple[Join, ...] = ()
    limit: int = 5
    # Keep a random sample of this many fetched rows (agent stats)
    sample: int | None = None
    enabled: bool = True


def profile(alias: str, column: str) -> Join:
    return Join(alias=alias, column=column, table="profiles")


def eq(column: str, value: Any) -> Filter:
    return Filter(column, "eq", value)


def one_of(column: str, *values: Any) -> Filter:
    return Filter(column, "in", tuple(values))


def not_null(column: str) -> Filter:
    return Filter(column, "not_null")


_PROFILE_TOKEN = Join("token", "token_id", "profile_tokens", ("token_symbol", "token_logo_url"))
_PAYMENT_TOKEN = Join("payment_token", "payment_token_id", "payment_tokens", ("token_symbol", "logo_url"))
_POOL = Join("pool", "pool_id", "staking_pools", ("title", "stake_token_logo"))
_STAKE_TYPES = one_of("transaction_type", "stake", "deposit")


INCREMENTAL_SOURCES: tuple[SourceDescriptor, ...] = (
    SourceDescriptor(
        "swipes", "swipes", "notify_swipe",
        filters=(eq("direction", "right"),),
        joins=(profile("swiper", "swiper_id"), profile("swiped", "swiped_id"),
               _PROFILE_TOKEN, _PAYMENT_TOKEN),
    ),
    SourceDescriptor(
        "matches", "matches", "notify_match",
        joins=(profile("user1", "user1_id"), profile("user2", "user2_id")),
    ),
    SourceDescriptor("posts", "posts", "notify_post", joins=(profile("author", "user_id"),)),
    SourceDescriptor(
        "comments", "post_comments", "notify_comment", joins=(profile("author", "user_id"),)
    ),
    SourceDescriptor(
        "games", "embedded_game_sessions", "notify_game",
        filters=(eq("status", "playing"),),
        joins=(profile("player", "user_id"),),
    ),
    SourceDescriptor(
        "pixels", "pixels", "notify_pixel",
        timestamp_column="placed_at",
        joins=(profile("artist", "placed_by"),),
    ),
    SourceDescriptor(
        "music", "music_track_listens", "notify_music",
        joins=(profile("listener", "user_id"),
               Join("track", "track_id", "music_tracks", ("title", "artist"))),
    ),
    SourceDescriptor(
        "videos", "watch_video_views", "notify_video", joins=(profile("viewer", "user_id"),)
    ),
    SourceDescriptor(
        "stakes", "staking_transactions", "notify_stake",
        filters=(_STAKE_TYPES,),
        joins=(profile("staker", "user_id"),),
        limit=2,
    ),
    SourceDescriptor(
        "unstakes", "staking_transactions", "notify_unstake",
        filters=(eq("transaction_type", "withdraw"),),
        joins=(profile("staker", "user_id"),),
        limit=2,
    ),
    SourceDescriptor(
        "follows", "followers", "notify_follow",
        joins=(profile("follower", "follower_id"), profile("following", "following_id")),
    ),
    SourceDescriptor(
        "proposals", "community_proposals", "notify_proposal",
        joins=(profile("creator", "created_by"),),
    ),
    SourceDescriptor(
        "votes", "community_votes", "notify_vote",
        joins=(profile("voter", "user_id"),
               Join("proposal", "proposal_id", "community_proposals", ("title",))),
    ),
    SourceDescriptor(
        "pool_boosts", "staking_pool_boosts", "notify_pool_boost",
        joins=(profile("booster", "user_id"), Join("pool", "pool_id", "staking_pools", ("title",))),
    ),
    SourceDescriptor(
        "profile_boosts", "swipe_profile_boosts", "notify_profile_boost",
        joins=(profile("booster", "booster_id"), profile("profile", "profile_id")),
    ),
    SourceDescriptor(
        "token_listings", "user_token_submissions", "notify_token_listing",
        filters=(eq("is_active", True),),
        joins=(profile("submitter", "user_id"),),
    ),
    SourceDescriptor("swaps", "swap_transactions", "notify_swap", joins=(profile("buyer", "user_id"),)),
    SourceDescriptor(
        "agents", "arena_agents", "notify_agent", joins=(profile("creator", "user_id"),), limit=3
    ),
)


SNAPSHOT_SOURCES: tuple[SourceDescriptor, ...] = (
    SourceDescriptor(
        "tips", "tips", "feed_tip",
        joins=(profile("sender", "sender_id"), profile("receiver", "receiver_id")),
        limit=15,
    ),
    SourceDescriptor(
        "swipes", "swipes", "feed_swipe",
        joins=(profile("swiper", "swiper_id"), profile("swiped", "swiped_id"),
               _PROFILE_TOKEN, _PAYMENT_TOKEN),
        limit=10,
    ),
    SourceDescriptor(
        "matches", "matches", "feed_match",
        joins=(profile("user1", "user1_id"), profile("user2", "user2_id")),
        limit=10,
    ),
    SourceDescriptor(
        "payments", "token_payments", "feed_payment",
        filters=(eq("payment_type", "swipe"),),
        joins=(
            profile("user", "user_id"),
            Join("token", "token_id", "payment_tokens", ("token_symbol", "logo_url")),
            Join("swipe", "reference_id", "swipes", ("swiped_id",),
                 joins=(profile("swiped", "swiped_id"),)),
        ),
        limit=10,
    ),
    SourceDescriptor(
        "games", "embedded_game_sessions", "feed_game",
        timestamp_column="started_at",
        filters=(eq("status", "playing"),),
        joins=(profile("user", "user_id"),),
        limit=10,
    ),
    SourceDescriptor(
        "videos", "watch_video_views", "feed_video",
        timestamp_column="started_at",
        filters=(eq("status", "watching"),),
        joins=(profile("user", "user_id"),),
        limit=10,
    ),
    SourceDescriptor(
        "music", "music_track_listens", "feed_music",
        timestamp_column="started_at",
        filters=(eq("status", "listening"),),
        joins=(profile("user", "user_id"),
               Join("track", "track_id", "music_tracks", ("title", "artist"))),
        limit=10,
    ),
    SourceDescriptor(
        "pixels", "pixels", "feed_pixel",
        timestamp_column="placed_at",
        joins=(profile("user", "placed_by"),),
        limit=10,
    ),
    SourceDescriptor(
        "burns", "token_burns", "feed_burn",
        filters=(one_of("burn_type", "ai_chat", "post", "post_text", "post_image"),),
        joins=(profile("user", "user_id"),),
        limit=10,
    ),
    SourceDescriptor("new_users", "profiles", "feed_user_joined", limit=10),
    SourceDescriptor(
        "stakes", "staking_transactions", "feed_stake",
        filters=(_STAKE_TYPES,),
        joins=(profile("user", "user_id"), _POOL),
        limit=2,
    ),
    SourceDescriptor(
        "unstakes", "staking_transactions", "feed_unstake",
        filters=(eq("transaction_type", "withdraw"),),
        joins=(profile("user", "user_id"), _POOL),
        limit=2,
    ),
    SourceDescriptor(
        "pool_boosts", "staking_pool_boosts", "feed_pool_boost",
        joins=(profile("user", "user_id"), Join("pool", "pool_id", "staking_pools", ("title",))),
        limit=10,
    ),
    SourceDescriptor(
        "profile_boosts", "swipe_profile_boosts", "feed_profile_boost",
        joins=(profile("booster", "booster_id"), profile("profile", "profile_id")),
        limit=10,
    ),
    SourceDescriptor(
        "new_pools", "staking_pools", "feed_pool_created",
        filters=(eq("is_active", True),),
        joins=(profile("creator", "created_by"),),
        limit=10,
    ),
    SourceDescriptor("swaps", "swap_transactions", "feed_swap", joins=(profile("user", "user_id"),)),
    SourceDescriptor(
        "raffle_first", "raffle_pools", "feed_raffle_first",
        timestamp_column="completed_at",
        filters=(eq("status", "completed"),),
        joins=(profile("winner1", "winner_1_id"),),
        limit=1,
    ),
    SourceDescriptor(
        "raffle_second", "raffle_pools", "feed_raffle_second",
        timestamp_column="completed_at",
        filters=(eq("status", "completed"),),
        joins=(profile("winner2", "winner_2_id"),),
        limit=1,
    ),
    SourceDescriptor(
        "blackjack", "blackjack_sessions", "feed_blackjack",
        timestamp_column="completed_at",
        filters=(not_null("result"),),
        joins=(profile("user", "user_id"),),
        limit=3,
    ),
    SourceDescriptor(
        "agents", "arena_agents", "feed_agent_created",
        joins=(profile("creator", "user_id"),),
        limit=10,
    ),
    SourceDescriptor("agent_stats", "arena_agents", "feed_agent_stats", limit=10, sample=5),
)


CATALOGS: dict[str, tuple[SourceDescriptor, ...]] = {
    "incremental": INCREMENTAL_SOURCES,
    "snapshot": SNAPSHOT_SOURCES,
}


def get_source(source_id: str, pattern: str = "incremental") -> SourceDescriptor:
    for source in CATALOGS[pattern]:
        if source.source_id == source_id:
            return source
    raise KeyError(f"Unknown {pattern} source: {source_id}")


def apply_overrides(
    sources: Iterable[SourceDescriptor], overrides: dict[str, Any] | None
) -> tuple[SourceDescriptor, ...]:
    """Return the catalog with per-source `enabled` / `limit` overrides applied."""
    overrides = overrides or {}
    result = []
    for source in sources:
        patch = overrides.get(source.source_id) or {}
        changes = {key: patch[key] for key in ("enabled", "limit") if key in patch}
        result.append(replace(source, **changes) if changes else source)
    return tuple(result)


def load_catalogs(path: str | None) -> dict[str, tuple[SourceDescriptor, ...]]:
    """
    Load per-source overrides from a YAML file of the form:

        incremental:
          pixels: {enabled: false}
        snapshot:
          tips: {limit: 20}

    A missing file leaves the built-in catalogs untouched.
    """
    config: dict[str, Any] = {}
    if path:
        try:
            with open(path, "r", encoding="utf-8") as fh:
                config = yaml.safe_load(fh) or {}
        except FileNotFoundError:
            logger.info("No source overrides at %s, using built-in catalog", path)
    return {
        pattern: tuple(s for s in apply_overrides(sources, config.get(pattern)) if s.enabled)
        for pattern, sources in CATALOGS.items()
    }
