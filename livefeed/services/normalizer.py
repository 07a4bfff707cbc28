"""
Row → ActivityItem mappings, one per catalog mapper name.

Rows are plain dicts as returned by an event store: base columns plus one
nested dict (or None) per resolved join alias. A mapping returns None when the
row cannot produce a well-formed item (missing required actor, missing id,
unparseable timestamp); the caller drops it.
"""
import logging
import math
import random
import re
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional

from livefeed.schemas import ActivityItem, ActivityKind, Actor
from livefeed.services.catalog import SourceDescriptor

logger = logging.getLogger(__name__)

Row = dict[str, Any]
Mapper = Callable[[SourceDescriptor, Row, random.Random], Optional[ActivityItem]]

POST_PREVIEW_CHARS = 25
PROPOSAL_PREVIEW_CHARS = 20
DEFAULT_TOKEN = "AVLO"

MAPPERS: dict[str, Mapper] = {}

_default_rng = random.Random()
_STAKE_TITLE_RE = re.compile(r"stake\s+\$?([a-z0-9]+)", re.IGNORECASE)

AGENT_STATS = (
    ("posts", "total_posts"),
    ("likes", "total_likes_received"),
    ("followers", "follower_count"),
    ("following", "following_count"),
)


def mapper(name: str) -> Callable[[Mapper], Mapper]:
    def register(fn: Mapper) -> Mapper:
        MAPPERS[name] = fn
        return fn
    return register


# ── Field helpers ─────────────────────────────────────────────────────────────

# Postgres drops trailing zeros from fractional seconds (".7891"); pad or cut to microseconds
_FRACTION = re.compile(r"(?<=\d\d:\d\d:\d\d)\.(\d+)")


def _six_digit_fraction(match: re.Match) -> str:
    return "." + match.group(1)[:6].ljust(6, "0")


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a backend timestamp into an aware UTC datetime, or None."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = _FRACTION.sub(_six_digit_fraction, value.strip().replace("Z", "+00:00"))
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def truncate_address(name: str) -> str:
    """Shorten wallet addresses (0x...) for display; normal names pass through."""
    if name.startswith("0x") and len(name) > 12:
        return f"{name[:6]}...{name[-4:]}"
    return name


def resolve_actor(
    ref: Any,
    fallback: str = "Someone",
    wallet: str | None = None,
) -> Actor | None:
    if not isinstance(ref, dict):
        return None
    name = (
        ref.get("display_name")
        or ref.get("username")
        or ref.get("wallet_address")
        or wallet
        or fallback
    )
    return Actor(display_name=truncate_address(str(name)), avatar_url=ref.get("avatar_url"))


def to_number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def coerce_amount(*candidates: Any) -> float:
    """First finite non-zero candidate, else 0."""
    for candidate in candidates:
        number = to_number(candidate)
        if number:
            return number
    return 0.0


def truncate_preview(text: str | None, limit: int = POST_PREVIEW_CHARS) -> str:
    if not text:
        return ""
    if len(text) <= limit:
        return text
    return f"{text[:limit]}..."


def stake_symbol_from_pool_title(title: str | None) -> str | None:
    """'Stake AVLO { #1 EPOCH }' → 'AVLO'."""
    if not title:
        return None
    found = _STAKE_TITLE_RE.search(title)
    return found.group(1).upper() if found else None


def _joined(row: Row, alias: str) -> Row:
    value = row.get(alias)
    return value if isinstance(value, dict) else {}


def _item(
    source: SourceDescriptor,
    row: Row,
    kind: ActivityKind,
    primary: Actor | None,
    secondary: Actor | None = None,
    amount: float = 0.0,
    extra: dict[str, Any] | None = None,
) -> ActivityItem | None:
    if primary is None or row.get("id") is None:
        return None
    timestamp = parse_timestamp(row.get(source.timestamp_column))
    if timestamp is None:
        logger.debug(
            "Dropping %s row %s: unparseable %s=%r",
            source.source_id, row.get("id"), source.timestamp_column,
            row.get(source.timestamp_column),
        )
        return None
    return ActivityItem(
        kind=kind,
        source_id=source.source_id,
        row_id=str(row["id"]),
        actor_primary=primary,
        actor_secondary=secondary,
        amount=amount,
        timestamp=timestamp,
        extra={k: v for k, v in (extra or {}).items() if v is not None},
    )


def _both(first: Actor | None, second: Actor | None) -> bool:
    return first is not None and second is not None


# ── Incremental notifications ─────────────────────────────────────────────────

@mapper("notify_swipe")
def _notify_swipe(source, row, rng):
    payment_token = _joined(row, "payment_token")
    token = _joined(row, "token")
    return _item(
        source, row, ActivityKind.SWIPE,
        resolve_actor(row.get("swiper")),
        resolve_actor(row.get("swiped"), fallback="someone"),
        amount=coerce_amount(row.get("token_amount"), row.get("amount")),
        extra={
            "token_symbol": payment_token.get("token_symbol") or token.get("token_symbol") or DEFAULT_TOKEN,
            "token_logo": payment_token.get("logo_url") or token.get("token_logo_url"),
        },
    )


@mapper("notify_match")
def _notify_match(source, row, rng):
    return _item(
        source, row, ActivityKind.MATCH,
        resolve_actor(row.get("user1")), resolve_actor(row.get("user2")),
    )


@mapper("notify_post")
def _notify_post(source, row, rng):
    return _item(
        source, row, ActivityKind.POST, resolve_actor(row.get("author")),
        extra={"preview": truncate_preview(row.get("content"), POST_PREVIEW_CHARS)},
    )


@mapper("notify_comment")
def _notify_comment(source, row, rng):
    return _item(source, row, ActivityKind.COMMENT, resolve_actor(row.get("author")))


@mapper("notify_game")
def _notify_game(source, row, rng):
    return _item(
        source, row, ActivityKind.GAME, resolve_actor(row.get("player")),
        extra={"game_title": row.get("game_title")},
    )


@mapper("notify_pixel")
def _notify_pixel(source, row, rng):
    return _item(
        source, row, ActivityKind.PIXEL, resolve_actor(row.get("artist")),
        extra={"color": row.get("color")},
    )


@mapper("notify_music")
def _notify_music(source, row, rng):
    return _item(
        source, row, ActivityKind.MUSIC, resolve_actor(row.get("listener")),
        extra={"track": _joined(row, "track").get("title") or "a track"},
    )


@mapper("notify_video")
def _notify_video(source, row, rng):
    return _item(source, row, ActivityKind.VIDEO, resolve_actor(row.get("viewer")))


@mapper("notify_stake")
def _notify_stake(source, row, rng):
    return _item(
        source, row, ActivityKind.STAKING, resolve_actor(row.get("staker")),
        amount=coerce_amount(row.get("amount")),
    )


@mapper("notify_unstake")
def _notify_unstake(source, row, rng):
    return _item(
        source, row, ActivityKind.UNSTAKING, resolve_actor(row.get("staker")),
        amount=coerce_amount(row.get("amount")),
    )


@mapper("notify_follow")
def _notify_follow(source, row, rng):
    return _item(
        source, row, ActivityKind.FOLLOW,
        resolve_actor(row.get("follower")),
        resolve_actor(row.get("following"), fallback="someone"),
    )


@mapper("notify_proposal")
def _notify_proposal(source, row, rng):
    return _item(
        source, row, ActivityKind.PROPOSAL, resolve_actor(row.get("creator")),
        extra={
            "proposal_id": row.get("id"),
            "title": row.get("title"),
            "preview": truncate_preview(row.get("title"), PROPOSAL_PREVIEW_CHARS),
        },
    )


@mapper("notify_vote")
def _notify_vote(source, row, rng):
    return _item(
        source, row, ActivityKind.VOTE, resolve_actor(row.get("voter")),
        extra={"proposal_title": _joined(row, "proposal").get("title")},
    )


@mapper("notify_pool_boost")
def _notify_pool_boost(source, row, rng):
    return _item(
        source, row, ActivityKind.BOOST, resolve_actor(row.get("booster")),
        amount=coerce_amount(row.get("amount")),
        extra={"pool_title": _joined(row, "pool").get("title") or "a pool"},
    )


@mapper("notify_profile_boost")
def _notify_profile_boost(source, row, rng):
    return _item(
        source, row, ActivityKind.PROFILE_BOOST,
        resolve_actor(row.get("booster")),
        resolve_actor(row.get("profile"), fallback="someone"),
        amount=coerce_amount(row.get("amount")),
    )


@mapper("notify_token_listing")
def _notify_token_listing(source, row, rng):
    return _item(
        source, row, ActivityKind.TOKEN_LISTING, resolve_actor(row.get("submitter")),
        extra={
            "token_name": row.get("token_name"),
            "token_symbol": row.get("token_symbol"),
            "token_logo": row.get("logo_url"),
        },
    )


def _swap(source, row, actor):
    is_buy = row.get("dest_token") == DEFAULT_TOKEN
    return _item(
        source, row,
        ActivityKind.SWAP_BOUGHT if is_buy else ActivityKind.SWAP_SOLD,
        actor,
        amount=coerce_amount(row.get("dest_amount") if is_buy else row.get("src_amount")),
        extra={
            "token_symbol": DEFAULT_TOKEN,
            "counter_token": row.get("src_token") if is_buy else row.get("dest_token"),
        },
    )


@mapper("notify_swap")
def _notify_swap(source, row, rng):
    return _swap(source, row, resolve_actor(row.get("buyer")))


@mapper("notify_agent")
def _notify_agent(source, row, rng):
    return _item(
        source, row, ActivityKind.AGENT_CREATED, resolve_actor(row.get("creator")),
        extra={"agent_handle": row.get("agent_handle"), "agent_name": row.get("agent_name")},
    )


# ── Snapshot feed ─────────────────────────────────────────────────────────────

@mapper("feed_tip")
def _feed_tip(source, row, rng):
    sender, receiver = resolve_actor(row.get("sender")), resolve_actor(row.get("receiver"))
    if not _both(sender, receiver):
        return None
    return _item(
        source, row, ActivityKind.TIP, sender, receiver,
        amount=coerce_amount(row.get("amount")),
    )


@mapper("feed_swipe")
def _feed_swipe(source, row, rng):
    swiper, swiped = resolve_actor(row.get("swiper")), resolve_actor(row.get("swiped"))
    if not _both(swiper, swiped):
        return None
    if row.get("direction") != "right":
        # Left swipes burn nothing
        return _item(source, row, ActivityKind.SWIPE_LEFT, swiper, swiped)
    payment_token = _joined(row, "payment_token")
    token = _joined(row, "token")
    return _item(
        source, row, ActivityKind.SWIPE_RIGHT, swiper, swiped,
        amount=coerce_amount(row.get("token_amount"), row.get("amount")),
        extra={
            "token_symbol": payment_token.get("token_symbol") or token.get("token_symbol") or DEFAULT_TOKEN,
            "token_logo": payment_token.get("logo_url") or token.get("token_logo_url"),
            "payment_destination": row.get("payment_destination") or "burn",
        },
    )


@mapper("feed_match")
def _feed_match(source, row, rng):
    first, second = resolve_actor(row.get("user1")), resolve_actor(row.get("user2"))
    if not _both(first, second):
        return None
    return _item(source, row, ActivityKind.MATCH, first, second)


@mapper("feed_payment")
def _feed_payment(source, row, rng):
    token = row.get("token")
    if not isinstance(token, dict):
        return None
    swiped = _joined(row, "swipe").get("swiped")
    return _item(
        source, row, ActivityKind.PAYMENT,
        resolve_actor(row.get("user")), resolve_actor(swiped),
        amount=coerce_amount(row.get("amount")),
        extra={"token_symbol": token.get("token_symbol"), "token_logo": token.get("logo_url")},
    )


@mapper("feed_game")
def _feed_game(source, row, rng):
    return _item(
        source, row, ActivityKind.GAME_PLAYING, resolve_actor(row.get("user")),
        extra={"game_title": row.get("game_title")},
    )


@mapper("feed_video")
def _feed_video(source, row, rng):
    return _item(
        source, row, ActivityKind.WATCHING_VIDEO, resolve_actor(row.get("user")),
        extra={"video_title": row.get("video_title")},
    )


@mapper("feed_music")
def _feed_music(source, row, rng):
    track = row.get("track")
    if not isinstance(track, dict):
        return None
    label = " - ".join(part for part in (track.get("title"), track.get("artist")) if part)
    return _item(
        source, row, ActivityKind.LISTENING_MUSIC, resolve_actor(row.get("user")),
        extra={"track": label},
    )


@mapper("feed_pixel")
def _feed_pixel(source, row, rng):
    return _item(
        source, row, ActivityKind.PIXEL_PLACED, resolve_actor(row.get("user")),
        extra={
            "color": row.get("color"),
            "x": row.get("x"),
            "y": row.get("y"),
            "coordinate": f"({row.get('x')}, {row.get('y')})",
        },
    )


@mapper("feed_burn")
def _feed_burn(source, row, rng):
    kind = ActivityKind.AI_CHAT if row.get("burn_type") == "ai_chat" else ActivityKind.POST_CREATED
    return _item(
        source, row, kind, resolve_actor(row.get("user")),
        amount=coerce_amount(row.get("amount")),
    )


@mapper("feed_user_joined")
def _feed_user_joined(source, row, rng):
    return _item(source, row, ActivityKind.USER_JOINED, resolve_actor(row))


def _staking(source, row, kind):
    pool = _joined(row, "pool")
    return _item(
        source, row, kind, resolve_actor(row.get("user")),
        amount=coerce_amount(row.get("amount")),
        extra={
            "token_symbol": stake_symbol_from_pool_title(pool.get("title")) or row.get("token_symbol"),
            "pool_title": pool.get("title") or "Staking Pool",
            "stake_logo": pool.get("stake_token_logo"),
        },
    )


@mapper("feed_stake")
def _feed_stake(source, row, rng):
    return _staking(source, row, ActivityKind.STAKED)


@mapper("feed_unstake")
def _feed_unstake(source, row, rng):
    return _staking(source, row, ActivityKind.UNSTAKED)


@mapper("feed_pool_boost")
def _feed_pool_boost(source, row, rng):
    return _item(
        source, row, ActivityKind.POOL_BOOSTED, resolve_actor(row.get("user")),
        amount=coerce_amount(row.get("amount")),
        extra={"pool_title": _joined(row, "pool").get("title") or "Staking Pool"},
    )


@mapper("feed_profile_boost")
def _feed_profile_boost(source, row, rng):
    booster, boosted = resolve_actor(row.get("booster")), resolve_actor(row.get("profile"))
    if not _both(booster, boosted):
        return None
    return _item(
        source, row, ActivityKind.PROFILE_BOOSTED, booster, boosted,
        amount=coerce_amount(row.get("amount")),
    )


@mapper("feed_pool_created")
def _feed_pool_created(source, row, rng):
    wallet = row.get("creator_wallet")
    return _item(
        source, row, ActivityKind.POOL_CREATED,
        resolve_actor(row.get("creator"), wallet=wallet),
        extra={
            "pool_title": row.get("title") or "Staking Pool",
            "stake_logo": row.get("stake_token_logo"),
        },
    )


@mapper("feed_swap")
def _feed_swap(source, row, rng):
    return _swap(source, row, resolve_actor(row.get("user")))


def _raffle(source, row, place: int):
    return _item(
        source, row, ActivityKind.RAFFLE_WON,
        resolve_actor(row.get(f"winner{place}"), fallback="Winner"),
        amount=coerce_amount(row.get(f"winner_{place}_amount")),
        extra={
            "place": place,
            "pool_type": row.get("pool_type") or "Raffle",
            "token_symbol": DEFAULT_TOKEN,
        },
    )


@mapper("feed_raffle_first")
def _feed_raffle_first(source, row, rng):
    return _raffle(source, row, 1)


@mapper("feed_raffle_second")
def _feed_raffle_second(source, row, rng):
    return _raffle(source, row, 2)


@mapper("feed_blackjack")
def _feed_blackjack(source, row, rng):
    result = row.get("result")
    if not result:
        return None
    bet = to_number(row.get("bet_amount")) or 0.0
    payout = to_number(row.get("payout_amount")) or 0.0
    is_win = result in ("blackjack", "win")
    return _item(
        source, row,
        ActivityKind.BLACKJACK_WIN if is_win else ActivityKind.BLACKJACK_LOSS,
        resolve_actor(row.get("user"), fallback="Player"),
        amount=payout - bet if is_win else bet,
        extra={"result": result},
    )


@mapper("feed_agent_created")
def _feed_agent_created(source, row, rng):
    handle = row.get("agent_handle")
    name = row.get("agent_name") or (f"@{handle}" if handle else None)
    if not name:
        return None
    agent = Actor(
        display_name=name,
        avatar_url=row.get("profile_picture_url"),
    )
    return _item(
        source, row, ActivityKind.AGENT_CREATED, resolve_actor(row.get("creator")), agent,
        extra={"agent_handle": handle},
    )


@mapper("feed_agent_stats")
def _feed_agent_stats(source, row, rng):
    handle = row.get("agent_handle")
    if not handle:
        return None
    label, key = rng.choice(AGENT_STATS)
    value = to_number(row.get(key)) or 0.0
    return _item(
        source, row, ActivityKind.AGENT_STATS,
        Actor(display_name=row.get("agent_name") or handle, avatar_url=row.get("profile_picture_url")),
        amount=value,
        extra={"stat": label, "agent_handle": f"@{handle}"},
    )


# ── Entry points ──────────────────────────────────────────────────────────────

def normalize(
    source: SourceDescriptor, row: Row, rng: random.Random | None = None
) -> ActivityItem | None:
    """Convert one raw row from `source` into an ActivityItem, or None to drop it."""
    try:
        fn = MAPPERS[source.mapper]
    except KeyError:
        raise KeyError(f"No normalizer registered for mapper {source.mapper!r}") from None
    try:
        return fn(source, row, rng or _default_rng)
    except (TypeError, ValueError, AttributeError) as exc:
        logger.debug("Dropping malformed %s row %r: %s", source.source_id, row.get("id"), exc)
        return None


def normalize_rows(
    source: SourceDescriptor, rows: Iterable[Row], rng: random.Random | None = None
) -> list[ActivityItem]:
    rng = rng or _default_rng
    rows = list(rows)
    if source.sample is not None and len(rows) > source.sample:
        rows = rng.sample(rows, source.sample)
    items = []
    for row in rows:
        item = normalize(source, row, rng)
        if item is not None:
            items.append(item)
    return items
