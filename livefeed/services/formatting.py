"""
One-line text for ticker and banner surfaces.
"""
from livefeed.schemas import ActivityItem, ActivityKind


def format_compact_number(num: float) -> str:
    """1000 -> 1K, 1500000 -> 1.5M, 2000000000 -> 2B."""
    for threshold, suffix in ((1_000_000_000, "B"), (1_000_000, "M"), (1_000, "K")):
        if num >= threshold:
            value = num / threshold
            return f"{value:.0f}{suffix}" if value % 1 == 0 else f"{value:.1f}{suffix}"
    if num % 1 == 0:
        return f"{int(num):,}"
    return f"{num:,.2f}".rstrip("0").rstrip(".")


def describe(item: ActivityItem) -> str:
    sender = item.actor_primary.display_name
    receiver = item.actor_secondary.display_name if item.actor_secondary else "someone"
    amount = format_compact_number(item.amount)
    extra = item.extra
    symbol = extra.get("token_symbol", "AVLO")
    kind = item.kind

    if kind == ActivityKind.TIP:
        return f"{sender} tipped {receiver} {amount} AVLO"
    elif kind in (ActivityKind.SWIPE_RIGHT, ActivityKind.SWIPE):
        return f"{sender} gifted {receiver} {amount} {symbol}"
    elif kind == ActivityKind.SWIPE_LEFT:
        return f"{sender} passed on {receiver}"
    elif kind == ActivityKind.MATCH:
        return f"{sender} & {receiver} matched"
    elif kind == ActivityKind.PAYMENT:
        return f"{sender} paid {amount} {symbol}" + (
            f" to like {receiver}" if item.actor_secondary else ""
        )
    elif kind in (ActivityKind.GAME_PLAYING, ActivityKind.GAME):
        return f"{sender} playing {extra.get('game_title', 'a game')}"
    elif kind == ActivityKind.WATCHING_VIDEO:
        return f"{sender} watching {extra.get('video_title') or 'a video'}"
    elif kind == ActivityKind.VIDEO:
        return f"{sender} is watching a video"
    elif kind in (ActivityKind.LISTENING_MUSIC, ActivityKind.MUSIC):
        return f'{sender} listening to "{extra.get("track", "a track")}"'
    elif kind == ActivityKind.PIXEL_PLACED:
        return f"{sender} placed a pixel at {extra.get('coordinate', '')}".rstrip()
    elif kind == ActivityKind.PIXEL:
        return f"{sender} placed a pixel"
    elif kind == ActivityKind.AI_CHAT:
        return f"{sender} burned {amount} AVLO chatting with AI"
    elif kind == ActivityKind.POST_CREATED:
        return f"{sender} burned {amount} AVLO to post"
    elif kind == ActivityKind.POST:
        return f'{sender}: "{extra.get("preview", "")}"'
    elif kind == ActivityKind.COMMENT:
        return f"{sender} commented on a post"
    elif kind == ActivityKind.USER_JOINED:
        return f"{sender} just joined"
    elif kind in (ActivityKind.STAKED, ActivityKind.STAKING):
        return f"{sender} staked {amount} {extra.get('token_symbol') or 'tokens'}"
    elif kind in (ActivityKind.UNSTAKED, ActivityKind.UNSTAKING):
        return f"{sender} unstaked {amount} {extra.get('token_symbol') or 'tokens'}"
    elif kind in (ActivityKind.POOL_BOOSTED, ActivityKind.BOOST):
        return f"{sender} boosted {extra.get('pool_title', 'a pool')} with {amount} AVLO"
    elif kind in (ActivityKind.PROFILE_BOOSTED, ActivityKind.PROFILE_BOOST):
        return f"{sender} boosted {receiver}'s profile with {amount} AVLO"
    elif kind == ActivityKind.POOL_CREATED:
        return f"{sender} created {extra.get('pool_title', 'a staking pool')}"
    elif kind == ActivityKind.SWAP_BOUGHT:
        return f"{sender} bought {amount} AVLO"
    elif kind == ActivityKind.SWAP_SOLD:
        return f"{sender} sold {amount} AVLO"
    elif kind == ActivityKind.RAFFLE_WON:
        place = "1st" if extra.get("place") == 1 else "2nd"
        return f"{sender} won {amount} AVLO ({place}, {extra.get('pool_type', 'Raffle')})"
    elif kind == ActivityKind.BLACKJACK_WIN:
        return f"{sender} won {amount} at blackjack"
    elif kind == ActivityKind.BLACKJACK_LOSS:
        return f"{sender} lost {amount} at blackjack"
    elif kind == ActivityKind.AGENT_CREATED:
        return f"{sender} created AI agent @{extra.get('agent_handle', '')}"
    elif kind == ActivityKind.AGENT_STATS:
        return f"{extra.get('agent_handle', sender)} has {amount} {extra.get('stat', '')}".rstrip()
    elif kind == ActivityKind.FOLLOW:
        return f"{sender} followed {receiver}"
    elif kind == ActivityKind.PROPOSAL:
        return f'{sender} created poll: "{extra.get("preview", "")}"'
    elif kind == ActivityKind.VOTE:
        return f"{sender} voted on a poll"
    elif kind == ActivityKind.TOKEN_LISTING:
        return f"{sender} listed {extra.get('token_symbol', 'a')} token"
    return sender
