from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from livefeed.services.deduplication import composite_id


class ActivityKind(str, Enum):
    # Snapshot feed
    TIP = "tip"
    SWIPE_RIGHT = "swipe_right"
    SWIPE_LEFT = "swipe_left"
    GAME_PLAYING = "game_playing"
    PAYMENT = "payment"
    MATCH = "match"
    WATCHING_VIDEO = "watching_video"
    LISTENING_MUSIC = "listening_music"
    PIXEL_PLACED = "pixel_placed"
    AI_CHAT = "ai_chat"
    POST_CREATED = "post_created"
    AGENT_STATS = "agent_stats"
    USER_JOINED = "user_joined"
    STAKED = "staked"
    UNSTAKED = "unstaked"
    POOL_BOOSTED = "pool_boosted"
    PROFILE_BOOSTED = "profile_boosted"
    POOL_CREATED = "pool_created"
    SWAP_BOUGHT = "swap_bought"
    SWAP_SOLD = "swap_sold"
    RAFFLE_WON = "raffle_won"
    BLACKJACK_WIN = "blackjack_win"
    BLACKJACK_LOSS = "blackjack_loss"
    AGENT_CREATED = "agent_created"

    # Incremental notifications (swap_*, match and agent_created are shared)
    SWIPE = "swipe"
    POST = "post"
    COMMENT = "comment"
    GAME = "game"
    PIXEL = "pixel"
    MUSIC = "music"
    VIDEO = "video"
    STAKING = "staking"
    UNSTAKING = "unstaking"
    FOLLOW = "follow"
    PROPOSAL = "proposal"
    VOTE = "vote"
    BOOST = "boost"
    PROFILE_BOOST = "profile_boost"
    TOKEN_LISTING = "token_listing"


class Actor(BaseModel):
    model_config = ConfigDict(frozen=True)

    display_name: str
    avatar_url: Optional[str] = None


class ActivityItem(BaseModel):
    """One normalized event, whatever source it was read from."""

    model_config = ConfigDict(frozen=True)

    kind: ActivityKind
    source_id: str
    row_id: str
    actor_primary: Actor
    actor_secondary: Optional[Actor] = None
    amount: float = 0
    timestamp: datetime
    extra: dict[str, Any] = Field(default_factory=dict)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def id(self) -> str:
        return composite_id(self.source_id, self.row_id)

    def actor_names(self) -> list[str]:
        names = [self.actor_primary.display_name]
        if self.actor_secondary is not None:
            names.append(self.actor_secondary.display_name)
        return names


class RotationSchema(BaseModel):
    index: int
    length: int
    current: Optional[ActivityItem]
    text: Optional[str] = None


class WatermarkSchema(BaseModel):
    source_id: str
    since: datetime
    state: str


class OpsLogEntrySchema(BaseModel):
    time: datetime
    level: str  # info | success | warn | error
    category: str  # poll | refresh | source | system
    message: str
    source_id: Optional[str] = None
    count: Optional[int] = None
