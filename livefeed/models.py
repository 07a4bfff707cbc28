"""
Read-side mirror of the backend tables the activity sources are drawn from.

The engine never writes to these tables; the models exist so the SQL event
store (and the test suite) have a concrete schema to query.
"""
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from livefeed.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Profile(Base):
    __tablename__ = "profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str | None] = mapped_column(String, nullable=True)
    display_name: Mapped[str | None] = mapped_column(String, nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String, nullable=True)
    wallet_address: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class ProfileToken(Base):
    __tablename__ = "profile_tokens"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    token_symbol: Mapped[str] = mapped_column(String, nullable=False)
    token_logo_url: Mapped[str | None] = mapped_column(String, nullable=True)


class PaymentToken(Base):
    __tablename__ = "payment_tokens"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    token_symbol: Mapped[str] = mapped_column(String, nullable=False)
    logo_url: Mapped[str | None] = mapped_column(String, nullable=True)


class Tip(Base):
    __tablename__ = "tips"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sender_id: Mapped[int | None] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    receiver_id: Mapped[int | None] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    amount: Mapped[float] = mapped_column(Float, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class Swipe(Base):
    __tablename__ = "swipes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    swiper_id: Mapped[int | None] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    swiped_id: Mapped[int | None] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    direction: Mapped[str] = mapped_column(String(10), nullable=False)
    amount: Mapped[float | None] = mapped_column(Float, nullable=True)
    token_amount: Mapped[float | None] = mapped_column(Float, nullable=True)
    payment_destination: Mapped[str | None] = mapped_column(String(10), nullable=True)
    token_id: Mapped[int | None] = mapped_column(ForeignKey("profile_tokens.id"), nullable=True)
    payment_token_id: Mapped[int | None] = mapped_column(
        ForeignKey("payment_tokens.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class Match(Base):
    __tablename__ = "matches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user1_id: Mapped[int | None] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    user2_id: Mapped[int | None] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class TokenPayment(Base):
    __tablename__ = "token_payments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    token_id: Mapped[int | None] = mapped_column(ForeignKey("payment_tokens.id"), nullable=True)
    amount: Mapped[float] = mapped_column(Float, default=0)
    payment_type: Mapped[str] = mapped_column(String(20), nullable=False)
    reference_id: Mapped[int | None] = mapped_column(ForeignKey("swipes.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class GameSession(Base):
    __tablename__ = "embedded_game_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    game_title: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="playing")
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class VideoView(Base):
    __tablename__ = "watch_video_views"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    video_title: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="watching")
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class MusicTrack(Base):
    __tablename__ = "music_tracks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String, nullable=False)
    artist: Mapped[str | None] = mapped_column(String, nullable=True)


class MusicListen(Base):
    __tablename__ = "music_track_listens"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    track_id: Mapped[int | None] = mapped_column(ForeignKey("music_tracks.id"), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="listening")
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class Pixel(Base):
    __tablename__ = "pixels"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    placed_by: Mapped[int | None] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    color: Mapped[str] = mapped_column(String(16), nullable=False)
    x: Mapped[int] = mapped_column(Integer, nullable=False)
    y: Mapped[int] = mapped_column(Integer, nullable=False)
    placed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class TokenBurn(Base):
    __tablename__ = "token_burns"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    amount: Mapped[float] = mapped_column(Float, default=0)
    burn_type: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class StakingPool(Base):
    __tablename__ = "staking_pools"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str | None] = mapped_column(String, nullable=True)
    stake_token_logo: Mapped[str | None] = mapped_column(String, nullable=True)
    reward_token_logo: Mapped[str | None] = mapped_column(String, nullable=True)
    creator_wallet: Mapped[str | None] = mapped_column(String, nullable=True)
    created_by: Mapped[int | None] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class StakingTransaction(Base):
    __tablename__ = "staking_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    pool_id: Mapped[int | None] = mapped_column(ForeignKey("staking_pools.id"), nullable=True)
    amount: Mapped[str | None] = mapped_column(String, nullable=True)
    token_symbol: Mapped[str | None] = mapped_column(String, nullable=True)
    transaction_type: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class PoolBoost(Base):
    __tablename__ = "staking_pool_boosts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    pool_id: Mapped[int | None] = mapped_column(ForeignKey("staking_pools.id"), nullable=True)
    amount: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class ProfileBoost(Base):
    __tablename__ = "swipe_profile_boosts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    booster_id: Mapped[int | None] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    profile_id: Mapped[int | None] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    amount: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class SwapTransaction(Base):
    __tablename__ = "swap_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    src_token: Mapped[str] = mapped_column(String(20), nullable=False)
    dest_token: Mapped[str] = mapped_column(String(20), nullable=False)
    src_amount: Mapped[str | None] = mapped_column(String, nullable=True)
    dest_amount: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class RafflePool(Base):
    __tablename__ = "raffle_pools"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    pool_type: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="open")
    winner_1_id: Mapped[int | None] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    winner_2_id: Mapped[int | None] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    winner_3_id: Mapped[int | None] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    winner_1_amount: Mapped[float | None] = mapped_column(Float, nullable=True)
    winner_2_amount: Mapped[float | None] = mapped_column(Float, nullable=True)
    winner_3_amount: Mapped[float | None] = mapped_column(Float, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class BlackjackSession(Base):
    __tablename__ = "blackjack_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    bet_amount: Mapped[float] = mapped_column(Float, default=0)
    payout_amount: Mapped[float] = mapped_column(Float, default=0)
    result: Mapped[str | None] = mapped_column(String(20), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class ArenaAgent(Base):
    __tablename__ = "arena_agents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    agent_name: Mapped[str | None] = mapped_column(String, nullable=True)
    agent_handle: Mapped[str] = mapped_column(String, nullable=False)
    profile_picture_url: Mapped[str | None] = mapped_column(String, nullable=True)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    total_posts: Mapped[int] = mapped_column(Integer, default=0)
    total_likes_received: Mapped[int] = mapped_column(Integer, default=0)
    follower_count: Mapped[int] = mapped_column(Integer, default=0)
    following_count: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class Post(Base):
    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class PostComment(Base):
    __tablename__ = "post_comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    post_id: Mapped[int | None] = mapped_column(ForeignKey("posts.id"), nullable=True)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class Follower(Base):
    __tablename__ = "followers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    follower_id: Mapped[int | None] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    following_id: Mapped[int | None] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class CommunityProposal(Base):
    __tablename__ = "community_proposals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    created_by: Mapped[int | None] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    title: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class CommunityVote(Base):
    __tablename__ = "community_votes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    proposal_id: Mapped[int | None] = mapped_column(
        ForeignKey("community_proposals.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class TokenSubmission(Base):
    __tablename__ = "user_token_submissions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    token_name: Mapped[str | None] = mapped_column(String, nullable=True)
    token_symbol: Mapped[str] = mapped_column(String, nullable=False)
    logo_url: Mapped[str | None] = mapped_column(String, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
