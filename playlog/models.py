from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .db import Base

LIBRARY_STATUSES = ("want_to_play", "currently_playing", "completed", "dnf")
ACTIVITY_TYPES = ("added", "started", "completed", "rated", "reviewed")
REACTION_TYPES = ("like", "heart", "laugh", "sad", "wow", "angry")
POST_TYPES = ("text", "media")


class User(Base):
    __tablename__ = "users"

    id = Column(String(255), primary_key=True)
    email = Column(String(255), unique=True, nullable=True)
    first_name = Column(String(120), nullable=True)
    last_name = Column(String(120), nullable=True)
    profile_image_url = Column(String(500), nullable=True)
    username = Column(String(50), unique=True, nullable=True)
    bio = Column(Text, nullable=True)
    steam_username = Column(String(120), nullable=True)
    epic_username = Column(String(120), nullable=True)
    battlenet_username = Column(String(120), nullable=True)
    psn_username = Column(String(120), nullable=True)
    xbox_username = Column(String(120), nullable=True)
    nintendo_username = Column(String(120), nullable=True)
    ea_username = Column(String(120), nullable=True)
    discord_username = Column(String(120), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    library = relationship("LibraryEntry", back_populates="user", cascade="all, delete")
    reviews = relationship("Review", back_populates="user", cascade="all, delete")
    activities = relationship("Activity", back_populates="user", cascade="all, delete")
    posts = relationship("GamePost", back_populates="user", cascade="all, delete")
    favorites = relationship("FavoriteGame", back_populates="user", cascade="all, delete")


class Game(Base):
    __tablename__ = "games"

    id = Column(Integer, primary_key=True, autoincrement=True)
    igdb_id = Column(Integer, unique=True, nullable=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    cover_image_url = Column(String(500), nullable=True)
    screenshot_urls = Column(JSON, nullable=True)
    genre = Column(String(100), nullable=True)
    platform = Column(String(255), nullable=True)
    release_date = Column(DateTime, nullable=True)
    developer = Column(String(255), nullable=True)
    publisher = Column(String(255), nullable=True)
    metacritic_score = Column(Integer, nullable=True)
    igdb_rating = Column(Float, nullable=True)
    is_retro = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    library_entries = relationship("LibraryEntry", back_populates="game", cascade="all, delete")
    reviews = relationship("Review", back_populates="game", cascade="all, delete")
    posts = relationship("GamePost", back_populates="game", cascade="all, delete")


class LibraryEntry(Base):
    __tablename__ = "user_games"
    __table_args__ = (UniqueConstraint("user_id", "game_id", name="uq_user_game"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    game_id = Column(Integer, ForeignKey("games.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(50), nullable=False)
    progress = Column(Integer, default=0)
    rating = Column(Float, nullable=True)
    hours_played = Column(Integer, default=0)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="library")
    game = relationship("Game", back_populates="library_entries")


class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = (UniqueConstraint("user_id", "game_id", name="uq_review"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    game_id = Column(Integer, ForeignKey("games.id", ondelete="CASCADE"), nullable=False, index=True)
    rating = Column(Float, nullable=False)
    title = Column(String(255), nullable=True)
    content = Column(Text, nullable=True)
    image_url = Column(Text, nullable=True)
    spoilers = Column(Boolean, default=False)
    recommended_for = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="reviews")
    game = relationship("Game", back_populates="reviews")


class Activity(Base):
    __tablename__ = "activities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    game_id = Column(Integer, ForeignKey("games.id", ondelete="CASCADE"), nullable=True)
    type = Column(String(50), nullable=False)
    metadata_ = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    user = relationship("User", back_populates="activities")
    game = relationship("Game")


class UserFollow(Base):
    __tablename__ = "user_follows"
    __table_args__ = (UniqueConstraint("follower_id", "following_id", name="uq_user_follow"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    follower_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    following_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    follower = relationship("User", foreign_keys=[follower_id])
    following = relationship("User", foreign_keys=[following_id])


class GamePost(Base):
    __tablename__ = "game_posts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    game_id = Column(Integer, ForeignKey("games.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    image_urls = Column(JSON, default=list)
    post_type = Column(String(50), nullable=False, default="text")
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="posts")
    game = relationship("Game", back_populates="posts")
    reactions = relationship("PostReaction", back_populates="post", cascade="all, delete")
    comments = relationship("PostComment", back_populates="post", cascade="all, delete")


class FavoriteGame(Base):
    __tablename__ = "favorite_games"
    __table_args__ = (UniqueConstraint("user_id", "position", name="uq_favorite_slot"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    game_id = Column(Integer, ForeignKey("games.id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="favorites")
    game = relationship("Game")


class PostReaction(Base):
    __tablename__ = "post_reactions"
    __table_args__ = (
        UniqueConstraint("user_id", "post_id", name="uq_user_post_reaction"),
        Index("idx_post_reactions", "post_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    post_id = Column(Integer, ForeignKey("game_posts.id", ondelete="CASCADE"), nullable=False)
    reaction_type = Column(String(20), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User")
    post = relationship("GamePost", back_populates="reactions")


class PostComment(Base):
    __tablename__ = "post_comments"
    __table_args__ = (Index("idx_post_comments", "post_id"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    post_id = Column(Integer, ForeignKey("game_posts.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User")
    post = relationship("GamePost", back_populates="comments")
