from datetime import datetime
from typing import Dict, List, Optional
from urllib.parse import urlparse

from pydantic import AliasChoices, BaseModel, Field, field_validator

from .models import LIBRARY_STATUSES, POST_TYPES, REACTION_TYPES


def _check_url(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("must be a valid URL")
    return value


def _check_status(value: Optional[str]) -> Optional[str]:
    if value is not None and value not in LIBRARY_STATUSES:
        raise ValueError(f"must be one of {', '.join(LIBRARY_STATUSES)}")
    return value


def _not_null(value):
    if value is None:
        raise ValueError("must not be null")
    return value


def _split_tags(value):
    if value is None or isinstance(value, list):
        return value
    return [tag.strip() for tag in str(value).split(",") if tag.strip()]


class MessageOut(BaseModel):
    message: str


class UserOut(BaseModel):
    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None
    username: Optional[str] = None
    bio: Optional[str] = None
    steam_username: Optional[str] = None
    epic_username: Optional[str] = None
    battlenet_username: Optional[str] = None
    psn_username: Optional[str] = None
    xbox_username: Optional[str] = None
    nintendo_username: Optional[str] = None
    ea_username: Optional[str] = None
    discord_username: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserStats(BaseModel):
    games_completed: int = 0
    games_playing: int = 0
    games_want_to_play: int = 0
    games_dnf: int = 0
    total_hours_played: int = 0
    average_rating: float = 0.0


class UserWithStatsOut(UserOut):
    stats: UserStats


class UserProfileUpdate(BaseModel):
    username: Optional[str] = None
    bio: Optional[str] = None
    profile_image_url: Optional[str] = None
    steam_username: Optional[str] = None
    epic_username: Optional[str] = None
    battlenet_username: Optional[str] = None
    psn_username: Optional[str] = None
    xbox_username: Optional[str] = None
    nintendo_username: Optional[str] = None
    ea_username: Optional[str] = None
    discord_username: Optional[str] = None

    @field_validator("profile_image_url")
    @classmethod
    def profile_image_is_url(cls, value: Optional[str]) -> Optional[str]:
        return _check_url(value)


class GameCreate(BaseModel):
    igdb_id: Optional[int] = None
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    cover_image_url: Optional[str] = None
    screenshot_urls: Optional[List[str]] = None
    genre: Optional[str] = Field(default=None, max_length=100)
    platform: Optional[str] = Field(default=None, max_length=255)
    release_date: Optional[datetime] = None
    developer: Optional[str] = Field(default=None, max_length=255)
    publisher: Optional[str] = Field(default=None, max_length=255)
    metacritic_score: Optional[int] = Field(default=None, ge=0, le=100)
    igdb_rating: Optional[float] = Field(default=None, ge=0, le=5)
    is_retro: Optional[bool] = None


class GameOut(BaseModel):
    id: int
    igdb_id: Optional[int] = None
    title: str
    description: Optional[str] = None
    cover_image_url: Optional[str] = None
    screenshot_urls: Optional[List[str]] = None
    genre: Optional[str] = None
    platform: Optional[str] = None
    release_date: Optional[datetime] = None
    developer: Optional[str] = None
    publisher: Optional[str] = None
    metacritic_score: Optional[int] = None
    igdb_rating: Optional[float] = None
    is_retro: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class LibraryEntryCreate(BaseModel):
    game_id: int
    status: str
    progress: int = Field(default=0, ge=0, le=100)
    rating: Optional[float] = Field(default=None, ge=1, le=5)
    hours_played: int = Field(default=0, ge=0)
    started_at: Optional[datetime] = None

    @field_validator("status")
    @classmethod
    def status_known(cls, value: str) -> str:
        return _check_status(value)


class LibraryEntryUpdate(BaseModel):
    status: Optional[str] = None
    progress: Optional[int] = Field(default=None, ge=0, le=100)
    rating: Optional[float] = Field(default=None, ge=1, le=5)
    hours_played: Optional[int] = Field(default=None, ge=0)

    # Omit a field to leave it unchanged; these columns cannot be cleared.
    @field_validator("status", "progress", "hours_played", mode="before")
    @classmethod
    def reject_null(cls, value):
        return _not_null(value)

    @field_validator("status")
    @classmethod
    def status_known(cls, value: Optional[str]) -> Optional[str]:
        return _check_status(value)


class LibraryEntryOut(BaseModel):
    id: int
    user_id: str
    game_id: int
    status: str
    progress: int = 0
    rating: Optional[float] = None
    hours_played: int = 0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class LibraryEntryWithGameOut(LibraryEntryOut):
    game: GameOut


class GameWithUserDataOut(GameOut):
    user_game: Optional[LibraryEntryOut] = None
    average_rating: float = 0.0
    review_count: int = 0


class ReviewCreate(BaseModel):
    game_id: int
    rating: float = Field(ge=1, le=5)
    title: Optional[str] = Field(default=None, max_length=255)
    content: Optional[str] = None
    image_url: Optional[str] = None
    spoilers: bool = False
    recommended_for: Optional[List[str]] = None

    @field_validator("recommended_for", mode="before")
    @classmethod
    def split_recommended(cls, value):
        return _split_tags(value)


class ReviewUpdate(BaseModel):
    rating: Optional[float] = Field(default=None, ge=1, le=5)
    title: Optional[str] = Field(default=None, max_length=255)
    content: Optional[str] = None
    spoilers: Optional[bool] = None
    recommended_for: Optional[List[str]] = None

    @field_validator("rating", "spoilers", mode="before")
    @classmethod
    def reject_null(cls, value):
        return _not_null(value)

    @field_validator("recommended_for", mode="before")
    @classmethod
    def split_recommended(cls, value):
        return _split_tags(value)


class ReviewOut(BaseModel):
    id: int
    user_id: str
    game_id: int
    rating: float
    title: Optional[str] = None
    content: Optional[str] = None
    image_url: Optional[str] = None
    spoilers: bool = False
    recommended_for: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator("recommended_for", mode="before")
    @classmethod
    def split_recommended(cls, value):
        return _split_tags(value) or []


class ReviewWithUserOut(ReviewOut):
    user: UserOut


class ReviewWithGameOut(ReviewOut):
    game: GameOut


class ActivityOut(BaseModel):
    id: int
    user_id: str
    game_id: Optional[int] = None
    type: str
    metadata: Optional[dict] = Field(
        default=None, validation_alias=AliasChoices("metadata_", "metadata")
    )
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ActivityWithDetailsOut(ActivityOut):
    user: UserOut
    game: Optional[GameOut] = None


class FollowCountsOut(BaseModel):
    followers: int
    following: int


class GamePostCreate(BaseModel):
    game_id: int
    content: str = Field(min_length=1)
    image_urls: List[str] = Field(default_factory=list)
    post_type: str = "text"

    @field_validator("post_type")
    @classmethod
    def post_type_known(cls, value: str) -> str:
        if value not in POST_TYPES:
            raise ValueError(f"must be one of {', '.join(POST_TYPES)}")
        return value


class GamePostOut(BaseModel):
    id: int
    user_id: str
    game_id: int
    content: str
    image_urls: List[str] = Field(default_factory=list)
    post_type: str = "text"
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator("image_urls", mode="before")
    @classmethod
    def default_image_urls(cls, value):
        return value or []


class GamePostWithUserOut(GamePostOut):
    user: UserOut


class GamePostWithGameOut(GamePostOut):
    game: GameOut


class ReactionIn(BaseModel):
    reaction_type: str

    @field_validator("reaction_type")
    @classmethod
    def reaction_known(cls, value: str) -> str:
        if value not in REACTION_TYPES:
            raise ValueError(f"must be one of {', '.join(REACTION_TYPES)}")
        return value


class ReactionOut(BaseModel):
    id: int
    user_id: str
    post_id: int
    reaction_type: str
    created_at: Optional[datetime] = None
    user: UserOut

    class Config:
        from_attributes = True


class CommentIn(BaseModel):
    content: str = Field(min_length=1, max_length=2000)


class CommentOut(BaseModel):
    id: int
    user_id: str
    post_id: int
    content: str
    created_at: Optional[datetime] = None
    user: UserOut

    class Config:
        from_attributes = True


class GamePostDetailsOut(GamePostOut):
    user: UserOut
    game: GameOut
    reactions: List[ReactionOut]
    comments: List[CommentOut]
    reaction_counts: Dict[str, int]
    user_reaction: Optional[str] = None


class FavoriteIn(BaseModel):
    game_id: int
    position: int = Field(ge=1, le=4)


class FavoriteOut(BaseModel):
    id: int
    user_id: str
    game_id: int
    position: int
    created_at: Optional[datetime] = None
    game: GameOut

    class Config:
        from_attributes = True


class MediaUploadIn(BaseModel):
    image_data: str = Field(min_length=1)
    file_name: Optional[str] = None


class MediaUploadOut(BaseModel):
    message: str
    post: GamePostOut
    image_url: str


class CatalogCover(BaseModel):
    url: str


class CatalogSearchResultOut(BaseModel):
    id: int
    name: str
    cover: Optional[CatalogCover] = None
    first_release_date: Optional[int] = None
    rating: Optional[float] = None


class FromCatalogIn(BaseModel):
    igdb_id: int = Field(gt=0)


class CatalogSyncIn(BaseModel):
    titles: List[str] = Field(min_length=1, max_length=50)
    alternates: Dict[str, List[str]] = Field(default_factory=dict)


class CatalogSyncOut(BaseModel):
    added: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    missing: List[str] = Field(default_factory=list)
    failed: List[str] = Field(default_factory=list)
