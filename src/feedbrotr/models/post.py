"""
Immutable post model with embedded content and attached media.

Posts form a tree through embedding: a repost carries the original post in
``retweeted_status`` and a quote carries the quoted post in
``quoted_status``. Media can be attached at four places in the payload, of
which the richest present one wins (see
[Post.effective_media()][feedbrotr.models.post.Post.effective_media]).

See Also:
    [decode_message()][feedbrotr.stream.decode.decode_message]: Builds
        posts from raw stream payloads.
    [Dispatcher.process_post()][feedbrotr.services.ingestor.dispatcher.Dispatcher.process_post]:
        Recursive, deduplication-gated expansion of a post tree.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple

from ._validation import (
    validate_id,
    validate_instance,
    validate_optional_instance,
    validate_str_no_null,
)
from .account import Account


@dataclass(frozen=True, slots=True)
class MediaItem:
    """A media attachment of a post.

    Attributes:
        id: Numeric media identifier, also the stem of the archived file name.
        media_url: HTTPS source URL of the media bytes.
        source_status_id: Identifier of the post this media was copied from
            (``0`` when the media is original to the post).
        type: Media type reported by the stream (``photo``, ``video``, ...).
    """

    id: int
    media_url: str
    source_status_id: int = 0
    type: str = "photo"

    def __post_init__(self) -> None:
        validate_id(self.id, "id")
        validate_str_no_null(self.media_url, "media_url")
        validate_id(self.source_status_id, "source_status_id")
        validate_str_no_null(self.type, "type")

    @property
    def is_derived(self) -> bool:
        """Whether the bytes belong to another post and will be found there."""
        return self.source_status_id != 0


@dataclass(frozen=True, slots=True)
class Entities:
    """Entity block of a post; only media is retained."""

    media: tuple[MediaItem, ...] = ()

    def __post_init__(self) -> None:
        validate_instance(self.media, tuple, "media")
        for item in self.media:
            validate_instance(item, MediaItem, "media[]")


@dataclass(frozen=True, slots=True)
class ExtendedPost:
    """Long-form part of a post whose text exceeds the classic length."""

    full_text: str = ""
    entities: Entities | None = None
    extended_entities: Entities | None = None

    def __post_init__(self) -> None:
        validate_str_no_null(self.full_text, "full_text")
        validate_optional_instance(self.entities, Entities, "entities")
        validate_optional_instance(self.extended_entities, Entities, "extended_entities")


class PostDbParams(NamedTuple):
    """Positional parameters for the ``post_insert`` stored procedure.

    Attributes:
        id: Numeric post identifier.
        user_id: Author account identifier.
        text: Post text (long form when available).
        created_at: Unix timestamp of creation, ``None`` if unknown.
        retweeted_id: Identifier of the embedded repost, if any.
        quoted_id: Identifier of the embedded quote, if any.
        raw: The original JSON object, serialized.
    """

    id: int
    user_id: int
    text: str
    created_at: int | None
    retweeted_id: int | None
    quoted_id: int | None
    raw: str


@dataclass(frozen=True, slots=True)
class Post:
    """A single unit of content.

    Attributes:
        id: Numeric post identifier.
        user: Author account.
        text: Classic post text.
        created_at: Unix timestamp of creation, ``None`` if unknown.
        retweeted_status: Embedded original post when this is a repost.
        quoted_status: Embedded quoted post.
        entities: Basic entity block.
        extended_entities: Extended entity block (multi-photo media).
        extended_tweet: Long-form part of the post.
        raw: The original JSON object, serialized. Excluded from equality.

    Note:
        The tree is treated as acyclic. Depth is bounded when decoding
        ([MAX_DECODE_DEPTH][feedbrotr.stream.decode.MAX_DECODE_DEPTH]) and
        again when dispatching (``processing.max_depth``).
    """

    id: int
    user: Account
    text: str = ""
    created_at: int | None = None
    retweeted_status: Post | None = None
    quoted_status: Post | None = None
    entities: Entities | None = None
    extended_entities: Entities | None = None
    extended_tweet: ExtendedPost | None = None
    raw: str = field(default="{}", compare=False, repr=False)

    def __post_init__(self) -> None:
        validate_id(self.id, "id")
        validate_instance(self.user, Account, "user")
        validate_str_no_null(self.text, "text")
        if self.created_at is not None:
            validate_id(self.created_at, "created_at")
        validate_optional_instance(self.retweeted_status, Post, "retweeted_status")
        validate_optional_instance(self.quoted_status, Post, "quoted_status")
        validate_optional_instance(self.entities, Entities, "entities")
        validate_optional_instance(self.extended_entities, Entities, "extended_entities")
        validate_optional_instance(self.extended_tweet, ExtendedPost, "extended_tweet")
        validate_str_no_null(self.raw, "raw")

    def effective_media(self) -> tuple[MediaItem, ...]:
        """Resolve the media list, preferring the richest entity block present.

        Precedence, lowest to highest: ``entities``, ``extended_entities``,
        ``extended_tweet.entities``, ``extended_tweet.extended_entities``.
        A block that is present replaces the previous choice even when its
        media list is empty.
        """
        media: tuple[MediaItem, ...] = ()
        if self.entities is not None:
            media = self.entities.media
        if self.extended_entities is not None:
            media = self.extended_entities.media
        if self.extended_tweet is not None:
            if self.extended_tweet.entities is not None:
                media = self.extended_tweet.entities.media
            if self.extended_tweet.extended_entities is not None:
                media = self.extended_tweet.extended_entities.media
        return media

    @property
    def full_text(self) -> str:
        """The long-form text when present, the classic text otherwise."""
        if self.extended_tweet is not None and self.extended_tweet.full_text:
            return self.extended_tweet.full_text
        return self.text

    def to_db_params(self) -> PostDbParams:
        """Return positional parameters for the ``post_insert`` procedure."""
        return PostDbParams(
            id=self.id,
            user_id=self.user.id,
            text=self.full_text,
            created_at=self.created_at,
            retweeted_id=self.retweeted_status.id if self.retweeted_status else None,
            quoted_id=self.quoted_status.id if self.quoted_status else None,
            raw=self.raw,
        )
