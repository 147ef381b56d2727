"""Shared constants for the models layer.

Defines the service identifiers and the relationship event kinds that the
stream delivers. The kind sets drive the visibility policy applied by
[is_restricted][feedbrotr.services.ingestor.visibility.is_restricted].

See Also:
    [feedbrotr.models.messages][]: Uses ``EventKind`` on
        [RelationshipEvent][feedbrotr.models.messages.RelationshipEvent].
    [feedbrotr.services.ingestor.visibility][]: Consumes
        ``PUBLIC_EVENT_KINDS`` and ``RESTRICTED_EVENT_KINDS``.
"""

from __future__ import annotations

from enum import StrEnum


class ServiceName(StrEnum):
    """Canonical service identifiers used in logging and metrics.

    Attributes:
        INGESTOR: Stream ingestion service
            ([Ingestor][feedbrotr.services.ingestor.Ingestor]).
    """

    INGESTOR = "ingestor"


class EventKind(StrEnum):
    """Relationship event kinds known to the stream protocol.

    Kinds not listed here may still arrive on the wire; they are carried as
    plain strings on
    [RelationshipEvent][feedbrotr.models.messages.RelationshipEvent] and
    treated as restricted.
    """

    QUOTED_TWEET = "quoted_tweet"
    FAVORITE = "favorite"
    UNFAVORITE = "unfavorite"
    FAVORITED_RETWEET = "favorited_retweet"
    RETWEETED_RETWEET = "retweeted_retweet"
    FOLLOW = "follow"
    UNFOLLOW = "unfollow"
    USER_UPDATE = "user_update"
    LIST_CREATED = "list_created"
    LIST_DESTROYED = "list_destroyed"
    LIST_UPDATED = "list_updated"
    LIST_MEMBER_ADDED = "list_member_added"
    LIST_MEMBER_REMOVED = "list_member_removed"
    LIST_USER_SUBSCRIBED = "list_user_subscribed"
    LIST_USER_UNSUBSCRIBED = "list_user_unsubscribed"
    BLOCK = "block"
    UNBLOCK = "unblock"
    MUTE = "mute"
    UNMUTE = "unmute"


#: Kinds whose visibility depends only on the accounts involved.
PUBLIC_EVENT_KINDS: frozenset[str] = frozenset(
    {
        EventKind.QUOTED_TWEET,
        EventKind.FAVORITE,
        EventKind.UNFAVORITE,
        EventKind.FAVORITED_RETWEET,
        EventKind.RETWEETED_RETWEET,
        EventKind.FOLLOW,
        EventKind.UNFOLLOW,
        EventKind.USER_UPDATE,
    }
)

#: Kinds that are never replicated: lists can be private, blocks and mutes
#: are private by nature.
RESTRICTED_EVENT_KINDS: frozenset[str] = frozenset(
    {
        EventKind.LIST_CREATED,
        EventKind.LIST_DESTROYED,
        EventKind.LIST_UPDATED,
        EventKind.LIST_MEMBER_ADDED,
        EventKind.LIST_MEMBER_REMOVED,
        EventKind.LIST_USER_SUBSCRIBED,
        EventKind.LIST_USER_UNSUBSCRIBED,
        EventKind.BLOCK,
        EventKind.UNBLOCK,
        EventKind.MUTE,
        EventKind.UNMUTE,
    }
)
