"""Pure frozen dataclasses with zero I/O for stream accounts, posts, and messages.

The models layer is the foundation of the diamond DAG. It has **no dependencies**
on any other feedbrotr package, only the Python standard library. Every model uses
``@dataclass(frozen=True, slots=True)`` for immutability and memory efficiency.

Database parameter containers use ``NamedTuple``. All validation happens in
``__post_init__`` so invalid instances never escape the constructor.

Attributes:
    Account: Stream account with its visibility flag.
    Post: Unit of content, possibly embedding a repost and a quote.
    MediaItem: Media attachment with its derived-from reference.
    Envelope: One unit of feed input (owning account, payload, sequence id).
    ClassifiedMessage: Closed union of the decoded payload variants
        (``Post``, ``PostDeletion``, ``RelationshipEvent``,
        ``PostWithheldNotice``, ``AccountWithheldNotice``, ``UnknownMessage``).
    EventKind: Relationship event kinds known to the stream protocol.

See Also:
    [feedbrotr.models.account][]: Account model.
    [feedbrotr.models.post][]: Post tree and media resolution.
    [feedbrotr.models.messages][]: Envelope and message variants.
    [feedbrotr.models.constants][]: Shared constants and enumerations.
"""

from .account import Account, AccountDbParams
from .constants import PUBLIC_EVENT_KINDS, RESTRICTED_EVENT_KINDS, EventKind, ServiceName
from .messages import (
    AccountWithheldNotice,
    ClassifiedMessage,
    Envelope,
    EnvelopeDbParams,
    PostDeletion,
    PostWithheldNotice,
    RelationshipEvent,
    UnknownMessage,
)
from .post import Entities, ExtendedPost, MediaItem, Post, PostDbParams


__all__ = [
    "PUBLIC_EVENT_KINDS",
    "RESTRICTED_EVENT_KINDS",
    "Account",
    "AccountDbParams",
    "AccountWithheldNotice",
    "ClassifiedMessage",
    "Entities",
    "Envelope",
    "EnvelopeDbParams",
    "EventKind",
    "ExtendedPost",
    "MediaItem",
    "Post",
    "PostDbParams",
    "PostDeletion",
    "PostWithheldNotice",
    "RelationshipEvent",
    "ServiceName",
    "UnknownMessage",
]
