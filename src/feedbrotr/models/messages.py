"""
Classified stream messages and the feed envelope that carries them.

Every payload delivered by the stream decodes into exactly one variant of
[ClassifiedMessage][feedbrotr.models.messages.ClassifiedMessage]. The union
is closed: the dispatcher matches over it exhaustively, so a new message
kind is a deliberate code change rather than a silent fall-through.

See Also:
    [decode_message()][feedbrotr.stream.decode.decode_message]: Produces
        classified messages from raw payload bytes.
    [Dispatcher.handle()][feedbrotr.services.ingestor.dispatcher.Dispatcher.handle]:
        Consumes them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple

from ._validation import (
    validate_id,
    validate_instance,
    validate_optional_instance,
    validate_str_no_null,
    validate_str_tuple,
)
from .account import Account
from .post import Post


class EnvelopeDbParams(NamedTuple):
    """Positional parameters for the ``message_insert`` stored procedure."""

    id: int
    account_id: int
    payload: bytes


@dataclass(frozen=True, slots=True)
class Envelope:
    """One unit of feed input.

    Created by the feed transport, consumed exactly once by the dispatcher,
    then discarded. The ``sequence_id`` is the foreign key of every record
    derived from the envelope.

    Attributes:
        account: The account whose feed delivered the payload.
        payload: Raw payload bytes (a JSON object).
        sequence_id: Identifier assigned at ingestion.
    """

    account: Account
    payload: bytes
    sequence_id: int
    _db_params: EnvelopeDbParams = field(
        default=None,  # type: ignore[assignment]
        init=False,
        repr=False,
        compare=False,
        hash=False,
    )

    def __post_init__(self) -> None:
        validate_instance(self.account, Account, "account")
        validate_instance(self.payload, bytes, "payload")
        validate_id(self.sequence_id, "sequence_id")
        object.__setattr__(
            self,
            "_db_params",
            EnvelopeDbParams(
                id=self.sequence_id,
                account_id=self.account.id,
                payload=self.payload,
            ),
        )

    def to_db_params(self) -> EnvelopeDbParams:
        """Return the cached positional parameters for ``message_insert``."""
        return self._db_params


@dataclass(frozen=True, slots=True)
class PostDeletion:
    """Notice that a post was deleted by its author."""

    id: int
    user_id: int

    def __post_init__(self) -> None:
        validate_id(self.id, "id")
        validate_id(self.user_id, "user_id")


@dataclass(frozen=True, slots=True)
class RelationshipEvent:
    """A typed relationship event between accounts.

    Attributes:
        event: Event kind as delivered on the wire. Kept as a plain string so
            unrecognised kinds survive decoding and reach the visibility
            filter; see [EventKind][feedbrotr.models.constants.EventKind].
        source: The acting account, if present.
        target: The account acted upon, if present.
        target_object: The content acted upon, if it is a post.
    """

    event: str
    source: Account | None = None
    target: Account | None = None
    target_object: Post | None = None

    def __post_init__(self) -> None:
        validate_str_no_null(self.event, "event")
        validate_optional_instance(self.source, Account, "source")
        validate_optional_instance(self.target, Account, "target")
        validate_optional_instance(self.target_object, Post, "target_object")


@dataclass(frozen=True, slots=True)
class PostWithheldNotice:
    """Notice that a post is withheld in some jurisdictions."""

    id: int
    user_id: int
    withheld_in_countries: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        validate_id(self.id, "id")
        validate_id(self.user_id, "user_id")
        validate_str_tuple(self.withheld_in_countries, "withheld_in_countries")


@dataclass(frozen=True, slots=True)
class AccountWithheldNotice:
    """Notice that an account is withheld in some jurisdictions."""

    id: int
    withheld_in_countries: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        validate_id(self.id, "id")
        validate_str_tuple(self.withheld_in_countries, "withheld_in_countries")


@dataclass(frozen=True, slots=True)
class UnknownMessage:
    """A payload that is not one of the handled variants.

    Attributes:
        type_name: The unrecognised top-level key, or a short label
            describing the payload when it is not a JSON object.
        reason: Decode error text when the payload could not be parsed,
            ``None`` when it parsed but is simply not handled.
    """

    type_name: str
    reason: str | None = None

    def __post_init__(self) -> None:
        validate_instance(self.type_name, str, "type_name")
        if self.reason is not None:
            validate_instance(self.reason, str, "reason")


ClassifiedMessage = (
    Post
    | PostDeletion
    | RelationshipEvent
    | PostWithheldNotice
    | AccountWithheldNotice
    | UnknownMessage
)
