"""
Visibility filter applied before any persistence call.

A message is *restricted* when replicating it would expose content that its
author or the event type does not make public. Restricted messages are
dropped by the dispatcher without touching the database.

The policy is fail-closed: a relationship event kind that is neither in
[PUBLIC_EVENT_KINDS][feedbrotr.models.constants.PUBLIC_EVENT_KINDS] nor in
[RESTRICTED_EVENT_KINDS][feedbrotr.models.constants.RESTRICTED_EVENT_KINDS]
is restricted and reported with an ``unknown_event_kind`` warning so that
operators can extend the classification.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from feedbrotr.models import PUBLIC_EVENT_KINDS, RESTRICTED_EVENT_KINDS, Post, RelationshipEvent


if TYPE_CHECKING:
    from feedbrotr.core.logger import Logger
    from feedbrotr.models import ClassifiedMessage


def _event_actors_protected(event: RelationshipEvent) -> bool:
    return (
        (event.source is not None and event.source.protected)
        or (event.target is not None and event.target.protected)
        or (event.target_object is not None and event.target_object.user.protected)
    )


def is_restricted(message: ClassifiedMessage, logger: Logger) -> bool:
    """Return whether *message* must be dropped without being persisted.

    Args:
        message: The decoded message.
        logger: Receives the ``unknown_event_kind`` warning.

    Returns:
        ``True`` for a post by a protected author, for a relationship event
        involving a protected account or a protected author's post, and for
        private or unrecognised event kinds. ``False`` otherwise.
    """
    match message:
        case Post():
            return message.user.protected
        case RelationshipEvent():
            if _event_actors_protected(message):
                return True
            if message.event in RESTRICTED_EVENT_KINDS:
                return True
            if message.event in PUBLIC_EVENT_KINDS:
                return False
            logger.warning("unknown_event_kind", event=message.event)
            return True
        case _:
            return False
