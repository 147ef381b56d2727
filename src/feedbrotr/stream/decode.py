"""
Classification of raw stream payloads into typed messages.

[decode_message()][feedbrotr.stream.decode.decode_message] never raises:
invalid JSON (including documents nested past the interpreter recursion
limit), a payload that is not a JSON object, and a known message kind
missing its required fields all decode to an
[UnknownMessage][feedbrotr.models.messages.UnknownMessage] carrying a
``reason``. A well-formed payload of a kind the pipeline does not handle
(``friends``, ``limit``, ``disconnect``, ...) decodes to an
``UnknownMessage`` without a reason.

Classification is by top-level key, checked in this order:

| Key                             | Variant                 |
|---------------------------------|-------------------------|
| ``delete``                      | ``PostDeletion``        |
| ``status_withheld``             | ``PostWithheldNotice``  |
| ``user_withheld``               | ``AccountWithheldNotice`` |
| ``event``                       | ``RelationshipEvent``   |
| ``text``/``full_text`` + ``id`` + ``user`` | ``Post``     |

Embedded posts are decoded recursively down to
[MAX_DECODE_DEPTH][feedbrotr.stream.decode.MAX_DECODE_DEPTH]; embeds below
that depth are dropped.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import TYPE_CHECKING, Any, Final

from feedbrotr.models import (
    Account,
    AccountWithheldNotice,
    Entities,
    ExtendedPost,
    MediaItem,
    Post,
    PostDeletion,
    PostWithheldNotice,
    RelationshipEvent,
    UnknownMessage,
)

from .parsing import FieldSpec, parse_fields


if TYPE_CHECKING:
    from collections.abc import Callable

    from feedbrotr.models import ClassifiedMessage


MAX_DECODE_DEPTH: Final[int] = 32

_CREATED_AT_FORMAT: Final[str] = "%a %b %d %H:%M:%S %z %Y"

_ACCOUNT_SPEC = FieldSpec(
    id_fields=frozenset({"id", "id_str"}),
    str_fields=frozenset({"screen_name", "name"}),
    bool_fields=frozenset({"protected"}),
)

_MEDIA_SPEC = FieldSpec(
    id_fields=frozenset({"id", "id_str", "source_status_id", "source_status_id_str"}),
    str_fields=frozenset({"media_url_https", "media_url", "type"}),
)

_POST_SPEC = FieldSpec(
    id_fields=frozenset({"id", "id_str"}),
    str_fields=frozenset({"text", "full_text", "created_at"}),
    object_fields=frozenset(
        {
            "user",
            "retweeted_status",
            "quoted_status",
            "entities",
            "extended_entities",
            "extended_tweet",
        }
    ),
)

_EXTENDED_SPEC = FieldSpec(
    str_fields=frozenset({"full_text"}),
    object_fields=frozenset({"entities", "extended_entities"}),
)

_DELETION_SPEC = FieldSpec(id_fields=frozenset({"id", "id_str", "user_id", "user_id_str"}))

_WITHHELD_SPEC = FieldSpec(
    id_fields=frozenset({"id", "id_str", "user_id", "user_id_str"}),
    str_list_fields=frozenset({"withheld_in_countries"}),
)

_EVENT_SPEC = FieldSpec(
    str_fields=frozenset({"event"}),
    object_fields=frozenset({"source", "target", "target_object"}),
)


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def _require_id(fields: dict[str, Any], name: str, where: str) -> int:
    value = fields.get(name, fields.get(f"{name}_str"))
    if value is None:
        raise ValueError(f"{where}.{name} missing")
    return int(value)


def _parse_created_at(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(datetime.strptime(value, _CREATED_AT_FORMAT).timestamp())
    except ValueError:
        return None


def _serialize(data: dict[str, Any]) -> str:
    return json.dumps(data, ensure_ascii=False, separators=(",", ":"))


def _looks_like_post(data: dict[str, Any]) -> bool:
    return ("text" in data or "full_text" in data) and "user" in data and (
        "id" in data or "id_str" in data
    )


# ---------------------------------------------------------------------------
# Object decoders
# ---------------------------------------------------------------------------


def decode_account(data: dict[str, Any]) -> Account:
    """Decode a user object.

    Raises:
        ValueError: If the object has no usable ``id``.
    """
    fields = parse_fields(data, _ACCOUNT_SPEC)
    return Account(
        id=_require_id(fields, "id", "user"),
        screen_name=fields.get("screen_name", ""),
        protected=fields.get("protected", False),
        name=fields.get("name", ""),
    )


def _decode_media_item(data: dict[str, Any]) -> MediaItem | None:
    fields = parse_fields(data, _MEDIA_SPEC)
    media_id = fields.get("id", fields.get("id_str"))
    url = fields.get("media_url_https", fields.get("media_url"))
    if media_id is None or not url:
        return None
    return MediaItem(
        id=media_id,
        media_url=url,
        source_status_id=fields.get("source_status_id", fields.get("source_status_id_str", 0)),
        type=fields.get("type", "photo"),
    )


def _decode_entities(data: dict[str, Any] | None) -> Entities | None:
    if data is None:
        return None
    media = data.get("media")
    if not isinstance(media, list):
        return Entities()
    items = (_decode_media_item(m) for m in media if isinstance(m, dict))
    return Entities(media=tuple(item for item in items if item is not None))


def decode_post(data: dict[str, Any], depth: int = 0) -> Post:
    """Decode a post object and, within the depth bound, its embedded posts.

    Raises:
        ValueError: If the post or an embedded post lacks ``id`` or ``user``.
    """
    fields = parse_fields(data, _POST_SPEC)
    user = fields.get("user")
    if user is None:
        raise ValueError("post.user missing")

    retweeted = quoted = None
    if depth < MAX_DECODE_DEPTH:
        if "retweeted_status" in fields:
            retweeted = decode_post(fields["retweeted_status"], depth + 1)
        if "quoted_status" in fields:
            quoted = decode_post(fields["quoted_status"], depth + 1)

    extended = None
    if "extended_tweet" in fields:
        ext = parse_fields(fields["extended_tweet"], _EXTENDED_SPEC)
        extended = ExtendedPost(
            full_text=ext.get("full_text", ""),
            entities=_decode_entities(ext.get("entities")),
            extended_entities=_decode_entities(ext.get("extended_entities")),
        )

    return Post(
        id=_require_id(fields, "id", "post"),
        user=decode_account(user),
        text=fields.get("text", fields.get("full_text", "")),
        created_at=_parse_created_at(fields.get("created_at")),
        retweeted_status=retweeted,
        quoted_status=quoted,
        entities=_decode_entities(fields.get("entities")),
        extended_entities=_decode_entities(fields.get("extended_entities")),
        extended_tweet=extended,
        raw=_serialize(data),
    )


# ---------------------------------------------------------------------------
# Message decoders
# ---------------------------------------------------------------------------


def _nested(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key)
    if not isinstance(value, dict):
        raise ValueError(f"{key} is not an object")
    return value


def _decode_deletion(data: dict[str, Any]) -> PostDeletion:
    status = _nested(_nested(data, "delete"), "status")
    fields = parse_fields(status, _DELETION_SPEC)
    return PostDeletion(
        id=_require_id(fields, "id", "delete.status"),
        user_id=_require_id(fields, "user_id", "delete.status"),
    )


def _decode_post_withheld(data: dict[str, Any]) -> PostWithheldNotice:
    fields = parse_fields(_nested(data, "status_withheld"), _WITHHELD_SPEC)
    return PostWithheldNotice(
        id=_require_id(fields, "id", "status_withheld"),
        user_id=_require_id(fields, "user_id", "status_withheld"),
        withheld_in_countries=tuple(fields.get("withheld_in_countries", ())),
    )


def _decode_account_withheld(data: dict[str, Any]) -> AccountWithheldNotice:
    fields = parse_fields(_nested(data, "user_withheld"), _WITHHELD_SPEC)
    return AccountWithheldNotice(
        id=_require_id(fields, "id", "user_withheld"),
        withheld_in_countries=tuple(fields.get("withheld_in_countries", ())),
    )


def _decode_event(data: dict[str, Any]) -> RelationshipEvent:
    fields = parse_fields(data, _EVENT_SPEC)
    if "event" not in fields:
        raise ValueError("event is not a string")
    source = fields.get("source")
    target = fields.get("target")
    # target_object is a list for list_* events; only posts are kept.
    target_object = fields.get("target_object")
    return RelationshipEvent(
        event=fields["event"],
        source=decode_account(source) if source is not None else None,
        target=decode_account(target) if target is not None else None,
        target_object=(
            decode_post(target_object, 1)
            if target_object is not None and _looks_like_post(target_object)
            else None
        ),
    )


_DECODERS: tuple[
    tuple[str, Callable[[dict[str, Any]], bool], Callable[[dict[str, Any]], ClassifiedMessage]],
    ...,
] = (
    ("delete", lambda d: "delete" in d, _decode_deletion),
    ("status_withheld", lambda d: "status_withheld" in d, _decode_post_withheld),
    ("user_withheld", lambda d: "user_withheld" in d, _decode_account_withheld),
    ("event", lambda d: "event" in d, _decode_event),
    ("post", _looks_like_post, decode_post),
)


def decode_message(payload: bytes) -> ClassifiedMessage:
    """Classify one raw stream payload.

    Args:
        payload: The envelope payload, a UTF-8 JSON document.

    Returns:
        The decoded variant. Never raises for malformed input; see the
        module documentation for the classification rules.
    """
    try:
        data = json.loads(payload)
    except (RecursionError, ValueError) as e:
        return UnknownMessage(type_name="invalid_json", reason=str(e))

    if not isinstance(data, dict):
        return UnknownMessage(type_name=type(data).__name__, reason="payload is not a JSON object")

    for kind, matches, decoder in _DECODERS:
        if matches(data):
            try:
                return decoder(data)
            except (RecursionError, TypeError, ValueError) as e:
                return UnknownMessage(type_name=kind, reason=str(e))

    return UnknownMessage(type_name=next(iter(data), "empty"))
