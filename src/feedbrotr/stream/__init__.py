"""Stream payload decoding.

Turns the raw bytes of an [Envelope][feedbrotr.models.messages.Envelope]
into one variant of
[ClassifiedMessage][feedbrotr.models.messages.ClassifiedMessage]. Depends
only on ``feedbrotr.models``.

See Also:
    [decode_message()][feedbrotr.stream.decode.decode_message]: Entry point.
    [FieldSpec][feedbrotr.stream.parsing.FieldSpec]: Tolerant typed-field
        parsing shared by all decoders.
"""

from .decode import MAX_DECODE_DEPTH, decode_account, decode_message, decode_post
from .parsing import FieldSpec, parse_fields


__all__ = [
    "MAX_DECODE_DEPTH",
    "FieldSpec",
    "decode_account",
    "decode_message",
    "decode_post",
    "parse_fields",
]
