"""
Immutable stream account with database serialization.

An [Account][feedbrotr.models.account.Account] is referenced, never owned,
by posts and relationship events. Its ``protected`` flag is the input of the
visibility filter: content authored by a protected account is never
persisted.

See Also:
    [feedbrotr.models.post][]: Posts carry their author as an ``Account``.
    [Brotr.insert_account()][feedbrotr.core.brotr.Brotr.insert_account]:
        Persists accounts using
        [AccountDbParams][feedbrotr.models.account.AccountDbParams].
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple

from ._validation import validate_bool, validate_id, validate_str_no_null


class AccountDbParams(NamedTuple):
    """Positional parameters for the ``account_insert`` stored procedure.

    Attributes:
        id: Numeric account identifier.
        screen_name: Display handle (without the leading ``@``).
        name: Free-form display name (may be empty).
        protected: Whether the account restricts its visibility.
    """

    id: int
    screen_name: str
    name: str
    protected: bool


@dataclass(frozen=True, slots=True)
class Account:
    """A stream account (user).

    Attributes:
        id: Numeric account identifier.
        screen_name: Display handle.
        protected: Visibility flag; ``True`` means restricted.
        name: Display name, empty when the payload omits it.

    Raises:
        TypeError: If a field has the wrong type.
        ValueError: If ``id`` is negative or a string contains null bytes.

    Examples:
        ```python
        account = Account(id=12, screen_name="jack", protected=False)
        account.to_db_params()  # AccountDbParams(id=12, screen_name='jack', ...)
        ```
    """

    id: int
    screen_name: str
    protected: bool = False
    name: str = ""

    def __post_init__(self) -> None:
        validate_id(self.id, "id")
        validate_str_no_null(self.screen_name, "screen_name")
        validate_bool(self.protected, "protected")
        validate_str_no_null(self.name, "name")

    def to_db_params(self) -> AccountDbParams:
        """Return positional parameters for the ``account_insert`` procedure."""
        return AccountDbParams(
            id=self.id,
            screen_name=self.screen_name,
            name=self.name,
            protected=self.protected,
        )
