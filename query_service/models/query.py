"""Query value object.

A Query is the only thing that can be submitted to the RequestSerializer,
so validation happens once, here, before anything is enqueued.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from query_service.core.exceptions import ValidationError


@dataclass(frozen=True)
class Query:
    """Immutable natural-language query.

    Attributes:
        text: Query text exactly as the caller sent it. Guaranteed to contain
            at least one non-whitespace character.
    """

    text: str

    def __post_init__(self) -> None:
        if not isinstance(self.text, str) or not self.text.strip():
            raise ValidationError()

    @classmethod
    def parse(cls, raw: Any) -> Query:
        """Build a Query from an untrusted value.

        Args:
            raw: Value taken from the request body (may be None).

        Returns:
            Validated Query.

        Raises:
            ValidationError: If raw is missing, not a string, or blank.
        """
        if raw is None:
            raise ValidationError()
        return cls(text=raw)
