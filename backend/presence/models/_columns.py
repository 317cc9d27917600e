from __future__ import annotations

import enum
from typing import Type

from sqlalchemy import Enum


def enum_column(enum_cls: Type[enum.Enum], name: str) -> Enum:
    """String-backed enum column storing the member values (``checked-in``)."""
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        length=20,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )
