"""Column types shared by the models."""

from enum import Enum as PyEnum
from typing import Type

from sqlalchemy import BigInteger, Integer, Enum as SQLEnum

# SQLite only autoincrements INTEGER PRIMARY KEY columns
IdType = BigInteger().with_variant(Integer(), "sqlite")


def enum_type(enum_cls: Type[PyEnum]) -> SQLEnum:
    """String-backed enum storing member values, so partial indexes can match them."""
    return SQLEnum(
        enum_cls,
        native_enum=False,
        length=50,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )
