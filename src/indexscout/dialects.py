"""Database dialect capability model.

A static, immutable lookup of the index syntax each supported database
accepts. Every emission decision in the recommendation engine and the
statement builders goes through :func:`capabilities_for`.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from types import MappingProxyType
from typing import Mapping


class Dialect(str, Enum):
    """Target database dialect."""

    POSTGRES = "postgres"
    MYSQL = "mysql"
    SQLITE = "sqlite"

    @classmethod
    def parse(cls, value: str | Dialect) -> Dialect:
        """Resolve a user-supplied dialect name.

        Raises:
            ValueError: If the name is not a known dialect or alias.
        """
        if isinstance(value, Dialect):
            return value
        key = value.strip().lower()
        dialect = _ALIASES.get(key)
        if dialect is None:
            raise ValueError(f"Unsupported dialect: {value}")
        return dialect

    @property
    def label(self) -> str:
        return _LABELS[self]


class JoinType(str, Enum):
    """SQL join flavours recognised by the clause parser."""

    INNER = "INNER"
    LEFT = "LEFT"
    RIGHT = "RIGHT"
    FULL = "FULL"
    CROSS = "CROSS"


@dataclass(frozen=True)
class DialectCapabilities:
    """Index syntax features supported by one dialect.

    Attributes:
        dialect: The dialect these flags describe.
        include_supported: ``INCLUDE (...)`` covering columns.
        partial_supported: ``WHERE <predicate>`` partial (filtered) indexes.
        if_not_exists_supported: ``CREATE INDEX IF NOT EXISTS``.
        supported_join_types: Join types the engine can execute.
        transactional_ddl: ``CREATE INDEX`` can run inside BEGIN/COMMIT.
        mysql_version: Assumed MySQL major version (MySQL only).
    """

    dialect: Dialect
    include_supported: bool
    partial_supported: bool
    if_not_exists_supported: bool
    supported_join_types: frozenset[JoinType]
    transactional_ddl: bool = True
    mysql_version: int | None = None

    def supports_join(self, join_type: JoinType) -> bool:
        return join_type in self.supported_join_types


_ALIASES: Mapping[str, Dialect] = MappingProxyType(
    {
        "postgres": Dialect.POSTGRES,
        "postgresql": Dialect.POSTGRES,
        "pg": Dialect.POSTGRES,
        "mysql": Dialect.MYSQL,
        "mariadb": Dialect.MYSQL,
        "sqlite": Dialect.SQLITE,
        "sqlite3": Dialect.SQLITE,
    }
)

_LABELS: Mapping[Dialect, str] = MappingProxyType(
    {
        Dialect.POSTGRES: "PostgreSQL",
        Dialect.MYSQL: "MySQL",
        Dialect.SQLITE: "SQLite",
    }
)

DIALECT_CAPABILITIES: Mapping[Dialect, DialectCapabilities] = MappingProxyType(
    {
        Dialect.POSTGRES: DialectCapabilities(
            dialect=Dialect.POSTGRES,
            include_supported=True,
            partial_supported=True,
            if_not_exists_supported=True,
            supported_join_types=frozenset(
                {JoinType.INNER, JoinType.LEFT, JoinType.RIGHT, JoinType.FULL}
            ),
        ),
        Dialect.MYSQL: DialectCapabilities(
            dialect=Dialect.MYSQL,
            include_supported=True,
            partial_supported=False,
            if_not_exists_supported=False,
            supported_join_types=frozenset({JoinType.INNER, JoinType.LEFT, JoinType.RIGHT}),
            transactional_ddl=False,
            mysql_version=8,
        ),
        Dialect.SQLITE: DialectCapabilities(
            dialect=Dialect.SQLITE,
            include_supported=False,
            partial_supported=True,
            if_not_exists_supported=True,
            supported_join_types=frozenset({JoinType.INNER, JoinType.LEFT}),
        ),
    }
)


def capabilities_for(
    dialect: Dialect | str, mysql_version: int | None = None
) -> DialectCapabilities:
    """Return the capability flags for a dialect.

    Args:
        dialect: Dialect enum member or name.
        mysql_version: MySQL major version. Versions below 8 lack INCLUDE
            support; ignored for other dialects.

    Returns:
        The immutable :class:`DialectCapabilities` entry.
    """
    resolved = Dialect.parse(dialect)
    caps = DIALECT_CAPABILITIES[resolved]
    if (
        resolved is Dialect.MYSQL
        and mysql_version is not None
        and mysql_version != caps.mysql_version
    ):
        caps = replace(caps, include_supported=mysql_version >= 8, mysql_version=mysql_version)
    return caps
