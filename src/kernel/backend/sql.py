"""
Direct database backend over SQLAlchemy async sessions.

Implements the same table contract as the Supabase adapter against the
designs and profiles tables declared in src.kernel.models.
"""

import uuid
from typing import Any, Dict, List, Mapping, Optional, Sequence

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from src.config import Settings
from src.database import create_engine_for, create_session_maker, init_db
from src.kernel.backend.base import DesignBackend, Embed, Row
from src.kernel.backend.errors import classify_sqlalchemy_error
from src.kernel.errors import SchemaMismatch
from src.kernel.identity.jwt import decode_session_token
from src.kernel.models import Base
from src.logging_config import get_logger

logger = get_logger(__name__)


def _plain(value: Any) -> Any:
    if isinstance(value, uuid.UUID):
        return str(value)
    return value


def _coerce(column: sa.Column, value: Any) -> Any:
    """Convert text ids for Uuid columns; raises ValueError on malformed ids."""
    if value is not None and isinstance(column.type, sa.Uuid) and not isinstance(value, uuid.UUID):
        return uuid.UUID(str(value))
    return value


class SqlBackend(DesignBackend):
    """DesignBackend over a SQLAlchemy async session factory."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        *,
        metadata: sa.MetaData = Base.metadata,
        jwt_secret: Optional[str] = None,
        jwt_algorithm: str = "HS256",
        identity: Optional[str] = None,
        engine: Optional[AsyncEngine] = None,
    ):
        self._session_maker = session_maker
        self._metadata = metadata
        self._jwt_secret = jwt_secret
        self._jwt_algorithm = jwt_algorithm
        self._identity = identity
        self._engine = engine

    @classmethod
    def from_settings(cls, settings: Settings) -> "SqlBackend":
        engine = create_engine_for(settings.database_url, echo=settings.debug)
        return cls(
            create_session_maker(engine),
            jwt_secret=settings.supabase_jwt_secret or None,
            jwt_algorithm=settings.jwt_algorithm,
            engine=engine,
        )

    def bind(self, access_token: Optional[str]) -> "SqlBackend":
        identity = None
        if access_token and self._jwt_secret:
            identity = decode_session_token(access_token, self._jwt_secret, self._jwt_algorithm).sub
        return SqlBackend(
            self._session_maker,
            metadata=self._metadata,
            jwt_secret=self._jwt_secret,
            jwt_algorithm=self._jwt_algorithm,
            identity=identity,
        )

    async def init_schema(self) -> None:
        """Create the designs and profiles tables when this backend owns its engine."""
        if self._engine is not None:
            await init_db(self._engine)

    async def aclose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()

    async def current_identity(self) -> Optional[str]:
        return self._identity

    # --- schema lookup ---

    def _table(self, name: str) -> sa.Table:
        table = self._metadata.tables.get(name)
        if table is None:
            raise SchemaMismatch(f"Schema mismatch: table {name!r} is not defined")
        return table

    @staticmethod
    def _column(table: sa.Table, name: str) -> sa.Column:
        try:
            return table.c[name]
        except KeyError:
            raise SchemaMismatch(
                f"Schema mismatch: column {name!r} does not exist on {table.name!r}"
            ) from None

    def _columns(self, table: sa.Table, names: Sequence[str]) -> List[sa.Column]:
        if not names or "*" in names:
            return list(table.c)
        return [self._column(table, name) for name in names]

    def _where(self, table: sa.Table, criteria: Mapping[str, Any]) -> List[Any]:
        clauses = []
        for name, value in criteria.items():
            column = self._column(table, name)
            if value is None:
                clauses.append(column.is_(None))
            else:
                clauses.append(column == _coerce(column, value))
        return clauses

    # --- reads ---

    async def select(
        self,
        table: str,
        *,
        columns: Sequence[str] = ("*",),
        embeds: Sequence[Embed] = (),
        filters: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Row]:
        source = self._table(table)
        wanted = self._columns(source, columns)
        # Foreign keys are needed to resolve embeds even when not requested
        fetched = list(wanted)
        for embed in embeds:
            fk = self._column(source, embed.foreign_key)
            if fk.key not in {c.key for c in fetched}:
                fetched.append(fk)

        try:
            where = self._where(source, filters or {})
        except ValueError:
            # Malformed id can match nothing
            return []

        stmt = sa.select(*fetched).where(*where)
        if order_by:
            column = self._column(source, order_by)
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        if limit is not None:
            stmt = stmt.limit(limit)

        wanted_keys = {c.key for c in wanted}
        async with self._session_maker() as session:
            try:
                result = await session.execute(stmt)
                rows = [{k: _plain(v) for k, v in m.items()} for m in result.mappings()]
                for embed in embeds:
                    await self._attach(session, rows, embed)
            except (SQLAlchemyError, OSError) as exc:
                raise classify_sqlalchemy_error(exc) from exc

        embed_aliases = {e.alias for e in embeds}
        logger.debug("SQL select %s returned %d rows", table, len(rows))
        return [
            {k: v for k, v in row.items() if k in wanted_keys or k in embed_aliases}
            for row in rows
        ]

    async def _attach(self, session: AsyncSession, rows: List[Row], embed: Embed) -> None:
        """Put the referenced row of embed.table (or None) at row[embed.alias]."""
        target = self._table(embed.table)
        pk = list(target.primary_key.columns)[0]
        wanted = self._columns(target, embed.columns)
        fetched = wanted if pk.key in {c.key for c in wanted} else wanted + [pk]

        refs = {row[embed.foreign_key] for row in rows if row.get(embed.foreign_key) is not None}
        found: Dict[str, Row] = {}
        if refs:
            ids = [_coerce(pk, ref) for ref in refs]
            result = await session.execute(sa.select(*fetched).where(pk.in_(ids)))
            wanted_keys = {c.key for c in wanted}
            for m in result.mappings():
                record = {k: _plain(v) for k, v in m.items()}
                found[str(record[pk.key])] = {k: v for k, v in record.items() if k in wanted_keys}

        for row in rows:
            ref = row.get(embed.foreign_key)
            row[embed.alias] = found.get(str(ref)) if ref is not None else None

    # --- writes ---

    async def update(
        self,
        table: str,
        values: Mapping[str, Any],
        *,
        match: Mapping[str, Any],
    ) -> List[Row]:
        if not match:
            raise ValueError("update requires a match predicate")
        target = self._table(table)
        pk = list(target.primary_key.columns)[0]
        try:
            where = self._where(target, match)
            assignments = {
                self._column(target, name).key: _coerce(self._column(target, name), value)
                for name, value in values.items()
            }
        except ValueError:
            return []

        async with self._session_maker() as session:
            try:
                async with session.begin():
                    ids = (await session.execute(sa.select(pk).where(*where))).scalars().all()
                    if not ids:
                        return []
                    await session.execute(sa.update(target).where(pk.in_(ids)).values(**assignments))
                    result = await session.execute(sa.select(*target.c).where(pk.in_(ids)))
                    rows = [{k: _plain(v) for k, v in m.items()} for m in result.mappings()]
            except (SQLAlchemyError, OSError) as exc:
                raise classify_sqlalchemy_error(exc) from exc

        logger.debug("SQL update %s affected %d rows", table, len(rows))
        return rows
