"""
Shelter Service — 猫のドキュメントストア

猫レコードを猫 ID をキーとするコレクションとして保存する。
述語による読み出し、レコード全体の書き込み・削除、そして
二重販売を防ぐための claim（存在確認と削除をアトミックに行う）を提供する。

  InMemoryCatStore : ローカル実行・テスト用
  SqlCatStore      : SQLAlchemy (async) でドキュメントを JSON 保存
"""

import asyncio
import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession
from sqlalchemy.orm import sessionmaker

from .collaborators import CatPredicate
from .errors import CollaboratorError
from .models import CatRecord


class InMemoryCatStore:
    def __init__(self, records: list[CatRecord] | None = None) -> None:
        self._records: dict[UUID, CatRecord] = {}
        self._lock = asyncio.Lock()
        for record in records or []:
            self._records[record.id] = record.model_copy(deep=True)

    async def find(self, predicate: CatPredicate) -> list[CatRecord]:
        async with self._lock:
            # 呼び出し側には一時的なコピーだけを渡す
            records = sorted(self._records.values(), key=lambda r: r.listed_at)
            return [record.model_copy(deep=True) for record in records if predicate(record)]

    async def write(self, record: CatRecord) -> None:
        async with self._lock:
            self._records[record.id] = record.model_copy(deep=True)

    async def delete(self, cat_id: UUID) -> None:
        async with self._lock:
            self._records.pop(cat_id, None)

    async def claim(self, cat_id: UUID) -> CatRecord | None:
        async with self._lock:
            return self._records.pop(cat_id, None)


CREATE_TABLE_SQL = """
    CREATE TABLE IF NOT EXISTS shelter_cats (
        id          VARCHAR(36) PRIMARY KEY,
        document    TEXT NOT NULL,
        created_at  TIMESTAMP WITH TIME ZONE NOT NULL
    )
"""


async def init_schema(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.execute(text(CREATE_TABLE_SQL))


class SqlCatStore:
    """
    SQL テーブル shelter_cats にレコードを JSON ドキュメントとして保存する。
    created_at には listed_at を入れ、一覧はその順に返す。

    claim は DELETE ... RETURNING で行うため、同じ猫を同時に
    claim しても行を受け取れるのは1人だけ。
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self.session_factory = session_factory

    async def find(self, predicate: CatPredicate) -> list[CatRecord]:
        async with self._session() as session:
            result = await session.execute(
                text("SELECT document FROM shelter_cats ORDER BY created_at ASC, id ASC"),
            )
            records = [_load(row.document) for row in result.fetchall()]
        return [record for record in records if predicate(record)]

    async def write(self, record: CatRecord) -> None:
        async with self._session() as session:
            updated = await session.execute(
                text("UPDATE shelter_cats SET document = :doc WHERE id = :id"),
                {"id": str(record.id), "doc": _dump(record)},
            )
            if updated.rowcount == 0:
                await session.execute(
                    text("""
                        INSERT INTO shelter_cats (id, document, created_at)
                        VALUES (:id, :doc, :listed_at)
                    """),
                    {
                        "id": str(record.id),
                        "doc": _dump(record),
                        "listed_at": record.listed_at,
                    },
                )
            await session.commit()

    async def delete(self, cat_id: UUID) -> None:
        async with self._session() as session:
            await session.execute(
                text("DELETE FROM shelter_cats WHERE id = :id"),
                {"id": str(cat_id)},
            )
            await session.commit()

    async def claim(self, cat_id: UUID) -> CatRecord | None:
        async with self._session() as session:
            result = await session.execute(
                text("DELETE FROM shelter_cats WHERE id = :id RETURNING document"),
                {"id": str(cat_id)},
            )
            row = result.fetchone()
            await session.commit()
        if not row:
            return None
        return _load(row.document)

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        # DB エラーは協調サービスの失敗として扱う
        try:
            async with self.session_factory() as session:
                yield session
        except SQLAlchemyError as e:
            raise CollaboratorError("Cat store unavailable") from e


def _dump(record: CatRecord) -> str:
    return record.model_dump_json()


def _load(document: str | dict) -> CatRecord:
    if isinstance(document, str):
        document = json.loads(document)
    return CatRecord.model_validate(document)
