"""
Shelter Service — 協調サービスのインターフェース

オーケストレーターはこれらの Protocol にだけ依存する。
HTTP 実装は clients.py、ストア実装は store.py、
テストでは個別にフェイクへ差し替える。

キャンセルは asyncio のタスクキャンセルで伝播する。
各呼び出しは呼び出し元のタスク内で await されるため、
リクエストがキャンセルされると実行中の呼び出しも中断される。
"""

from collections.abc import Callable
from decimal import Decimal
from typing import Any, Protocol
from uuid import UUID

from .models import (
    AuthorizationResult,
    Bill,
    BreedInfo,
    CatRecord,
    PriceHistory,
    Product,
)

CatPredicate = Callable[[CatRecord], bool]


class SessionAuthorizer(Protocol):
    async def authorize(self, session_id: str) -> AuthorizationResult: ...


class CatStore(Protocol):
    async def find(self, predicate: CatPredicate) -> list[CatRecord]: ...

    async def write(self, record: CatRecord) -> None: ...

    async def delete(self, cat_id: UUID) -> None: ...

    async def claim(self, cat_id: UUID) -> CatRecord | None:
        """レコードがまだ存在すれば取り出して削除する(アトミック)。"""
        ...


class BillingClient(Protocol):
    async def add_product(self, product: Product) -> None: ...

    async def remove_product(self, product_id: UUID) -> None: ...

    async def sell_product(self, product_id: UUID, price: Decimal) -> Bill: ...


class BreedInfoClient(Protocol):
    async def find_by_breed_name(self, breed_name: str) -> BreedInfo | None: ...


class PriceHistoryClient(Protocol):
    async def get_price_info(self, breed_id: UUID) -> PriceHistory: ...


class EventPublisher(Protocol):
    async def publish(self, event_type: str, payload: dict[str, Any]) -> None: ...
