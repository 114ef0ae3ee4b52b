"""
Shelter Service テスト用のフェイクとフィクスチャ

協調サービスはそれぞれ独立したフェイクに差し替える。
各フェイクは calls に呼び出しを記録するので、
「認可失敗後は何も呼ばれない」などを検証できる。
"""

import asyncio
import itertools
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID, uuid4

import pytest

from app.errors import BillingError
from app.models import (
    AuthorizationResult,
    Bill,
    BreedInfo,
    CatRecord,
    PriceHistory,
    PricePoint,
    Product,
)
from app.orchestrator import ShelterService
from app.store import InMemoryCatStore

VALID_SESSION = "valid-session"
USER_ID = UUID("11111111-1111-1111-1111-111111111111")
BREED_ID = UUID("22222222-2222-2222-2222-222222222222")
LISTED_FROM = datetime(2024, 1, 1, tzinfo=timezone.utc)

_listing_order = itertools.count()


class FakeAuthorizer:
    def __init__(self) -> None:
        self.calls: list[str] = []

    async def authorize(self, session_id: str) -> AuthorizationResult:
        self.calls.append(session_id)
        if session_id == VALID_SESSION:
            return AuthorizationResult(is_success=True, user_id=USER_ID)
        return AuthorizationResult(is_success=False)


class RecordingStore(InMemoryCatStore):
    def __init__(self, records: list[CatRecord] | None = None) -> None:
        super().__init__(records)
        self.calls: list[str] = []

    async def find(self, predicate):
        self.calls.append("find")
        return await super().find(predicate)

    async def write(self, record):
        self.calls.append("write")
        await super().write(record)

    async def delete(self, cat_id):
        self.calls.append("delete")
        await super().delete(cat_id)

    async def claim(self, cat_id):
        self.calls.append("claim")
        return await super().claim(cat_id)


class FakeBilling:
    def __init__(self) -> None:
        self.calls: list[str] = []
        self.products: dict[UUID, Product] = {}
        self.fail_add = False
        self.fail_sell = False

    async def add_product(self, product: Product) -> None:
        self.calls.append("add_product")
        # 実サービスと同じく呼び出し中に他のタスクへ制御を渡す
        await asyncio.sleep(0)
        if self.fail_add:
            raise BillingError()
        self.products[product.id] = product

    async def remove_product(self, product_id: UUID) -> None:
        self.calls.append("remove_product")
        self.products.pop(product_id, None)

    async def sell_product(self, product_id: UUID, price: Decimal) -> Bill:
        self.calls.append("sell_product")
        if self.fail_sell or product_id not in self.products:
            raise BillingError()
        return Bill(
            id=uuid4(),
            product_id=product_id,
            price=price,
            created_at=datetime.now(timezone.utc),
        )


class FakeBreedInfo:
    def __init__(self) -> None:
        self.calls: list[str] = []
        self.breeds = {
            "siamese": BreedInfo(breed_id=BREED_ID, breed_name="siamese", photo="siamese.jpg"),
        }

    async def find_by_breed_name(self, breed_name: str) -> BreedInfo | None:
        self.calls.append(breed_name)
        return self.breeds.get(breed_name)


class FakePriceHistory:
    def __init__(self, prices: list[PricePoint] | None = None) -> None:
        self.calls: list[UUID] = []
        self.prices = prices or []

    async def get_price_info(self, breed_id: UUID) -> PriceHistory:
        self.calls.append(breed_id)
        return PriceHistory(breed_id=breed_id, prices=list(self.prices))


class FakeEvents:
    def __init__(self) -> None:
        self.published: list[tuple[str, dict]] = []

    async def publish(self, event_type: str, payload: dict) -> None:
        self.published.append((event_type, payload))


def make_record(**overrides) -> CatRecord:
    data = {
        "id": uuid4(),
        "name": "Tama",
        "breed": "siamese",
        "breed_id": BREED_ID,
        "cat_photo": "tama.jpg",
        "breed_photo": "siamese.jpg",
        "price": Decimal("700"),
        "prices": [],
        "added_by": USER_ID,
        "listed_at": LISTED_FROM + timedelta(minutes=next(_listing_order)),
    }
    data.update(overrides)
    return CatRecord(**data)


@pytest.fixture
def cat() -> CatRecord:
    return make_record()


@pytest.fixture
def authorizer() -> FakeAuthorizer:
    return FakeAuthorizer()


@pytest.fixture
def store(cat) -> RecordingStore:
    return RecordingStore([cat])


@pytest.fixture
def billing() -> FakeBilling:
    return FakeBilling()


@pytest.fixture
def breed_info() -> FakeBreedInfo:
    return FakeBreedInfo()


@pytest.fixture
def price_history() -> FakePriceHistory:
    return FakePriceHistory()


@pytest.fixture
def events() -> FakeEvents:
    return FakeEvents()


@pytest.fixture
def shelter(authorizer, store, billing, breed_info, price_history, events) -> ShelterService:
    return ShelterService(
        authorizer=authorizer,
        store=store,
        billing=billing,
        breed_info=breed_info,
        price_history=price_history,
        events=events,
    )
