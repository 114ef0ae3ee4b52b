"""
Shelter Orchestrator — 保護猫シェルターのファサード

オーケストレーターは業務状態を持たない。永続状態はすべて
ドキュメントストアにあり、各操作は協調サービスを決まった順番で呼ぶ。

  すべての操作:
  ┌─────────────────────────────────────────────────────────┐
  │  0. Authorization Service でセッションを検証              │
  │     └─ 失敗 → AuthorizationError（以降は何も呼ばない）   │
  │  1.. 操作ごとのステップを順番に await                     │
  └─────────────────────────────────────────────────────────┘

  猫の購入 (Buy Cat Saga):
  ┌─────────────────────────────────────────────────────────┐
  │  1. ストアから猫を取得       (なければ CatNotFoundError)   │
  │  2. Billing に商品を登録     補償: 商品登録を取り消す      │
  │  3. ストアから猫を claim     補償: レコードを戻す          │
  │     └─ 他の購入者が先に claim → CatNotFoundError          │
  │  4. Billing で販売           失敗 → 3, 2 を補償            │
  └─────────────────────────────────────────────────────────┘
"""

import logging
from uuid import UUID

from .cat_record import build_cat_record
from .collaborators import (
    BillingClient,
    BreedInfoClient,
    CatStore,
    EventPublisher,
    PriceHistoryClient,
    SessionAuthorizer,
)
from .errors import (
    AuthorizationError,
    CatNotFoundError,
    InvalidRequestError,
    ShelterError,
    UnknownBreedError,
)
from .models import AddCatRequest, Bill, Cat, CatRecord, Product
from .saga import Saga

logger = logging.getLogger(__name__)


class ShelterService:
    """シェルターのオーケストレーター。協調サービスはすべてコンストラクタで受け取る。"""

    def __init__(
        self,
        authorizer: SessionAuthorizer,
        store: CatStore,
        billing: BillingClient,
        breed_info: BreedInfoClient,
        price_history: PriceHistoryClient,
        events: EventPublisher | None = None,
    ):
        self.authorizer = authorizer
        self.store = store
        self.billing = billing
        self.breed_info = breed_info
        self.price_history = price_history
        self.events = events

    # ── 一覧・お気に入り ─────────────────────────

    async def get_cats(self, session_id: str, skip: int, limit: int) -> list[Cat]:
        await self._authorize(session_id)
        if skip < 0 or limit < 0:
            raise InvalidRequestError("skip and limit must be non-negative")

        records = await self.store.find(lambda cat: True)
        return [record.to_cat() for record in records[skip:skip + limit]]

    async def add_cat_to_favourites(self, session_id: str, cat_id: UUID) -> None:
        await self._authorize(session_id)
        await self._set_favourite(cat_id, True)

    async def get_favourite_cats(self, session_id: str) -> list[Cat]:
        await self._authorize(session_id)
        records = await self.store.find(lambda cat: cat.is_favourite)
        return [record.to_cat() for record in records]

    async def delete_cat_from_favourites(self, session_id: str, cat_id: UUID) -> None:
        await self._authorize(session_id)
        await self._set_favourite(cat_id, False)

    # ── 購入 ─────────────────────────────────────

    async def buy_cat(self, session_id: str, cat_id: UUID) -> Bill:
        """
        猫を購入する。

        商品登録・在庫からの削除・販売を1つの Saga として実行し、
        途中で失敗したら完了済みのステップを補償する。
        """
        user_id = await self._authorize(session_id)
        cat = await self._get_record(cat_id)
        product = Product(breed_id=cat.breed_id, cat_id=cat.id)

        async def claim_cat() -> CatRecord:
            claimed = await self.store.claim(cat.id)
            if claimed is None:
                raise CatNotFoundError()
            return claimed

        saga = (
            Saga(f"BuyCat[{cat.id}]")
            .step(
                "AddProduct",
                lambda: self.billing.add_product(product),
                lambda _: self.billing.remove_product(product.id),
            )
            .step("ClaimCat", claim_cat, self.store.write)
            .step("SellProduct", lambda: self.billing.sell_product(product.id, cat.price))
        )

        try:
            _, _, bill = await saga.run()
        except ShelterError:
            event_type = "BuyCatCompensated" if saga.compensated else "BuyCatFailed"
            await self._publish_saga_event(event_type, cat.id, saga)
            raise

        logger.info("Cat %s sold to user %s for %s", cat.id, user_id, bill.price)
        await self._publish_saga_event("CatSold", cat.id, saga, bill_id=str(bill.id))
        return bill

    # ── 登録 ─────────────────────────────────────

    async def add_cat(self, session_id: str, request: AddCatRequest) -> UUID:
        """
        猫を登録する。

        1. 品種名から品種情報を取得（見つからなければ UnknownBreedError）
        2. 品種の価格履歴を取得
        3. レコードを組み立てて1回で書き込む
        """
        user_id = await self._authorize(session_id)

        breed_info = await self.breed_info.find_by_breed_name(request.breed)
        if breed_info is None:
            raise UnknownBreedError(f"Unknown breed: {request.breed}")

        price_history = await self.price_history.get_price_info(breed_info.breed_id)
        record = build_cat_record(user_id, request, breed_info, price_history)
        await self.store.write(record)

        logger.info("Cat %s (%s) added by user %s", record.id, record.breed, user_id)
        await self._publish("CatAdded", {
            "cat_id": str(record.id),
            "breed_id": str(record.breed_id),
            "price": str(record.price),
            "added_by": str(user_id),
        })
        return record.id

    # ── 内部処理 ─────────────────────────────────

    async def _authorize(self, session_id: str) -> UUID:
        result = await self.authorizer.authorize(session_id)
        if not result.is_success or result.user_id is None:
            raise AuthorizationError()
        return result.user_id

    async def _get_record(self, cat_id: UUID) -> CatRecord:
        records = await self.store.find(lambda cat: cat.id == cat_id)
        if not records:
            raise CatNotFoundError()
        return records[0]

    async def _set_favourite(self, cat_id: UUID, is_favourite: bool) -> None:
        record = await self._get_record(cat_id)
        if record.is_favourite == is_favourite:
            return
        await self.store.write(record.model_copy(update={"is_favourite": is_favourite}))
        logger.info("Cat %s favourite=%s", cat_id, is_favourite)

    async def _publish_saga_event(
        self,
        event_type: str,
        cat_id: UUID,
        saga: Saga,
        **extra,
    ) -> None:
        await self._publish(event_type, {
            "cat_id": str(cat_id),
            "saga_log": saga.saga_log,
            **extra,
        })

    async def _publish(self, event_type: str, payload: dict) -> None:
        if self.events is None:
            return
        await self.events.publish(event_type, payload)
