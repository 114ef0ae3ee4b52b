"""
Shelter Service — 協調サービスの HTTP クライアント

Authorization / Billing / Cat Info / Cat Exchange の各サービスを
httpx で呼び出す。レスポンスはドメインモデルに変換し、
失敗は errors.py の型付き例外に変換する（相手の内部情報は返さない）。

  接続エラー・5xx        → CollaboratorError
  Billing の失敗        → BillingError（接続エラー・5xx も含め、取引が完了できない）
  Authorization 401/403 → 認可失敗の AuthorizationResult
"""

import logging
from decimal import Decimal
from urllib.parse import quote
from uuid import UUID

import httpx

from .errors import BillingError, CollaboratorError
from .models import (
    AuthorizationResult,
    Bill,
    BreedInfo,
    PriceHistory,
    Product,
)

logger = logging.getLogger(__name__)


class ServiceClient:
    """呼び出しごとに AsyncClient を開く HTTP クライアントの基底クラス"""

    service_name = "service"

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self.transport,
        ) as client:
            try:
                resp = await client.request(method, path, **kwargs)
            except httpx.RequestError as e:
                logger.warning("%s request %s %s failed: %s", self.service_name, method, path, e)
                raise CollaboratorError(f"{self.service_name} unavailable") from e

        if resp.status_code >= 500:
            logger.warning(
                "%s returned %d for %s %s", self.service_name, resp.status_code, method, path
            )
            raise CollaboratorError(f"{self.service_name} unavailable")
        return resp

    def _raise_for_status(self, resp: httpx.Response) -> None:
        try:
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise CollaboratorError(f"{self.service_name} rejected the request") from e


class HttpSessionAuthorizer(ServiceClient):
    service_name = "authorization-service"

    async def authorize(self, session_id: str) -> AuthorizationResult:
        resp = await self._send(
            "POST", "/sessions/authorize", json={"session_id": session_id}
        )
        if resp.status_code in (401, 403):
            return AuthorizationResult(is_success=False)
        self._raise_for_status(resp)
        return AuthorizationResult.model_validate(resp.json())


class HttpBillingClient(ServiceClient):
    service_name = "billing-service"

    async def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        # 課金サービスに届かない・5xx も「販売できなかった」として扱う
        try:
            return await super()._send(method, path, **kwargs)
        except CollaboratorError as e:
            raise BillingError() from e

    async def add_product(self, product: Product) -> None:
        resp = await self._send(
            "POST", "/products", json=product.model_dump(mode="json")
        )
        self._raise_for_billing(resp)

    async def remove_product(self, product_id: UUID) -> None:
        resp = await self._send("DELETE", f"/products/{product_id}")
        if resp.status_code == 404:
            return
        self._raise_for_billing(resp)

    async def sell_product(self, product_id: UUID, price: Decimal) -> Bill:
        resp = await self._send(
            "POST", f"/products/{product_id}/sell", json={"price": str(price)}
        )
        self._raise_for_billing(resp)
        return Bill.model_validate(resp.json())

    def _raise_for_billing(self, resp: httpx.Response) -> None:
        if resp.is_error:
            logger.info("Billing rejected request: %d %s", resp.status_code, resp.text)
            raise BillingError()


class HttpBreedInfoClient(ServiceClient):
    service_name = "cat-info-service"

    async def find_by_breed_name(self, breed_name: str) -> BreedInfo | None:
        resp = await self._send("GET", f"/breeds/{quote(breed_name, safe='')}")
        if resp.status_code == 404:
            return None
        self._raise_for_status(resp)
        return BreedInfo.model_validate(resp.json())


class HttpPriceHistoryClient(ServiceClient):
    service_name = "cat-exchange-service"

    async def get_price_info(self, breed_id: UUID) -> PriceHistory:
        resp = await self._send("GET", f"/breeds/{breed_id}/prices")
        if resp.status_code == 404:
            # 価格履歴のない品種
            return PriceHistory(breed_id=breed_id)
        self._raise_for_status(resp)
        return PriceHistory.model_validate(resp.json())
