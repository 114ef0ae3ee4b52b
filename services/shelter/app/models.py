"""
Shelter Service — ドメインモデル

猫の公開用レコード(Cat)と、ストアに保存される形(CatRecord)、
各協調サービスとやり取りする値オブジェクトを定義する。
"""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class PricePoint(BaseModel):
    """ある日付の品種価格"""
    date: datetime
    price: Decimal


class Cat(BaseModel):
    """利用者に返す猫の情報。prices は新しい順。"""
    id: UUID
    name: str
    breed: str
    breed_id: UUID
    cat_photo: str | None = None
    breed_photo: str | None = None
    price: Decimal
    prices: list[PricePoint] = Field(default_factory=list)
    added_by: UUID


class CatRecord(Cat):
    """
    ドキュメントストアに保存される猫。お気に入りフラグを持つ。

    listed_at は一覧の並び順。購入の補償でレコードを戻しても変わらない。
    """
    is_favourite: bool = False
    listed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_cat(self) -> Cat:
        return Cat.model_validate(self.model_dump(exclude={"is_favourite", "listed_at"}))


class AddCatRequest(BaseModel):
    name: str
    breed: str
    photo: str | None = None


class AuthorizationResult(BaseModel):
    is_success: bool
    user_id: UUID | None = None


class BreedInfo(BaseModel):
    breed_id: UUID
    breed_name: str = ""
    photo: str | None = None


class PriceHistory(BaseModel):
    """価格サービスが返す履歴(古い順)"""
    breed_id: UUID
    prices: list[PricePoint] = Field(default_factory=list)


class Product(BaseModel):
    """
    課金サービスに登録する商品。

    id は購入の試行ごとに発行する。補償で商品登録を取り消すとき、
    同じ猫に対する別の試行の商品を消さないようにするため。
    """
    id: UUID = Field(default_factory=uuid4)
    breed_id: UUID
    cat_id: UUID


class Bill(BaseModel):
    """販売完了時に課金サービスが返す請求書"""
    id: UUID
    product_id: UUID
    price: Decimal
    created_at: datetime | None = None
