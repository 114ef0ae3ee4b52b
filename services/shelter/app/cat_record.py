"""
Shelter Service — 猫レコードの組み立て

リクエスト・品種情報・価格履歴の3つから、保存用の CatRecord を
メモリ上で組み立てる。書き込みは組み立て完了後の1回だけ。
"""

from decimal import Decimal
from uuid import UUID, uuid4

from .models import AddCatRequest, BreedInfo, CatRecord, PriceHistory

BASE_PRICE = Decimal(1000)


def build_cat_record(
    user_id: UUID,
    request: AddCatRequest,
    breed_info: BreedInfo,
    price_history: PriceHistory,
) -> CatRecord:
    """
    新しい猫レコードを作る。

    価格履歴は届いた順序によらず日付の新しい順に並べ替えたコピーを保存する。
    現在価格は最新エントリの価格、履歴が空なら BASE_PRICE。
    """
    prices = [
        p.model_copy()
        for p in sorted(price_history.prices, key=lambda p: p.date, reverse=True)
    ]
    price = prices[0].price if prices else BASE_PRICE

    return CatRecord(
        id=uuid4(),
        name=request.name,
        breed=request.breed,
        breed_id=breed_info.breed_id,
        cat_photo=request.photo,
        breed_photo=breed_info.photo,
        price=price,
        prices=prices,
        added_by=user_id,
        is_favourite=False,
    )
