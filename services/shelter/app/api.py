"""
Shelter Service — HTTP エンドポイント

セッションは X-Session-Id ヘッダで受け取り、ShelterService に委譲する。
ShelterError はステータスコード付きの {"detail": ...} に変換する。
"""

from uuid import UUID

from fastapi import APIRouter, Depends, FastAPI, Header, Query, Request
from fastapi.responses import JSONResponse

from .errors import ShelterError
from .models import AddCatRequest, Bill, Cat
from .orchestrator import ShelterService

router = APIRouter()


def get_shelter(request: Request) -> ShelterService:
    return request.app.state.shelter


async def shelter_error_handler(request: Request, exc: ShelterError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ShelterError, shelter_error_handler)


# ── 猫一覧・お気に入り ──────────────────────────

@router.get("/cats", response_model=list[Cat])
async def list_cats(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=0),
    x_session_id: str = Header(),
    shelter: ShelterService = Depends(get_shelter),
):
    """猫一覧"""
    return await shelter.get_cats(x_session_id, skip, limit)


@router.get("/cats/favourites", response_model=list[Cat])
async def list_favourite_cats(
    x_session_id: str = Header(),
    shelter: ShelterService = Depends(get_shelter),
):
    """お気に入りの猫一覧"""
    return await shelter.get_favourite_cats(x_session_id)


@router.post("/cats/{cat_id}/favourite", status_code=204)
async def add_favourite(
    cat_id: UUID,
    x_session_id: str = Header(),
    shelter: ShelterService = Depends(get_shelter),
):
    await shelter.add_cat_to_favourites(x_session_id, cat_id)


@router.delete("/cats/{cat_id}/favourite", status_code=204)
async def delete_favourite(
    cat_id: UUID,
    x_session_id: str = Header(),
    shelter: ShelterService = Depends(get_shelter),
):
    await shelter.delete_cat_from_favourites(x_session_id, cat_id)


# ── 購入・登録 ──────────────────────────────────

@router.post("/cats/{cat_id}/buy", response_model=Bill)
async def buy_cat(
    cat_id: UUID,
    x_session_id: str = Header(),
    shelter: ShelterService = Depends(get_shelter),
):
    """
    猫を購入する（Buy Cat Saga）

    失敗時は Saga が補償を済ませてからエラーを返す。
    """
    return await shelter.buy_cat(x_session_id, cat_id)


@router.post("/cats", status_code=201)
async def add_cat(
    req: AddCatRequest,
    x_session_id: str = Header(),
    shelter: ShelterService = Depends(get_shelter),
):
    """猫を登録する"""
    cat_id = await shelter.add_cat(x_session_id, req)
    return {"cat_id": str(cat_id)}


@router.get("/health")
async def health():
    return {"status": "ok", "service": "shelter-service"}
