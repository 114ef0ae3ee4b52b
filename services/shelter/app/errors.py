"""
Shelter Service — エラー定義

呼び出し側が「未ログイン」「対象なし」「取引が完了できない」を
区別できるよう、失敗の種類ごとに例外クラスを分ける。
detail には協調サービス内部の情報を含めない。
"""


class ShelterError(Exception):
    status_code: int = 500
    detail: str = "Shelter service error"

    def __init__(self, detail: str | None = None) -> None:
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class AuthorizationError(ShelterError):
    """セッションが無効・期限切れ"""
    status_code = 401
    detail = "Session is not authorized"


class CatNotFoundError(ShelterError):
    status_code = 404
    detail = "Cat not found"


class UnknownBreedError(ShelterError):
    status_code = 422
    detail = "Unknown breed"


class BillingError(ShelterError):
    """商品登録または販売が課金サービスに拒否された"""
    status_code = 402
    detail = "Sale could not be completed"


class InvalidRequestError(ShelterError):
    status_code = 400
    detail = "Invalid request"


class CollaboratorError(ShelterError):
    """協調サービスに到達できない、または想定外のエラーを返した"""
    status_code = 502
    detail = "Upstream service unavailable"
