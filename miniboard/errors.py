"""
Application error taxonomy.

Services raise these; the handler installed by ``install_error_handlers``
renders each one as ``{"detail": ...}`` with its HTTP status, the same
body shape FastAPI uses for ``HTTPException`` and request validation.

=====================  ======  ==============================================
Error                  Status  Raised when
=====================  ======  ==============================================
``Unauthenticated``    401     no bearer token was presented
``InvalidCredential``  403     bad token, wrong password, or mutation denied
``NotFound``           404     the target resource id does not exist
``ConflictFailure``    409     a unique identifier is already taken
``ValidationFailure``  422     a field fails a check the schema cannot express
=====================  ======  ==============================================
"""
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


class AppError(Exception):
    status_code: int = 500
    default_detail: str = "internal error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    @property
    def headers(self) -> dict[str, str] | None:
        return None


class Unauthenticated(AppError):
    status_code = 401
    default_detail = "authentication required"

    @property
    def headers(self) -> dict[str, str]:
        return {"WWW-Authenticate": "Bearer"}


class InvalidCredential(AppError):
    status_code = 403
    default_detail = "invalid credential"


class NotFound(AppError):
    status_code = 404
    default_detail = "not found"


class ConflictFailure(AppError):
    status_code = 409
    default_detail = "conflict"


class ValidationFailure(AppError):
    status_code = 422
    default_detail = "validation failed"


async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=exc.headers,
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, _app_error_handler)
