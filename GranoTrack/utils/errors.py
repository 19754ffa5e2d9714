import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError

logger = logging.getLogger(__name__)


class GranoTrackError(Exception):
    """Error base del motor de análisis."""


class LedgerWriteError(GranoTrackError):
    """Falló el reemplazo del historial de un muestreo; no quedó nada a medias."""

    def __init__(self, muestreo_id: int | None, detail: str):
        self.muestreo_id = muestreo_id
        self.detail = detail
        super().__init__(f"muestreo {muestreo_id}: {detail}")


def _normalize_errors(errs):
    norm = []
    for e in errs:
        e = dict(e)
        val = e.get("input")
        if isinstance(val, (bytes, bytearray)):
            e["input"] = val.decode("utf-8", errors="ignore")
        ctx = e.get("ctx")
        if isinstance(ctx, dict):
            e["ctx"] = {k: str(v) for k, v in ctx.items()}
        norm.append(e)
    return norm

def install_error_handlers(app: FastAPI):
    @app.exception_handler(RequestValidationError)
    async def validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content={"error": "validation_error", "detail": _normalize_errors(exc.errors())},
        )

    @app.exception_handler(IntegrityError)
    async def integrity_handler(request: Request, exc: IntegrityError):
        return JSONResponse(status_code=409, content={"error": "conflict", "detail": str(exc.orig)})

    @app.exception_handler(LedgerWriteError)
    async def ledger_handler(request: Request, exc: LedgerWriteError):
        logger.error("Guardado bloqueado para muestreo %s: %s", exc.muestreo_id, exc.detail)
        return JSONResponse(
            status_code=503,
            content={
                "error": "ledger_write_failed",
                "detail": "No se pudo guardar el historial de pérdidas. Intente de nuevo.",
                "muestreo_id": exc.muestreo_id,
            },
        )
