from fastapi import APIRouter
from .muestreos import router as muestreos_router
from .historial import router as historial_router
from .riesgo import router as riesgo_router
from .fumigacion import router as fumigacion_router
from .analytics import router as analytics_router

api_router = APIRouter()
api_router.include_router(muestreos_router)
api_router.include_router(historial_router)
api_router.include_router(riesgo_router)
api_router.include_router(fumigacion_router)
api_router.include_router(analytics_router)
