from fastapi import APIRouter, Depends

from tripsplit.core.config import Settings
from tripsplit.core.dependencies import get_app_settings, get_db
from tripsplit.db.dal import Database

router = APIRouter(prefix="/health", tags=["health"])


@router.get("", summary="Liveness probe with store counts")
async def health(
    settings: Settings = Depends(get_app_settings),
    db: Database = Depends(get_db),
):
    return {"status": "ok", "version": settings.version, **db.stats()}
