"""Bot-only installation endpoints.

Routes:
  POST /bot/installations/sync   upsert an installation, open its setup window

Authenticated with the shared bot API key (see auth.dependencies.require_bot).
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from reposignal.auth.dependencies import require_bot
from reposignal.core.config import Settings, get_settings
from reposignal.db.session import get_db
from reposignal.installations.schemas import InstallationResponse, SyncInstallationRequest
from reposignal.installations.sync import sync_installation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bot", tags=["bot"], dependencies=[Depends(require_bot)])


@router.post(
    "/installations/sync",
    response_model=InstallationResponse,
    response_model_by_alias=True,
)
async def sync_installation_endpoint(
    body: SyncInstallationRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> InstallationResponse:
    installation = await sync_installation(db, body, settings.setup_window_minutes)
    await db.commit()
    return InstallationResponse.model_validate(installation)
