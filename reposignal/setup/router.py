"""Public setup endpoints (no user authentication).

Routes:
  GET  /setup/context?installation_id=N   account, repositories and window expiry
  POST /setup/complete                    apply repository choices, close the window

Both re-verify the installation with GitHub on every call. Failures are
raised as AppError subclasses and rendered by the shared exception handlers:

  400 INVALID_INPUT · 404 NOT_FOUND · 409 SETUP_ALREADY_COMPLETED
  410 SETUP_WINDOW_EXPIRED · 403 INSTALLATION_INVALID · 502 GITHUB_UNAVAILABLE
"""

import logging

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from reposignal.core.config import get_settings
from reposignal.core.limiter import limiter
from reposignal.db.session import get_db
from reposignal.github.client import InstallationVerifier
from reposignal.setup.schemas import (
    CompleteSetupRequest,
    CompleteSetupResponse,
    SetupContextResponse,
)
from reposignal.setup.service import SetupService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/setup", tags=["setup"])

settings = get_settings()


def get_installation_verifier(request: Request) -> InstallationVerifier:
    """Verifier built once at startup by create_app()."""
    return request.app.state.installation_verifier


def get_setup_service(
    db: AsyncSession = Depends(get_db),
    verifier: InstallationVerifier = Depends(get_installation_verifier),
) -> SetupService:
    return SetupService(db, verifier)


@router.get(
    "/context",
    response_model=SetupContextResponse,
    response_model_by_alias=True,
)
@limiter.limit(settings.setup_rate_limit)
async def get_setup_context(
    request: Request,
    installation_id: int = Query(..., gt=0),
    service: SetupService = Depends(get_setup_service),
) -> SetupContextResponse:
    """Return what the setup page needs to render for a pending installation."""
    context = await service.read_context(installation_id)
    return SetupContextResponse(
        account_login=context.account_login,
        repositories=context.repositories,
        setup_expires_at=context.setup_expires_at,
    )


@router.post("/complete", response_model=CompleteSetupResponse)
@limiter.limit(settings.setup_rate_limit)
async def complete_setup(
    request: Request,
    body: CompleteSetupRequest,
    service: SetupService = Depends(get_setup_service),
) -> CompleteSetupResponse:
    """Complete setup exactly once for an installation inside its window."""
    await service.complete_setup(body)
    return CompleteSetupResponse(success=True)
