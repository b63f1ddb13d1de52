"""Repository endpoints.

Routes:
  POST /bot/repositories/{repo_id}/settings     partial settings update (bot key)
  GET  /public/repositories/{github_repo_id}    metadata and feedback of a public repo
"""

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from reposignal.auth.dependencies import require_bot
from reposignal.db.session import get_db
from reposignal.repositories.schemas import (
    PublicRepository,
    RepositoryResponse,
    RepositorySettingsUpdate,
)
from reposignal.repositories.service import get_public_repository, update_repository_settings

bot_router = APIRouter(prefix="/bot", tags=["bot"], dependencies=[Depends(require_bot)])
public_router = APIRouter(prefix="/public", tags=["public"])


@bot_router.post(
    "/repositories/{repo_id}/settings",
    response_model=RepositoryResponse,
    response_model_by_alias=True,
)
async def update_settings(
    body: RepositorySettingsUpdate,
    repo_id: int = Path(..., gt=0),
    db: AsyncSession = Depends(get_db),
) -> RepositoryResponse:
    repo = await update_repository_settings(db, repo_id, body)
    await db.commit()
    return RepositoryResponse.model_validate(repo)


@public_router.get(
    "/repositories/{github_repo_id}",
    response_model=PublicRepository,
    response_model_by_alias=True,
)
async def repository_detail(
    github_repo_id: int = Path(..., gt=0),
    db: AsyncSession = Depends(get_db),
) -> PublicRepository:
    return await get_public_repository(db, github_repo_id)
