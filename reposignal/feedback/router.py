"""Bot-only feedback endpoint.

Routes:
  POST /bot/feedback   record one anonymous rating for a repository
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from reposignal.auth.dependencies import require_bot
from reposignal.db.session import get_db
from reposignal.feedback.schemas import FeedbackSubmission
from reposignal.feedback.service import submit_feedback

router = APIRouter(prefix="/bot", tags=["bot"], dependencies=[Depends(require_bot)])


@router.post("/feedback")
async def submit_feedback_endpoint(
    body: FeedbackSubmission,
    db: AsyncSession = Depends(get_db),
) -> dict[str, bool]:
    await submit_feedback(db, body)
    await db.commit()
    return {"success": True}
