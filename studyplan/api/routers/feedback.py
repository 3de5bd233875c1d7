"""
/feedback — record what happened to scheduled blocks (kept, rescheduled,
deleted, shortened, extended). Records accumulate until the next learner pass.
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Request, status

from ...adaptive.feedback import BlockFeedback
from ...api.schemas import FeedbackIn, FeedbackListOut, FeedbackOut
from ...planner.models import TaskType

router = APIRouter(prefix="/feedback", tags=["feedback"])


def _get_store(request: Request):
    return request.app.state.feedback


def _to_feedback(item: FeedbackIn) -> BlockFeedback:
    return BlockFeedback(
        block_id=item.block_id,
        task_id=item.task_id,
        course_id=item.course_id,
        type=TaskType.parse(item.type),
        start=item.start,
        end=item.end,
        completion=item.completion,
        action=item.action,
    )


def _to_out(fb: BlockFeedback) -> FeedbackOut:
    return FeedbackOut(
        block_id=fb.block_id,
        task_id=fb.task_id,
        course_id=fb.course_id,
        type=fb.type.value,
        start=fb.start,
        end=fb.end,
        completion=fb.completion,
        action=fb.action.value,
    )


@router.get("", response_model=FeedbackListOut)
def list_feedback(store=Depends(_get_store)):
    items = store.items()
    return FeedbackListOut(pending=len(items), feedback=[_to_out(fb) for fb in items])


@router.post("", response_model=FeedbackOut, status_code=status.HTTP_201_CREATED)
def add_feedback(item: FeedbackIn, store=Depends(_get_store)):
    """Append a single block outcome. Not deduplicated."""
    fb = _to_feedback(item)
    store.append(fb)
    return _to_out(fb)


@router.post("/batch", status_code=status.HTTP_202_ACCEPTED)
def add_feedback_batch(items: List[FeedbackIn], store=Depends(_get_store)):
    """Append a batch of block outcomes (used by clients that buffer locally)."""
    accepted = store.append_many(_to_feedback(i) for i in items)
    return {"accepted": accepted, "pending": len(store)}
