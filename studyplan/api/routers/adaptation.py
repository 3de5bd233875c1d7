"""
/adaptation — trigger a learner pass over pending feedback.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request

from ...api.schemas import AdaptationOut

router = APIRouter(prefix="/adaptation", tags=["adaptation"])


def _get_adaptation(request: Request):
    return request.app.state.adaptation


@router.post("/run", response_model=AdaptationOut)
def run_adaptation(
    force: bool = Query(default=False, description="Ignore the cooldown"),
    adaptation=Depends(_get_adaptation),
):
    outcome = adaptation.run_if_needed(force=force)
    return AdaptationOut(
        ran=outcome.ran,
        reason=outcome.reason,
        feedback_consumed=outcome.feedback_consumed,
        last_run=outcome.last_run,
    )
