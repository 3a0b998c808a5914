"""
/blocking — the active redirect rules, polled by the browser extension,
and a lookup used by the "you are blocked" page.
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query, Request

from ...api.schemas import BlockCheckOut, BlockingRuleOut

router = APIRouter(prefix="/blocking", tags=["blocking"])


def _get_blocking(request: Request):
    return request.app.state.blocking


@router.get("/rules", response_model=List[BlockingRuleOut])
async def get_rules(blocking=Depends(_get_blocking)):
    return [rule.to_dict() for rule in blocking.active_rules()]


@router.get("/check", response_model=BlockCheckOut)
async def check_url(
    request: Request,
    url: str = Query(..., description="URL or hostname to test"),
    blocking=Depends(_get_blocking),
):
    rule = blocking.blocked_rule_for(url)
    if rule is None:
        return BlockCheckOut(url=url, blocked=False)
    return BlockCheckOut(
        url=url,
        blocked=True,
        ruleId=rule.id,
        redirect=rule.redirect_path,
        timeLeft=request.app.state.machine.state.time_left_seconds,
    )
