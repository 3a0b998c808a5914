"""
/stats — today's focused time and the per-day progress history.
"""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request

from ...api.schemas import CommandOut, HistoryDayOut, StatsOut

router = APIRouter(prefix="/stats", tags=["stats"])


def _get_commands(request: Request):
    return request.app.state.commands


def _get_stats(request: Request):
    return request.app.state.stats


@router.get("", response_model=StatsOut)
async def get_stats(commands=Depends(_get_commands)):
    return commands.dispatch({"type": "getStats"})


@router.get("/history", response_model=List[HistoryDayOut])
async def get_history(
    days: Optional[int] = Query(
        default=365, ge=1, le=3660,
        description="Window ending today; every day is listed, empty days as 0",
    ),
    stats=Depends(_get_stats),
):
    """Per-day focused seconds with a 0–4 heat-map level, oldest first."""
    return stats.history_range(days)


@router.post("/reset-today", response_model=CommandOut)
async def reset_today(commands=Depends(_get_commands)):
    """Zero today's counter; the history is kept."""
    return commands.dispatch({"type": "resetDailyStats"})


@router.delete("", response_model=CommandOut)
async def reset_all(commands=Depends(_get_commands)):
    """Erase the whole history, today's counter and the cycle count."""
    return commands.dispatch({"type": "resetAllStats"})
