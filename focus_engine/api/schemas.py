"""
Pydantic schemas for the FastAPI local API.

Numeric inputs are accepted loosely and clamped by the engine rather than
rejected, so most request fields are typed Any.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

# ── Settings ───────────────────────────────────────────────────────────────

class SettingsOut(BaseModel):
    focusMinutes: int
    shortBreakMinutes: int
    longBreakMinutes: int
    cyclesBeforeLongBreak: int
    enableNotifications: bool
    enableChime: bool
    blockedSites: List[str]


class SettingsPatch(BaseModel):
    model_config = ConfigDict(extra="ignore")

    focusMinutes: Optional[Any] = None
    shortBreakMinutes: Optional[Any] = None
    longBreakMinutes: Optional[Any] = None
    cyclesBeforeLongBreak: Optional[Any] = None
    enableNotifications: Optional[Any] = None
    enableChime: Optional[Any] = None
    blockedSites: Optional[Any] = None

    def to_patch(self) -> Dict[str, Any]:
        return {k: v for k, v in self.model_dump().items() if v is not None}


class SettingsEnvelope(BaseModel):
    success: bool = True
    settings: SettingsOut


# ── Timer ──────────────────────────────────────────────────────────────────

class TimerStateOut(BaseModel):
    isRunning: bool
    isPaused: bool
    mode: str = Field(..., description="focus | shortBreak | longBreak")
    timeLeft: int = Field(..., ge=0)
    completedCycles: int = Field(..., ge=0)
    settings: SettingsOut


class SetDurationRequest(BaseModel):
    minutes: Any = None
    mode: Optional[str] = None


class CommandOut(BaseModel):
    success: bool


class CommandIn(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str


# ── Stats ──────────────────────────────────────────────────────────────────

class StatsOut(BaseModel):
    focusedTodaySeconds: int
    lastFocusDate: Optional[str]
    completedCycles: int


class HistoryDayOut(BaseModel):
    date: str
    seconds: int
    level: int = Field(..., ge=0, le=4)


# ── Blocking ───────────────────────────────────────────────────────────────

class BlockingRuleOut(BaseModel):
    id: int
    priority: int
    action: Dict[str, Any]
    condition: Dict[str, Any]


class BlockCheckOut(BaseModel):
    url: str
    blocked: bool
    ruleId: Optional[int] = None
    redirect: Optional[str] = None
    timeLeft: Optional[int] = None
