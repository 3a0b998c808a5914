"""
/settings — read, update, export and import the timer settings.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from ...api.schemas import SettingsEnvelope, SettingsPatch
from ...config import VERSION
from ...settings import DEFAULTS, RANGES, clamp_int, normalize_sites

router = APIRouter(prefix="/settings", tags=["settings"])


def _get_machine(request: Request):
    return request.app.state.machine


def _get_settings(request: Request):
    return request.app.state.settings


@router.get("")
async def read_settings(settings=Depends(_get_settings)):
    """Return current settings with their defaults for reference."""
    return {"settings": settings.get(), "defaults": DEFAULTS}


@router.put("", response_model=SettingsEnvelope)
async def write_settings(patch: SettingsPatch, machine=Depends(_get_machine)):
    """Partial update; out-of-range numbers are clamped, unknown keys ignored."""
    return {"success": True, "settings": machine.apply_settings(patch.to_patch())}


@router.get("/export")
async def export_settings(settings=Depends(_get_settings)):
    exported = settings.get()
    exported["exportDate"] = datetime.now(timezone.utc).isoformat()
    exported["version"] = VERSION
    return exported


@router.post("/import", response_model=SettingsEnvelope)
async def import_settings(payload: Dict[str, Any], machine=Depends(_get_machine)):
    """
    Replace the settings with an exported document. Missing or invalid
    values fall back to the defaults, not to the current values.
    """
    return {"success": True, "settings": machine.apply_settings(validate_import(payload))}


def validate_import(payload: Dict[str, Any]) -> Dict[str, Any]:
    clean: Dict[str, Any] = {}
    for key, (low, high) in RANGES.items():
        clean[key] = clamp_int(payload.get(key) or DEFAULTS[key], low, high, DEFAULTS[key])
    for key in ("enableNotifications", "enableChime"):
        clean[key] = payload.get(key) is not False
    sites = payload.get("blockedSites")
    sites = normalize_sites(sites) if isinstance(sites, list) else []
    clean["blockedSites"] = sites or list(DEFAULTS["blockedSites"])
    return clean
