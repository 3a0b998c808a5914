"""
/commands — message-style entry point, {"type": "...", ...}, for
collaborators that speak the extension runtime protocol.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from ...api.schemas import CommandIn

router = APIRouter(prefix="/commands", tags=["commands"])


def _get_commands(request: Request):
    return request.app.state.commands


@router.post("")
async def send_command(message: CommandIn, commands=Depends(_get_commands)):
    return commands.dispatch(message.model_dump())


@router.get("")
async def list_commands(commands=Depends(_get_commands)):
    return {"commands": commands.commands}
