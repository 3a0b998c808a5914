"""
/timer — read the timer state, issue timer commands, and stream updates.
"""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, Request, WebSocket, WebSocketDisconnect

from ...api.schemas import CommandOut, SetDurationRequest, TimerStateOut

router = APIRouter(prefix="/timer", tags=["timer"])


def _get_commands(request: Request):
    return request.app.state.commands


@router.get("", response_model=TimerStateOut)
async def get_state(commands=Depends(_get_commands)):
    return commands.dispatch({"type": "getState"})


@router.post("/start", response_model=CommandOut)
async def start_timer(commands=Depends(_get_commands)):
    return commands.dispatch({"type": "startTimer"})


@router.post("/pause", response_model=CommandOut)
async def pause_timer(commands=Depends(_get_commands)):
    """Toggle pause; ignored while the timer is idle."""
    return commands.dispatch({"type": "pauseTimer"})


@router.post("/reset", response_model=CommandOut)
async def reset_timer(commands=Depends(_get_commands)):
    return commands.dispatch({"type": "resetTimer"})


@router.post("/duration", response_model=CommandOut)
async def set_duration(req: SetDurationRequest, commands=Depends(_get_commands)):
    """Adjust the countdown before a session starts; ignored while running."""
    return commands.dispatch(
        {"type": "setTimerDuration", "minutes": req.minutes, "mode": req.mode}
    )


@router.websocket("/ws")
async def timer_websocket(websocket: WebSocket):
    """
    WebSocket stream — sends the current state on connect, then every
    stateUpdate / notification event as it is published.
    """
    app = websocket.app
    channel = app.state.channel
    await websocket.accept()
    queue = channel.subscribe()

    async def pump():
        try:
            while True:
                event = await queue.get()
                await websocket.send_json(event)
        except (WebSocketDisconnect, RuntimeError):
            return

    sender = None
    try:
        await websocket.send_json({"type": "stateUpdate", "state": app.state.machine.to_dict()})
        sender = asyncio.create_task(pump())
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
    except WebSocketDisconnect:
        pass
    finally:
        if sender is not None:
            sender.cancel()
        channel.unsubscribe(queue)
