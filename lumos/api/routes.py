"""
FastAPI routes for interacting with the plan loop.
What it provides:
- List capabilities
- Run a task to completion
- Start a task in the background and poll it
- Answer a pending resource confirmation

And, the main purpose:
Expose run_task to a host application over HTTP.
"""


import asyncio
import base64
import binascii

from fastapi import APIRouter, HTTPException

from lumos.agent.context import AudioInput, RunContext
from lumos.agent.runner import run_task
from lumos.api.runs import runs
from lumos.api.types import (
    ConfirmationRequest,
    RunTaskRequest,
    RunTaskResponse,
    StartTaskResponse,
    TaskStatus,
)
from lumos.core.logging import get_logger
from lumos.tools.registry import load_capabilities

log = get_logger("api.routes")

router = APIRouter()


def _audio(req: RunTaskRequest) -> AudioInput | None:
    if not req.audio_base64:
        return None
    try:
        data = base64.b64decode(req.audio_base64, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(400, "audio_base64 is not valid base64")
    return AudioInput(data=data, mime=req.audio_mime)


@router.get("/capabilities")
async def api_capabilities():
    registry = load_capabilities()
    return [
        {
            "name": spec.name.value,
            "description": spec.description,
            "required": list(spec.required),
            "allowed": {k: sorted(v) for k, v in spec.allowed.items()},
        }
        for spec in registry.specs()
    ]


@router.post("/tasks/run", response_model=RunTaskResponse)
async def api_run_task(req: RunTaskRequest):
    handle = runs.create(RunContext(audio=_audio(req)))
    try:
        runs.finish(handle, await run_task(req.instruction, req.input_text, ctx=handle.ctx))
        return RunTaskResponse(run_id=handle.ctx.run_id, result=handle.result, events=handle.recorder.events)
    finally:
        runs.discard(handle.ctx.run_id)


@router.post("/tasks", response_model=StartTaskResponse)
async def api_start_task(req: RunTaskRequest):
    handle = runs.create(RunContext(audio=_audio(req)))

    async def _work():
        try:
            result = await run_task(req.instruction, req.input_text, ctx=handle.ctx)
        except asyncio.CancelledError:
            runs.finish(handle, "Error: run cancelled")
            raise
        runs.finish(handle, result)
        log.info(f"[{handle.ctx.run_id}] finished")

    handle.task = asyncio.create_task(_work())
    return StartTaskResponse(run_id=handle.ctx.run_id)


@router.get("/tasks/{run_id}", response_model=TaskStatus)
async def api_task_status(run_id: str):
    handle = runs.get(run_id)
    if not handle:
        raise HTTPException(404, "run not found")
    return TaskStatus(
        run_id=run_id,
        status=handle.status,
        result=handle.result,
        pending_confirmations=handle.ctx.confirmations.pending(),
        events=handle.recorder.events,
    )


@router.post("/tasks/{run_id}/confirmations")
async def api_confirm(run_id: str, req: ConfirmationRequest):
    handle = runs.get(run_id)
    if not handle:
        raise HTTPException(404, "run not found")
    if not handle.ctx.confirmations.resolve(req.resource, req.accept):
        raise HTTPException(404, f"no pending confirmation for {req.resource}")
    return {"ok": True, "resource": req.resource, "accepted": req.accept}
