"""FastAPI server for the agent prompt wizard.

Provides REST endpoints for opening a wizard session, editing fields,
navigating between pages and calling the generation services.
"""

from __future__ import annotations

import logging
import os
import uuid
from typing import Any

from fastapi import FastAPI, File, HTTPException, Path, Request, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from agentwizard.clients import WizardAPI
from agentwizard.config import get_profile_name, load_wizard_config
from agentwizard.controller import WizardController
from agentwizard.graph import build_graph, nav_state, node_for
from agentwizard.normalize import strip_task_number
from agentwizard.scratch import MockScratchStore, PgScratchStore
from agentwizard.transcription import AudioFile

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Request / response models
# ---------------------------------------------------------------------------

class OpenRequest(BaseModel):
    agent: dict | None = None
    privileged: bool = False
    session_id: str | None = None


class FieldRequest(BaseModel):
    name: str
    value: Any = None


class TextRequest(BaseModel):
    text: str


class VariableRequest(BaseModel):
    name: str
    description: str


class CustomFunctionRequest(BaseModel):
    api_key: str
    event_type_id: str
    name: str | None = None
    description: str | None = None


class TasksRequest(BaseModel):
    tasks: list[str]


class ScheduleRequest(BaseModel):
    enabled: bool


class NoticeModel(BaseModel):
    level: str
    message: str


class WizardView(BaseModel):
    wizard_id: str
    page: int
    sub_step: int
    node: str | None = None
    can_retreat: bool
    alive: bool
    is_submitting: bool
    pending: list[str]
    has_unsaved_changes: bool
    confirming_close: bool
    validation_errors: list[str]
    field_errors: dict[str, str]
    valid_fields: list[str]
    notices: list[NoticeModel]
    draft: dict
    preview: str
    review_text: str
    agent_prompt_text: str
    task_items: list[str]
    voices: list[dict]
    companies: list[dict]
    result: dict | None = None


class StepResponse(BaseModel):
    action: str
    errors: list[str]
    wizard: WizardView


class CloseResponse(BaseModel):
    closed: bool
    wizard: WizardView


class PathResponse(BaseModel):
    visited: list[str]
    outcome: str


# ---------------------------------------------------------------------------
# Controller -> response helpers
# ---------------------------------------------------------------------------

def _to_view(wizard_id: str, wizard: WizardController) -> WizardView:
    """Snapshot a controller. Pending notices are drained into the view."""
    validation = wizard.validation
    return WizardView(
        wizard_id=wizard_id,
        page=wizard.position.page,
        sub_step=wizard.position.sub_step,
        node=node_for(wizard.position),
        can_retreat=wizard.can_retreat(),
        alive=wizard.alive,
        is_submitting=wizard.is_submitting,
        pending=sorted(wizard.pending),
        has_unsaved_changes=wizard.has_user_made_changes,
        confirming_close=wizard.confirming_close,
        validation_errors=wizard.validation_errors,
        field_errors=dict(validation.errors),
        valid_fields=sorted(f for f in validation.touched if validation.is_valid(f)),
        notices=[NoticeModel(level=n.level, message=n.message) for n in wizard.drain_notices()],
        draft=wizard.draft.to_dict(),
        preview=wizard.preview(),
        review_text=wizard.review_text(),
        agent_prompt_text=wizard.agent_prompt_text,
        task_items=[strip_task_number(t) for t in wizard.draft.tasks],
        voices=wizard.voices,
        companies=wizard.companies,
        result=wizard.result,
    )


def _default_scratch():
    if os.environ.get("DATABASE_URL"):
        return PgScratchStore()
    return MockScratchStore()


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(
    services: dict | None = None,
    profile: str | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        services: Dict with ``api`` (WizardServices) and ``scratch``
                  (ScratchStore) for dependency injection.
        profile: Wizard profile to load config for. Defaults to
                 WIZARD_PROFILE, or "default".
    """
    app = FastAPI(title="Agent Prompt Wizard")

    config = load_wizard_config(profile or get_profile_name())
    services = services or {}
    api = services.get("api") or WizardAPI()
    scratch = services.get("scratch") or _default_scratch()

    # Forward-path graph, compiled once
    graph = build_graph()

    # In-memory session store
    wizards: dict[str, WizardController] = {}

    def _get(wizard_id: str, *, live: bool = True) -> WizardController:
        wizard = wizards.get(wizard_id)
        if wizard is None:
            raise HTTPException(status_code=404, detail="Wizard not found")
        if live and not wizard.alive:
            raise HTTPException(status_code=409, detail="Wizard is closed")
        return wizard

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={
                "detail": "Something went wrong. Please close the wizard and try again.",
                "fallback": True,
            },
        )

    @app.post("/wizards", response_model=WizardView)
    async def open_wizard(req: OpenRequest):
        wid = str(uuid.uuid4())
        wizard = WizardController(
            api,
            config,
            scratch=scratch,
            session_id=req.session_id or wid,
            editing_agent=req.agent,
            privileged=req.privileged,
        )
        await wizard.load_catalogs()
        wizards[wid] = wizard
        return _to_view(wid, wizard)

    @app.get("/wizards/{wizard_id}", response_model=WizardView)
    def get_wizard(wizard_id: str):
        return _to_view(wizard_id, _get(wizard_id, live=False))

    @app.patch("/wizards/{wizard_id}/fields", response_model=WizardView)
    def set_field(wizard_id: str, req: FieldRequest):
        wizard = _get(wizard_id)
        try:
            wizard.set_field(req.name, req.value)
        except KeyError:
            raise HTTPException(status_code=400, detail=f"Unknown field: {req.name}")
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))
        return _to_view(wizard_id, wizard)

    # -- Navigation ---------------------------------------------------------

    @app.post("/wizards/{wizard_id}/advance", response_model=StepResponse)
    async def advance(wizard_id: str):
        wizard = _get(wizard_id)
        step = await wizard.advance()
        return StepResponse(
            action=step.action, errors=step.errors, wizard=_to_view(wizard_id, wizard),
        )

    @app.post("/wizards/{wizard_id}/retreat", response_model=StepResponse)
    def retreat(wizard_id: str):
        wizard = _get(wizard_id)
        step = wizard.retreat()
        return StepResponse(
            action=step.action, errors=step.errors, wizard=_to_view(wizard_id, wizard),
        )

    @app.post("/wizards/{wizard_id}/start-fresh", response_model=StepResponse)
    def start_fresh(wizard_id: str):
        wizard = _get(wizard_id)
        step = wizard.start_fresh()
        return StepResponse(
            action=step.action, errors=step.errors, wizard=_to_view(wizard_id, wizard),
        )

    @app.get("/wizards/{wizard_id}/path", response_model=PathResponse)
    def forward_path(wizard_id: str):
        """Nodes the current draft would pass through from the first position."""
        wizard = _get(wizard_id, live=False)
        result = graph.invoke(nav_state(wizard.draft))
        return PathResponse(visited=result["visited"], outcome=result["outcome"])

    # -- Collections --------------------------------------------------------

    def _edit_item(wizard_id: str, edit) -> WizardView:
        wizard = _get(wizard_id)
        try:
            edit(wizard)
        except IndexError:
            raise HTTPException(status_code=404, detail="Item not found")
        except KeyError as e:
            raise HTTPException(status_code=400, detail=f"Unknown field: {e.args[0]}")
        return _to_view(wizard_id, wizard)

    @app.post("/wizards/{wizard_id}/variables", response_model=WizardView)
    def add_variable(wizard_id: str, req: VariableRequest):
        return _edit_item(wizard_id, lambda w: w.add_variable(req.name, req.description))

    @app.patch("/wizards/{wizard_id}/variables/{index}", response_model=WizardView)
    def update_variable(wizard_id: str, index: int, req: FieldRequest):
        return _edit_item(
            wizard_id, lambda w: w.update_variable(index, req.name, str(req.value or "")),
        )

    @app.delete("/wizards/{wizard_id}/variables/{index}", response_model=WizardView)
    def remove_variable(wizard_id: str, index: int):
        return _edit_item(wizard_id, lambda w: w.remove_variable(index))

    @app.post("/wizards/{wizard_id}/extraction-fields", response_model=WizardView)
    def add_extraction_field(wizard_id: str):
        return _edit_item(wizard_id, lambda w: w.add_extraction_field())

    @app.patch("/wizards/{wizard_id}/extraction-fields/{index}", response_model=WizardView)
    def update_extraction_field(wizard_id: str, index: int, req: FieldRequest):
        return _edit_item(
            wizard_id,
            lambda w: w.update_extraction_field(index, req.name, str(req.value or "")),
        )

    @app.delete("/wizards/{wizard_id}/extraction-fields/{index}", response_model=WizardView)
    def remove_extraction_field(wizard_id: str, index: int):
        return _edit_item(wizard_id, lambda w: w.remove_extraction_field(index))

    @app.post("/wizards/{wizard_id}/custom-functions", response_model=WizardView)
    def add_custom_function(wizard_id: str, req: CustomFunctionRequest):
        return _edit_item(
            wizard_id,
            lambda w: w.save_custom_function(
                req.api_key, req.event_type_id, name=req.name, description=req.description,
            ),
        )

    @app.put("/wizards/{wizard_id}/custom-functions/{index}", response_model=WizardView)
    def replace_custom_function(wizard_id: str, index: int, req: CustomFunctionRequest):
        return _edit_item(
            wizard_id,
            lambda w: w.save_custom_function(
                req.api_key, req.event_type_id,
                name=req.name, description=req.description, index=index,
            ),
        )

    @app.delete("/wizards/{wizard_id}/custom-functions/{index}", response_model=WizardView)
    def remove_custom_function(wizard_id: str, index: int):
        return _edit_item(wizard_id, lambda w: w.remove_custom_function(index))

    @app.put("/wizards/{wizard_id}/tasks", response_model=WizardView)
    def set_tasks(wizard_id: str, req: TasksRequest):
        return _edit_item(wizard_id, lambda w: w.set_tasks(req.tasks))

    # -- Schedule -----------------------------------------------------------

    @app.put("/wizards/{wizard_id}/schedule", response_model=WizardView)
    def set_schedule(wizard_id: str, req: ScheduleRequest):
        return _edit_item(wizard_id, lambda w: w.set_schedule_enabled(req.enabled))

    @app.post("/wizards/{wizard_id}/schedule/days/{day}", response_model=WizardView)
    def toggle_call_day(wizard_id: str, day: int = Path(ge=0, le=6)):
        return _edit_item(wizard_id, lambda w: w.toggle_call_day(day))

    # -- Text edits ---------------------------------------------------------

    @app.put("/wizards/{wizard_id}/review-text", response_model=WizardView)
    def edit_review_text(wizard_id: str, req: TextRequest):
        wizard = _get(wizard_id)
        wizard.edit_review_text(req.text)
        return _to_view(wizard_id, wizard)

    @app.put("/wizards/{wizard_id}/agent-prompt-text", response_model=WizardView)
    def edit_agent_prompt_text(wizard_id: str, req: TextRequest):
        wizard = _get(wizard_id)
        wizard.edit_agent_prompt_text(req.text)
        return _to_view(wizard_id, wizard)

    # -- Generation ---------------------------------------------------------

    @app.post("/wizards/{wizard_id}/generate-prompt", response_model=WizardView)
    async def generate_prompt(wizard_id: str):
        wizard = _get(wizard_id)
        await wizard.generate_prompt()
        return _to_view(wizard_id, wizard)

    @app.post("/wizards/{wizard_id}/scrape-website", response_model=WizardView)
    async def scrape_website(wizard_id: str):
        wizard = _get(wizard_id)
        await wizard.scrape_website()
        return _to_view(wizard_id, wizard)

    @app.post("/wizards/{wizard_id}/generate-tasks", response_model=WizardView)
    async def generate_tasks(wizard_id: str):
        wizard = _get(wizard_id)
        await wizard.generate_tasks()
        return _to_view(wizard_id, wizard)

    @app.post("/wizards/{wizard_id}/generate-conversation-flow", response_model=WizardView)
    async def generate_conversation_flow(wizard_id: str):
        wizard = _get(wizard_id)
        await wizard.generate_conversation_flow()
        return _to_view(wizard_id, wizard)

    @app.post("/wizards/{wizard_id}/transcribe", response_model=WizardView)
    async def transcribe(wizard_id: str, files: list[UploadFile] = File(...)):
        wizard = _get(wizard_id)
        audio = [
            AudioFile(
                filename=f.filename or "",
                content=await f.read(),
                content_type=f.content_type or "application/octet-stream",
            )
            for f in files
        ]
        await wizard.transcribe(audio)
        return _to_view(wizard_id, wizard)

    # -- Closing ------------------------------------------------------------

    @app.post("/wizards/{wizard_id}/close", response_model=CloseResponse)
    def close(wizard_id: str):
        wizard = _get(wizard_id)
        closed = wizard.close()
        return CloseResponse(closed=closed, wizard=_to_view(wizard_id, wizard))

    @app.post("/wizards/{wizard_id}/close/confirm", response_model=CloseResponse)
    def confirm_close(wizard_id: str):
        wizard = _get(wizard_id)
        wizard.confirm_close()
        return CloseResponse(closed=True, wizard=_to_view(wizard_id, wizard))

    @app.post("/wizards/{wizard_id}/close/cancel", response_model=CloseResponse)
    def cancel_close(wizard_id: str):
        wizard = _get(wizard_id)
        wizard.cancel_close()
        return CloseResponse(closed=False, wizard=_to_view(wizard_id, wizard))

    return app
