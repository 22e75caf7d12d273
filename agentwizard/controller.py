"""WizardController: one AgentDraft and one Position, driven by user stimuli.

Field edits and navigation are synchronous. Calls to remote collaborators are
coroutines; each is guarded so the same operation cannot run twice at once,
and every result is discarded if the wizard was dismissed while waiting.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from typing import Callable

from agentwizard import graph
from agentwizard.assembler import (
    assemble_prompt,
    build_sections,
    render_sections,
    sections_map,
)
from agentwizard.changes import has_meaningful_changes
from agentwizard.clients import WizardAPIError, WizardServices
from agentwizard.config import notes_block
from agentwizard.decomposer import (
    apply_agent_prompt_text,
    apply_review_text,
    compose_review_text,
)
from agentwizard.graph import Step
from agentwizard.normalize import parse_tasks_string, tasks_to_string, to_snake_key
from agentwizard.payload import (
    apply_parsed_sections,
    build_agent_payload,
    default_welcome_message,
    draft_from_agent,
)
from agentwizard.scratch import ScratchStore
from agentwizard.state import (
    DEFAULT_CALL_DAYS,
    START_POSITION,
    TEXT_FIELDS,
    AgentDraft,
    CallDirection,
    CustomFunction,
    DynamicVariable,
    ExtractionField,
    FAQItem,
    WebsiteData,
    parse_call_direction,
)
from agentwizard.transcription import (
    ACCEPTED_FORMATS,
    MAX_FILES,
    AudioFile,
    InvalidAudioFiles,
    append_transcripts,
    failed,
    format_transcripts_for_prompt,
    successful,
    validate_audio_files,
)
from agentwizard.validation import ValidationState
from agentwizard.voices import language_line_for_voice

logger = logging.getLogger(__name__)


AUTH_REQUIRED = "Authentication required"
MAX_CALL_DAYS = 4


@dataclass
class Notice:
    """A transient message for the user."""

    level: str  # "success", "error" or "info"
    message: str


class WizardController:
    """Orchestrates one wizard session.

    Args:
        services: Remote collaborators (WizardAPI or MockWizardAPI).
        config: Loaded wizard profile.
        scratch: Session scratch storage for the website draft.
        session_id: Key for the scratch storage.
        editing_agent: Existing agent record to pre-populate from.
        voices: Voice catalog used to derive the speaking language.
        privileged: Whether the caller may assign the agent to a company.
        on_complete: Called with the persisted record after submission.
        on_close: Called once when the wizard is dismissed.
    """

    def __init__(
        self,
        services: WizardServices,
        config: dict,
        *,
        scratch: ScratchStore | None = None,
        session_id: str | None = None,
        editing_agent: dict | None = None,
        voices: list[dict] | None = None,
        privileged: bool = False,
        on_complete: Callable[[dict], None] | None = None,
        on_close: Callable[[], None] | None = None,
    ):
        self.services = services
        self.config = config
        self.scratch = scratch
        self.session_id = session_id or uuid.uuid4().hex
        self.editing_agent = editing_agent
        self.voices = list(voices or [])
        self.companies: list[dict] = []
        self.privileged = privileged
        self.on_complete = on_complete
        self.on_close = on_close

        self.position = START_POSITION
        self.validation_errors: list[str] = []
        self.notices: list[Notice] = []
        self.pending: set[str] = set()
        self.is_submitting = False
        self.alive = True
        self.confirming_close = False
        self.transcription_progress: tuple[str, int] | None = None
        self.result: dict | None = None

        self.draft = self._initial_draft()
        self.validation = ValidationState()
        self.agent_prompt_text = ""
        self.agent_prompt_edited = False
        self.has_user_made_changes = False
        self._sync_agent_prompt_text()

    # -- Setup --------------------------------------------------------------

    @property
    def editing(self) -> bool:
        return self.editing_agent is not None

    def _fresh_draft(self) -> AgentDraft:
        defaults = self.config.get("defaults") or {}
        draft = AgentDraft()
        if defaults.get("language"):
            draft.language = defaults["language"]
        if defaults.get("region"):
            draft.region = defaults["region"]
        if defaults.get("timezone"):
            draft.timezone = defaults["timezone"]
        return draft

    def _initial_draft(self) -> AgentDraft:
        if self.editing_agent is not None:
            return draft_from_agent(self.editing_agent)

        draft = self._fresh_draft()
        if self.scratch is not None:
            stored = self.scratch.load(self.session_id)
            if stored:
                draft.website = WebsiteData.from_scratch(stored)
                draft.faqs = [
                    FAQItem(question=f.get("question") or "", answer=f.get("answer") or "")
                    for f in draft.website.faqs
                    if isinstance(f, dict)
                ]
        return draft

    async def load_catalogs(self) -> None:
        """Fetch the voice catalog, and companies for privileged callers."""
        try:
            voices = await self.services.list_voices()
            if not self.alive:
                return
            self.voices = voices
        except WizardAPIError as e:
            logger.error("Failed to fetch voices: %s", e.message)
            self._notify("error", e.message)

        if not self.privileged:
            return
        try:
            companies = await self.services.list_companies()
            if not self.alive:
                return
            self.companies = companies
        except WizardAPIError as e:
            logger.error("Failed to fetch companies: %s", e.message)

    # -- Notices and flags --------------------------------------------------

    def _notify(self, level: str, message: str) -> None:
        logger.info("Notice (%s): %s", level, message)
        self.notices.append(Notice(level, message))

    def drain_notices(self) -> list[Notice]:
        notices, self.notices = self.notices, []
        return notices

    def _changed(self) -> None:
        self.has_user_made_changes = has_meaningful_changes(self.draft)
        self._sync_agent_prompt_text()

    def _begin(self, operation: str) -> bool:
        if operation in self.pending:
            logger.debug("Ignoring duplicate %s while one is in flight", operation)
            return False
        self.pending.add(operation)
        return True

    def _end(self, operation: str) -> None:
        self.pending.discard(operation)

    # -- Field edits --------------------------------------------------------

    def set_field(self, name: str, value) -> str | None:
        """Set one draft field from user input.

        Returns:
            The field's validation error, if any.

        Raises:
            KeyError: For fields that cannot be set by name.
            ValueError: For an unknown call direction.
        """
        if name == "call_direction":
            self.set_call_direction(value)
            return None
        if name not in TEXT_FIELDS:
            raise KeyError(name)

        value = value if value is not None else ""
        setattr(self.draft, name, value)
        error = self.validation.touch(name, value)

        if name in ("agent_name", "company_name"):
            self._autofill_welcome_message()
        self._changed()
        return error

    def set_call_direction(self, value) -> None:
        """Change the call direction and apply its schedule defaults."""
        direction = parse_call_direction(value)
        self.draft.call_direction = direction
        self.validation.touch("call_direction", direction.value if direction else "")

        schedule = self.draft.schedule
        if direction == CallDirection.OUTBOUND:
            days = (self.config.get("defaults") or {}).get("outbound_call_days")
            schedule.call_days = list(days or DEFAULT_CALL_DAYS)
            schedule.enabled = True
        else:
            schedule.call_days = []
            schedule.enabled = False
        self._changed()

    def _autofill_welcome_message(self) -> None:
        if self.draft.agent_name and self.draft.company_name:
            self.draft.welcome_message = default_welcome_message(
                self.draft.agent_name, self.draft.company_name,
            )

    def toggle_call_day(self, day: int) -> bool:
        """Toggle a scheduled call day; refused beyond the maximum."""
        days = self.draft.schedule.call_days
        if day in days:
            self.draft.schedule.call_days = [d for d in days if d != day]
            return True
        limit = (self.config.get("defaults") or {}).get("max_call_days", MAX_CALL_DAYS)
        if len(days) >= limit:
            self._notify("error", f"Maximum {limit} days can be selected")
            return False
        self.draft.schedule.call_days = sorted([*days, day])
        return True

    def set_schedule_enabled(self, enabled: bool) -> None:
        self.draft.schedule.enabled = enabled

    # -- Dynamic variables --------------------------------------------------

    def add_variable(self, name: str, description: str) -> bool:
        name = to_snake_key(name)
        if not name.strip() or not description.strip():
            self._notify("error", "Please fill in both variable name and description")
            return False
        self.draft.dynamic_variables.append(DynamicVariable(name, description))
        self._notify("success", "Variable added successfully")
        self._changed()
        return True

    def update_variable(self, index: int, field_name: str, value: str) -> None:
        variable = self.draft.dynamic_variables[index]
        if field_name == "name":
            variable.name = to_snake_key(value)
        elif field_name == "description":
            variable.description = value
        else:
            raise KeyError(field_name)
        self._changed()

    def remove_variable(self, index: int) -> None:
        del self.draft.dynamic_variables[index]
        self._changed()

    # -- Extraction fields --------------------------------------------------

    def add_extraction_field(self) -> None:
        self.draft.extraction_fields.append(ExtractionField())

    def update_extraction_field(self, index: int, field_name: str, value: str) -> None:
        f = self.draft.extraction_fields[index]
        if field_name not in ("name", "description"):
            raise KeyError(field_name)
        setattr(f, field_name, value)
        self._changed()

    def remove_extraction_field(self, index: int) -> None:
        del self.draft.extraction_fields[index]
        self._changed()

    # -- Custom functions ---------------------------------------------------

    def save_custom_function(
        self,
        api_key: str,
        event_type_id: str,
        *,
        name: str | None = None,
        description: str | None = None,
        index: int | None = None,
    ) -> bool:
        """Add a calendar booking function, or replace the one at ``index``."""
        if not api_key or not event_type_id:
            self._notify("error", "Please fill in all required fields")
            return False

        func = CustomFunction(id=f"func_{uuid.uuid4().hex}")
        if index is not None:
            func.id = self.draft.custom_functions[index].id
        if name:
            func.name = name
        if description:
            func.description = description
        func.api_key = api_key
        func.event_type_id = event_type_id

        if index is None:
            self.draft.custom_functions.append(func)
        else:
            self.draft.custom_functions[index] = func
        return True

    def remove_custom_function(self, index: int) -> None:
        del self.draft.custom_functions[index]

    # -- Tasks --------------------------------------------------------------

    def set_tasks(self, tasks: list[str]) -> None:
        self.draft.tasks = [t for t in tasks if t.strip()]
        self.draft.website.tasks = tasks_to_string(self.draft.tasks)
        self._persist_website()

    # -- Text views ---------------------------------------------------------

    def language_line(self) -> str:
        return language_line_for_voice(self.draft.voice_id, self.voices)

    def preview(self) -> str:
        """Display variant of the assembled prompt."""
        return assemble_prompt(
            self.draft,
            language_line=self.language_line(),
            notes=notes_block(self.config),
            include_compliance=False,
        )

    def full_prompt(self) -> tuple[str, dict[str, str]]:
        """Full prompt text and its parsed-section map."""
        sections = build_sections(
            self.draft,
            language_line=self.language_line(),
            notes=notes_block(self.config),
            include_compliance=True,
        )
        return render_sections(sections), sections_map(sections)

    def review_text(self) -> str:
        return compose_review_text(self.draft)

    def edit_review_text(self, text: str) -> None:
        apply_review_text(self.draft, text)
        self._changed()

    def _sync_agent_prompt_text(self) -> None:
        # Follows the draft until the user edits the text directly.
        if not self.agent_prompt_edited:
            self.agent_prompt_text = self.preview()

    def edit_agent_prompt_text(self, text: str) -> list[str]:
        self.agent_prompt_text = text
        self.agent_prompt_edited = True
        updated = apply_agent_prompt_text(self.draft, text)
        for field_name in updated:
            self.validation.record(field_name, getattr(self.draft, field_name))
        if "agent_name" in updated or "company_name" in updated:
            self._autofill_welcome_message()
        self._changed()
        return updated

    # -- Navigation ---------------------------------------------------------

    def can_retreat(self) -> bool:
        return self.position != START_POSITION

    async def advance(self) -> Step:
        """Advance one position, submitting when the path ends."""
        step = graph.advance(self.position, self.draft)
        self.validation_errors = list(step.errors)

        if step.action == "rejected":
            if self.position.page == 1:
                self.validation.force_touch(self.draft)
                self._notify(
                    "error",
                    "Please fill all required fields:\n" + "\n".join(step.errors),
                )
            else:
                self._notify("error", step.errors[0])
        elif step.action == "move":
            self.position = step.position
        elif step.action == "submit":
            await self.submit()
        return step

    def retreat(self) -> Step:
        step = graph.retreat(self.position)
        if step.action == "move":
            self.position = step.position
        return step

    def start_fresh(self) -> Step:
        step = graph.start_fresh()
        self._reset()
        self.position = step.position
        return step

    def _reset(self) -> None:
        if self.scratch is not None:
            self.scratch.clear(self.session_id)
        self.draft = self._fresh_draft()
        self.validation.clear()
        self.validation_errors = []
        self.agent_prompt_text = ""
        self.agent_prompt_edited = False
        self.confirming_close = False
        self.transcription_progress = None
        self.position = START_POSITION
        self.has_user_made_changes = False
        self._sync_agent_prompt_text()

    # -- Closing ------------------------------------------------------------

    def close(self) -> bool:
        """Attempt to close.

        Returns:
            True if the wizard closed; False if confirmation is required
            first (see confirm_close).
        """
        if has_meaningful_changes(self.draft):
            self.confirming_close = True
            return False
        self._dismiss()
        return True

    def confirm_close(self) -> None:
        self._dismiss()

    def cancel_close(self) -> None:
        self.confirming_close = False

    def _dismiss(self) -> None:
        self._reset()
        self.alive = False
        if self.on_close:
            self.on_close()

    # -- Website draft ------------------------------------------------------

    def _persist_website(self) -> None:
        if self.editing or self.scratch is None:
            return
        self.scratch.save(self.session_id, self.draft.website.to_scratch())

    # -- Collaborator calls -------------------------------------------------

    async def generate_prompt(self) -> bool:
        """Generate the conversation flow and supporting sections."""
        if not self.services.authenticated:
            self._notify("error", AUTH_REQUIRED)
            return False
        if not self.draft.prompt_description:
            self._notify("error", "Please provide a transcript or description")
            return False
        if not self._begin("generate_prompt"):
            return False

        direction = self.draft.call_direction
        request = {
            "description": self.draft.prompt_description,
            "agent_name": self.draft.agent_name,
            "company_name": self.draft.company_name,
            "company_info": self.draft.company_description,
            "role": self.draft.role,
            "language": self.draft.language,
            "dynamic_variables": [
                {"name": v.name, "description": v.description}
                for v in self.draft.dynamic_variables
            ],
            "voice_id": self.draft.voice_id,
            # Web agents share the inbound prompt template.
            "call_type": (
                CallDirection.INBOUND.value
                if direction in (None, CallDirection.WEB)
                else direction.value
            ),
        }

        try:
            response = await self.services.generate_prompt(request)
            if not self.alive:
                return False
            self.draft.generated_prompt = response.get("prompt") or ""
            sections = response.get("parsed_sections") or {}
            if sections:
                apply_parsed_sections(self.draft, sections)
                self.draft.conversation_flow = sections.get("conversationFlow") or ""
            self._notify("success", "Call flow generated successfully!")
            self._changed()
            return True
        except WizardAPIError as e:
            logger.error("Call flow generation error: %s", e.message)
            if self.alive:
                self._notify("error", e.message or "Failed to generate call flow")
            return False
        finally:
            self._end("generate_prompt")

    async def scrape_website(self) -> bool:
        """Scrape the company website and summarize it.

        The draft only changes when both the scrape and the summary succeed.
        """
        if not self.services.authenticated:
            self._notify("error", AUTH_REQUIRED)
            return False
        url = self.draft.company_website
        if not url:
            self._notify("error", "Please enter a website URL")
            return False
        if not self._begin("scrape_website"):
            return False

        try:
            scraped = await self.services.scrape_website(url)
            if not self.alive:
                return False
            content = scraped.get("content") or ""
            summary = await self.services.generate_faqs(content)
            if not self.alive:
                return False
        except WizardAPIError as e:
            logger.error("Website analysis error: %s", e.message)
            if self.alive:
                self._notify("error", e.message or "Failed to analyze website")
            return False
        finally:
            self._end("scrape_website")

        business_context = summary.get("business_context") or ""
        faqs = [f for f in summary.get("faqs") or [] if isinstance(f, dict)]
        if business_context:
            self.draft.company_description = business_context
        self.draft.faqs = [
            FAQItem(question=f.get("question") or "", answer=f.get("answer") or "")
            for f in faqs
        ]
        self.draft.website = WebsiteData(
            url=url,
            content=content,
            faqs=faqs,
            business_context=business_context,
            tasks="",
            is_loaded=True,
        )
        self._persist_website()
        self._notify("success", "Website content analyzed successfully!")
        self._changed()
        return True

    async def transcribe(self, files: list[AudioFile]) -> int:
        """Transcribe audio files and append them to the description.

        Returns:
            Number of files transcribed successfully.
        """
        if not files:
            self._notify("error", "Please select audio files first")
            return 0
        if not self.services.authenticated:
            self._notify("error", AUTH_REQUIRED)
            return 0

        limits = self.config.get("transcription") or {}
        try:
            validate_audio_files(
                files,
                accepted_formats=tuple(limits.get("accepted_formats") or ACCEPTED_FORMATS),
                max_files=limits.get("max_files", MAX_FILES),
                max_file_size=limits.get("max_file_size_mb", 100) * 1024 * 1024,
            )
        except InvalidAudioFiles as e:
            self._notify("error", str(e))
            return 0
        if not self._begin("transcribe"):
            return 0

        def on_progress(message: str, percentage: int) -> None:
            self.transcription_progress = (message, percentage)

        self.transcription_progress = ("Starting transcription...", 0)
        try:
            results = await self.services.transcribe_files(files, on_progress)
        except (WizardAPIError, InvalidAudioFiles) as e:
            logger.error("Transcription failed: %s", e)
            if self.alive:
                self._notify("error", str(e) or "Failed to transcribe audio")
            return 0
        finally:
            self._end("transcribe")
            self.transcription_progress = None

        if not self.alive:
            return 0

        succeeded = successful(results)
        if succeeded:
            formatted = format_transcripts_for_prompt(succeeded)
            self.draft.prompt_description = append_transcripts(
                self.draft.prompt_description, formatted,
            )
            self.draft.call_transcripts.extend(
                (r.get("transcript") or {}).get("text") or "" for r in succeeded
            )
            self._notify("success", f"Successfully transcribed {len(succeeded)} file(s)")
            self._changed()

        for result in failed(results):
            self._notify(
                "error", f"Failed to transcribe {result.get('filename')}: {result.get('error')}",
            )
        return len(succeeded)

    def _agent_ref(self) -> str:
        if self.editing_agent is not None and self.editing_agent.get("id"):
            return str(self.editing_agent["id"])
        return f"temp-{int(time.time() * 1000)}"

    def _transcript(self) -> str:
        for text in [self.draft.prompt_description, *self.draft.call_transcripts]:
            if text.strip():
                return text
        return ""

    async def generate_tasks(self) -> bool:
        if not self.services.authenticated:
            self._notify("error", AUTH_REQUIRED)
            return False
        transcript = self._transcript()
        if not transcript and not self.draft.faqs:
            self._notify("error", "Please provide a call transcript or generate FAQs first")
            return False
        if not self._begin("generate_tasks"):
            return False

        request = {
            "agent_id": self._agent_ref(),
            "transcript": transcript or None,
            "user_tasks": [t for t in self.draft.tasks if t.strip()],
            "website_data": {
                "business_context": self.draft.website.business_context,
                "faqs": [{"question": f.question, "answer": f.answer} for f in self.draft.faqs],
            },
            "agent_role": self.draft.role,
        }
        try:
            response = await self.services.generate_tasks(request)
            if not self.alive:
                return False
            tasks = response.get("tasks") or ""
            self.draft.tasks = parse_tasks_string(tasks)
            self.draft.website.tasks = tasks
            self._persist_website()
            self._notify("success", "Tasks generated successfully!")
            return True
        except WizardAPIError as e:
            logger.error("Task generation error: %s", e.message)
            if self.alive:
                self._notify("error", e.message or "Failed to generate tasks")
            return False
        finally:
            self._end("generate_tasks")

    async def generate_conversation_flow(self) -> bool:
        if not self.services.authenticated:
            self._notify("error", AUTH_REQUIRED)
            return False
        if not self.draft.tasks:
            self._notify("error", "Please generate tasks first")
            return False
        if not self._begin("generate_conversation_flow"):
            return False

        request = {
            "agent_id": self._agent_ref(),
            "transcript": self._transcript() or None,
            "tasks": tasks_to_string(self.draft.tasks),
        }
        try:
            response = await self.services.generate_conversation_flow(request)
            if not self.alive:
                return False
            self.draft.conversation_flow = response.get("conversation_flow") or ""
            self._notify("success", "Conversation flow generated successfully!")
            self._changed()
            return True
        except WizardAPIError as e:
            logger.error("Conversation flow generation error: %s", e.message)
            if self.alive:
                self._notify("error", e.message or "Failed to generate conversation flow")
            return False
        finally:
            self._end("generate_conversation_flow")

    # -- Submission ---------------------------------------------------------

    def _submit_precondition_error(self) -> str | None:
        if not self.services.authenticated:
            return AUTH_REQUIRED
        if self.privileged and not self.draft.company_id:
            return "Please select a company to assign this agent to"
        if not self.draft.agent_name.strip():
            self.position = START_POSITION
            return "Agent name is required"
        if not self.draft.company_name.strip():
            self.position = START_POSITION
            return "Company name is required"
        if not self.draft.voice_id:
            return "Please select a voice for your agent"
        return None

    async def submit(self) -> dict | None:
        """Create or update the agent.

        On success the wizard closes and ``on_complete`` receives the
        persisted record. On failure the position is unchanged and an error
        notice is raised.
        """
        if self.is_submitting:
            logger.debug("Submission already in flight")
            return None
        error = self._submit_precondition_error()
        if error:
            self._notify("error", error)
            return None

        prompt, parsed_sections = self.full_prompt()
        payload = build_agent_payload(
            self.draft,
            prompt=prompt,
            parsed_sections=parsed_sections,
            editing=self.editing,
            privileged=self.privileged,
        )

        self.is_submitting = True
        try:
            if self.editing:
                record = await self.services.update_agent(str(self.editing_agent["id"]), payload)
                message = f'Agent "{self.draft.agent_name}" updated successfully!'
            else:
                record = await self.services.create_agent(payload)
                message = f'Agent "{self.draft.agent_name}" created successfully!'
        except WizardAPIError as e:
            logger.error("Agent %s error: %s", "update" if self.editing else "creation", e.message)
            if self.alive:
                fallback = "Failed to update agent" if self.editing else "Failed to create agent"
                self._notify("error", e.message or fallback)
            return None
        finally:
            self.is_submitting = False

        if not self.alive:
            return None

        self._notify("success", message)
        self.result = record
        if self.scratch is not None:
            self.scratch.clear(self.session_id)
        self._reset()
        self.alive = False
        if self.on_complete:
            self.on_complete(record)
        return record
