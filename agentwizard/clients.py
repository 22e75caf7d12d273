"""Remote collaborators used by the wizard.

Provides:
- WizardServices: protocol for dependency injection
- WizardAPI: async HTTP client for the agent platform (httpx)
- MockWizardAPI: in-memory double for tests and local runs
"""

from __future__ import annotations

import logging
import os
from typing import Callable, Protocol

import httpx

from agentwizard.transcription import AudioFile, validate_audio_files

logger = logging.getLogger(__name__)


DEFAULT_API_URL = "http://localhost:8080/api/v1"
DEFAULT_TIMEOUT = 60.0

ProgressCallback = Callable[[str, int], None]


class WizardAPIError(Exception):
    """A remote call failed; ``message`` is safe to show to the user."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class WizardServices(Protocol):
    """Protocol defining the remote operations the wizard depends on."""

    @property
    def authenticated(self) -> bool:
        """Whether a bearer token is available."""
        ...

    async def generate_prompt(self, request: dict) -> dict:
        """Generate a prompt. Returns {prompt, parsed_sections}."""
        ...

    async def scrape_website(self, url: str) -> dict:
        """Fetch website content. Returns {content}."""
        ...

    async def generate_faqs(self, content: str) -> dict:
        """Summarize website content. Returns {business_context, faqs}."""
        ...

    async def transcribe_files(
        self, files: list[AudioFile], on_progress: ProgressCallback | None = None,
    ) -> list[dict]:
        """Transcribe audio. Returns one {filename, status, transcript, error} per file."""
        ...

    async def generate_tasks(self, request: dict) -> dict:
        """Generate a task list. Returns {tasks}."""
        ...

    async def generate_conversation_flow(self, request: dict) -> dict:
        """Generate an example conversation. Returns {conversation_flow}."""
        ...

    async def create_agent(self, payload: dict) -> dict:
        ...

    async def update_agent(self, agent_id: str, payload: dict) -> dict:
        ...

    async def list_voices(self) -> list[dict]:
        ...

    async def list_companies(self) -> list[dict]:
        ...


def _get_api_url() -> str:
    return os.environ.get("WIZARD_API_URL", DEFAULT_API_URL)


def _error_message(response: httpx.Response, fallback: str) -> str:
    """Map a failed response to a user-facing message."""
    try:
        body = response.json()
    except ValueError:
        body = None
    detail = None
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("message")

    status = response.status_code
    if status == 401:
        return "Authentication required. Please log in again."
    if status == 403:
        return "You do not have permission to use this feature"
    if status >= 500:
        return "Server error. Please try again later."
    return detail if isinstance(detail, str) and detail else fallback


class WizardAPI:
    """Async HTTP client for the agent platform API."""

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            base_url: API root. Defaults to WIZARD_API_URL or localhost.
            token: Bearer token. Defaults to WIZARD_API_TOKEN.
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport (tests use MockTransport).
        """
        self._base_url = (base_url or _get_api_url()).rstrip("/")
        self._token = token if token is not None else os.environ.get("WIZARD_API_TOKEN", "")
        self._timeout = timeout
        self._transport = transport

    @property
    def authenticated(self) -> bool:
        return bool(self._token)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            headers={"Authorization": f"Bearer {self._token}"},
            timeout=self._timeout,
            transport=self._transport,
        )

    async def _request(self, method: str, path: str, fallback: str, **kwargs):
        try:
            async with self._client() as client:
                response = await client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.error("%s %s timed out", method, path)
            raise WizardAPIError("Request timed out. Please try again.") from e
        except httpx.HTTPError as e:
            logger.error("%s %s failed: %s", method, path, e)
            raise WizardAPIError(fallback) from e

        if response.is_error:
            logger.error("%s %s returned %s: %s", method, path, response.status_code, response.text)
            raise WizardAPIError(_error_message(response, fallback), response.status_code)
        try:
            return response.json()
        except ValueError as e:
            logger.error("%s %s returned a non-JSON body: %.200s", method, path, response.text)
            raise WizardAPIError(fallback, response.status_code) from e

    # -- Generation ---------------------------------------------------------

    async def generate_prompt(self, request: dict) -> dict:
        data = await self._request(
            "POST", "/agents/generate-prompt", "Failed to generate prompt", json=request,
        )
        return {
            "prompt": data.get("prompt") or data.get("generated_prompt") or "",
            "parsed_sections": data.get("parsed_sections") or {},
        }

    async def scrape_website(self, url: str) -> dict:
        return await self._request(
            "POST", "/agents/scrape-website-wizard", "Failed to scrape website",
            json={"website_url": url},
        )

    async def generate_faqs(self, content: str) -> dict:
        return await self._request(
            "POST", "/agents/generate-faqs-wizard", "Failed to generate FAQs",
            json={"content": content},
        )

    async def generate_tasks(self, request: dict) -> dict:
        return await self._request(
            "POST", "/agents/generate-tasks", "Failed to generate tasks", json=request,
        )

    async def generate_conversation_flow(self, request: dict) -> dict:
        return await self._request(
            "POST", "/agents/generate-conversation-flow",
            "Failed to generate conversation flow", json=request,
        )

    async def transcribe_files(
        self, files: list[AudioFile], on_progress: ProgressCallback | None = None,
    ) -> list[dict]:
        """Upload audio files for transcription.

        Raises:
            InvalidAudioFiles: If the selection fails the pre-upload checks.
            WizardAPIError: If the upload fails as a whole.
        """
        validate_audio_files(files)

        if on_progress:
            on_progress("Uploading audio files...", 10)
        logger.info("Uploading %d file(s) for transcription", len(files))

        upload = [("files", (f.filename, f.content, f.content_type)) for f in files]
        data = await self._request(
            "POST", "/calliq/upload/multi-transcribe", "Failed to transcribe audio",
            files=upload,
        )
        if on_progress:
            on_progress("Processing transcription...", 50)

        transcriptions = (data.get("data") or {}).get("transcriptions") or []
        if on_progress:
            on_progress("Transcription complete!", 100)
        return transcriptions

    # -- Persistence --------------------------------------------------------

    async def create_agent(self, payload: dict) -> dict:
        return await self._request(
            "POST", "/agents/create-with-configuration",
            "Failed to create agent with configuration", json=payload,
        )

    async def update_agent(self, agent_id: str, payload: dict) -> dict:
        return await self._request(
            "PUT", f"/agents/{agent_id}/configuration",
            "Failed to update agent configuration", json=payload,
        )

    # -- Catalogs -----------------------------------------------------------

    async def list_voices(self) -> list[dict]:
        data = await self._request("GET", "/agents/voices/", "Failed to fetch voices")
        return [
            {
                "id": v.get("id"),
                "name": v.get("name"),
                "gender": v.get("gender"),
                "language": v.get("language"),
            }
            for v in data
        ]

    async def list_companies(self) -> list[dict]:
        data = await self._request(
            "GET", "/super-admin/dashboard", "Failed to fetch companies",
        )
        if not data.get("success"):
            return []
        return [{"id": c["id"], "name": c["name"]} for c in data.get("companies") or []]


class MockWizardAPI:
    """In-memory stand-in for WizardAPI.

    Responses can be overridden per operation through ``responses``; any
    operation named in ``failures`` raises WizardAPIError with that message.
    Every call is recorded in ``calls`` as ``(operation, argument)``.
    """

    def __init__(
        self,
        responses: dict | None = None,
        failures: dict[str, str] | None = None,
        *,
        authenticated: bool = True,
    ):
        self.responses = {
            "generate_prompt": {
                "prompt": "### CONVERSATION FLOW\nGreet the caller.",
                "parsed_sections": {"conversationFlow": "Greet the caller."},
            },
            "scrape_website": {"content": "Acme sells widgets."},
            "generate_faqs": {
                "business_context": "Widget retailer",
                "faqs": [{"question": "What do you sell?", "answer": "Widgets."}],
            },
            "transcribe_files": [],
            "generate_tasks": {"tasks": "##Tasks\n1. Greet the caller\n2. Qualify the lead"},
            "generate_conversation_flow": {"conversation_flow": "Agent: Hello!"},
            "list_voices": [],
            "list_companies": [],
            **(responses or {}),
        }
        self.failures = dict(failures or {})
        self.calls: list[tuple[str, object]] = []
        self._authenticated = authenticated
        self._next_agent_id = 1

    @property
    def authenticated(self) -> bool:
        return self._authenticated

    def _respond(self, operation: str, argument=None):
        self.calls.append((operation, argument))
        if operation in self.failures:
            raise WizardAPIError(self.failures[operation])
        return self.responses[operation]

    async def generate_prompt(self, request: dict) -> dict:
        return self._respond("generate_prompt", request)

    async def scrape_website(self, url: str) -> dict:
        return self._respond("scrape_website", url)

    async def generate_faqs(self, content: str) -> dict:
        return self._respond("generate_faqs", content)

    async def transcribe_files(
        self, files: list[AudioFile], on_progress: ProgressCallback | None = None,
    ) -> list[dict]:
        validate_audio_files(files)
        results = self._respond("transcribe_files", [f.filename for f in files])
        if on_progress:
            on_progress("Transcription complete!", 100)
        return results

    async def generate_tasks(self, request: dict) -> dict:
        return self._respond("generate_tasks", request)

    async def generate_conversation_flow(self, request: dict) -> dict:
        return self._respond("generate_conversation_flow", request)

    async def create_agent(self, payload: dict) -> dict:
        self.calls.append(("create_agent", payload))
        if "create_agent" in self.failures:
            raise WizardAPIError(self.failures["create_agent"])
        record = {"id": f"agent-{self._next_agent_id}", **payload}
        self._next_agent_id += 1
        return record

    async def update_agent(self, agent_id: str, payload: dict) -> dict:
        self.calls.append(("update_agent", payload))
        if "update_agent" in self.failures:
            raise WizardAPIError(self.failures["update_agent"])
        return {"id": agent_id, **payload}

    async def list_voices(self) -> list[dict]:
        return self._respond("list_voices")

    async def list_companies(self) -> list[dict]:
        return self._respond("list_companies")
