"""AnkiConnect API client."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import TYPE_CHECKING, Any, TypeVar

import httpx

from cardqueue.adapters.ankiconnect.models import (
    AnkiConnectRequest,
    AnkiNote,
    AnkiStatus,
    NoteInfo,
)
from cardqueue.domain.exceptions import NetworkError, ServiceError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from typing import Self

    from cardqueue.config import AnkiConnectConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_URL = "http://127.0.0.1:8765"
DEFAULT_API_VERSION = 6

# HTTP status codes that should trigger a retry
RETRYABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}

# Default retry configuration (read-only actions only)
DEFAULT_MAX_RETRIES = 2
DEFAULT_BASE_DELAY = 0.5  # seconds
DEFAULT_MAX_DELAY = 5.0  # seconds
DEFAULT_JITTER = 0.1  # 10% jitter

# Used when the service cannot be asked for its note types
FALLBACK_MODEL_NAMES = ["Basic", "Cloze"]


def _is_retryable_error(exc: Exception) -> bool:
    """Check if an exception is worth retrying.

    Args:
        exc: The exception to check

    Returns:
        True for transport failures and transient HTTP statuses
    """
    if isinstance(exc, NetworkError):
        return True
    if isinstance(exc, ServiceError):
        return exc.status_code in RETRYABLE_STATUS_CODES
    return False


def _calculate_delay(attempt: int, base_delay: float, max_delay: float, jitter: float) -> float:
    """Calculate delay with exponential backoff and jitter.

    Args:
        attempt: Current attempt number (0-indexed)
        base_delay: Base delay in seconds
        max_delay: Maximum delay in seconds
        jitter: Jitter factor (0.1 = 10% random variation)

    Returns:
        Delay in seconds
    """
    delay = min(base_delay * (2**attempt), max_delay)
    jitter_amount = delay * jitter * random.random()
    return delay + jitter_amount


async def retry_with_backoff(
    func: Callable[[], Awaitable[T]],
    *,
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
    jitter: float = DEFAULT_JITTER,
    operation_name: str = "operation",
) -> T:
    """Execute an async function with exponential backoff retry.

    The last error is re-raised unchanged once retries are exhausted so that
    callers can still tell transport failures from service rejections.

    Args:
        func: Async function to execute
        max_retries: Maximum number of retry attempts
        base_delay: Base delay between retries in seconds
        max_delay: Maximum delay between retries
        jitter: Random jitter factor to add to delay
        operation_name: Name of operation for logging

    Returns:
        Result of the function
    """
    attempt = 0
    while True:
        try:
            return await func()
        except (NetworkError, ServiceError) as e:
            if not _is_retryable_error(e):
                raise

            if attempt >= max_retries:
                logger.warning(
                    "anki_retry_exhausted",
                    extra={
                        "operation": operation_name,
                        "attempts": attempt + 1,
                        "error": str(e),
                    },
                )
                raise

            delay = _calculate_delay(attempt, base_delay, max_delay, jitter)
            logger.debug(
                "anki_retry_attempt",
                extra={
                    "operation": operation_name,
                    "attempt": attempt + 1,
                    "max_retries": max_retries,
                    "delay_seconds": round(delay, 2),
                    "error": str(e),
                },
            )
            await asyncio.sleep(delay)
            attempt += 1


class AnkiConnectClient:
    """Async HTTP client for the AnkiConnect add-on.

    Only idempotent read actions are retried. ``addNote``, ``updateNote`` and
    ``deleteNotes`` are sent exactly once; a pending item whose submission
    fails stays queued for the next pass instead.
    """

    # Default per-action timeouts (seconds)
    DEFAULT_TIMEOUTS: dict[str, float] = {
        "version": 5.0,
        "deckNames": 10.0,
        "modelNames": 10.0,
        "modelFieldNames": 10.0,
        "findNotes": 30.0,
        "notesInfo": 30.0,
        "addNote": 15.0,
        "updateNote": 15.0,
        "deleteNotes": 15.0,
    }

    def __init__(
        self,
        url: str = DEFAULT_URL,
        *,
        api_version: int = DEFAULT_API_VERSION,
        api_key: str | None = None,
        timeout: float = 10.0,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_base_delay: float = DEFAULT_BASE_DELAY,
        retry_max_delay: float = DEFAULT_MAX_DELAY,
        action_timeouts: dict[str, float] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize AnkiConnect client.

        Args:
            url: AnkiConnect endpoint (e.g., http://127.0.0.1:8765)
            api_version: AnkiConnect API version sent with every request
            api_key: Optional key configured in the add-on
            timeout: Default request timeout in seconds
            max_retries: Maximum retries for transient failures of read actions
            retry_base_delay: Base delay between retries in seconds
            retry_max_delay: Maximum delay between retries in seconds
            action_timeouts: Custom per-action timeouts (overrides defaults)
            transport: Optional httpx transport, mainly for tests
        """
        self.url = url.rstrip("/")
        self.api_version = api_version
        self.api_key = api_key
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.retry_max_delay = retry_max_delay
        self.action_timeouts = {**self.DEFAULT_TIMEOUTS}
        if action_timeouts:
            self.action_timeouts.update(action_timeouts)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_config(cls, cfg: AnkiConnectConfig, **kwargs: Any) -> AnkiConnectClient:
        return cls(
            cfg.url,
            api_version=cfg.api_version,
            api_key=cfg.api_key,
            timeout=cfg.timeout_sec,
            max_retries=cfg.max_retries,
            **kwargs,
        )

    def get_timeout(self, action: str) -> float:
        return self.action_timeouts.get(action, self.timeout)

    async def __aenter__(self) -> Self:
        """Enter async context."""
        self._client = httpx.AsyncClient(
            base_url=self.url,
            headers={"Content-Type": "application/json"},
            timeout=self.timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        """Exit async context."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client."""
        if self._client is None:
            msg = "AnkiConnect client not initialized. Use async context manager."
            raise RuntimeError(msg)
        return self._client

    async def invoke(self, action: str, params: dict[str, Any] | None = None) -> Any:
        """Send one AnkiConnect action and return its ``result``.

        Raises:
            NetworkError: The request could not be delivered or timed out.
            ServiceError: Non-2xx status, malformed body, or an ``error`` payload.
        """
        request = AnkiConnectRequest(
            action=action,
            version=self.api_version,
            params=params or {},
            key=self.api_key,
        )
        timeout = self.get_timeout(action)

        try:
            response = await self.client.post(
                "/", json=request.model_dump(exclude_none=True), timeout=timeout
            )
        except httpx.TimeoutException as exc:
            msg = f"AnkiConnect {action} timed out after {timeout}s"
            raise NetworkError(msg, details={"action": action}) from exc
        except httpx.TransportError as exc:
            msg = f"AnkiConnect is unreachable: {exc}"
            raise NetworkError(msg, details={"action": action}) from exc

        if not response.is_success:
            msg = f"AnkiConnect {action} failed with HTTP {response.status_code}"
            raise ServiceError(
                msg, details={"action": action}, status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as exc:
            msg = f"AnkiConnect {action} returned a non-JSON response"
            raise ServiceError(msg, details={"action": action}) from exc

        if not isinstance(data, dict) or "result" not in data or "error" not in data:
            msg = f"AnkiConnect {action} returned an unexpected response shape"
            raise ServiceError(msg, details={"action": action, "response": repr(data)[:200]})

        if data["error"] is not None:
            raise ServiceError(str(data["error"]), details={"action": action})

        return data["result"]

    async def _invoke_read(self, action: str, params: dict[str, Any] | None = None) -> Any:
        return await retry_with_backoff(
            lambda: self.invoke(action, params),
            max_retries=self.max_retries,
            base_delay=self.retry_base_delay,
            max_delay=self.retry_max_delay,
            operation_name=action,
        )

    async def version(self) -> int:
        """Return the AnkiConnect API version reported by the add-on."""
        result = await self._invoke_read("version")
        if not isinstance(result, int):
            msg = "AnkiConnect version returned a non-integer result"
            raise ServiceError(msg, details={"action": "version"})
        return result

    async def deck_names(self) -> list[str]:
        return _string_list(await self._invoke_read("deckNames"), "deckNames")

    async def model_names(self) -> list[str]:
        return _string_list(await self._invoke_read("modelNames"), "modelNames")

    async def model_field_names(self, model_name: str) -> list[str]:
        result = await self._invoke_read("modelFieldNames", {"modelName": model_name})
        return _string_list(result, "modelFieldNames")

    async def find_notes(self, query: str) -> list[int]:
        """Return ids of notes matching an Anki search query."""
        result = await self._invoke_read("findNotes", {"query": query})
        if not isinstance(result, list):
            msg = "AnkiConnect findNotes returned an unexpected result"
            raise ServiceError(msg, details={"action": "findNotes"})
        return [int(note_id) for note_id in result]

    async def notes_info(self, note_ids: list[int]) -> list[NoteInfo]:
        """Fetch details of existing notes."""
        result = await self._invoke_read("notesInfo", {"notes": list(note_ids)})
        if not isinstance(result, list):
            msg = "AnkiConnect notesInfo returned an unexpected result"
            raise ServiceError(msg, details={"action": "notesInfo"})
        # Unknown ids come back as empty objects
        return [NoteInfo.model_validate(entry) for entry in result if entry]

    async def add_note(self, note: AnkiNote) -> int:
        """Create a note and return the id assigned by Anki.

        Args:
            note: Note payload

        Returns:
            New note id
        """
        result = await self.invoke("addNote", {"note": note.to_params()})
        if isinstance(result, bool) or not isinstance(result, int):
            msg = "AnkiConnect addNote did not return a note id"
            raise ServiceError(msg, details={"action": "addNote", "result": repr(result)})
        logger.info(
            "anki_note_added",
            extra={"note_id": result, "deck": note.deck_name, "model": note.model_name},
        )
        return result

    async def update_note(
        self,
        note_id: int,
        *,
        fields: dict[str, str] | None = None,
        tags: list[str] | None = None,
    ) -> None:
        """Update fields and/or tags of an existing note."""
        payload: dict[str, Any] = {"id": note_id}
        if fields is not None:
            payload["fields"] = fields
        if tags is not None:
            payload["tags"] = tags
        await self.invoke("updateNote", {"note": payload})
        logger.debug("anki_note_updated", extra={"note_id": note_id})

    async def delete_notes(self, note_ids: list[int]) -> None:
        await self.invoke("deleteNotes", {"notes": list(note_ids)})
        logger.info("anki_notes_deleted", extra={"count": len(note_ids)})

    async def health_check(self) -> bool:
        """Check if AnkiConnect is reachable.

        Returns:
            True if the add-on answered the version request
        """
        try:
            return bool(await self.version())
        except (NetworkError, ServiceError) as e:
            logger.warning("anki_health_check_failed", extra={"error": str(e)})
            return False

    async def check_status(self) -> AnkiStatus:
        """Report reachability along with available decks and note types."""
        try:
            decks = await self.deck_names()
            models = await self.model_names()
        except (NetworkError, ServiceError) as e:
            return AnkiStatus(is_online=False, models=list(FALLBACK_MODEL_NAMES), error=str(e))

        if not decks:
            return AnkiStatus(
                is_online=False, models=list(FALLBACK_MODEL_NAMES), error="No decks available"
            )
        if not models:
            return AnkiStatus(
                is_online=False, models=list(FALLBACK_MODEL_NAMES), error="No models available"
            )
        return AnkiStatus(is_online=True, decks=decks, models=models)


def _string_list(result: Any, action: str) -> list[str]:
    if not isinstance(result, list) or not all(isinstance(value, str) for value in result):
        msg = f"AnkiConnect {action} returned an unexpected result"
        raise ServiceError(msg, details={"action": action})
    return result
