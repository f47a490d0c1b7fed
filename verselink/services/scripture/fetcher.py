"""Verse text retrieval from the external scripture provider.

The provider (labs.bible.org) answers ``GET ?passage=John 3:16-18&type=json``
with a list of ``{bookname, chapter, verse, text}`` objects.
"""

import asyncio
from typing import Iterable, List, Optional, Sequence

import httpx
from httpx import HTTPStatusError, TimeoutException

from verselink.core.config import settings
from verselink.core.exceptions import ScriptureFetchError
from verselink.models.scripture import ParsedReference, Verse, VerseGroup
from verselink.utils.logging import get_logger

LOGGER = get_logger(__name__)

GROUP_DIVIDER = '<hr class="verse-group-divider" />'


def group_label(group: VerseGroup) -> str:
    """Label shown above one verse group of a multi-group passage."""
    if group.is_single:
        return f"Verse {group.start}:"
    return f"Verses {group.start}-{group.end}:"


class ScriptureApiClient:
    """HTTP client for the scripture content provider with retry logic."""

    def __init__(
        self,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
    ):
        """Initialize the provider client.

        Args:
            api_url: Provider endpoint
            timeout: Request timeout in seconds
            max_retries: Maximum attempts per passage
            retry_delay: Base delay for exponential backoff
        """
        self.api_url = api_url or settings.scripture.api_url
        self.timeout = timeout if timeout is not None else settings.scripture.http_timeout
        self.max_retries = max(1, max_retries if max_retries is not None else settings.scripture.max_retries)
        self.retry_delay = retry_delay if retry_delay is not None else settings.scripture.retry_delay

    async def fetch_passage(self, passage: str) -> List[Verse]:
        """Fetch the verses of one passage.

        Args:
            passage: Reference understood by the provider (e.g. "John 3:16-18")

        Returns:
            Verses in provider order

        Raises:
            ScriptureFetchError: On network errors, non-success statuses,
                malformed payloads or an empty verse list
        """
        params = {"passage": passage, "formatting": "plain", "type": "json"}

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            for attempt in range(self.max_retries):
                try:
                    response = await client.get(self.api_url, params=params)
                    response.raise_for_status()
                    return self._parse_verses(response.json(), passage)

                except HTTPStatusError as e:
                    await self._handle_http_error(e, attempt, passage)

                except TimeoutException as e:
                    await self._handle_retryable_error(e, attempt, passage, "Timeout")

                except httpx.RequestError as e:
                    await self._handle_retryable_error(e, attempt, passage, "Request error")

                except ValueError as e:
                    raise ScriptureFetchError(
                        f"Invalid JSON from scripture provider for {passage}", original_error=e
                    ) from e

        raise ScriptureFetchError(f"Failed to fetch {passage} after {self.max_retries} attempts")

    def _parse_verses(self, payload, passage: str) -> List[Verse]:
        if not isinstance(payload, list):
            raise ScriptureFetchError(f"Unexpected provider payload for {passage}")

        verses: List[Verse] = []
        for item in payload:
            if not isinstance(item, dict) or not item.get("text"):
                continue
            try:
                number = int(item.get("verse"))
            except (TypeError, ValueError):
                number = 0
            verses.append(Verse(number=number, text=str(item["text"]).strip()))

        if not verses:
            raise ScriptureFetchError(f"No verses found for {passage}")
        return verses

    async def _handle_http_error(self, error: HTTPStatusError, attempt: int, passage: str):
        status_code = error.response.status_code
        LOGGER.warning(
            f"Scripture provider HTTP error (Attempt {attempt + 1}/{self.max_retries})",
            extra={"passage": passage, "status_code": status_code},
        )

        # Don't retry on client errors (4xx) unless it's rate limiting (429)
        if 400 <= status_code < 500 and status_code != 429:
            raise ScriptureFetchError(
                f"Scripture provider error {status_code} for {passage}", original_error=error
            ) from error

        if attempt < self.max_retries - 1:
            await self._wait_before_retry(attempt)
        else:
            raise ScriptureFetchError(
                f"Scripture provider error {status_code} for {passage} after retries",
                original_error=error,
            ) from error

    async def _handle_retryable_error(self, error: Exception, attempt: int, passage: str, kind: str):
        LOGGER.warning(
            f"Scripture provider {kind} (Attempt {attempt + 1}/{self.max_retries})",
            extra={"passage": passage, "error": str(error)},
        )

        if attempt < self.max_retries - 1:
            await self._wait_before_retry(attempt)
        else:
            raise ScriptureFetchError(
                f"Scripture provider {kind.lower()} for {passage}: {error}", original_error=error
            ) from error

    async def _wait_before_retry(self, attempt: int):
        """Exponential backoff wait."""
        await asyncio.sleep(self.retry_delay * (2 ** attempt))


class ScriptureFetcher:
    """Builds the body text of a reference document from provider verses."""

    def __init__(self, api_client: Optional[ScriptureApiClient] = None):
        self.api_client = api_client or ScriptureApiClient()

    async def fetch_text(
        self,
        reference: ParsedReference,
        groups: Optional[Sequence[VerseGroup]] = None,
    ) -> str:
        """Return the text of a whole citation.

        A single-group citation is fetched in one call and its verses joined
        with spaces. Multi-group citations are fetched one call per group, in
        parallel, since the provider may drop ranges from a combined request;
        each group gets a label and groups are separated by a divider.

        Args:
            reference: Structured citation
            groups: Verse groups to fetch; defaults to the citation's own

        Returns:
            Passage text

        Raises:
            ScriptureFetchError: If any group fails or comes back empty
        """
        groups = list(groups or reference.groups)

        if len(groups) <= 1:
            verses = await self.api_client.fetch_passage(reference.key)
            return " ".join(verse.text for verse in verses)

        results = await asyncio.gather(
            *(self.api_client.fetch_passage(reference.group_reference(group)) for group in groups)
        )

        parts: List[str] = []
        for index, (group, verses) in enumerate(zip(groups, results)):
            group_verses = self._verses_in_group(group, verses)
            if not group_verses:
                raise ScriptureFetchError(
                    f"No verses returned for {reference.group_reference(group)}"
                )
            parts.append(f"<p><strong>{group_label(group)}</strong></p>")
            parts.append(f"<p>{' '.join(verse.text for verse in group_verses)}</p>")
            if index < len(groups) - 1:
                parts.append(GROUP_DIVIDER)

        return "".join(parts)

    @staticmethod
    def _verses_in_group(group: VerseGroup, verses: Iterable[Verse]) -> List[Verse]:
        verses = list(verses)
        in_range = [v for v in verses if group.start <= v.number <= group.end]
        # Providers that omit verse numbers still answered for this group alone
        if not in_range and all(v.number == 0 for v in verses):
            return verses
        return in_range
