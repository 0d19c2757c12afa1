"""Social post inspection: URL structure and best-effort freshness."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Final

import httpx

from faucet_gate.core.errors import ValidationError
from faucet_gate.core.settings import Settings, settings
from faucet_gate.db.time import as_utc, utcnow

logger = logging.getLogger(__name__)

POST_URL_PATTERN: Final = re.compile(
    r"^https?://(www\.)?(twitter\.com|x\.com)/[^/]+/status/(?P<post_id>\d+)"
)
_DATETIME_ATTR: Final = re.compile(r'datetime="([^"]+)"')


def extract_post_id(post_url: str) -> str | None:
    """Return the numeric post id of a well-formed post URL, or None."""
    if not isinstance(post_url, str):
        return None
    match = POST_URL_PATTERN.match(post_url.strip())
    return match.group("post_id") if match else None


def parse_embed_timestamp(html: str) -> datetime | None:
    """Return the first ``datetime="..."`` timestamp found in embed markup."""
    match = _DATETIME_ATTR.search(html or "")
    if not match:
        return None
    raw = match.group(1).strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        return as_utc(datetime.fromisoformat(raw))
    except ValueError:
        return None


class PostInspector:
    """Validate post URLs and check post age through the public oEmbed endpoint.

    The age check never blocks on its own failure: an unreachable lookup, a
    non-200 answer or markup without a timestamp all count as fresh.
    """

    def __init__(
        self,
        config: Settings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._config = config or settings
        self._transport = transport
        self._clock = clock

    def validate(self, post_url: str) -> str:
        """Return the post id of ``post_url``.

        Raises:
            ValidationError: If the URL is not a post link.
        """
        post_id = extract_post_id(post_url)
        if post_id is None:
            raise ValidationError(
                "Invalid post URL format. Use https://twitter.com/<user>/status/<id> "
                "or https://x.com/<user>/status/<id>"
            )
        return post_id

    async def fetch_post_time(self, post_url: str) -> datetime | None:
        """Look up the publication time of a post; None when unknown."""
        params = {"omit_script": "1", "hide_thread": "1", "url": post_url}
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self._config.post_lookup_timeout_seconds),
                transport=self._transport,
            ) as client:
                response = await client.get(self._config.post_oembed_url, params=params)
            if response.status_code != 200:
                logger.debug("Post lookup returned HTTP %s for %s", response.status_code, post_url)
                return None
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.debug("Post lookup failed for %s: %s", post_url, exc)
            return None
        html = data.get("html") if isinstance(data, dict) else None
        return parse_embed_timestamp(html or "")

    async def is_fresh(self, post_url: str) -> bool:
        """Return False only when the post is known to be older than the window."""
        if not self._config.post_freshness_check_enabled:
            return True
        posted_at = await self.fetch_post_time(post_url)
        if posted_at is None:
            return True
        age = self._clock() - posted_at
        return age <= timedelta(seconds=self._config.post_max_age_seconds)
