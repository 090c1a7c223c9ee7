"""Slack incoming-webhook sink."""

from __future__ import annotations

from typing import Any

import httpx

from ...errors import DeliveryError
from ...models import Candidate, HireCandidate
from .base import BaseSink


def format_blocks(candidate: Candidate) -> dict[str, Any]:
    """Render a candidate as a Slack message payload."""

    if isinstance(candidate, HireCandidate):
        headline = f":tada: New hire at {candidate.company}"
        body = f"*{candidate.person_name}* joined as *{candidate.position}*"
        link = candidate.profile_url
    else:
        headline = f":briefcase: New job at {candidate.company}"
        body = f"*{candidate.title}* ({candidate.location})"
        link = candidate.url
    context = f"confidence {candidate.confidence} | source {candidate.source_tag.value} via {candidate.strategy}"
    if link:
        body += f"\n<{link}|View source>"
    return {
        "text": f"{headline}: {body}",
        "blocks": [
            {"type": "header", "text": {"type": "plain_text", "text": headline}},
            {"type": "section", "text": {"type": "mrkdwn", "text": body}},
            {"type": "context", "elements": [{"type": "mrkdwn", "text": context}]},
        ],
    }


class SlackSink(BaseSink):
    name = "slack"

    def __init__(
        self, webhook_url: str, timeout: float = 10.0, client: httpx.Client | None = None
    ) -> None:
        self.webhook_url = webhook_url
        self._client = client or httpx.Client(timeout=timeout)
        self._owns_client = client is None

    def notify(self, candidate: Candidate) -> None:
        try:
            response = self._client.post(self.webhook_url, json=format_blocks(candidate))
        except httpx.HTTPError as exc:
            raise DeliveryError(f"slack webhook unreachable: {exc}") from exc
        if response.status_code >= 300:
            raise DeliveryError(f"slack webhook returned {response.status_code}")

    def close(self) -> None:
        if self._owns_client:
            self._client.close()


__all__ = ["SlackSink", "format_blocks"]
