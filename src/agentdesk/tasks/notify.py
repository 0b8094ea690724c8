"""Operator notification delivery."""

from __future__ import annotations

import logging

import httpx

from agentdesk.config import get_settings

logger = logging.getLogger(__name__)


async def post_approval_notice(
    notification_id: str,
    title: str,
    body: str,
    company_id: str | None = None,
    agent_name: str | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> bool:
    """Post a pending-approval notice to the operator's Slack webhook."""
    webhook = get_settings().slack_webhook_url
    if not webhook:
        logger.debug("SLACK_WEBHOOK_URL not set; skipping notice %s", notification_id)
        return False
    context = " | ".join(
        part
        for part in (
            f"agent: {agent_name}" if agent_name else "",
            f"company: {company_id}" if company_id else "",
            f"ref: {notification_id}",
        )
        if part
    )
    payload = {
        "text": f"{title}\n{body}",
        "blocks": [
            {"type": "header", "text": {"type": "plain_text", "text": title[:150]}},
            {"type": "section", "text": {"type": "mrkdwn", "text": body[:2900]}},
            {"type": "context", "elements": [{"type": "mrkdwn", "text": context}]},
        ],
    }
    async with httpx.AsyncClient(timeout=10, transport=transport) as client:
        response = await client.post(webhook, json=payload)
        response.raise_for_status()
    logger.info("Posted approval notice %s", notification_id)
    return True
