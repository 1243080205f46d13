"""Default collaborator implementations and their factory."""

from __future__ import annotations

import logging
from typing import Optional

from ..config import FlowrunnerConfig
from .base import Collaborators, TokenProvider
from .calendar import RestCalendarClient
from .chat import AgentChatClient, BotpressClient
from .content import WebContentExtractor
from .email import GraphEmailSender
from .http import RequestsHttpClient
from .sms import RestSmsSender

logger = logging.getLogger(__name__)


def build_collaborators(
    config: FlowrunnerConfig, token_provider: Optional[TokenProvider] = None
) -> Collaborators:
    """Create the default clients described by ``config``.

    Email and calendar clients need per-user OAuth tokens and are only built
    when a ``token_provider`` is supplied. SMS and Botpress are skipped when
    their API credentials are missing.
    """
    http = RequestsHttpClient(timeout=config.http.timeout)
    collaborators = Collaborators(
        content_extractor=WebContentExtractor(timeout=config.http.timeout),
        chat=AgentChatClient(config.llm.model, config.llm.temperature),
        http=http,
    )
    if token_provider is not None:
        collaborators.email_sender = GraphEmailSender(http, token_provider)
        collaborators.calendar = RestCalendarClient(http, token_provider)
    if config.sms.api_key:
        collaborators.sms_sender = RestSmsSender(
            http, config.sms.api_url, config.sms.api_key, config.sms.default_sender
        )
    else:
        logger.debug("SMS_API_KEY not set; send_sms steps will fail")
    if config.botpress.api_token:
        collaborators.bot = BotpressClient(
            http, config.botpress.api_url, config.botpress.api_token
        )
    return collaborators


__all__ = [
    "AgentChatClient",
    "BotpressClient",
    "Collaborators",
    "GraphEmailSender",
    "RequestsHttpClient",
    "RestCalendarClient",
    "RestSmsSender",
    "WebContentExtractor",
    "build_collaborators",
]
