from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlencode

from sqlalchemy.orm import Session

from ..errors import UpstreamError
from ..metrics import SLACK_COMMANDS
from . import slack_messages as msg
from .effort_service import EffortService
from .share_service import ShareService, share_url
from .slack_client import SlackClient
from .slack_link_service import SlackLinkService

logger = logging.getLogger(__name__)

EFFORT_COMMAND = "/effort"
UNLINKED_ALLOWED = {"help", "link"}
KNOWN_SUBCOMMANDS = {"help", "link", "list", "view", "share", "new"}


@dataclass
class SlashCommand:
    command: str
    text: str
    user_id: str
    team_id: str = ""
    channel_id: str = ""
    trigger_id: Optional[str] = None

    @property
    def subcommand(self) -> str:
        parts = (self.text or "").strip().split(None, 1)
        sub = parts[0].lower() if parts else "help"
        return sub if sub in KNOWN_SUBCOMMANDS else "help"

    @property
    def argument(self) -> str:
        parts = (self.text or "").strip().split(None, 1)
        return parts[1].strip() if len(parts) > 1 else ""


class SlackCommandService:
    """Flat dispatch of ``/effort`` subcommands; ``None`` means acknowledge with an empty body."""

    def __init__(self, db: Session, client: SlackClient, base_url: str):
        self.db = db
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.efforts = EffortService(db)
        self.shares = ShareService(db)

    def handle(self, cmd: SlashCommand) -> Optional[Dict[str, Any]]:
        if cmd.command != EFFORT_COMMAND:
            return msg.ephemeral("Unknown command")
        sub = cmd.subcommand
        SLACK_COMMANDS.labels(subcommand=sub).inc()
        if sub == "help":
            return msg.ephemeral(msg.HELP_TEXT)
        if sub == "link":
            return msg.link_prompt(self.link_url(cmd.user_id))

        slack_user = SlackLinkService.linked_user(self.db, cmd.user_id)
        if slack_user is None:
            return msg.link_prompt(self.link_url(cmd.user_id))

        if sub == "list":
            return msg.ephemeral(msg.graph_list_text(self.efforts.list_accessible(slack_user.user_id)))
        if sub == "view":
            return self._view(cmd, slack_user.user_id)
        if sub == "share":
            return self._share(cmd, slack_user.user_id)
        return self._new(cmd)

    def link_url(self, slack_user_id: str) -> str:
        return f"{self.base_url}/api/slack/link?{urlencode({'slack_user_id': slack_user_id})}"

    def _view(self, cmd: SlashCommand, user_id: str) -> Dict[str, Any]:
        if not cmd.argument:
            return msg.ephemeral("Usage: `/effort view [name]`")
        found = self.efforts.find_by_name(user_id, cmd.argument)
        if not found:
            return msg.ephemeral(f'No effort named "{cmd.argument}" found. Try `/effort list`.')
        graph = found.graph
        workstreams = self.efforts.list_workstreams(graph.id)
        share = self.shares.active_share(graph.id)
        blocks = msg.effort_blocks(
            graph,
            workstreams,
            msg.chart_image_url(self.base_url, graph, user_id),
            share_url(self.base_url, share.share_token) + "?source=slack" if share else None,
        )
        return msg.ephemeral(f"Viewing effort: {graph.name}", blocks)

    def _share(self, cmd: SlashCommand, user_id: str) -> Dict[str, Any]:
        if not cmd.argument:
            return msg.ephemeral("Usage: `/effort share [name]`")
        found = self.efforts.find_by_name(user_id, cmd.argument)
        if not found:
            return msg.ephemeral(f'No effort named "{cmd.argument}" found. Try `/effort list`.')
        if not found.access.can_edit:
            return msg.ephemeral("You need editor access to share this effort.")
        graph = found.graph
        share = self.shares.get_or_create(graph.id, created_by=user_id)
        blocks = msg.effort_blocks(
            graph,
            self.efforts.list_workstreams(graph.id),
            msg.chart_image_url(self.base_url, graph, user_id),
            share_url(self.base_url, share.share_token) + "?source=slack",
        )
        return msg.in_channel(f"{graph.name} shared by <@{cmd.user_id}>", blocks)

    def _new(self, cmd: SlashCommand) -> Optional[Dict[str, Any]]:
        if not cmd.trigger_id:
            return msg.ephemeral("Couldn't open the form: missing trigger. Please try again.")
        try:
            self.client.open_view(cmd.trigger_id, msg.create_effort_modal())
        except UpstreamError as e:
            logger.error("views.open failed: %s", e.message)
            return msg.ephemeral("Couldn't open the form. Please try again.")
        return None
