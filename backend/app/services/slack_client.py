"""Slack Web API client (``requests`` over HTTPS).

Takes the ``SlackConfig`` it should use; nothing here reads the environment.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

import requests

from ..config import SlackConfig
from ..errors import UpstreamError

logger = logging.getLogger(__name__)

SLACK_API = "https://slack.com/api"
AUTHORIZE_URL = "https://slack.com/oauth/v2/authorize"


class SlackClient:
    def __init__(self, config: SlackConfig, timeout: float = 5.0, session: requests.Session | None = None):
        self.config = config
        self.timeout = timeout
        self.session = session or requests.Session()

    def _check(self, method: str, res: requests.Response) -> Dict[str, Any]:
        try:
            data = res.json()
        except ValueError:
            raise UpstreamError("SLACK_BAD_RESPONSE", f"{method}: non-JSON response ({res.status_code})")
        if not data.get("ok"):
            error = data.get("error", "unknown_error")
            logger.error("Slack %s failed: %s", method, error)
            raise UpstreamError("SLACK_API_ERROR", f"{method}: {error}")
        return data

    def _post(self, method: str, payload: Dict[str, Any], token: Optional[str] = None) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {token or self.config.bot_token}"}
        try:
            res = self.session.post(f"{SLACK_API}/{method}", json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise UpstreamError("SLACK_UNAVAILABLE", f"{method}: {e}")
        return self._check(method, res)

    # --- bot token calls ---
    def post_message(self, channel: str, blocks: List[Dict[str, Any]], text: str = "") -> Dict[str, Any]:
        return self._post("chat.postMessage", {"channel": channel, "blocks": blocks, "text": text})

    def update_message(self, channel: str, ts: str, blocks: List[Dict[str, Any]], text: str = "") -> Dict[str, Any]:
        return self._post("chat.update", {"channel": channel, "ts": ts, "blocks": blocks, "text": text})

    def open_view(self, trigger_id: str, view: Dict[str, Any]) -> Dict[str, Any]:
        return self._post("views.open", {"trigger_id": trigger_id, "view": view})

    # --- OAuth (user identity) ---
    def authorize_url(self, redirect_uri: str, state: str, user_scopes: List[str]) -> str:
        req = requests.Request(
            "GET",
            AUTHORIZE_URL,
            params={
                "client_id": self.config.client_id,
                "user_scope": ",".join(user_scopes),
                "redirect_uri": redirect_uri,
                "state": state,
            },
        ).prepare()
        return req.url

    def exchange_code(self, code: str, redirect_uri: str) -> Dict[str, Any]:
        try:
            res = self.session.post(
                f"{SLACK_API}/oauth.v2.access",
                data={
                    "client_id": self.config.client_id,
                    "client_secret": self.config.client_secret,
                    "code": code,
                    "redirect_uri": redirect_uri,
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise UpstreamError("SLACK_UNAVAILABLE", f"oauth.v2.access: {e}")
        return self._check("oauth.v2.access", res)

    def identity(self, user_token: str) -> Dict[str, Any]:
        try:
            res = self.session.get(
                f"{SLACK_API}/users.identity",
                headers={"Authorization": f"Bearer {user_token}"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise UpstreamError("SLACK_UNAVAILABLE", f"users.identity: {e}")
        return self._check("users.identity", res)
