"""Create-effort modal submissions."""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..domain.workstream_parser import parse_workstreams
from ..errors import ValidationAppError
from . import slack_messages as msg
from .effort_service import EffortService, WorkstreamInput
from .slack_link_service import SlackLinkService

logger = logging.getLogger(__name__)

WORKSTREAMS_ERROR_FIELD = "workstreams_input"
NAME_ERROR_FIELD = "effort_name"


@dataclass
class SubmissionResult:
    body: Dict[str, Any]
    graph_id: Optional[str] = None
    owner_id: Optional[str] = None

    @property
    def created(self) -> bool:
        return self.graph_id is not None


def field_errors(**errors: str) -> Dict[str, Any]:
    return {"response_action": "errors", "errors": errors}


def _input_value(values: Dict[str, Any], block_id: str, action_id: str) -> Optional[str]:
    return ((values.get(block_id) or {}).get(action_id) or {}).get("value")


class SlackInteractionService:
    def __init__(self, db: Session):
        self.db = db

    def handle(self, payload: Dict[str, Any]) -> SubmissionResult:
        if payload.get("type") != "view_submission":
            logger.info("ignoring Slack interaction of type %s", payload.get("type"))
            return SubmissionResult(body={})
        view = payload.get("view") or {}
        if view.get("callback_id") != msg.CREATE_EFFORT_CALLBACK:
            logger.info("ignoring submission for view %s", view.get("callback_id"))
            return SubmissionResult(body={})
        return self._create_effort(payload)

    def _create_effort(self, payload: Dict[str, Any]) -> SubmissionResult:
        values = ((payload.get("view") or {}).get("state") or {}).get("values") or {}
        slack_user_id = (payload.get("user") or {}).get("id", "")
        name = _input_value(values, msg.EFFORT_NAME_BLOCK, msg.EFFORT_NAME_INPUT) or ""
        text = _input_value(values, msg.WORKSTREAMS_BLOCK, msg.WORKSTREAMS_INPUT) or ""
        description = _input_value(values, msg.DESCRIPTION_BLOCK, msg.DESCRIPTION_INPUT) or None

        parsed = parse_workstreams(text)
        try:
            parsed.raise_for_errors()
        except ValidationAppError as e:
            return SubmissionResult(body=field_errors(**{WORKSTREAMS_ERROR_FIELD: e.message}))

        slack_user = SlackLinkService.linked_user(self.db, slack_user_id)
        if slack_user is None:
            return SubmissionResult(body=field_errors(
                **{NAME_ERROR_FIELD: "Your account is not linked. Please run /effort link first."}
            ))

        try:
            graph = EffortService(self.db).create_graph(
                slack_user.user_id,
                name,
                [WorkstreamInput(ws.name, ws.effort, ws.color) for ws in parsed.workstreams],
                description=description,
            )
        except ValidationAppError as e:
            return SubmissionResult(body=field_errors(**{NAME_ERROR_FIELD: e.message}))
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("failed to create effort for slack user %s", slack_user_id)
            return SubmissionResult(body=field_errors(
                **{NAME_ERROR_FIELD: "Failed to create effort. Please try again."}
            ))
        return SubmissionResult(body={"response_action": "clear"}, graph_id=graph.id, owner_id=slack_user.user_id)
