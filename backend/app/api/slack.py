"""Slack webhooks (commands, interactions, events) and the account-linking flow."""
import json
import logging
from urllib.parse import urlencode

from fastapi import APIRouter, BackgroundTasks, Body, Cookie, Depends, Form, Request, Response
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..db import models
from ..db.session import SessionLocal, get_db
from ..errors import ValidationAppError
from ..ports.chart_renderer import ChartRenderer
from ..ports.chart_store import ChartStore
from ..services import slack_messages as msg
from ..services.chart_service import prerender_chart
from ..services.slack_client import SlackClient
from ..services.slack_command_service import SlackCommandService, SlashCommand
from ..services.slack_interaction_service import NAME_ERROR_FIELD, SlackInteractionService, field_errors
from ..services.slack_link_service import SlackLinkError, SlackLinkService
from .auth import get_current_user, get_current_user_optional
from .deps import base_url, get_chart_renderer, get_chart_store, get_link_service, get_screenshot_renderer, get_slack_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/slack", tags=["slack"])

CALLBACK_PATH = "/api/slack/oauth/callback"


def _callback_uri(request: Request) -> str:
    return base_url(request) + CALLBACK_PATH


def _home_redirect(request: Request, **params: str) -> RedirectResponse:
    return RedirectResponse(f"{base_url(request)}/?{urlencode(params)}", status_code=307)


@router.post("/commands")
def slash_command(
    request: Request,
    command: str = Form(...),
    user_id: str = Form(...),
    text: str = Form(""),
    team_id: str = Form(""),
    channel_id: str = Form(""),
    trigger_id: str | None = Form(None),
    db: Session = Depends(get_db),
    client: SlackClient = Depends(get_slack_client),
):
    cmd = SlashCommand(command=command, text=text, user_id=user_id, team_id=team_id, channel_id=channel_id, trigger_id=trigger_id)
    try:
        body = SlackCommandService(db, client, base_url(request)).handle(cmd)
    except Exception:
        db.rollback()
        logger.exception("slash command %s %r failed for %s", command, text, user_id)
        return JSONResponse(msg.ephemeral("Sorry, something went wrong."))
    if body is None:
        return Response(status_code=200)
    return JSONResponse(body)


@router.post("/interactions")
def interaction(
    background_tasks: BackgroundTasks,
    payload: str = Form(...),
    db: Session = Depends(get_db),
    store: ChartStore = Depends(get_chart_store),
    renderer: ChartRenderer = Depends(get_screenshot_renderer),
    fallback: ChartRenderer = Depends(get_chart_renderer),
):
    try:
        result = SlackInteractionService(db).handle(json.loads(payload))
    except Exception:
        db.rollback()
        logger.exception("Slack interaction failed")
        return JSONResponse(field_errors(**{NAME_ERROR_FIELD: "Something went wrong. Please try again."}))
    if result.created:
        background_tasks.add_task(prerender_chart, SessionLocal, store, renderer, result.graph_id, result.owner_id, fallback)
    return JSONResponse(result.body)


@router.post("/events")
def events(body: dict = Body(...)):
    if body.get("type") == "url_verification":
        return {"challenge": body.get("challenge")}
    logger.info("Slack event received: %s", (body.get("event") or {}).get("type", body.get("type")))
    return {"ok": True}


@router.get("/link")
def start_link(request: Request, slack_user_id: str | None = None, links: SlackLinkService = Depends(get_link_service)):
    try:
        url = links.start(_callback_uri(request), slack_user_id)
    except SlackLinkError as e:
        return _home_redirect(request, error=e.code)
    return RedirectResponse(url, status_code=307)


@router.get("/oauth/callback")
def oauth_callback(
    request: Request,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    db: Session = Depends(get_db),
    links: SlackLinkService = Depends(get_link_service),
    current_user: models.User | None = Depends(get_current_user_optional),
):
    if error:
        logger.warning("Slack OAuth denied: %s", error)
        return _home_redirect(request, error="slack_auth_failed")
    if not code:
        return _home_redirect(request, error="missing_code")
    try:
        identity = links.complete_oauth(code, state, _callback_uri(request))
    except SlackLinkError as e:
        return _home_redirect(request, error=e.code)

    if current_user is None:
        response = _home_redirect(request, slack_pending="true")
        response.set_cookie(
            SlackLinkService.PENDING_COOKIE,
            links.pending_cookie_value(identity),
            max_age=SlackLinkService.PENDING_TTL_SECONDS,
            httponly=True,
            secure=request.url.scheme == "https",
            samesite="lax",
        )
        return response
    try:
        links.link(db, current_user.id, identity)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("failed to store Slack link for user %s", current_user.id)
        return _home_redirect(request, error="db_failed")
    return _home_redirect(request, slack_linked="true")


@router.post("/link/complete")
def complete_link(
    slack_oauth_data: str | None = Cookie(None),
    db: Session = Depends(get_db),
    links: SlackLinkService = Depends(get_link_service),
    current_user: models.User = Depends(get_current_user),
):
    identity = links.read_pending(slack_oauth_data)
    if identity is None:
        raise ValidationAppError("NO_PENDING_LINK", "No pending Slack link; run /effort link again")
    row = links.link(db, current_user.id, identity)
    response = JSONResponse({"linked": True, "slackUserId": row.slack_user_id})
    response.delete_cookie(SlackLinkService.PENDING_COOKIE)
    return response


@router.get("/check-link")
def check_link(db: Session = Depends(get_db), current_user: models.User = Depends(get_current_user)):
    row = SlackLinkService.link_for_user(db, current_user.id)
    if row is None:
        return {"linked": False}
    return {"linked": True, "slackUserId": row.slack_user_id}
