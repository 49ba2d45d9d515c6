from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ..db import models
from ..db.session import get_db
from ..errors import ForbiddenError
from ..services.effort_service import EffortService
from ..services.share_service import ShareService
from .auth import get_current_user, get_current_user_optional
from .efforts import workstreams_out

router = APIRouter(prefix="/api/share", tags=["shares"])


@router.get("/{token}")
def view_share(
    token: str,
    source: str | None = None,
    db: Session = Depends(get_db),
    current_user: models.User | None = Depends(get_current_user_optional),
):
    shares = ShareService(db)
    share = shares.resolve(token)
    efforts = EffortService(db)
    graph = efforts.get_graph(share.graph_id)
    workstreams = efforts.list_workstreams(graph.id)
    shares.record_view(share, via_slack=(source == "slack"))
    access = efforts.access_for(graph, current_user.id if current_user else None)
    return {
        "graph": {
            "id": graph.id,
            "name": graph.name,
            "description": graph.description,
            "updatedAt": graph.updated_at,
        },
        "workstreams": workstreams_out(workstreams),
        "canEdit": bool(access and access.can_edit),
    }


@router.delete("/{token}", status_code=204)
def deactivate_share(token: str, db: Session = Depends(get_db), current_user: models.User = Depends(get_current_user)):
    shares = ShareService(db)
    share = shares.resolve(token)
    graph = EffortService(db).get_graph(share.graph_id)
    if graph.author_id != current_user.id:
        raise ForbiddenError("NOT_GRAPH_OWNER", "Only the owner can remove a share")
    shares.deactivate(share)
    return Response(status_code=204)
