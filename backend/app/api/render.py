from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session

from ..adapters.plotly_chart_renderer import render_chart_html
from ..db.session import get_db
from ..domain.enums import Theme
from ..services.chart_service import load_chart_spec

router = APIRouter(tags=["render"])


@router.get("/render/{graph_id}", response_class=HTMLResponse)
def render_page(graph_id: str, userId: str | None = None, theme: Theme | None = None, db: Session = Depends(get_db)):
    """Chart page loaded by the screenshot service."""
    spec = load_chart_spec(db, graph_id, user_id=userId, theme=theme)
    return HTMLResponse(render_chart_html(spec))
