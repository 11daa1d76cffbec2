# gasbora/routers/pages.py
from pathlib import Path

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from ..schemas.listing import CYLINDER_SIZES

router = APIRouter(tags=["pages"])

# absolute path, so the app can be started from any working directory
TEMPLATES_DIR = Path(__file__).resolve().parents[1] / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
def index(request: Request):
    steps = [
        {"title": "Find gas nearby", "desc": "Browse cylinders and refills from sellers in your area."},
        {"title": "Compare prices", "desc": "Filter by size, refill or full cylinder, and budget."},
        {"title": "Contact the seller", "desc": "Call or WhatsApp the seller straight from the listing."},
    ]
    return templates.TemplateResponse(request, "index.html", {"steps": steps, "sizes": CYLINDER_SIZES})


@router.get("/about", response_class=HTMLResponse, include_in_schema=False)
def about(request: Request):
    return templates.TemplateResponse(request, "about.html", {})
