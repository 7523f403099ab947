"""Public pages."""

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from starlette.responses import Response

from src.api.templating import render

router = APIRouter(tags=["pages"], default_response_class=HTMLResponse)


@router.get("/", name="index")
async def index(request: Request) -> Response:
    return render(request, "index.html")


@router.get("/contact", name="contact")
async def contact(request: Request) -> Response:
    return render(request, "contact.html")
