import os

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from ..version import __version__

router = APIRouter(include_in_schema=False)

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
templates = Jinja2Templates(directory=os.path.join(BASE_DIR, "templates"))


def _render(template_name: str, page: str):
    async def render(request: Request):
        return templates.TemplateResponse(
            request, template_name, {"version": __version__, "page": page}
        )

    return render


PAGE_TEMPLATES = {
    "/": ("index.html", "home"),
    "/generate": ("generate.html", "generate"),
    "/scan": ("scan.html", "scan"),
    "/history": ("history.html", "history"),
}

for path, (template, page) in PAGE_TEMPLATES.items():
    router.get(path, response_class=HTMLResponse)(_render(template, page))
