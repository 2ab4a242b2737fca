from pathlib import Path

from fastapi import Request
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def render(
    request: Request,
    view_name: str,
    view: BaseModel | None = None,
    *,
    title: str,
    status_code: int = 200,
):
    """Render ``<view_name>.html`` with the fields of a typed view model."""
    context = {"title": title}
    if view is not None:
        context.update(dict(view))
    return templates.TemplateResponse(
        request, f"{view_name}.html", context, status_code=status_code
    )


class ErrorView(BaseModel):
    status_code: int
    message: str
