from __future__ import annotations

from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from .model import RequestEmailData

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"

APPROVED_COLOR = "#28a745"
REJECTED_COLOR = "#dc3545"


class EmailTemplateRenderer:
    """Renders request notification emails to HTML."""

    def __init__(self, template_dir: Optional[Path] = None):
        self._env = Environment(
            loader=FileSystemLoader(str(template_dir or TEMPLATE_DIR)),
            autoescape=select_autoescape(["html"]),
        )

    def render_approval(self, data: RequestEmailData) -> str:
        return self._env.get_template("request_approved.html").render(data=data, header_color=APPROVED_COLOR)

    def render_rejection(self, data: RequestEmailData) -> str:
        return self._env.get_template("request_rejected.html").render(data=data, header_color=REJECTED_COLOR)
