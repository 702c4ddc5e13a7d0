from functools import lru_cache
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"


@lru_cache
def _environment() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=select_autoescape(["html"]),
        undefined=StrictUndefined,
    )


def render_template(template_path: str, **context) -> str:
    """Render an email body, e.g. ``render_template("user_emails/order_shipped.html", order=o)``."""
    return _environment().get_template(template_path).render(**context)
