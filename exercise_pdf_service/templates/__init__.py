"""
Document templates.

Each template is a callable that wraps the exercises section in a complete
HTML document. get_template() picks one by name.
"""

import logging
from typing import Callable, Dict

from .default import generate_default_template

logger = logging.getLogger(__name__)

TemplateFn = Callable[..., str]

TEMPLATES: Dict[str, TemplateFn] = {
    "default": generate_default_template,
}


def get_template(name: str = "default") -> TemplateFn:
    """
    Look up a template by name (case-insensitive).

    Unknown names fall back to the default template.
    """
    key = (name or "default").strip().lower()
    template = TEMPLATES.get(key)
    if template is None:
        logger.debug(f"Unknown template {name!r}, using default")
        return TEMPLATES["default"]
    return template


__all__ = ["TEMPLATES", "get_template"]
