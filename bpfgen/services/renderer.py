from __future__ import annotations

from typing import Any, NoReturn

import jinja2

from ..errors import GeneratorError, RenderError


def abort(message: str) -> NoReturn:
    """Let a template refuse to render, e.g. when a required argument is missing."""
    raise RenderError(str(message))


def build_environment() -> jinja2.Environment:
    env = jinja2.Environment(
        undefined=jinja2.StrictUndefined,
        keep_trailing_newline=True,
        autoescape=False,
    )
    env.globals["abort"] = abort
    return env


def render(template_text: str, context: dict[str, Any], *, name: str = "<template>") -> str:
    env = build_environment()
    try:
        template = env.from_string(template_text)
    except jinja2.TemplateSyntaxError as exc:
        raise RenderError(f"failed to parse template {name}: line {exc.lineno}: {exc.message}") from exc
    try:
        return template.render(context)
    except GeneratorError:
        raise
    except jinja2.UndefinedError as exc:
        raise RenderError(f"failed to process template {name}: {exc.message}") from exc
    except (jinja2.TemplateError, TypeError, ValueError) as exc:
        raise RenderError(f"failed to process template {name}: {exc}") from exc
