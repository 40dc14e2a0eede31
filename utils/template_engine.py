"""Prompt templates: loading from disk and {name} placeholder interpolation."""

import json
import os
import re

from pydantic import BaseModel


def get_templates_dir():
    """Return the absolute path to the prompt templates directory."""
    return os.path.join(os.path.dirname(os.path.dirname(__file__)), "stages", "prompts")


def load_template(template_name):
    """Load a template file and return its contents as a string."""
    templates_dir = get_templates_dir()
    path = os.path.join(templates_dir, template_name)
    resolved = os.path.realpath(path)
    if not resolved.startswith(os.path.realpath(templates_dir) + os.sep):
        raise ValueError(f"Template path escapes templates directory: {template_name}")
    with open(resolved, "r") as f:
        return f.read()


def _render_value(value):
    if isinstance(value, str):
        return value
    if isinstance(value, BaseModel):
        value = value.model_dump(by_alias=True, exclude_none=True)
    return json.dumps(value, indent=2, default=str)


def interpolate(template, variables):
    """Substitute {name} placeholders with the given variables.

    Strings are inserted verbatim, anything else as pretty-printed JSON.
    Keys are matched literally in a single pass, so a placeholder that
    appears inside a substituted value is never expanded. Placeholders with
    no matching variable are left as-is.
    """
    if not variables:
        return template
    rendered = {"{" + key + "}": _render_value(value) for key, value in variables.items()}
    pattern = re.compile("|".join(re.escape(token) for token in rendered))
    return pattern.sub(lambda m: rendered[m.group(0)], template)


def render_template(template_name, variables):
    """Load and render a prompt template with the given variables."""
    return interpolate(load_template(template_name), variables)
