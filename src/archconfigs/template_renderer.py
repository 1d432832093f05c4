# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/archconfigs/template_renderer.py

from jinja2 import Environment, FileSystemLoader, StrictUndefined
from pathlib import Path

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"


class TemplateRenderer:
    """Renders the packaged file payloads (boot entries, udev rules, unit files ...)."""

    def __init__(self, templates_dir: Path = TEMPLATES_DIR):
        self.env = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=False,
            keep_trailing_newline=True,
            trim_blocks=True,
            undefined=StrictUndefined,
        )

    def render(self, template_name: str, context: dict) -> str:
        tmpl = self.env.get_template(template_name)
        return tmpl.render(**context)
