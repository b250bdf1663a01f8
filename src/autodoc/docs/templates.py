"""Markdown templates for generated documents."""

import re
from typing import Any

import yaml

from ..models import DocumentNode

FRONTMATTER_RE = re.compile(r"^---\s*\n(.*?)\n---\s*\n", re.DOTALL)


def render_frontmatter(data: dict[str, Any]) -> str:
    """Render YAML frontmatter block."""
    fm = yaml.dump(data, default_flow_style=False, allow_unicode=True, sort_keys=False)
    return f"---\n{fm}---\n"


def split_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Return (frontmatter, body) of a rendered document."""
    match = FRONTMATTER_RE.match(text)
    if not match:
        return {}, text
    try:
        fm = yaml.safe_load(match.group(1)) or {}
    except yaml.YAMLError:
        return {}, text
    return (fm if isinstance(fm, dict) else {}), text[match.end():]


def render_document(doc: DocumentNode, frontmatter: dict[str, Any]) -> str:
    """Render a full document page."""
    parts = [render_frontmatter(frontmatter)]
    parts.append(f"# {doc.title}\n")

    nav = []
    if doc.source_url:
        nav.append(f"[View source]({doc.source_url})")
    if doc.parent:
        nav.append(f"Up: [{doc.parent.title}]({doc.parent.href})")
    if nav:
        parts.append(" | ".join(nav) + "\n")

    parts.append(doc.body.strip() + "\n")

    if doc.questions:
        parts.append("## Questions\n")
        parts.append(doc.questions.strip() + "\n")

    if doc.children:
        parts.append("## Contents\n")
        for link in doc.children:
            parts.append(f"- [{link.title}]({link.href})")
        parts.append("")

    return "\n".join(parts)
