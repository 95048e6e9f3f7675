"""Cross-tool navigation URLs.

Two editing surfaces are supported:

    structure     /structure/<type>;<id>
    presentation  /presentation?preview=<url-encoded route>

The presentation surface needs the document's public route, derived from
its slug (``index`` maps to ``/``). Without a slug, or for types that have
no public route, navigation falls back to the structure form. Without a
type there is no document URL at all and the tool root is used.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional
from urllib.parse import quote

from src.orchestrator.context.resolver import DEFAULT_SLUG_REQUIRED_TYPES
from src.orchestrator.models.document import DocumentContext

INDEX_SLUG = "index"


class NavigationMode(str, Enum):
    """Editing surfaces a conversation can continue in."""

    structure = "structure"
    presentation = "presentation"


def slug_to_route(slug: str) -> str:
    """Map a slug onto its public route path."""
    return "/" if slug == INDEX_SLUG else f"/{slug.lstrip('/')}"


def structure_url(document_type: str, document_id: str) -> str:
    """Generic editing-surface URL for a document."""
    return f"/{NavigationMode.structure.value}/{document_type};{document_id}"


def build_navigation_url(
    mode: NavigationMode,
    context: Optional[DocumentContext],
    slug_routed_types: Iterable[str] = DEFAULT_SLUG_REQUIRED_TYPES,
) -> str:
    """Build the URL for opening a document in another tool.

    Args:
        mode: Target editing surface.
        context: Document to open, or None for the tool root.
        slug_routed_types: Types whose documents have a public route.

    Returns:
        A relative URL. Never empty.
    """
    mode = NavigationMode(mode)
    if context is None or not context.document_type:
        return f"/{mode.value}"

    if (
        mode == NavigationMode.presentation
        and context.document_type in set(slug_routed_types)
        and context.slug
    ):
        route = quote(slug_to_route(context.slug), safe="")
        return f"/{NavigationMode.presentation.value}?preview={route}"

    return structure_url(context.document_type, context.document_id)


@dataclass
class NavigationPlan:
    """Outcome of a "continue in another tool" request.

    Exactly one of ``url`` or ``candidates`` is meaningful: either the
    target is unambiguous and ``url`` is set, or the user must pick one of
    ``candidates``. No document is ever chosen on the user's behalf.

    Attributes:
        mode: Target editing surface.
        url: Destination URL when no choice is needed.
        candidates: Enriched documents to choose from.
    """

    mode: NavigationMode
    url: Optional[str] = None
    candidates: list[DocumentContext] = field(default_factory=list)

    @property
    def needs_disambiguation(self) -> bool:
        return self.url is None and len(self.candidates) > 1


def plan_navigation(
    mode: NavigationMode,
    contexts: list[DocumentContext],
    slug_routed_types: Iterable[str] = DEFAULT_SLUG_REQUIRED_TYPES,
) -> NavigationPlan:
    """Decide where "continue in" should go.

    Args:
        mode: Target editing surface.
        contexts: Current document contexts, most recent first.
        slug_routed_types: Types whose documents have a public route.

    Returns:
        A plan with a URL for zero or one document, or the full candidate
        list when several documents are referenced.
    """
    mode = NavigationMode(mode)
    if len(contexts) > 1:
        return NavigationPlan(mode=mode, candidates=list(contexts))
    target = contexts[0] if contexts else None
    return NavigationPlan(
        mode=mode,
        url=build_navigation_url(mode, target, slug_routed_types),
        candidates=list(contexts),
    )
