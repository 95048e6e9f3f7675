"""Document context: which repository documents a conversation concerns."""

from src.orchestrator.context.extraction import (
    PatternReferenceExtractor,
    ReferenceExtractor,
    TextReference,
    infer_type_from_query,
)
from src.orchestrator.context.navigation import (
    NavigationMode,
    NavigationPlan,
    build_navigation_url,
    plan_navigation,
)
from src.orchestrator.context.resolver import (
    DocumentContextResolver,
    ReferenceSource,
    extract_document_contexts,
)

__all__ = [
    "PatternReferenceExtractor",
    "ReferenceExtractor",
    "TextReference",
    "infer_type_from_query",
    "NavigationMode",
    "NavigationPlan",
    "build_navigation_url",
    "plan_navigation",
    "DocumentContextResolver",
    "ReferenceSource",
    "extract_document_contexts",
]
