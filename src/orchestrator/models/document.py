"""Document context model.

A DocumentContext is the resolver's output unit: one repository document
a conversation currently concerns. It is a derived view recomputed from
the message list and never persisted.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class DocumentContext(BaseModel):
    """A document referenced by the active conversation.

    Attributes:
        document_id: Repository ID with any draft prefix stripped.
        document_type: Document type, when known.
        slug: Public route slug, when known.
        name: Display name, when known.
        is_loading: True while an enrichment fetch is in flight.
    """

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    document_id: str = Field(..., alias="documentId")
    document_type: Optional[str] = Field(default=None, alias="documentType")
    slug: Optional[str] = None
    name: Optional[str] = None
    is_loading: bool = Field(default=False, alias="isLoading")
