"""
Pydantic schemas for the Blog service.

Client-supplied fields are stored as given, so they are typed Any rather
than coerced or rejected.
"""
from typing import Any, Optional
from pydantic import BaseModel, Field


class BlogPost(BaseModel):
    """Stored blog post, keyed by "post:<slug>"."""
    title: Any
    slug: Any
    metaDescription: Any = ""
    metaKeywords: Any = Field(default_factory=list)
    coverImageUrl: Any = ""
    author: Any = "Unknown"
    content: Any  # Raw markup
    datePublished: Any
    lastUpdated: Optional[str] = None
