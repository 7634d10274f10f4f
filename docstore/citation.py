"""
Citation records

A citation is an immutable named pointer to one version of a document,
carrying a digest of the document content so readers can detect tampering.
"""

import hashlib
import json
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import CitationMismatch, MalformedResponse
from .repository import Repository


DIGEST_ALGORITHM = "sha512"


class Citation(BaseModel):
    """Pointer to a specific document version"""

    model_config = ConfigDict(frozen=True)

    tag: str = Field(description="Tag of the cited document")
    version: str = Field(description="Version of the cited document")
    algorithm: str = Field(default=DIGEST_ALGORITHM, description="Digest algorithm")
    digest: str = Field(description="Hex digest of the document content")

    @classmethod
    def for_document(cls, tag: str, version: str, content: str) -> "Citation":
        """Cite a document by computing the digest of its content."""
        return cls(tag=tag, version=version, digest=_digest(DIGEST_ALGORITHM, content))

    def matches(self, content: str) -> bool:
        """Check whether content is the document this citation points to."""
        return _digest(self.algorithm, content) == self.digest

    def to_record(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_record(cls, record: str) -> "Citation":
        try:
            return cls.model_validate_json(record)
        except (ValidationError, json.JSONDecodeError) as e:
            raise MalformedResponse(f"Invalid citation record: {e}") from e


def _digest(algorithm: str, content: str) -> str:
    try:
        return hashlib.new(algorithm, content.encode("utf-8")).hexdigest()
    except ValueError as e:
        raise MalformedResponse(f"Unsupported digest algorithm: {algorithm}") from e


async def resolve_citation(repository: Repository, name: str) -> Optional[str]:
    """
    Fetch the document a named citation points to.

    Args:
        repository: Repository holding the citation and the document
        name: Citation name

    Returns:
        Document content, or None if the citation or the document is absent

    Raises:
        CitationMismatch: If the document does not match the citation digest
        MalformedResponse: If the citation record cannot be parsed
    """
    record = await repository.fetch_citation(name)
    if record is None:
        return None

    citation = Citation.from_record(record)
    document = await repository.fetch_document(citation.tag, citation.version)
    if document is None:
        return None

    if not citation.matches(document):
        raise CitationMismatch(
            f"The document cited by '{name}' was modified after it was cited",
            operation="resolve_citation",
            resource="citation",
            identifier=name
        )
    return document
