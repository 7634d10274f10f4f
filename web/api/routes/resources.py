"""
FastAPI routes for citations, drafts, documents and types.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.responses import PlainTextResponse

from docstore import Repository

from ..dependencies import read_text_body, verify_credentials
from ...core.repository import get_repository


def _found(value: Optional[str], description: str) -> PlainTextResponse:
    if value is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{description} not found"
        )
    return PlainTextResponse(value)


def _present(exists: bool, description: str) -> Response:
    if not exists:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{description} not found"
        )
    return Response(status_code=status.HTTP_200_OK)


# Citations

citations_router = APIRouter(
    prefix="/citations",
    tags=["citations"],
    dependencies=[Depends(verify_credentials)]
)


@citations_router.head("/{name:path}")
async def citation_exists(name: str, repository: Repository = Depends(get_repository)):
    """Check whether a citation exists (200 or 404)."""
    return _present(await repository.citation_exists(name), f"Citation '{name}'")


@citations_router.get("/{name:path}", response_class=PlainTextResponse)
async def fetch_citation(name: str, repository: Repository = Depends(get_repository)):
    """Fetch a citation record."""
    return _found(await repository.fetch_citation(name), f"Citation '{name}'")


@citations_router.post("/{name:path}", status_code=status.HTTP_201_CREATED)
async def create_citation(
    name: str,
    citation: str = Depends(read_text_body),
    repository: Repository = Depends(get_repository)
):
    """
    Create a citation.

    **Raises:**
    - 409: If the citation already exists
    """
    await repository.create_citation(name, citation)
    return Response(status_code=status.HTTP_201_CREATED)


# Drafts

drafts_router = APIRouter(
    prefix="/drafts",
    tags=["drafts"],
    dependencies=[Depends(verify_credentials)]
)


@drafts_router.head("/{tag}/{version}")
async def draft_exists(tag: str, version: str, repository: Repository = Depends(get_repository)):
    """Check whether a draft exists (200 or 404)."""
    return _present(await repository.draft_exists(tag, version), f"Draft '{tag}/{version}'")


@drafts_router.get("/{tag}/{version}", response_class=PlainTextResponse)
async def fetch_draft(tag: str, version: str, repository: Repository = Depends(get_repository)):
    """Fetch a draft."""
    return _found(await repository.fetch_draft(tag, version), f"Draft '{tag}/{version}'")


@drafts_router.put("/{tag}/{version}", status_code=status.HTTP_204_NO_CONTENT)
async def save_draft(
    tag: str,
    version: str,
    draft: str = Depends(read_text_body),
    repository: Repository = Depends(get_repository)
):
    """
    Save a draft, replacing any previous draft.

    **Raises:**
    - 409: If a committed document has the same tag and version
    """
    await repository.save_draft(tag, version, draft)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@drafts_router.delete("/{tag}/{version}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_draft(tag: str, version: str, repository: Repository = Depends(get_repository)):
    """Delete a draft. Deleting a missing draft succeeds."""
    await repository.delete_draft(tag, version)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Documents

documents_router = APIRouter(
    prefix="/documents",
    tags=["documents"],
    dependencies=[Depends(verify_credentials)]
)


@documents_router.head("/{tag}/{version}")
async def document_exists(tag: str, version: str, repository: Repository = Depends(get_repository)):
    """Check whether a document exists (200 or 404)."""
    return _present(await repository.document_exists(tag, version), f"Document '{tag}/{version}'")


@documents_router.get("/{tag}/{version}", response_class=PlainTextResponse)
async def fetch_document(tag: str, version: str, repository: Repository = Depends(get_repository)):
    """Fetch a committed document."""
    return _found(await repository.fetch_document(tag, version), f"Document '{tag}/{version}'")


@documents_router.post("/{tag}/{version}", status_code=status.HTTP_201_CREATED)
async def create_document(
    tag: str,
    version: str,
    document: str = Depends(read_text_body),
    repository: Repository = Depends(get_repository)
):
    """
    Commit a document.

    **Raises:**
    - 409: If the document already exists
    """
    await repository.create_document(tag, version, document)
    return Response(status_code=status.HTTP_201_CREATED)


# Types

types_router = APIRouter(
    prefix="/types",
    tags=["types"],
    dependencies=[Depends(verify_credentials)]
)


@types_router.head("/{tag}/{version}")
async def type_exists(tag: str, version: str, repository: Repository = Depends(get_repository)):
    """Check whether a type exists (200 or 404)."""
    return _present(await repository.type_exists(tag, version), f"Type '{tag}/{version}'")


@types_router.get("/{tag}/{version}", response_class=PlainTextResponse)
async def fetch_type(tag: str, version: str, repository: Repository = Depends(get_repository)):
    """Fetch a type definition."""
    return _found(await repository.fetch_type(tag, version), f"Type '{tag}/{version}'")


@types_router.post("/{tag}/{version}", status_code=status.HTTP_201_CREATED)
async def create_type(
    tag: str,
    version: str,
    type_: str = Depends(read_text_body),
    repository: Repository = Depends(get_repository)
):
    """
    Commit a type definition.

    **Raises:**
    - 409: If the type already exists
    """
    await repository.create_type(tag, version, type_)
    return Response(status_code=status.HTTP_201_CREATED)
