"""
Shared FastAPI dependencies for repository routes.
"""

from fastapi import Depends, HTTPException, Request, status

from ..core.config import Settings, get_settings


async def verify_credentials(
    request: Request,
    settings: Settings = Depends(get_settings)
) -> None:
    """
    Reject requests that carry no credentials when credentials are required.

    Verifying the credential artifact itself is left to an external service.
    """
    if settings.require_credentials and not request.headers.get(settings.credentials_header):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing {settings.credentials_header} header"
        )


async def read_text_body(request: Request) -> str:
    """Read the request body as UTF-8 text."""
    body = await request.body()
    try:
        return body.decode("utf-8")
    except UnicodeDecodeError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Request body must be UTF-8 text"
        )
