"""
Repository construction for the Document Repository service.
Builds the configured backend and wraps it in the read-through cache.
"""

import logging
from typing import Optional

from docstore import (
    BackendRepository,
    CachedRepository,
    LocalBackend,
    MemoryBackend,
    RemoteRepository,
    Repository,
    S3Backend,
    SQLiteBackend,
    StorageBackend,
)

from .config import Settings, get_settings


logger = logging.getLogger(__name__)


def build_backend(settings: Settings) -> StorageBackend:
    """
    Create the storage backend selected by the settings.

    Args:
        settings: Application settings (backend must not be 'remote')

    Returns:
        StorageBackend: Configured backend
    """
    if settings.backend == "memory":
        return MemoryBackend()
    if settings.backend == "local":
        return LocalBackend(settings.directory)
    if settings.backend == "sqlite":
        return SQLiteBackend(settings.database_path)
    if settings.backend == "s3":
        return S3Backend(settings.s3_bucket, region_name=settings.s3_region)
    raise ValueError(f"No storage backend for '{settings.backend}'")


def build_repository(settings: Settings) -> Repository:
    """
    Create the repository described by the settings.

    Args:
        settings: Application settings

    Returns:
        Repository: Backend repository or remote proxy, cached if enabled
    """
    if settings.backend == "remote":
        token = settings.remote_credentials or ""

        async def credentials() -> str:
            return token

        repository: Repository = RemoteRepository(
            settings.remote_url,
            credentials,
            credentials_header=settings.credentials_header
        )
    else:
        repository = BackendRepository(build_backend(settings))

    if settings.cache_enabled:
        repository = CachedRepository(repository, capacity=settings.cache_capacity)

    logger.info(f"Using {settings.backend} repository at {repository.location}")
    return repository


# Global repository instance
_repository: Optional[Repository] = None


def get_repository() -> Repository:
    """
    Get global repository instance (singleton pattern).

    Returns:
        Repository: Repository built from the application settings
    """
    global _repository
    if _repository is None:
        _repository = build_repository(get_settings())
    return _repository


async def close_repository() -> None:
    """
    Close the global repository.
    Should be called during application shutdown.
    """
    global _repository
    if _repository is not None:
        await _repository.close()
        _repository = None
