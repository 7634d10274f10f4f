"""
Document repository

Stores write-once citations, documents and types, mutable drafts, and
unordered message queues behind one contract with interchangeable backends.
"""

from .errors import (
    RepositoryError,
    AlreadyExists,
    AlreadyCommitted,
    TransportFailure,
    MalformedRequest,
    MalformedResponse,
    CitationMismatch,
)
from .repository import Repository
from .backend import AccessMode, StorageBackend
from .keys import KeyScheme, encode_record, decode_record
from .memory_backend import MemoryBackend
from .local_backend import LocalBackend
from .sqlite_backend import SQLiteBackend
from .s3_backend import S3Backend
from .dequeue import dequeue
from .backend_repository import BackendRepository
from .cached_repository import BoundedCache, CachedRepository
from .remote_repository import RemoteRepository
from .citation import Citation, resolve_citation

__version__ = "0.1.0"

__all__ = [
    'RepositoryError',
    'AlreadyExists',
    'AlreadyCommitted',
    'TransportFailure',
    'MalformedRequest',
    'MalformedResponse',
    'CitationMismatch',
    'Repository',
    'AccessMode',
    'StorageBackend',
    'KeyScheme',
    'encode_record',
    'decode_record',
    'MemoryBackend',
    'LocalBackend',
    'SQLiteBackend',
    'S3Backend',
    'dequeue',
    'BackendRepository',
    'BoundedCache',
    'CachedRepository',
    'RemoteRepository',
    'Citation',
    'resolve_citation',
]
