"""
Document Repository Web Service

FastAPI-based web service exposing a document repository over HTTP.
Serves citations, drafts, documents, types and message queues to remote
repository clients.
"""

__version__ = "0.1.0"
