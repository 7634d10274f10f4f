"""
Name-to-key mapping and record encoding

Every backend addresses records by the keys produced here, so the layout
must stay identical across backends.
"""

import uuid
from typing import Optional

from .errors import MalformedRequest, MalformedResponse


# Record file suffix shared by all namespaces
RECORD_SUFFIX = ".bali"

# POSIX end of line appended to every stored record
EOL = "\n"


class KeyScheme:
    """Maps repository identifiers onto hierarchical storage keys"""

    CITATIONS = "citations/"
    DRAFTS = "drafts/"
    DOCUMENTS = "documents/"
    TYPES = "types/"
    QUEUES = "queues/"

    def __init__(self, suffix: str = RECORD_SUFFIX):
        self.suffix = suffix

    def citation_key(self, name: str) -> str:
        """Key for a citation; path separators in the name become underscores."""
        check_citation_name(name)
        return self.CITATIONS + name.replace("/", "_") + self.suffix

    def draft_key(self, tag: str, version: str) -> str:
        return self._versioned_key(self.DRAFTS, "draft", tag, version)

    def document_key(self, tag: str, version: str) -> str:
        return self._versioned_key(self.DOCUMENTS, "document", tag, version)

    def type_key(self, tag: str, version: str) -> str:
        return self._versioned_key(self.TYPES, "type", tag, version)

    def queue_prefix(self, queue: str) -> str:
        """Listing prefix covering every message in a queue."""
        check_segment(queue, "queue", "queue name")
        return self.QUEUES + queue + "/"

    def message_key(self, queue: str, message_id: Optional[str] = None) -> str:
        """Key for a message; a fresh unique token is generated when none is given."""
        if message_id is None:
            message_id = uuid.uuid4().hex
        return self.queue_prefix(queue) + message_id + self.suffix

    def _versioned_key(self, namespace: str, resource: str, tag: str, version: str) -> str:
        check_segment(tag, resource, "tag")
        check_segment(version, resource, "version")
        return namespace + tag + "/" + version + self.suffix


def check_citation_name(name: str) -> None:
    if not name:
        raise MalformedRequest("Citation name must not be empty", resource="citation")


def check_segment(value: str, resource: str, label: str) -> None:
    """Reject a tag, version or queue name that is not a single path segment."""
    if not value or "/" in value or value in (".", ".."):
        raise MalformedRequest(
            f"Invalid {label}: {value!r}",
            resource=resource,
            identifier=value
        )


def encode_record(payload: str) -> bytes:
    """Encode a payload as UTF-8 terminated by a single newline."""
    return (payload + EOL).encode("utf-8")


def decode_record(data: bytes, key: Optional[str] = None) -> str:
    """Decode a stored record, stripping exactly one trailing newline."""
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as e:
        record = f"Record {key}" if key else "Record"
        raise MalformedResponse(
            f"{record} is not valid UTF-8: {e}",
            operation="decode_record",
            identifier=key
        ) from e
    if text.endswith(EOL):
        text = text[:-len(EOL)]
    return text
