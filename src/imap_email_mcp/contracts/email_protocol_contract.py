"""
IMAP Email MCP Contract
=======================

Behavioral contract for the tool surface and for the three
collaborators the dispatcher talks to (mailbox session, message decoder,
mail transfer).

AUTHORITY: This file is the single source for domain types and error codes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


# =============================================================================
# DOMAIN TYPES
# =============================================================================

@dataclass
class FolderNode:
    """One segment of the mailbox hierarchy as reported by LIST."""
    attributes: list[str] = field(default_factory=list)
    delimiter: str | None = None
    children: dict[str, FolderNode] = field(default_factory=dict)


FolderTree = dict[str, FolderNode]


@dataclass(frozen=True)
class SearchHit:
    """A message matched by a folder search, with the fetched parts."""
    uid: int
    flags: list[str]
    parts: dict[str, bytes]


SUMMARY_FIELDS = ("uid", "date", "from", "to", "subject", "flags")


@dataclass(frozen=True)
class MessageSummary:
    """Header projection used by the listing tools. Never carries a body."""
    uid: int
    date: str | None
    sender: str | None
    to: str | None
    subject: str | None
    flags: list[str] = field(default_factory=list)

    def to_dict(self, fields: tuple[str, ...] = SUMMARY_FIELDS) -> dict[str, Any]:
        values = {
            "uid": self.uid,
            "date": self.date,
            "from": self.sender,
            "to": self.to,
            "subject": self.subject,
            "flags": list(self.flags),
        }
        return {name: values[name] for name in fields}


@dataclass(frozen=True)
class AttachmentInfo:
    """Attachment metadata. Content is never returned."""
    filename: str | None
    content_type: str
    size: int

    def to_dict(self) -> dict[str, Any]:
        return {"filename": self.filename, "contentType": self.content_type, "size": self.size}


@dataclass(frozen=True)
class DecodedMessage:
    """Output of the message decoder."""
    sender: str | None
    to: str | None
    cc: str | None
    bcc: str | None
    subject: str | None
    date: str | None
    text: str | None
    html: str | None
    attachments: list[AttachmentInfo] = field(default_factory=list)


DETAIL_FIELDS = ("uid", "from", "to", "cc", "subject", "date", "text", "html", "attachments")
DRAFT_FIELDS = ("uid", "to", "cc", "bcc", "subject", "date", "text", "html")


@dataclass(frozen=True)
class MessageDetail:
    """A fully decoded message bound to the UID it was fetched under."""
    uid: int
    message: DecodedMessage

    def to_dict(self, fields: tuple[str, ...] = DETAIL_FIELDS) -> dict[str, Any]:
        msg = self.message
        values = {
            "uid": self.uid,
            "from": msg.sender,
            "to": msg.to,
            "cc": msg.cc,
            "bcc": msg.bcc,
            "subject": msg.subject,
            "date": msg.date,
            "text": msg.text,
            "html": msg.html,
            "attachments": [a.to_dict() for a in msg.attachments],
        }
        return {name: values[name] for name in fields}


@dataclass(frozen=True)
class ComposedMessage:
    """An RFC 2822 document ready to be appended to a folder."""
    headers: tuple[tuple[str, str], ...]
    body: str
    boundary: str | None = None

    def as_string(self) -> str:
        head = "".join(f"{name}: {value}\r\n" for name, value in self.headers)
        return f"{head}\r\n{self.body}"

    def as_bytes(self) -> bytes:
        return self.as_string().encode("utf-8")

    def header(self, name: str) -> str | None:
        for key, value in self.headers:
            if key.lower() == name.lower():
                return value
        return None


@dataclass(frozen=True)
class OutgoingMessage:
    """Fields handed to the mail transfer client."""
    sender: str
    to: str
    subject: str
    text: str | None = None
    html: str | None = None
    cc: str | None = None
    bcc: str | None = None


@dataclass(frozen=True)
class DeliveryReceipt:
    """Relay acknowledgement for a delivered message."""
    message_id: str
    response: str


@dataclass(frozen=True)
class ToolResult:
    """The single output envelope of every tool call: one text block."""
    text: str
    is_error: bool = False

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"content": [{"type": "text", "text": self.text}]}
        if self.is_error:
            result["isError"] = True
        return result


# =============================================================================
# ERROR TYPES
# =============================================================================

class EmailMCPError(Exception):
    """Base error for all Email MCP operations."""
    code: str = "EMAIL_MCP_ERROR"


class ConfigurationError(EmailMCPError):
    """
    Required credential or host missing at startup.

    RECOVERY: Fatal. Process exits before accepting requests.
    """
    code = "CONFIGURATION_MISSING"


class AuthFailedError(EmailMCPError):
    """
    Mail server or relay rejected the configured credentials.

    RECOVERY: Reported per request; the process keeps serving.
    """
    code = "AUTH_FAILED"


class ConnectionFailedError(EmailMCPError):
    """
    Network unreachable or host not found.

    RECOVERY: Reported per request; the next call opens a fresh session.
    """
    code = "CONNECTION_FAILED"


class FolderNotFoundError(EmailMCPError):
    """
    Specified folder does not exist on server.

    RECOVERY: Agent should call list_folders to get valid folder names.
    """
    code = "FOLDER_NOT_FOUND"


class TransportError(EmailMCPError):
    """Protocol failure during a mailbox operation."""
    code = "TRANSPORT_ERROR"


class DeliveryNotConfiguredError(EmailMCPError):
    """Send requested with no relay host; no network call is attempted."""
    code = "DELIVERY_NOT_CONFIGURED"


class DeliveryFailedError(EmailMCPError):
    """Relay rejected the message or the connection to it failed."""
    code = "DELIVERY_FAILED"


class InvalidArgumentError(EmailMCPError):
    """
    A tool argument is missing or malformed.

    RECOVERY: Agent must correct the arguments; no session was opened.
    """
    code = "INVALID_ARGUMENT"


# =============================================================================
# COLLABORATOR CONTRACTS
# =============================================================================

@runtime_checkable
class MailboxSessionContract(Protocol):
    """
    One authenticated mailbox session, opened per tool call.

    POST: close() is safe to call more than once; the dispatcher calls it
          exactly once per session on every exit path.
    ERRORS:
    - FOLDER_NOT_FOUND: open_folder on an absent folder
    - TRANSPORT_ERROR: protocol failure in any other call
    """

    def list_folder_tree(self) -> FolderTree:
        ...

    def open_folder(self, name: str) -> None:
        ...

    def search(self, criteria: list[Any], fetch: str = ...) -> list[SearchHit]:
        """Matching messages, ascending by UID."""
        ...

    def append(self, raw: str | bytes, *, folder: str, flags: tuple[bytes, ...] = ()) -> None:
        ...

    def set_flags(self, uid: int, flags: list[bytes]) -> None:
        ...

    def close_folder(self, expunge: bool = False) -> None:
        ...

    def close(self) -> None:
        ...


@runtime_checkable
class MessageDecoderContract(Protocol):
    """Parse a raw RFC 822 byte stream into a DecodedMessage. Never logs content."""

    def __call__(self, raw: bytes) -> DecodedMessage:
        ...


@runtime_checkable
class MailTransferContract(Protocol):
    """
    Deliver a message to a remote relay over an authenticated session.

    ERRORS:
    - AUTH_FAILED: relay rejected credentials
    - DELIVERY_FAILED: relay rejected the message or the network failed
    """

    def deliver(self, settings: Any, message: OutgoingMessage) -> DeliveryReceipt:
        ...
