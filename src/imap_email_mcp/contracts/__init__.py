"""
IMAP Email MCP Contract Index
=============================

AUTHORITY: This file is the single entrypoint for all contract types.
Import from here, not from individual contract files.
"""

from imap_email_mcp.contracts.email_protocol_contract import (
    DETAIL_FIELDS,
    DRAFT_FIELDS,
    SUMMARY_FIELDS,
    AttachmentInfo,
    AuthFailedError,
    ComposedMessage,
    ConfigurationError,
    ConnectionFailedError,
    DecodedMessage,
    DeliveryFailedError,
    DeliveryNotConfiguredError,
    DeliveryReceipt,
    # Error Types
    EmailMCPError,
    FolderNotFoundError,
    # Domain Types
    FolderNode,
    FolderTree,
    InvalidArgumentError,
    # Contracts (Protocols)
    MailboxSessionContract,
    MailTransferContract,
    MessageDecoderContract,
    MessageDetail,
    MessageSummary,
    OutgoingMessage,
    SearchHit,
    ToolResult,
    TransportError,
)

__all__ = [
    # Domain Types
    "FolderNode",
    "FolderTree",
    "SearchHit",
    "MessageSummary",
    "AttachmentInfo",
    "DecodedMessage",
    "MessageDetail",
    "ComposedMessage",
    "OutgoingMessage",
    "DeliveryReceipt",
    "ToolResult",
    "SUMMARY_FIELDS",
    "DETAIL_FIELDS",
    "DRAFT_FIELDS",
    # Error Types
    "EmailMCPError",
    "ConfigurationError",
    "AuthFailedError",
    "ConnectionFailedError",
    "FolderNotFoundError",
    "TransportError",
    "DeliveryNotConfiguredError",
    "DeliveryFailedError",
    "InvalidArgumentError",
    # Contracts
    "MailboxSessionContract",
    "MessageDecoderContract",
    "MailTransferContract",
]
