"""
IMAP Email MCP Server
=====================

MCP server exposing mailbox, drafts and send tools over IMAP/SMTP.

INVARIANTS ENFORCED:
- Every tool call produces exactly one text result; no exception reaches the host
- One fresh IMAP session per tool call, closed on every exit path
- No logging of message bodies, addresses or credentials
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import asdict
from datetime import date, datetime
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from imap_email_mcp.composer import compose_message
from imap_email_mcp.config import ServerConfig, load_config
from imap_email_mcp.contracts import (
    DRAFT_FIELDS,
    SUMMARY_FIELDS,
    ConfigurationError,
    DecodedMessage,
    DeliveryNotConfiguredError,
    InvalidArgumentError,
    MailboxSessionContract,
    MailTransferContract,
    MessageDetail,
    OutgoingMessage,
    SearchHit,
    ToolResult,
)
from imap_email_mcp.drafts import find_drafts_folder
from imap_email_mcp.imap_client import FETCH_FULL, FETCH_HEADERS, EmailIMAPClient
from imap_email_mcp.message_decoder import decode_message, decode_summary
from imap_email_mcp.smtp_client import SMTPMailTransfer
from imap_email_mcp.tools import TOOLS, get_tool, required_arguments, tool_defaults

logger = logging.getLogger("imap-email-mcp")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_LIMIT = 20
DRAFT_FLAG = b"\\Draft"
DELETED_FLAG = b"\\Deleted"

SEARCH_FIELDS = ("uid", "date", "from", "to", "subject")
DRAFT_SUMMARY_FIELDS = ("uid", "date", "to", "subject")

# Argument names that are not valid Python identifiers.
_ARGUMENT_ALIASES = {"from": "sender"}


class ToolCallError(Exception):
    """Raised toward the MCP runtime so the host sees ``isError``."""


class EmailMCPServer:
    """
    Email MCP Server - maps tool calls onto IMAP/SMTP operations.

    handle() is the single boundary where collaborator failures become
    error results.
    """

    def __init__(
        self,
        config: ServerConfig,
        *,
        session_factory: Callable[..., MailboxSessionContract] | None = None,
        transfer: MailTransferContract | None = None,
        decoder: Callable[[bytes], DecodedMessage] = decode_message,
    ) -> None:
        self._config = config
        self._session_factory = session_factory or EmailIMAPClient.open
        self._transfer = transfer or SMTPMailTransfer()
        self._decoder = decoder
        self._handlers: dict[str, Callable[..., Any]] = {
            "list_folders": self.list_folders,
            "list_emails": self.list_emails,
            "get_email": self.get_email,
            "search_emails": self.search_emails,
            "list_drafts": self.list_drafts,
            "get_draft": self.get_draft,
            "create_draft": self.create_draft,
            "update_draft": self.update_draft,
            "send_email": self.send_email,
            "delete_email": self.delete_email,
        }
        self._server = Server("imap-email-mcp")
        self._setup_tools()

    def _setup_tools(self) -> None:
        """Register MCP tools."""

        @self._server.list_tools()
        async def list_tools() -> list[Tool]:
            return TOOLS

        @self._server.call_tool()
        async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
            result = self.handle(name, arguments)
            if result.is_error:
                raise ToolCallError(result.text)
            return [TextContent(type="text", text=result.text)]

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    def handle(self, name: str, arguments: dict[str, Any] | None = None) -> ToolResult:
        """
        Run one tool call.

        POST: unknown tools yield "Unknown tool: <name>" without the error flag
        POST: any failure yields "Error: <message>" with the error flag
        """
        handler = self._handlers.get(name)
        if handler is None:
            return ToolResult(f"Unknown tool: {name}")

        try:
            kwargs = self._prepare_arguments(name, arguments or {})
            result = handler(**kwargs)
        except Exception as e:
            logger.warning(f"{name} failed: {e.__class__.__name__}")
            return ToolResult(f"Error: {e}", is_error=True)

        if isinstance(result, str):
            return ToolResult(result)
        return ToolResult(self._serialize_result(result))

    def _prepare_arguments(self, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        """Apply schema defaults, check required arguments and coerce numbers."""
        supplied = {key: value for key, value in arguments.items() if value is not None}
        missing = [key for key in required_arguments(name) if key not in supplied]
        if missing:
            raise InvalidArgumentError(f"Missing required argument: {', '.join(missing)}")

        properties = get_tool(name).inputSchema.get("properties", {})
        merged = {**tool_defaults(name), **supplied}
        kwargs = {}
        for key, value in merged.items():
            if key not in properties:
                continue
            kwargs[_ARGUMENT_ALIASES.get(key, key)] = value

        if "uid" in kwargs:
            kwargs["uid"] = self._as_int("uid", kwargs["uid"])
        if "limit" in kwargs:
            limit = self._as_int("limit", kwargs["limit"])
            kwargs["limit"] = limit if limit > 0 else DEFAULT_LIMIT
        return kwargs

    @staticmethod
    def _as_int(key: str, value: Any) -> int:
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise InvalidArgumentError(f"{key} must be a number, got {value!r}") from e

    @contextmanager
    def _session(self) -> Iterator[MailboxSessionContract]:
        """Fresh authenticated session, released on every exit path."""
        session = self._session_factory(self._config.imap)
        try:
            yield session
        finally:
            session.close()

    @staticmethod
    def _latest_first(hits: list[SearchHit], limit: int) -> list[SearchHit]:
        """Last ``limit`` hits of an ascending search, newest first."""
        return hits[-limit:][::-1]

    @staticmethod
    def _summaries(hits: list[SearchHit], fields: tuple[str, ...] = SUMMARY_FIELDS) -> list[dict]:
        return [
            decode_summary(hit.uid, hit.flags, hit.parts.get("HEADER")).to_dict(fields)
            for hit in hits
        ]

    def _resolve_drafts_folder(self, session: MailboxSessionContract) -> str:
        folder = find_drafts_folder(session.list_folder_tree())
        logger.info(f"Using drafts folder {folder}")
        return folder

    def _compose(self, **fields: Any) -> bytes:
        return compose_message(sender=self._config.imap.user, **fields).as_bytes()

    # -------------------------------------------------------------------------
    # Tools
    # -------------------------------------------------------------------------

    def list_folders(self) -> list[str]:
        """Dotted folder paths, parents before children."""
        logger.info("Listing folders")
        with self._session() as session:
            tree = session.list_folder_tree()

        folders: list[str] = []

        def extract(level: dict, prefix: str = "") -> None:
            for key, node in level.items():
                full_path = f"{prefix}.{key}" if prefix else key
                folders.append(full_path)
                if node.children:
                    extract(node.children, full_path)

        extract(tree)
        return folders

    def list_emails(
        self,
        *,
        folder: str,
        limit: int,
        unseen_only: bool = False,
        since_date: str | None = None,
    ) -> list[dict]:
        """
        Newest ``limit`` messages of ``folder``.

        A since_date replaces the unseen filter; the two never combine.
        """
        criteria: list[Any] = ["ALL"]
        if unseen_only:
            criteria = ["UNSEEN"]
        if since_date:
            criteria = ["SINCE", _parse_since_date(since_date)]

        logger.info(f"Listing emails in {folder} with limit={limit}")
        with self._session() as session:
            session.open_folder(folder)
            hits = session.search(criteria, fetch=FETCH_HEADERS)
        return self._summaries(self._latest_first(hits, limit))

    def get_email(self, *, uid: int, folder: str) -> dict | str:
        logger.info(f"Fetching message {uid} from {folder}")
        with self._session() as session:
            session.open_folder(folder)
            hits = session.search(["UID", uid], fetch=FETCH_FULL)
        if not hits:
            return "Email not found"

        hit = hits[0]
        return MessageDetail(uid=hit.uid, message=self._decoder(hit.parts.get("", b""))).to_dict()

    def search_emails(
        self,
        *,
        folder: str,
        limit: int,
        subject: str | None = None,
        sender: str | None = None,
        body: str | None = None,
    ) -> list[dict]:
        """Conjunction of whichever of subject/from/body are given, else ALL."""
        criteria: list[Any] = []
        if subject:
            criteria += ["SUBJECT", subject]
        if sender:
            criteria += ["FROM", sender]
        if body:
            criteria += ["BODY", body]
        if not criteria:
            criteria = ["ALL"]

        logger.info(f"Searching {folder} on {len(criteria) // 2} field(s) with limit={limit}")
        with self._session() as session:
            session.open_folder(folder)
            hits = session.search(criteria, fetch=FETCH_HEADERS)
        return self._summaries(self._latest_first(hits, limit), SEARCH_FIELDS)

    def list_drafts(self, *, limit: int) -> dict:
        with self._session() as session:
            folder = self._resolve_drafts_folder(session)
            session.open_folder(folder)
            hits = session.search(["ALL"], fetch=FETCH_HEADERS)
        return {
            "folder": folder,
            "drafts": self._summaries(self._latest_first(hits, limit), DRAFT_SUMMARY_FIELDS),
        }

    def get_draft(self, *, uid: int) -> dict | str:
        with self._session() as session:
            folder = self._resolve_drafts_folder(session)
            session.open_folder(folder)
            hits = session.search(["UID", uid], fetch=FETCH_FULL)
        if not hits:
            return "Draft not found"

        hit = hits[0]
        detail = MessageDetail(uid=hit.uid, message=self._decoder(hit.parts.get("", b"")))
        return detail.to_dict(DRAFT_FIELDS)

    def create_draft(
        self,
        *,
        to: str,
        subject: str,
        body: str | None = None,
        html: str | None = None,
        cc: str | None = None,
        bcc: str | None = None,
    ) -> str:
        with self._session() as session:
            folder = self._resolve_drafts_folder(session)
            raw = self._compose(to=to, subject=subject, body=body, html=html, cc=cc, bcc=bcc)
            session.append(raw, folder=folder, flags=(DRAFT_FLAG,))
        return f"Draft created successfully in {folder}"

    def update_draft(
        self,
        *,
        uid: int,
        to: str,
        subject: str,
        body: str | None = None,
        html: str | None = None,
        cc: str | None = None,
        bcc: str | None = None,
    ) -> str:
        """
        Replace draft ``uid`` by deleting it and appending a new message.

        Not atomic: the new draft gets a new UID, and a failed append after
        the expunge loses the original.
        """
        with self._session() as session:
            folder = self._resolve_drafts_folder(session)
            session.open_folder(folder)
            session.set_flags(uid, [DELETED_FLAG])
            session.close_folder(expunge=True)

            session.open_folder(folder)
            raw = self._compose(to=to, subject=subject, body=body, html=html, cc=cc, bcc=bcc)
            session.append(raw, folder=folder, flags=(DRAFT_FLAG,))
        logger.info(f"Replaced draft {uid} in {folder}")
        return "Draft updated successfully"

    def send_email(
        self,
        *,
        to: str,
        subject: str,
        body: str | None = None,
        html: str | None = None,
        cc: str | None = None,
        bcc: str | None = None,
    ) -> dict:
        smtp = self._config.smtp
        if not smtp.host:
            raise DeliveryNotConfiguredError("SMTP_HOST not configured. Cannot send emails.")

        message = OutgoingMessage(
            sender=smtp.user,
            to=to,
            subject=subject,
            text=body,
            html=html,
            cc=cc,
            bcc=bcc,
        )
        receipt = self._transfer.deliver(smtp, message)
        return {"success": True, "messageId": receipt.message_id, "response": receipt.response}

    def delete_email(self, *, uid: int, folder: str) -> str:
        logger.info(f"Deleting message {uid} from {folder}")
        with self._session() as session:
            session.open_folder(folder)
            session.set_flags(uid, [DELETED_FLAG])
            session.close_folder(expunge=True)
        return "Email deleted successfully"

    # -------------------------------------------------------------------------

    def _serialize_result(self, result: Any) -> str:
        """Serialize result to JSON string."""

        def default_serializer(obj: Any) -> Any:
            if hasattr(obj, "__dataclass_fields__"):
                return asdict(obj)
            if isinstance(obj, (date, datetime)):
                return obj.isoformat()
            raise TypeError(f"Cannot serialize {type(obj)}")

        return json.dumps(result, default=default_serializer, indent=2, ensure_ascii=False)

    async def run(self) -> None:
        """Run the MCP server."""
        async with stdio_server() as (read_stream, write_stream):
            await self._server.run(
                read_stream, write_stream, self._server.create_initialization_options()
            )


def _parse_since_date(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as e:
        raise InvalidArgumentError(f"since_date must be YYYY-MM-DD, got {value!r}") from e


def create_server(config: ServerConfig, **collaborators: Any) -> EmailMCPServer:
    """Create a server instance; collaborators may be replaced for testing."""
    return EmailMCPServer(config, **collaborators)


def main() -> None:
    """Console entry point: load configuration and serve over stdio."""
    # stdout carries the MCP protocol, so logs go to stderr.
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT, stream=sys.stderr)

    try:
        config = load_config()
    except ConfigurationError as e:
        logger.error(str(e))
        logger.error("Please set these variables before starting the server.")
        sys.exit(1)

    logging.getLogger().setLevel(config.log_level)
    server = create_server(config)
    logger.info("IMAP Email MCP Server running on stdio")
    asyncio.run(server.run())
