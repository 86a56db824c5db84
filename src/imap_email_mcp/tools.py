"""
Tool Registry
=============

Static catalog of the MCP tools: names, argument schemas and defaults.
"""

from __future__ import annotations

from typing import Any

from mcp.types import Tool

_FOLDER = {
    "type": "string",
    "description": "Folder name (default: INBOX)",
    "default": "INBOX",
}


def _limit(description: str) -> dict[str, Any]:
    return {"type": "number", "description": description, "default": 20}


def _message_fields(to_description: str, cc_description: str, bcc_description: str) -> dict[str, Any]:
    return {
        "to": {"type": "string", "description": to_description},
        "subject": {"type": "string", "description": "Email subject"},
        "body": {"type": "string", "description": "Email body (plain text)"},
        "html": {"type": "string", "description": "Email body (HTML)"},
        "cc": {"type": "string", "description": cc_description},
        "bcc": {"type": "string", "description": bcc_description},
    }


TOOLS: list[Tool] = [
    Tool(
        name="list_folders",
        description="List all email folders/mailboxes in the IMAP account",
        inputSchema={"type": "object", "properties": {}, "required": []},
    ),
    Tool(
        name="list_emails",
        description="List emails from a folder with optional filtering",
        inputSchema={
            "type": "object",
            "properties": {
                "folder": _FOLDER,
                "limit": _limit("Maximum number of emails to return (default: 20)"),
                "unseen_only": {
                    "type": "boolean",
                    "description": "Only return unread emails",
                    "default": False,
                },
                "since_date": {
                    "type": "string",
                    "description": "Only return emails since this date (YYYY-MM-DD format)",
                },
            },
            "required": [],
        },
    ),
    Tool(
        name="get_email",
        description="Get full email content by UID",
        inputSchema={
            "type": "object",
            "properties": {
                "uid": {"type": "number", "description": "Email UID"},
                "folder": _FOLDER,
            },
            "required": ["uid"],
        },
    ),
    Tool(
        name="search_emails",
        description="Search emails by subject, from, or body text",
        inputSchema={
            "type": "object",
            "properties": {
                "folder": {**_FOLDER, "description": "Folder to search (default: INBOX)"},
                "subject": {"type": "string", "description": "Search in subject line"},
                "from": {"type": "string", "description": "Search by sender"},
                "body": {"type": "string", "description": "Search in body text"},
                "limit": _limit("Maximum results (default: 20)"),
            },
            "required": [],
        },
    ),
    Tool(
        name="list_drafts",
        description="List all draft emails",
        inputSchema={
            "type": "object",
            "properties": {
                "limit": _limit("Maximum number of drafts to return (default: 20)"),
            },
            "required": [],
        },
    ),
    Tool(
        name="get_draft",
        description="Get a specific draft email by UID",
        inputSchema={
            "type": "object",
            "properties": {"uid": {"type": "number", "description": "Draft UID"}},
            "required": ["uid"],
        },
    ),
    Tool(
        name="create_draft",
        description="Create a new draft email",
        inputSchema={
            "type": "object",
            "properties": _message_fields(
                "Recipient email address(es), comma-separated",
                "CC recipients, comma-separated",
                "BCC recipients, comma-separated",
            ),
            "required": ["to", "subject"],
        },
    ),
    Tool(
        name="update_draft",
        description="Update an existing draft by deleting old and creating new",
        inputSchema={
            "type": "object",
            "properties": {
                "uid": {"type": "number", "description": "UID of draft to update"},
                **_message_fields("Recipient email address(es)", "CC recipients", "BCC recipients"),
            },
            "required": ["uid", "to", "subject"],
        },
    ),
    Tool(
        name="send_email",
        description="Send an email directly",
        inputSchema={
            "type": "object",
            "properties": _message_fields("Recipient email address(es)", "CC recipients", "BCC recipients"),
            "required": ["to", "subject"],
        },
    ),
    Tool(
        name="delete_email",
        description="Delete an email by UID",
        inputSchema={
            "type": "object",
            "properties": {
                "uid": {"type": "number", "description": "Email UID to delete"},
                "folder": _FOLDER,
            },
            "required": ["uid"],
        },
    ),
]

TOOLS_BY_NAME: dict[str, Tool] = {tool.name: tool for tool in TOOLS}


def get_tool(name: str) -> Tool | None:
    return TOOLS_BY_NAME.get(name)


def tool_defaults(name: str) -> dict[str, Any]:
    """Declared default for every optional argument that has one."""
    tool = TOOLS_BY_NAME[name]
    properties = tool.inputSchema.get("properties", {})
    return {key: schema["default"] for key, schema in properties.items() if "default" in schema}


def required_arguments(name: str) -> list[str]:
    return list(TOOLS_BY_NAME[name].inputSchema.get("required", []))
