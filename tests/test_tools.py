"""Tool registry schemas and defaults."""

import pytest

from imap_email_mcp.tools import TOOLS, get_tool, required_arguments, tool_defaults

EXPECTED_TOOLS = [
    "list_folders",
    "list_emails",
    "get_email",
    "search_emails",
    "list_drafts",
    "get_draft",
    "create_draft",
    "update_draft",
    "send_email",
    "delete_email",
]


def test_catalog():
    assert [tool.name for tool in TOOLS] == EXPECTED_TOOLS


def test_every_tool_has_a_handler(server):
    for name in EXPECTED_TOOLS:
        assert name in server._handlers


def test_defaults():
    assert tool_defaults("list_emails") == {"folder": "INBOX", "limit": 20, "unseen_only": False}
    assert tool_defaults("list_drafts") == {"limit": 20}
    assert tool_defaults("create_draft") == {}


@pytest.mark.parametrize(
    "name, required",
    [
        ("list_folders", []),
        ("get_email", ["uid"]),
        ("get_draft", ["uid"]),
        ("create_draft", ["to", "subject"]),
        ("update_draft", ["uid", "to", "subject"]),
        ("send_email", ["to", "subject"]),
        ("delete_email", ["uid"]),
    ],
)
def test_required_arguments(name, required):
    assert required_arguments(name) == required


def test_unknown_tool_lookup():
    assert get_tool("forward_email") is None
