"""Locate the Drafts folder across provider naming conventions."""

from __future__ import annotations

from collections.abc import Sequence

from imap_email_mcp.contracts import FolderTree

DRAFT_FOLDER_CANDIDATES = (
    "Drafts",
    "INBOX.Drafts",
    "[Gmail]/Drafts",
    "[Google Mail]/Drafts",
    "Draft",
    "INBOX/Drafts",
)

DEFAULT_DRAFTS_FOLDER = "Drafts"


def _exists(tree: FolderTree, name: str) -> bool:
    if name in tree:
        return True

    level = tree
    for segment in name.split("."):
        node = level.get(segment)
        if node is None:
            return False
        level = node.children
    return True


def find_drafts_folder(
    tree: FolderTree,
    candidates: Sequence[str] = DRAFT_FOLDER_CANDIDATES,
) -> str:
    """
    Return the first candidate present in ``tree``.

    A candidate matches as a top-level name or as a dotted path through
    nested children. Falls back to ``INBOX.Drafts`` when INBOX has a Drafts
    child, then to ``Drafts``, which may not exist on the server.
    """
    for name in candidates:
        if _exists(tree, name):
            return name

    inbox = tree.get("INBOX")
    if inbox is not None and "Drafts" in inbox.children:
        return "INBOX.Drafts"

    return DEFAULT_DRAFTS_FOLDER
