"""Drafts folder resolution across provider naming conventions."""

import pytest

from imap_email_mcp.contracts import FolderNode
from imap_email_mcp.drafts import DRAFT_FOLDER_CANDIDATES, find_drafts_folder


def tree(*names, delimiter="."):
    """Folder tree from delimiter-separated names."""
    root = {}
    for name in names:
        level = root
        for segment in name.split(delimiter):
            level = level.setdefault(segment, FolderNode(delimiter=delimiter)).children
    return root


@pytest.mark.parametrize("name", DRAFT_FOLDER_CANDIDATES)
def test_top_level_candidate(name):
    folders = {"INBOX": FolderNode(), name: FolderNode()}

    assert find_drafts_folder(folders) == name


def test_first_candidate_wins():
    folders = {"Draft": FolderNode(), "Drafts": FolderNode()}

    assert find_drafts_folder(folders) == "Drafts"


def test_dotted_path_through_children():
    assert find_drafts_folder(tree("INBOX", "INBOX.Drafts")) == "INBOX.Drafts"


def test_slash_candidate_as_flat_key():
    folders = {"INBOX": FolderNode(), "[Gmail]/Drafts": FolderNode()}

    assert find_drafts_folder(folders) == "[Gmail]/Drafts"


def test_inbox_child_fallback_with_custom_candidates():
    folders = tree("INBOX", "INBOX.Drafts")

    assert find_drafts_folder(folders, candidates=("Entwürfe",)) == "INBOX.Drafts"


def test_default_when_nothing_matches():
    assert find_drafts_folder(tree("INBOX", "Sent", "Archive.2025")) == "Drafts"


def test_empty_tree():
    assert find_drafts_folder({}) == "Drafts"


def test_partial_path_does_not_match():
    # INBOX exists but has no Drafts child
    assert find_drafts_folder(tree("INBOX", "INBOX.Sent"), candidates=("INBOX.Drafts",)) == "Drafts"


def test_custom_candidates_in_order():
    folders = tree("Brouillons", "Entwürfe")

    assert find_drafts_folder(folders, candidates=("Entwürfe", "Brouillons")) == "Entwürfe"
