"""Shared fixtures: settings, a patched IMAPClient and an in-memory mailbox."""

from __future__ import annotations

import email
import itertools
from unittest.mock import MagicMock, patch

import pytest

from imap_email_mcp.config import ImapSettings, ServerConfig, SmtpSettings
from imap_email_mcp.contracts import FolderNode, FolderNotFoundError, SearchHit
from imap_email_mcp.imap_client import FETCH_FULL
from imap_email_mcp.server import create_server

HEADER_KEY = b"BODY[HEADER.FIELDS (FROM TO SUBJECT DATE)]"


def raw_message(uid: int, body: str = "This is a test email body.") -> bytes:
    return (
        f"From: Sender {uid} <sender{uid}@example.com>\r\n"
        f"To: Recipient <recipient@example.com>\r\n"
        f"Subject: Message {uid}\r\n"
        f"Date: Mon, 13 Jan 2026 10:00:00 +0000\r\n"
        f"Message-ID: <{uid}@example.com>\r\n"
        f'Content-Type: text/plain; charset="utf-8"\r\n'
        f"\r\n"
        f"{body}\r\n"
    ).encode()


def header_part(raw: bytes) -> bytes:
    return raw.split(b"\r\n\r\n", 1)[0] + b"\r\n\r\n"


@pytest.fixture
def imap_settings():
    """Valid test credentials."""
    return ImapSettings(
        user="test@example.com",
        password="secret123",
        host="imap.example.com",
    )


@pytest.fixture
def server_config(imap_settings):
    return ServerConfig(
        imap=imap_settings,
        smtp=SmtpSettings(
            host="smtp.example.com",
            user="test@example.com",
            password="secret123",
        ),
    )


@pytest.fixture
def messages():
    """UID -> raw message served by the mocked IMAPClient."""
    return {uid: raw_message(uid) for uid in (100, 200, 300)}


@pytest.fixture
def mock_imap_client(messages):
    """Mock IMAPClient for testing without real IMAP server."""
    with patch("imap_email_mcp.imap_client.IMAPClient") as mock:
        client = MagicMock()
        mock.return_value = client

        client.list_folders.return_value = [
            ((b"\\HasNoChildren",), b"/", "INBOX"),
            ((b"\\HasNoChildren",), b"/", "Sent"),
            ((b"\\HasNoChildren", b"\\Drafts"), b"/", "Drafts"),
        ]
        client.select_folder.return_value = {
            b"UIDVALIDITY": 12345,
            b"UIDNEXT": 1000,
        }

        def search(criteria, charset=None):
            if criteria and criteria[0] == "UID":
                return [uid for uid in messages if uid == criteria[1]]
            return sorted(messages)

        def fetch(uids, items):
            response = {}
            for uid in uids:
                raw = messages[uid]
                data = {b"SEQ": uid, b"FLAGS": (b"\\Seen",)}
                if "BODY.PEEK[]" in items:
                    data[b"BODY[]"] = raw
                else:
                    data[HEADER_KEY] = header_part(raw)
                response[uid] = data
            return response

        client.search.side_effect = search
        client.fetch.side_effect = fetch
        yield mock


@pytest.fixture
def server(server_config, mock_imap_client):
    return create_server(server_config)


class FakeMailbox:
    """In-memory mail store honoring the mailbox session contract."""

    def __init__(self, folders: dict[str, dict[int, bytes]] | None = None) -> None:
        self.folders = folders if folders is not None else {"INBOX": {}, "Drafts": {}}
        self.flags: dict[tuple[str, int], list[bytes]] = {}
        self._uids = itertools.count(1000)
        self.sessions: list[FakeSession] = []
        self.fail_append = False

    def open_session(self, settings) -> FakeSession:
        session = FakeSession(self)
        self.sessions.append(session)
        return session

    def subjects(self, folder: str) -> dict[int, str]:
        return {
            uid: email.message_from_bytes(raw)["Subject"]
            for uid, raw in self.folders[folder].items()
        }


class FakeSession:
    def __init__(self, mailbox: FakeMailbox) -> None:
        self.mailbox = mailbox
        self.selected: str | None = None
        self.close_count = 0

    def list_folder_tree(self):
        return {name: FolderNode(delimiter="/") for name in self.mailbox.folders}

    def open_folder(self, name):
        if name not in self.mailbox.folders:
            raise FolderNotFoundError(f"Folder not found: {name}")
        self.selected = name

    def search(self, criteria, fetch="headers"):
        folder = self.mailbox.folders[self.selected]
        uids = sorted(folder)
        if criteria[0] == "UID":
            uids = [uid for uid in uids if uid == criteria[1]]
        hits = []
        for uid in uids:
            raw = folder[uid]
            parts = {"": raw} if fetch == FETCH_FULL else {"HEADER": header_part(raw)}
            flags = [f.decode() for f in self.mailbox.flags.get((self.selected, uid), [])]
            hits.append(SearchHit(uid=uid, flags=flags, parts=parts))
        return hits

    def append(self, raw, *, folder, flags=()):
        if self.mailbox.fail_append:
            raise RuntimeError("APPEND rejected")
        if isinstance(raw, str):
            # imapclient sends str literals as ASCII
            raw = raw.encode("ascii")
        uid = next(self.mailbox._uids)
        self.mailbox.folders[folder][uid] = raw
        self.mailbox.flags[(folder, uid)] = list(flags)

    def set_flags(self, uid, flags):
        self.mailbox.flags.setdefault((self.selected, uid), []).extend(flags)

    def close_folder(self, expunge=False):
        if expunge:
            folder = self.mailbox.folders[self.selected]
            for uid in list(folder):
                if b"\\Deleted" in self.mailbox.flags.get((self.selected, uid), []):
                    del folder[uid]
        self.selected = None

    def close(self):
        self.close_count += 1


@pytest.fixture
def mailbox():
    return FakeMailbox(
        {
            "INBOX": {uid: raw_message(uid) for uid in range(1, 6)},
            "Drafts": {7: raw_message(7, body="Old draft")},
        }
    )


@pytest.fixture
def fake_server(server_config, mailbox):
    transfer = MagicMock()
    return create_server(server_config, session_factory=mailbox.open_session, transfer=transfer)
