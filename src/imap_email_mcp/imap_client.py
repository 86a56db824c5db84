"""
IMAP Client Wrapper
===================

Mailbox session used by the tool handlers. One instance is opened per tool
call and closed before the call returns.

INVARIANTS:
- Reads use BODY.PEEK, so listing or fetching never sets \\Seen
- No logging of message bodies or attachments
"""

from __future__ import annotations

import ssl
from typing import TYPE_CHECKING, Any

from imapclient import IMAPClient
from imapclient.exceptions import IMAPClientAbortError, IMAPClientError

from imap_email_mcp.contracts import (
    AuthFailedError,
    ConnectionFailedError,
    FolderNode,
    FolderNotFoundError,
    FolderTree,
    SearchHit,
    TransportError,
)

if TYPE_CHECKING:
    from imap_email_mcp.config import ImapSettings

FETCH_HEADERS = "headers"
FETCH_FULL = "full"

HEADER_SECTION = "BODY.PEEK[HEADER.FIELDS (FROM TO SUBJECT DATE)]"
FULL_SECTION = "BODY.PEEK[]"


def _text(value: bytes | str) -> str:
    return value.decode("utf-8", errors="replace") if isinstance(value, bytes) else value


class EmailIMAPClient:
    """IMAP session backed by imapclient."""

    def __init__(self) -> None:
        self._client: IMAPClient | None = None

    @classmethod
    def open(cls, settings: ImapSettings) -> EmailIMAPClient:
        """Create a session and authenticate it."""
        session = cls()
        session.connect(settings)
        return session

    def connect(self, settings: ImapSettings) -> None:
        """
        Connect and authenticate to IMAP server.

        ERRORS:
        - ConnectionFailedError: host unreachable or TLS handshake failed
        - AuthFailedError: server rejected the credentials
        """
        ssl_context = None
        if settings.use_tls:
            ssl_context = ssl.create_default_context()
            if not settings.tls_verify:
                ssl_context.check_hostname = False
                ssl_context.verify_mode = ssl.CERT_NONE

        try:
            client = IMAPClient(
                settings.host,
                port=settings.port,
                ssl=settings.use_tls,
                ssl_context=ssl_context,
                timeout=settings.timeout_seconds,
            )
        except Exception as e:
            raise ConnectionFailedError(f"Failed to connect: {e}") from e

        try:
            client.login(settings.user, settings.password)
        except Exception as e:
            try:
                client.shutdown()
            except Exception:
                pass
            raise AuthFailedError(f"Authentication failed: {e}") from e

        self._client = client

    def close(self) -> None:
        """Log out. Safe to call more than once."""
        if self._client:
            try:
                self._client.logout()
            except Exception:
                pass
            finally:
                self._client = None

    def _require_connection(self) -> IMAPClient:
        if self._client is None:
            raise TransportError("Not connected to mail server")
        return self._client

    def list_folder_tree(self) -> FolderTree:
        """
        Build the folder hierarchy from the LIST response.

        POST: every listed folder is reachable by walking children maps along
              its delimiter-separated name
        """
        client = self._require_connection()
        try:
            listing = client.list_folders()
        except IMAPClientError as e:
            raise TransportError(str(e)) from e

        tree: FolderTree = {}
        for flags, delimiter, name in listing:
            delim = _text(delimiter) if delimiter else None
            segments = _text(name).split(delim) if delim else [_text(name)]

            level = tree
            node = None
            for segment in segments:
                node = level.setdefault(segment, FolderNode(delimiter=delim))
                level = node.children
            node.attributes = [_text(flag) for flag in flags]
        return tree

    def open_folder(self, name: str) -> None:
        """
        SELECT ``name``.

        ERRORS:
        - FolderNotFoundError: server answered NO/BAD to the SELECT
        - TransportError: connection dropped or timed out
        """
        client = self._require_connection()
        try:
            client.select_folder(name)
        except IMAPClientAbortError as e:
            raise TransportError(str(e)) from e
        except IMAPClientError as e:
            raise FolderNotFoundError(f"Folder not found: {name}") from e
        except OSError as e:
            raise TransportError(str(e)) from e

    def search(self, criteria: list[Any], fetch: str = FETCH_HEADERS) -> list[SearchHit]:
        """
        Search the open folder and fetch the requested parts.

        POST: hits ordered by UID ascending
        POST: parts holds "HEADER" for header fetches, "" for full fetches
        """
        client = self._require_connection()
        section = FULL_SECTION if fetch == FETCH_FULL else HEADER_SECTION
        charset = None
        if any(isinstance(c, str) and not c.isascii() for c in criteria):
            charset = "UTF-8"

        try:
            uids = sorted(client.search(criteria, charset=charset))
            if not uids:
                return []
            response = client.fetch(uids, ["FLAGS", section])
        except IMAPClientError as e:
            raise TransportError(str(e)) from e

        hits = []
        for uid in uids:
            data = response.get(uid)
            if data is None:
                continue
            flags = [_text(f) for f in data.get(b"FLAGS", ())]
            hits.append(SearchHit(uid=uid, flags=flags, parts=self._parts(data, fetch)))
        return hits

    def _parts(self, data: dict, fetch: str) -> dict[str, bytes]:
        if fetch == FETCH_FULL:
            return {"": data.get(b"BODY[]") or data.get(b"BODY.PEEK[]") or b""}
        # Servers echo the header section name in varying forms.
        for key, value in data.items():
            if isinstance(key, bytes) and key.startswith(b"BODY[HEADER"):
                return {"HEADER": value or b""}
        return {"HEADER": b""}

    def append(self, raw: str | bytes, *, folder: str, flags: tuple[bytes, ...] = ()) -> None:
        """Store ``raw`` in ``folder``; text is sent as UTF-8."""
        if isinstance(raw, str):
            raw = raw.encode("utf-8")
        client = self._require_connection()
        try:
            client.append(folder, raw, flags=flags)
        except IMAPClientError as e:
            raise TransportError(str(e)) from e

    def set_flags(self, uid: int, flags: list[bytes]) -> None:
        client = self._require_connection()
        try:
            client.add_flags([uid], flags)
        except IMAPClientError as e:
            raise TransportError(str(e)) from e

    def close_folder(self, expunge: bool = False) -> None:
        """CLOSE expunges \\Deleted messages; UNSELECT leaves them."""
        client = self._require_connection()
        try:
            if expunge:
                client.close_folder()
            else:
                client.unselect_folder()
        except IMAPClientError as e:
            raise TransportError(str(e)) from e
