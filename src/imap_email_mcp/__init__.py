"""
IMAP Email MCP Server
=====================

MCP server giving AI assistants mailbox, drafts and send tools over any
IMAP/SMTP provider.
"""

__version__ = "1.0.0"

from imap_email_mcp.config import ServerConfig, load_config
from imap_email_mcp.imap_client import EmailIMAPClient
from imap_email_mcp.server import EmailMCPServer, create_server, main
from imap_email_mcp.smtp_client import SMTPMailTransfer

__all__ = [
    "EmailMCPServer",
    "create_server",
    "main",
    "EmailIMAPClient",
    "SMTPMailTransfer",
    "ServerConfig",
    "load_config",
]
