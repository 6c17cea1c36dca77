"""IMAP mailbox scanner that retrieves the Arlo MFA one-time code.

The scanner depends on the current Arlo email template: the message subject is
exactly ``MFA_EMAIL_SUBJECT`` and the six digit code is the first six digit
run inside the first ``<h1>`` of the HTML body. When Arlo changes its email
template this module is what needs updating.

Each call to :meth:`MailboxScanner.fetch_code` is a single attempt; retrying
while the email is still in flight is the authenticator's job.
"""
import asyncio
import email
import email.policy
import imaplib
import logging
import re
from typing import Callable, List, Optional

from bs4 import BeautifulSoup

from arlo_cloud.core.config import settings
from arlo_cloud.core.constants import MFA_EMAIL_SUBJECT, MFA_MAILBOX
from arlo_cloud.core.exceptions import NotFoundError, ParseError, TransportError
from arlo_cloud.models.auth import Credentials

logger = logging.getLogger(__name__)

CODE_PATTERN = re.compile(r"(?<!\d)\d{6}(?!\d)")


def extract_html(raw_message: bytes) -> str:
    """Return the HTML body of a raw RFC822 message."""
    message = email.message_from_bytes(raw_message, policy=email.policy.default)
    part = message.get_body(preferencelist=("html",))
    if part is None:
        raise ParseError("MFA email has no HTML body")
    return part.get_content()


def extract_code(html: str) -> str:
    """
    Extract the one-time code from the MFA email HTML.

    Raises:
        ParseError: If there is no <h1> or it holds no six digit run
    """
    soup = BeautifulSoup(html, "html.parser")
    heading = soup.find("h1")
    if heading is None:
        raise ParseError("Unable to find the code heading in the MFA email")

    match = CODE_PATTERN.search(heading.get_text())
    if match is None:
        raise ParseError(
            "Unable to find a matching code",
            {"heading": heading.get_text()[:100]}
        )
    return match.group(0)


class MailboxScanner:
    """Single-attempt IMAP lookup of the newest unread MFA email."""

    def __init__(
        self,
        host: str,
        port: int,
        user: str,
        password: str,
        subject: str = MFA_EMAIL_SUBJECT,
        timeout: Optional[float] = None,
        imap_factory: Callable[..., imaplib.IMAP4] = imaplib.IMAP4_SSL
    ):
        """Initialize the scanner."""
        self.host = host
        self.port = port
        self.user = user
        self._password = password
        self.subject = subject
        self.timeout = timeout or settings.IMAP_TIMEOUT
        self._imap_factory = imap_factory

    @classmethod
    def from_credentials(cls, credentials: Credentials, **kwargs) -> "MailboxScanner":
        return cls(
            host=credentials.email_server,
            port=credentials.email_imap_port,
            user=credentials.email_user,
            password=credentials.email_password,
            **kwargs
        )

    async def fetch_code(self) -> str:
        """
        Fetch the one-time code from the newest unread MFA email.

        The blocking IMAP session runs in the default executor.

        Returns:
            The six digit code as text

        Raises:
            NotFoundError: If no unread MFA email is present
            ParseError: If the email does not carry a code
            TransportError: If the IMAP session fails
        """
        loop = asyncio.get_running_loop()
        code = await loop.run_in_executor(None, self._fetch_code_sync)
        logger.info("MFA code retrieved from mailbox")
        return code

    def _fetch_code_sync(self) -> str:
        logger.debug(f"Connecting to IMAP server {self.host}:{self.port} as {self.user}")
        try:
            imap = self._imap_factory(self.host, self.port, timeout=self.timeout)
        except (imaplib.IMAP4.error, OSError) as e:
            raise TransportError(
                f"Unable to connect to IMAP server: {e}",
                {"host": self.host, "port": self.port}
            )

        try:
            raw_message = self._fetch_latest(imap)
        except (imaplib.IMAP4.error, OSError) as e:
            raise TransportError(f"IMAP session failed: {e}", {"host": self.host})
        finally:
            try:
                imap.logout()
            except (imaplib.IMAP4.error, OSError) as e:
                logger.debug(f"IMAP logout failed: {e}")

        return extract_code(extract_html(raw_message))

    def _fetch_latest(self, imap: imaplib.IMAP4) -> bytes:
        """Search, pick the highest sequence number and fetch it (marks it seen)."""
        imap.login(self.user, self._password)
        imap.select(MFA_MAILBOX)

        typ, data = imap.search(None, "UNSEEN", "SUBJECT", f'"{self.subject}"')
        if typ != "OK":
            raise TransportError(f"IMAP search failed: {typ}")

        ids: List[bytes] = data[0].split() if data and data[0] else []
        if not ids:
            raise NotFoundError(
                "No emails found matching search criteria",
                {"subject": self.subject}
            )

        ids.sort(key=int)
        latest = ids[-1]
        logger.debug(f"{len(ids)} matching email(s), using sequence {latest.decode()}")

        typ, msg_data = imap.fetch(latest.decode(), "(RFC822)")
        if typ != "OK" or not msg_data or not isinstance(msg_data[0], tuple):
            raise ParseError(f"Unable to fetch MFA email {latest.decode()}")

        return msg_data[0][1]
