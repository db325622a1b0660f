"""
Google OAuth credentials for the Gmail mailbox
"""

import os
import sys
import logging
from typing import List, Optional

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from .config import Config
from .errors import CredentialsError

logger = logging.getLogger(__name__)


class CredentialProvider:
    """Loads, refreshes and persists the user's OAuth token"""

    def __init__(self, scopes: List[str], token_file: str, credentials_file: str,
                 allow_interactive: bool = False):
        self.scopes = scopes
        self.token_file = token_file
        self.credentials_file = credentials_file
        self.allow_interactive = allow_interactive
        self._creds: Optional[Credentials] = None

    @classmethod
    def from_config(cls, config: Config, allow_interactive: bool = False) -> "CredentialProvider":
        return cls(
            config.GMAIL_SCOPES,
            config.GMAIL_TOKEN_FILE,
            config.GMAIL_CREDENTIALS_FILE,
            allow_interactive=allow_interactive
        )

    def _load_token(self) -> Optional[Credentials]:
        if not os.path.exists(self.token_file):
            return None
        try:
            creds = Credentials.from_authorized_user_file(self.token_file, self.scopes)
            logger.debug("Loaded credentials from %s", self.token_file)
            return creds
        except ValueError as e:
            logger.warning("Ignoring unreadable token file %s: %s", self.token_file, e)
            return None

    def _save_token(self, creds: Credentials):
        with open(self.token_file, 'w') as token:
            token.write(creds.to_json())

    def get_credentials(self) -> Credentials:
        """
        Return valid credentials, refreshing an expired token when possible.
        Raises CredentialsError when no valid material can be obtained.
        """
        creds = self._creds or self._load_token()

        if creds and creds.valid:
            self._creds = creds
            return creds

        if creds and creds.expired and creds.refresh_token:
            try:
                creds.refresh(Request())
                logger.info("Refreshed expired Gmail credentials")
                self._save_token(creds)
                self._creds = creds
                return creds
            except GoogleAuthError as e:
                logger.warning("Failed to refresh credentials: %s", e)

        if not self.allow_interactive:
            raise CredentialsError(
                f"No valid Gmail token in {self.token_file}; run vacation-responder-auth first"
            )

        if not os.path.exists(self.credentials_file):
            raise CredentialsError(f"{self.credentials_file} not found")

        logger.info("No valid credentials found, starting OAuth flow...")
        try:
            flow = InstalledAppFlow.from_client_secrets_file(self.credentials_file, self.scopes)
            creds = flow.run_local_server(port=0)
        except Exception as e:
            raise CredentialsError(f"OAuth consent flow failed: {e}") from e

        self._save_token(creds)
        logger.info("Saved new credentials to %s", self.token_file)
        self._creds = creds
        return creds


def build_gmail_service(provider: CredentialProvider):
    """Build an authorized Gmail v1 resource"""
    creds = provider.get_credentials()
    return build("gmail", "v1", credentials=creds, cache_discovery=False)


def authorize_main(argv: Optional[List[str]] = None) -> int:
    """One-time interactive consent; writes the token the service later reuses"""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    config = Config()

    if argv is None:
        argv = sys.argv[1:]
    if "--force" in argv and os.path.exists(config.GMAIL_TOKEN_FILE):
        os.remove(config.GMAIL_TOKEN_FILE)
        logger.info("Removed old token file: %s", config.GMAIL_TOKEN_FILE)

    provider = CredentialProvider.from_config(config, allow_interactive=True)
    try:
        creds = provider.get_credentials()
        service = build("gmail", "v1", credentials=creds, cache_discovery=False)
        profile = service.users().getProfile(userId='me').execute()
    except (CredentialsError, HttpError) as e:
        logger.error("Authorization failed: %s", e)
        return 1

    logger.info("Gmail API working - Email: %s", profile.get('emailAddress'))
    for scope in creds.scopes or []:
        logger.info("Scope granted: %s", scope)
    return 0


if __name__ == "__main__":
    sys.exit(authorize_main())
