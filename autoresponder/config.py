"""
Configuration for the Vacation Responder
"""

import os
from typing import Any, Dict, List, Union
from dotenv import load_dotenv

from .errors import ConfigurationError

# Load environment variables
load_dotenv(os.getenv("RESPONDER_ENV_FILE", "config/config.env"))
load_dotenv()

DEFAULT_REPLY_BODY = (
    "Hi,\n\n"
    "I'm currently on vacation and will get back to you soon. "
    "Sorry for the inconvenience.\n\n"
    "Thanks & Regards"
)


INT_SETTINGS = ["POLL_MIN_SECONDS", "POLL_MAX_SECONDS", "SHUTDOWN_TIMEOUT", "PORT", "RUN_LOG_MAX_ENTRIES"]


def _get_int(name: str, default: int) -> Union[int, str]:
    """Integer setting; a malformed value is kept as text for validate_required_configs to report"""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return raw


def _get_list(name: str, default: str) -> List[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


class Config:
    """Configuration class for the vacation responder"""

    # Gmail API Configuration
    GMAIL_CREDENTIALS_FILE: str = os.getenv("GMAIL_CREDENTIALS_FILE", "credentials.json")
    GMAIL_TOKEN_FILE: str = os.getenv("GMAIL_TOKEN_FILE", "token.json")
    GMAIL_SCOPES: list = [
        'https://www.googleapis.com/auth/gmail.readonly',
        'https://www.googleapis.com/auth/gmail.send',
        'https://www.googleapis.com/auth/gmail.labels',
        'https://www.googleapis.com/auth/gmail.modify'
    ]

    # Reply Configuration
    LABEL_NAME: str = os.getenv("LABEL_NAME", "Vacation")
    REPLY_BODY: str = os.getenv("REPLY_BODY", DEFAULT_REPLY_BODY)
    REPLY_BODY_FILE: str = os.getenv("REPLY_BODY_FILE", "")
    REPLY_SENDER: str = os.getenv("REPLY_SENDER", "me")
    CANDIDATE_QUERY: str = os.getenv("CANDIDATE_QUERY", "-in:chats -from:me -has:userlabels")
    REMOVE_LABEL_IDS: list = _get_list("REMOVE_LABEL_IDS", "INBOX")

    # Scheduler Configuration
    POLL_MIN_SECONDS: int = _get_int("POLL_MIN_SECONDS", 45)
    POLL_MAX_SECONDS: int = _get_int("POLL_MAX_SECONDS", 120)
    SHUTDOWN_TIMEOUT: int = _get_int("SHUTDOWN_TIMEOUT", 30)

    # Server Configuration
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = _get_int("PORT", 8000)

    # Run history
    RUN_LOG_FILE: str = os.getenv("RUN_LOG_FILE", "data/run_log.json")
    RUN_LOG_MAX_ENTRIES: int = _get_int("RUN_LOG_MAX_ENTRIES", 100)

    # Development
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    def __init__(self, **overrides: Any):
        for key, value in overrides.items():
            if not hasattr(type(self), key):
                raise ConfigurationError(f"Unknown configuration option: {key}")
            setattr(self, key, value)

    def reply_body(self) -> str:
        """Reply text, read from REPLY_BODY_FILE when one is configured"""
        if not self.REPLY_BODY_FILE:
            return self.REPLY_BODY
        try:
            with open(self.REPLY_BODY_FILE, 'r', encoding='utf-8') as f:
                return f.read()
        except OSError as e:
            raise ConfigurationError(f"Cannot read REPLY_BODY_FILE {self.REPLY_BODY_FILE}: {e}")

    def validate_required_configs(self) -> list:
        """Validate that required configurations are present"""
        missing = []

        # the service only reads the token; the client secret is for vacation-responder-auth
        if not os.path.exists(self.GMAIL_TOKEN_FILE):
            missing.append(f"GMAIL_TOKEN_FILE: {self.GMAIL_TOKEN_FILE} (run vacation-responder-auth)")

        if not self.LABEL_NAME.strip():
            missing.append("LABEL_NAME")

        if self.REPLY_BODY_FILE and not os.path.exists(self.REPLY_BODY_FILE):
            missing.append(f"REPLY_BODY_FILE: {self.REPLY_BODY_FILE}")
        elif not self.REPLY_BODY_FILE and not self.REPLY_BODY.strip():
            missing.append("REPLY_BODY")

        malformed = [name for name in INT_SETTINGS if not isinstance(getattr(self, name), int)]
        if malformed:
            missing.extend(f"{name}: must be an integer, got {getattr(self, name)!r}" for name in malformed)
            return missing

        if self.POLL_MIN_SECONDS < 0 or self.POLL_MAX_SECONDS < self.POLL_MIN_SECONDS:
            missing.append(
                f"POLL_MIN_SECONDS/POLL_MAX_SECONDS: invalid bounds "
                f"{self.POLL_MIN_SECONDS}-{self.POLL_MAX_SECONDS}"
            )

        if not 0 < self.PORT < 65536:
            missing.append(f"PORT: {self.PORT}")

        return missing

    def get_config_summary(self) -> Dict[str, Any]:
        """Get a summary of current configuration (excluding sensitive data)"""
        return {
            "label_name": self.LABEL_NAME,
            "poll_interval_seconds": [self.POLL_MIN_SECONDS, self.POLL_MAX_SECONDS],
            "candidate_query": self.CANDIDATE_QUERY,
            "remove_label_ids": list(self.REMOVE_LABEL_IDS),
            "debug": self.DEBUG,
            "log_level": self.LOG_LEVEL,
            "api_files_present": {
                "gmail_credentials": os.path.exists(self.GMAIL_CREDENTIALS_FILE),
                "gmail_token": os.path.exists(self.GMAIL_TOKEN_FILE)
            }
        }
