"""Shared test fixtures for the vacation responder tests.

The FakeMailbox stands in for GmailClient. It keeps messages and labels in
memory and answers the candidate query the way Gmail answers
'-in:chats -from:me -has:userlabels': user labels, self-authored messages
and chats are excluded.
"""

import itertools
from pathlib import Path
from typing import Dict, List, Optional, Set

import pytest

from autoresponder.composer import decode_raw_message
from autoresponder.config import Config
from autoresponder.errors import LabelConflictError, MailboxError

SYSTEM_LABELS = [
    {"id": "INBOX", "name": "INBOX", "type": "system"},
    {"id": "UNREAD", "name": "UNREAD", "type": "system"},
    {"id": "SENT", "name": "SENT", "type": "system"},
]


class FakeMailbox:
    """In-memory replacement for GmailClient"""

    def __init__(self):
        self.labels: List[Dict[str, str]] = [dict(label) for label in SYSTEM_LABELS]
        self.messages: Dict[str, Dict] = {}
        self.sent: List[str] = []
        self.calls: List[str] = []
        self.send_failures: Set[str] = set()
        self.modify_failures: Set[str] = set()
        self.query_error: Optional[Exception] = None
        self.create_error: Optional[Exception] = None
        self._label_ids = itertools.count(1)

    def add_message(self, message_id: str, subject: Optional[str] = "Hello",
                    sender: Optional[str] = "Jane Doe <jane@example.com>",
                    from_me: bool = False, chat: bool = False, labels=("INBOX", "UNREAD")):
        headers = {}
        if subject is not None:
            headers["Subject"] = subject
        if sender is not None:
            headers["From"] = sender
        self.messages[message_id] = {
            "headers": headers,
            "labels": set(labels),
            "from_me": from_me,
            "chat": chat,
        }

    def user_label_ids(self) -> Set[str]:
        return {label["id"] for label in self.labels if label.get("type") == "user"}

    # GmailClient interface

    async def list_labels(self):
        self.calls.append("list_labels")
        return [dict(label) for label in self.labels]

    async def create_label(self, name: str) -> str:
        self.calls.append("create_label")
        if self.create_error is not None:
            raise self.create_error
        if any(label["name"] == name for label in self.labels):
            raise LabelConflictError(f"Label {name!r} already exists", status=409)
        label_id = f"Label_{next(self._label_ids)}"
        self.labels.append({"id": label_id, "name": name, "type": "user"})
        return label_id

    async def list_message_ids(self, query: str) -> List[str]:
        self.calls.append("list_message_ids")
        if self.query_error is not None:
            raise self.query_error
        user_labels = self.user_label_ids()
        return [
            message_id for message_id, message in self.messages.items()
            if not message["from_me"]
            and not message["chat"]
            and not (message["labels"] & user_labels)
        ]

    async def get_message_headers(self, message_id: str, names: List[str]) -> Dict[str, str]:
        self.calls.append(f"get:{message_id}")
        headers = self.messages[message_id]["headers"]
        return {name: value for name, value in headers.items() if name in names}

    async def send_message(self, raw: str) -> str:
        self.calls.append("send")
        in_reply_to = decode_raw_message(raw)["In-Reply-To"]
        if in_reply_to in self.send_failures:
            raise MailboxError("Gmail messages.send failed (500)", status=500)
        self.sent.append(raw)
        return f"sent_{len(self.sent)}"

    async def modify_labels(self, message_id: str, add: List[str], remove: List[str]):
        self.calls.append(f"modify:{message_id}")
        if message_id in self.modify_failures:
            raise MailboxError("Gmail messages.modify failed (500)", status=500)
        labels = self.messages[message_id]["labels"]
        labels.update(add)
        labels.difference_update(remove)


@pytest.fixture
def mailbox() -> FakeMailbox:
    return FakeMailbox()


@pytest.fixture
def credentials_file(tmp_path: Path) -> Path:
    path = tmp_path / "credentials.json"
    path.write_text('{"installed": {}}')
    return path


@pytest.fixture
def config(tmp_path: Path, credentials_file: Path) -> Config:
    """Config isolated from the environment and writing into tmp_path"""
    token_path = tmp_path / "token.json"
    token_path.write_text('{"token": "cached"}')
    return Config(
        GMAIL_CREDENTIALS_FILE=str(credentials_file),
        GMAIL_TOKEN_FILE=str(token_path),
        LABEL_NAME="Vacation",
        REPLY_BODY="I'm away until Monday.",
        REPLY_BODY_FILE="",
        REPLY_SENDER="me",
        CANDIDATE_QUERY="-in:chats -from:me -has:userlabels",
        REMOVE_LABEL_IDS=["INBOX"],
        POLL_MIN_SECONDS=60,
        POLL_MAX_SECONDS=60,
        SHUTDOWN_TIMEOUT=5,
        PORT=8000,
        RUN_LOG_FILE=str(tmp_path / "data" / "run_log.json"),
        RUN_LOG_MAX_ENTRIES=100,
        DEBUG=False,
    )
