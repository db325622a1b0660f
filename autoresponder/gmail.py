"""
Thin async facade over the Gmail v1 API
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import httplib2
from google.auth.exceptions import TransportError
from googleapiclient.errors import HttpError

from .errors import LabelConflictError, MailboxError

logger = logging.getLogger(__name__)


def _http_status(error: HttpError) -> Optional[int]:
    status = getattr(error, "status_code", None) or getattr(error.resp, "status", None)
    try:
        return int(status)
    except (TypeError, ValueError):
        return None


class GmailClient:
    """Gmail operations used by the responder, all against userId='me'"""

    def __init__(self, service, user_id: str = "me"):
        self.service = service
        self.user_id = user_id

    async def _execute(self, request, action: str) -> Dict[str, Any]:
        """Run a blocking API request off the event loop; HTTP and transport failures become MailboxError"""
        try:
            return await asyncio.to_thread(request.execute)
        except HttpError as e:
            status = _http_status(e)
            raise MailboxError(f"Gmail {action} failed ({status}): {e}", status=status) from e
        except (TransportError, httplib2.HttpLib2Error, OSError) as e:
            raise MailboxError(f"Gmail {action} failed: {e}") from e

    # ==================== LABELS ====================

    async def list_labels(self) -> List[Dict[str, Any]]:
        request = self.service.users().labels().list(userId=self.user_id)
        result = await self._execute(request, "labels.list")
        return result.get('labels', [])

    async def create_label(self, name: str) -> str:
        """Create a label and return its id; raises LabelConflictError if the name is taken"""
        label_object = {
            'name': name,
            'labelListVisibility': 'labelShow',
            'messageListVisibility': 'show'
        }
        request = self.service.users().labels().create(userId=self.user_id, body=label_object)
        try:
            created = await self._execute(request, "labels.create")
        except MailboxError as e:
            if e.status == 409:
                raise LabelConflictError(f"Label {name!r} already exists", status=409) from e
            raise
        return created['id']

    # ==================== MESSAGES ====================

    async def list_message_ids(self, query: str) -> List[str]:
        """All message ids matching a search query, following every result page"""
        message_ids: List[str] = []
        page_token = None

        while True:
            kwargs = {"userId": self.user_id, "q": query}
            if page_token:
                kwargs["pageToken"] = page_token
            request = self.service.users().messages().list(**kwargs)
            result = await self._execute(request, "messages.list")

            message_ids.extend(msg['id'] for msg in result.get('messages', []))
            page_token = result.get('nextPageToken')
            if not page_token:
                break

        logger.debug("Query %r matched %d messages", query, len(message_ids))
        return message_ids

    async def get_message_headers(self, message_id: str, names: List[str]) -> Dict[str, str]:
        """Requested headers of a message; the first occurrence of each name wins"""
        request = self.service.users().messages().get(
            userId=self.user_id,
            id=message_id,
            format='metadata',
            metadataHeaders=names
        )
        message = await self._execute(request, "messages.get")

        headers: Dict[str, str] = {}
        for header in message.get('payload', {}).get('headers', []):
            headers.setdefault(header['name'], header['value'])
        return headers

    async def send_message(self, raw: str) -> str:
        """Send a base64url-encoded RFC 822 message and return the new message id"""
        request = self.service.users().messages().send(userId=self.user_id, body={'raw': raw})
        sent = await self._execute(request, "messages.send")
        return sent.get('id', '')

    async def modify_labels(self, message_id: str, add: List[str], remove: List[str]):
        request = self.service.users().messages().modify(
            userId=self.user_id,
            id=message_id,
            body={'addLabelIds': add, 'removeLabelIds': remove}
        )
        await self._execute(request, "messages.modify")
