"""
Create-or-get resolution of the label that marks handled messages
"""

import logging

from .errors import LabelConflictError, LabelNotFoundError
from .gmail import GmailClient
from .models import LabelResolution, LabelStatus

logger = logging.getLogger(__name__)


class LabelResolver:
    """Ensures a named label exists and returns its id"""

    def __init__(self, client: GmailClient):
        self.client = client

    async def resolve(self, name: str) -> LabelResolution:
        """
        Create the label, or look it up when creation reports a name conflict.
        Any other failure propagates to the caller.
        """
        try:
            label_id = await self.client.create_label(name)
        except LabelConflictError:
            labels = await self.client.list_labels()
            for label in labels:
                if label.get('name') == name:
                    logger.info("Found existing label %r with id %s", name, label['id'])
                    return LabelResolution(label_id=label['id'], name=name, status=LabelStatus.FOUND)
            raise LabelNotFoundError(f"Label {name!r} reported as existing but is not listed")

        logger.info("Created label %r with id %s", name, label_id)
        return LabelResolution(label_id=label_id, name=name, status=LabelStatus.CREATED)
