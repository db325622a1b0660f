"""
Exception taxonomy for the vacation responder
"""

from typing import Optional


class ResponderError(Exception):
    """Base class for all responder errors"""


# ==================== FATAL / STARTUP ====================

class ConfigurationError(ResponderError):
    """Required configuration is missing or malformed"""


class CredentialsError(ResponderError):
    """No usable OAuth credentials could be obtained"""


# ==================== MAILBOX ====================

class MailboxError(ResponderError):
    """A Gmail API call failed"""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class LabelConflictError(MailboxError):
    """Label creation refused because the name is already taken"""


class LabelNotFoundError(ResponderError):
    """A label reported as existing could not be found by name"""


# ==================== PER-MESSAGE ====================

class MalformedMessageError(ResponderError):
    """A candidate message cannot be answered as-is"""

    def __init__(self, message: str, message_id: Optional[str] = None):
        super().__init__(message)
        self.message_id = message_id


class MissingHeaderError(MalformedMessageError):
    """A required header is absent from the message"""

    def __init__(self, header: str, message_id: Optional[str] = None):
        super().__init__(f"Message {message_id} has no {header} header", message_id)
        self.header = header


class AddressParseError(MalformedMessageError):
    """The From header carries no <address> to reply to"""

    def __init__(self, value: str, message_id: Optional[str] = None):
        super().__init__(f"No angle-bracket address in From header: {value!r}", message_id)
        self.value = value


# ==================== SCHEDULING ====================

class TickInProgressError(ResponderError):
    """A triage run is already in flight"""
