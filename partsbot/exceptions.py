"""
Error types raised across the storefront assistant.

The conversation errors never escape the flow engine: they are raised and
handled inside it so a broken conversation cannot take down the widget.
"""

from typing import Any, Optional


class PartsbotError(Exception):
    """Base class for all partsbot errors"""


class UnrecognizedSelection(PartsbotError):
    """Selected option is not valid for the current conversation state"""

    def __init__(self, selection: str, state: str):
        self.selection = selection
        self.state = state
        super().__init__(f"Selection '{selection}' is not valid in state '{state}'")


class UnknownFlowKind(PartsbotError):
    """Flow id does not exist in the flow catalog"""

    def __init__(self, flow_id: Optional[str]):
        self.flow_id = flow_id
        super().__init__(f"Unknown flow: {flow_id}")


class MalformedSessionState(PartsbotError):
    """Session cursor or flow reference is inconsistent with the catalog"""

    def __init__(self, session_id: str, detail: str):
        self.session_id = session_id
        self.detail = detail
        super().__init__(f"Session {session_id} is malformed: {detail}")


class ApiError(PartsbotError):
    """Content API request failed"""

    def __init__(self, message: str, status: Optional[int] = None, response: Any = None):
        self.message = message
        self.status = status
        self.response = response
        super().__init__(message)


class MailDeliveryError(PartsbotError):
    """Contact email could not be delivered"""


class FaqAnswerError(PartsbotError):
    """AI answer could not be generated for an FAQ question"""
