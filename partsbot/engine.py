"""
Conversation flow engine.

advance() is a pure state transition: it takes a session and the option the
user clicked and returns a new session with the user's selection and the
assistant's reply appended. Selections that mean nothing in the current
state are ignored and the original session is returned untouched.
"""

import logging
from datetime import datetime
from typing import Optional

from .config import Settings, get_settings
from .exceptions import MalformedSessionState, UnknownFlowKind, UnrecognizedSelection
from .flows import DEFAULT_CATALOG, FlowCatalog, MenuAction
from .models import ChatMessage, ChatSession, FlowDefinition, FlowStep, make_title, utc_now
from .summary import generic_completion_message, summarize

logger = logging.getLogger(__name__)

MAX_INPUT_LENGTH = 500

WELCOME_TEXT = (
    "Hi there! 👋 Welcome to our customer support. I'm here to help you with any "
    "questions or concerns. How can I assist you today?"
)
WELCOME_BACK_TEXT = "No problem, let's start again. What can I help you with?"
ACKNOWLEDGEMENT_TEXT = (
    "Thank you for your message! I've received your inquiry. Please choose one of the "
    "options below so I can point you to the right specialist."
)


def welcome_message(catalog: FlowCatalog = DEFAULT_CATALOG, now: Optional[datetime] = None) -> ChatMessage:
    """Greeting shown at the start of every new chat"""
    return ChatMessage(
        role="assistant",
        content=WELCOME_TEXT,
        timestamp=now or utc_now(),
        options=catalog.main_menu_options(),
    )


def welcome_back_message(catalog: FlowCatalog = DEFAULT_CATALOG, now: Optional[datetime] = None) -> ChatMessage:
    return ChatMessage(
        role="assistant",
        content=WELCOME_BACK_TEXT,
        timestamp=now or utc_now(),
        options=catalog.main_menu_options(),
    )


def expert_contact_message(
    settings: Optional[Settings] = None,
    catalog: FlowCatalog = DEFAULT_CATALOG,
    now: Optional[datetime] = None,
) -> ChatMessage:
    """Contact details for reaching a human"""
    settings = settings or get_settings()
    content = "\n".join([
        f"Our parts specialists at {settings.business_name} are happy to help directly:",
        "",
        f"- Phone: {settings.support_phone}",
        f"- Email: {settings.support_email}",
        f"- Hours: {settings.business_hours}",
        f"- Address: {settings.business_address}",
        "",
        "Is there anything else I can help you with in the meantime?",
    ])
    return ChatMessage(
        role="assistant",
        content=content,
        timestamp=now or utc_now(),
        options=catalog.main_menu_options(),
    )


def step_message(step: FlowStep, now: Optional[datetime] = None) -> ChatMessage:
    return ChatMessage(
        role="assistant",
        content=step.prompt,
        timestamp=now or utc_now(),
        options=list(step.options),
    )


def check_session(session: ChatSession, catalog: FlowCatalog = DEFAULT_CATALOG) -> Optional[FlowDefinition]:
    """
    Validate the flow state of a session against the catalog

    Returns:
        The active flow, or None at the main menu

    Raises:
        MalformedSessionState: If the cursor, answers or flow reference are inconsistent
    """
    if session.active_flow_id is None:
        if session.cursor is not None or session.flow_answers:
            raise MalformedSessionState(session.id, "flow state present without an active flow")
        return None

    flow = catalog.get_flow(session.active_flow_id)
    if flow is None:
        raise MalformedSessionState(session.id, f"unknown active flow '{session.active_flow_id}'")

    if session.cursor is None or not 0 <= session.cursor <= len(flow.steps):
        raise MalformedSessionState(
            session.id, f"cursor {session.cursor} outside 0..{len(flow.steps)} for flow '{flow.id}'"
        )

    answered = set(flow.step_keys[:session.cursor])
    unexpected = [key for key in session.flow_answers if key not in answered]
    if unexpected:
        raise MalformedSessionState(session.id, f"answers recorded for unreached steps {unexpected}")

    return flow


def _repair_session(session: ChatSession, catalog: FlowCatalog) -> Optional[FlowDefinition]:
    """Bring a session back to a consistent state in place, returning its active flow"""
    try:
        return check_session(session, catalog)
    except MalformedSessionState as e:
        logger.warning(f"{e}; repairing session state")

    flow = catalog.get_flow(session.active_flow_id)
    if flow is None:
        _reset_flow(session)
        return None

    step_count = len(flow.steps)
    cursor = session.cursor if session.cursor is not None else len(session.flow_answers)
    # Past the end counts as a completed flow
    session.cursor = min(max(cursor, 0), step_count)
    answered = flow.step_keys[:session.cursor]
    session.flow_answers = {
        key: session.flow_answers[key] for key in answered if key in session.flow_answers
    }
    return flow


def _reset_flow(session: ChatSession) -> None:
    session.active_flow_id = None
    session.cursor = None
    session.flow_answers = {}


def _start_flow(session: ChatSession, flow: FlowDefinition, now: datetime) -> ChatMessage:
    session.active_flow_id = flow.id
    session.cursor = 0
    session.flow_answers = {}
    return step_message(flow.entry_step, now)


def _perform(
    session: ChatSession,
    action: MenuAction,
    flow_id: Optional[str],
    catalog: FlowCatalog,
    settings: Optional[Settings],
    now: datetime,
) -> ChatMessage:
    if action in (MenuAction.START_FLOW, MenuAction.NEW_INQUIRY):
        flow = catalog.get_flow(flow_id)
        if flow is None:
            raise UnknownFlowKind(flow_id)
        return _start_flow(session, flow, now)
    if action is MenuAction.SPEAK_TO_EXPERT:
        _reset_flow(session)
        return expert_contact_message(settings, catalog, now)
    if action is MenuAction.RESTART:
        _reset_flow(session)
        return welcome_back_message(catalog, now)
    raise ValueError(f"Unhandled menu action: {action}")


def _advance_top_level(session, selected_option, catalog, settings, now) -> ChatMessage:
    resolved = catalog.resolve_top_level(selected_option)
    if resolved is None:
        raise UnrecognizedSelection(selected_option, "main_menu")
    action, flow_id = resolved
    return _perform(session, action, flow_id, catalog, settings, now)


def _advance_completed(session, flow, selected_option, catalog, settings, now) -> ChatMessage:
    action = catalog.resolve_summary(selected_option)
    if action is None:
        raise UnrecognizedSelection(selected_option, f"{flow.id}.summary")
    return _perform(session, action, flow.id, catalog, settings, now)


def _advance_in_flow(session, flow, selected_option, catalog, now) -> ChatMessage:
    cursor = session.cursor
    step = flow.steps[cursor]
    if selected_option not in step.options:
        raise UnrecognizedSelection(selected_option, f"{flow.id}.{step.key}")

    session.flow_answers[step.key] = selected_option
    if cursor + 1 < len(flow.steps):
        session.cursor = cursor + 1
        return step_message(flow.steps[cursor + 1], now)

    session.cursor = len(flow.steps)
    try:
        return summarize(flow.id, session.flow_answers, now=now, catalog=catalog)
    except UnknownFlowKind as e:
        logger.error(f"Could not summarize completed flow: {e}")
        return generic_completion_message(now)


def _append_exchange(session: ChatSession, user_text: str, reply: ChatMessage, now: datetime) -> None:
    session.messages.append(ChatMessage(role="user", content=user_text, timestamp=now))
    session.messages.append(reply)
    session.title = make_title(user_text)
    session.updated_at = now


def advance(
    session: ChatSession,
    selected_option: str,
    catalog: FlowCatalog = DEFAULT_CATALOG,
    settings: Optional[Settings] = None,
) -> ChatSession:
    """
    Apply one option click to a session

    Args:
        session: Current session, left untouched
        selected_option: Option text the user clicked
        catalog: Flow catalog
        settings: Settings used for the expert contact details

    Returns:
        The next session, or the given session itself when the
        selection is not valid in the current state
    """
    now = utc_now()
    working = session.model_copy(deep=True)
    flow = _repair_session(working, catalog)

    try:
        if flow is None:
            reply = _advance_top_level(working, selected_option, catalog, settings, now)
        elif working.is_flow_complete(len(flow.steps)):
            reply = _advance_completed(working, flow, selected_option, catalog, settings, now)
        else:
            reply = _advance_in_flow(working, flow, selected_option, catalog, now)
    except UnrecognizedSelection as e:
        logger.debug(f"Ignoring selection for session {session.id}: {e}")
        return session
    except UnknownFlowKind as e:
        logger.error(f"Ignoring selection for session {session.id}: {e}")
        return session

    _append_exchange(working, selected_option, reply, now)
    return working


def reply_to_text(
    session: ChatSession,
    text: str,
    catalog: FlowCatalog = DEFAULT_CATALOG,
    settings: Optional[Settings] = None,
) -> ChatSession:
    """
    Handle free-typed input.

    Text matching one of the offered options is treated as a click on it;
    anything else gets a generic acknowledgement that re-offers the same options.
    """
    text = (text or "").strip()
    if not text:
        return session
    text = text[:MAX_INPUT_LENGTH]

    offered = session.current_options()
    for option in offered:
        if option.lower() == text.lower():
            return advance(session, option, catalog, settings)

    now = utc_now()
    working = session.model_copy(deep=True)
    reply = ChatMessage(
        role="assistant",
        content=ACKNOWLEDGEMENT_TEXT,
        timestamp=now,
        options=offered or catalog.main_menu_options(),
    )
    _append_exchange(working, text, reply, now)
    return working


def new_session(catalog: FlowCatalog = DEFAULT_CATALOG) -> ChatSession:
    """Fresh session at the main menu with the welcome message"""
    session = ChatSession()
    session.messages.append(welcome_message(catalog, session.created_at))
    return session
