"""
Test scenarios for the scripted conversation flows.
Covers the flow catalog, the flow engine and completion summaries.
"""

import re
from datetime import datetime, timezone
from unittest.mock import patch

import pytest
from pydantic import ValidationError
from pathlib import Path

import sys
sys.path.append(str(Path(__file__).parent.parent))

from partsbot.config import Settings
from partsbot.engine import (
    ACKNOWLEDGEMENT_TEXT,
    MAX_INPUT_LENGTH,
    WELCOME_BACK_TEXT,
    advance,
    check_session,
    new_session,
    reply_to_text,
)
from partsbot.exceptions import MalformedSessionState, UnknownFlowKind
from partsbot.flows import (
    DEFAULT_CATALOG,
    FLOW_DEFINITIONS,
    MAIN_MENU_OPTIONS,
    SUMMARY_OPTIONS,
    FlowCatalog,
    MenuAction,
    get_flow,
)
from partsbot.models import ChatSession, FlowStep, make_title
from partsbot.summary import NOT_SPECIFIED, generate_reference_code, generic_completion_message, summarize


def run(session, *selections, settings=None):
    for selection in selections:
        session = advance(session, selection, settings=settings)
    return session


class TestFlowCatalog:
    """Test flow definitions and menu lookups"""

    def test_default_flows(self):
        """All four intake flows are registered"""
        assert DEFAULT_CATALOG.flow_ids() == ["findParts", "tradePricing", "technicalSupport", "orderSupport"]
        assert get_flow("findParts").reference_prefix == "PAR"
        assert get_flow("missing") is None

    def test_main_menu_options(self):
        assert list(MAIN_MENU_OPTIONS) == [
            "Find Car Parts", "Trade Pricing", "Technical Support", "Order Support", "Speak to Expert"
        ]

    def test_resolve_top_level(self):
        """Menu labels, expert and restart tokens resolve to actions"""
        assert DEFAULT_CATALOG.resolve_top_level("Find Car Parts") == (MenuAction.START_FLOW, "findParts")
        assert DEFAULT_CATALOG.resolve_top_level("Speak to Expert") == (MenuAction.SPEAK_TO_EXPERT, None)
        assert DEFAULT_CATALOG.resolve_top_level("Start Over") == (MenuAction.RESTART, None)
        assert DEFAULT_CATALOG.resolve_top_level("Main Menu") == (MenuAction.RESTART, None)
        assert DEFAULT_CATALOG.resolve_top_level("Truck/SUV") is None

    def test_resolve_summary(self):
        assert DEFAULT_CATALOG.resolve_summary("New Inquiry") is MenuAction.NEW_INQUIRY
        assert DEFAULT_CATALOG.resolve_summary("Start Over") is MenuAction.RESTART
        assert DEFAULT_CATALOG.resolve_summary("Main Menu") is None

    def test_duplicate_flow_id_rejected(self):
        with pytest.raises(ValueError):
            FlowCatalog(FLOW_DEFINITIONS + (FLOW_DEFINITIONS[0],))

    def test_step_validation(self):
        """Steps need unique, non-blank options"""
        with pytest.raises(ValidationError):
            FlowStep(key="a", label="A", prompt="Pick", options=("Yes", "Yes"))

        with pytest.raises(ValidationError):
            FlowStep(key="a", label="A", prompt="Pick", options=())

        with pytest.raises(ValidationError):
            FlowStep(key="a", label="A", prompt="Pick", options=("Yes", "  "))


class TestSummary:
    """Test completion summaries"""

    def test_reference_code(self):
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert generate_reference_code("PAR", now) == "PAR200000"

    def test_summary_restates_answers(self):
        """Answers appear verbatim, missing ones as Not specified"""
        message = summarize("findParts", {"vehicleType": "Truck/SUV", "vehicleDetails": "Isuzu"})

        assert "- Vehicle Type: Truck/SUV" in message.content
        assert "- Vehicle Make: Isuzu" in message.content
        assert message.content.count(NOT_SPECIFIED) == 2
        assert re.search(r"Reference: PAR\d{6}", message.content)
        assert message.options == list(SUMMARY_OPTIONS)
        assert message.role == "assistant"

    def test_unknown_flow(self):
        with pytest.raises(UnknownFlowKind):
            summarize("doesNotExist", {})


class TestFlowEngine:
    """Test option-driven conversation transitions"""

    def setup_method(self):
        self.settings = Settings()
        self.session = new_session()

    def test_new_session(self):
        """New chats open with the welcome message and main menu"""
        assert len(self.session.messages) == 1
        assert self.session.messages[0].role == "assistant"
        assert self.session.current_options() == list(MAIN_MENU_OPTIONS)
        assert self.session.active_flow_id is None
        assert self.session.cursor is None
        assert self.session.title == "New Chat"

    def test_start_flow(self):
        session = advance(self.session, "Find Car Parts")

        assert session.active_flow_id == "findParts"
        assert session.cursor == 0
        assert session.flow_answers == {}
        assert len(session.messages) == 3
        assert session.messages[1].role == "user"
        assert session.messages[1].content == "Find Car Parts"
        assert session.current_options() == list(get_flow("findParts").steps[0].options)
        assert session.title == "Find Car Parts"

    def test_advance_does_not_modify_input(self):
        advance(self.session, "Find Car Parts")

        assert len(self.session.messages) == 1
        assert self.session.active_flow_id is None

    def test_find_parts_scenario(self):
        """Truck/SUV parts request ends in a PAR reference summary"""
        session = advance(self.session, "Find Car Parts")
        cursors = [session.cursor]
        for selection in ["Truck/SUV", "Isuzu", "Brakes & Suspension", "Genuine OEM"]:
            session = advance(session, selection)
            cursors.append(session.cursor)

        assert cursors == [0, 1, 2, 3, 4]
        assert session.flow_answers == {
            "vehicleType": "Truck/SUV",
            "vehicleDetails": "Isuzu",
            "partCategory": "Brakes & Suspension",
            "specificPart": "Genuine OEM",
        }
        summary = session.messages[-1]
        assert "Truck/SUV" in summary.content
        assert re.search(r"PAR\d{6}", summary.content)
        assert summary.options == list(SUMMARY_OPTIONS)
        assert len(session.messages) == 11

    @pytest.mark.parametrize("flow", FLOW_DEFINITIONS, ids=lambda flow: flow.id)
    def test_every_flow_completes(self, flow):
        selections = [flow.title] + [step.options[0] for step in flow.steps]
        session = run(self.session, *selections)

        assert session.cursor == len(flow.steps)
        assert re.search(rf"{flow.reference_prefix}\d{{6}}", session.messages[-1].content)
        for step in flow.steps:
            assert step.options[0] in session.messages[-1].content

    def test_unrecognized_selection_is_ignored(self):
        """Garbage selections return the session untouched"""
        session = advance(self.session, "Find Car Parts")
        result = advance(session, "garbage-not-an-option")

        assert result is session
        assert result.messages == session.messages
        assert result.flow_answers == session.flow_answers
        assert result.cursor == session.cursor
        assert result.active_flow_id == session.active_flow_id

    def test_garbage_at_main_menu(self):
        assert advance(self.session, "Truck/SUV") is self.session

    def test_start_over_mid_flow_is_ignored(self):
        session = run(self.session, "Find Car Parts", "Car/Sedan")
        assert advance(session, "Start Over") is session
        assert advance(session, "Main Menu") is session

    def test_restart_at_main_menu(self):
        session = advance(self.session, "Start Over")

        assert session.active_flow_id is None
        assert session.messages[-1].content == WELCOME_BACK_TEXT
        assert session.current_options() == list(MAIN_MENU_OPTIONS)

    def test_start_over_after_summary(self):
        """Start Over on a completed summary returns to the main menu"""
        session = run(self.session, "Trade Pricing", "Panel Shop", "Under $1,000", "New Trade Account")
        session = advance(session, "Start Over")

        assert session.active_flow_id is None
        assert session.cursor is None
        assert session.flow_answers == {}
        assert session.current_options() == list(MAIN_MENU_OPTIONS)

    def test_new_inquiry_restarts_flow(self):
        session = run(self.session, "Order Support", "Track My Order", "Today", "Email")
        session = advance(session, "New Inquiry")

        assert session.active_flow_id == "orderSupport"
        assert session.cursor == 0
        assert session.flow_answers == {}
        assert session.current_options() == list(get_flow("orderSupport").steps[0].options)

    def test_speak_to_expert_at_main_menu(self):
        """Expert contact never enters a flow"""
        session = advance(self.session, "Speak to Expert", settings=self.settings)

        assert session.active_flow_id is None
        assert session.cursor is None
        assert self.settings.support_phone in session.messages[-1].content
        assert self.settings.support_email in session.messages[-1].content
        assert session.current_options() == list(MAIN_MENU_OPTIONS)

    def test_speak_to_expert_after_summary(self):
        session = run(self.session, "Technical Support", "Troubleshooting", "Truck/SUV", "Just researching")
        session = advance(session, "Speak to Expert", settings=self.settings)

        assert session.active_flow_id is None
        assert session.flow_answers == {}

    def test_summary_options_ignored_mid_flow(self):
        session = advance(self.session, "Find Car Parts")
        assert advance(session, "New Inquiry") is session

    def test_title_follows_latest_selection(self):
        session = run(self.session, "Find Car Parts", "Truck/SUV")
        assert session.title == "Truck/SUV"
        assert make_title("x" * 40) == "x" * 30 + "..."


class TestMalformedSessions:
    """Test recovery from inconsistent session state"""

    def test_check_session(self):
        session = ChatSession(active_flow_id="findParts", cursor=9)
        with pytest.raises(MalformedSessionState):
            check_session(session)

        with pytest.raises(MalformedSessionState):
            check_session(ChatSession(cursor=1))

        with pytest.raises(MalformedSessionState):
            check_session(ChatSession(active_flow_id="findParts", cursor=0, flow_answers={"urgency": "Today"}))

        assert check_session(new_session()) is None

    def test_unknown_flow_is_reset(self):
        """A session stuck in an unknown flow falls back to the main menu"""
        session = ChatSession(active_flow_id="retiredFlow", cursor=1, flow_answers={"x": "y"})
        result = advance(session, "Find Car Parts")

        assert result.active_flow_id == "findParts"
        assert result.cursor == 0
        assert result.flow_answers == {}

    def test_cursor_past_end_counts_as_complete(self):
        session = ChatSession(active_flow_id="findParts", cursor=12)
        result = advance(session, "New Inquiry")

        assert result.active_flow_id == "findParts"
        assert result.cursor == 0

    def test_negative_cursor_clamped(self):
        session = ChatSession(active_flow_id="findParts", cursor=-3)
        result = advance(session, "Motorcycle")

        assert result.cursor == 1
        assert result.flow_answers == {"vehicleType": "Motorcycle"}

    def test_answers_for_unreached_steps_dropped(self):
        session = ChatSession(
            active_flow_id="findParts",
            cursor=1,
            flow_answers={"vehicleType": "Car/Sedan", "specificPart": "Aftermarket"},
        )
        result = advance(session, "Toyota")

        assert result.flow_answers == {"vehicleType": "Car/Sedan", "vehicleDetails": "Toyota"}


class TestUnknownFlowHandling:
    """Test that unknown flow ids never escape advance"""

    def setup_method(self):
        self.session = new_session()

    def test_summary_failure_uses_generic_completion(self):
        """A summary that cannot be built still completes the flow"""
        session = run(self.session, "Trade Pricing", "Panel Shop", "Under $1,000")

        with patch('partsbot.engine.summarize', side_effect=UnknownFlowKind("tradePricing")):
            result = advance(session, "New Trade Account")

        assert result is not session
        assert result.cursor == len(get_flow("tradePricing").steps)
        assert result.flow_answers["accountStatus"] == "New Trade Account"
        assert result.messages[-2].content == "New Trade Account"
        assert result.messages[-1].content == generic_completion_message().content
        assert result.messages[-1].options == list(SUMMARY_OPTIONS)

    def test_menu_entry_for_missing_flow_is_ignored(self):
        """A menu label pointing at a flow the catalog lacks leaves the session as is"""
        catalog = FlowCatalog()
        session = new_session(catalog)

        with patch.object(catalog, 'resolve_top_level', return_value=(MenuAction.START_FLOW, "retiredFlow")):
            result = advance(session, "Find Car Parts", catalog=catalog)

        assert result is session
        assert len(result.messages) == 1
        assert result.active_flow_id is None


class TestTypedInput:
    """Test free-typed messages"""

    def setup_method(self):
        self.session = new_session()

    def test_text_matching_option(self):
        session = reply_to_text(self.session, "  find car parts ")

        assert session.active_flow_id == "findParts"
        assert session.messages[1].content == "Find Car Parts"

    def test_free_text_acknowledged(self):
        """Unmatched text gets an acknowledgement and keeps the flow state"""
        in_flow = advance(self.session, "Find Car Parts")
        session = reply_to_text(in_flow, "I need a bull bar")

        assert session.messages[-2].content == "I need a bull bar"
        assert session.messages[-1].content == ACKNOWLEDGEMENT_TEXT
        assert session.current_options() == in_flow.current_options()
        assert session.cursor == in_flow.cursor
        assert session.active_flow_id == "findParts"

    def test_blank_text_ignored(self):
        assert reply_to_text(self.session, "   ") is self.session

    def test_long_text_truncated(self):
        session = reply_to_text(self.session, "a" * 800)
        assert len(session.messages[-2].content) == MAX_INPUT_LENGTH
