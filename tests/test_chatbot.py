"""
Test scenarios for the chat widget controller.
Tests option clicks, typed messages and session history management.
"""

import re
from unittest.mock import patch
from pathlib import Path

import pytest

import sys
sys.path.append(str(Path(__file__).parent.parent))

from partsbot.chatbot import PartsChatbot, main
from partsbot.config import Settings
from partsbot.flows import MAIN_MENU_OPTIONS
from partsbot.session_store import SessionStore


class TestPartsChatbot:
    """Test the widget controller"""

    def setup_method(self):
        self.settings = Settings()
        self.bot = PartsChatbot(settings=self.settings)

    def test_bot_initialization(self):
        """The bot opens a fresh chat that is not yet listed"""
        assert self.bot.current_options() == list(MAIN_MENU_OPTIONS)
        assert self.bot.sessions() == []
        assert len(self.bot.history()) == 1

    def test_select_option_saves_session(self):
        session = self.bot.select_option("Find Car Parts")

        assert session.active_flow_id == "findParts"
        assert [s.id for s in self.bot.sessions()] == [session.id]
        assert self.bot.sessions()[0].title == "Find Car Parts"

    def test_invalid_option_not_saved(self):
        session_before = self.bot.session
        self.bot.select_option("garbage-not-an-option")

        assert self.bot.session is session_before
        assert self.bot.sessions() == []

    def test_send_message(self):
        self.bot.send_message("Where is my order?")

        history = self.bot.history()
        assert history[-2] == {
            "role": "user",
            "content": "Where is my order?",
            "timestamp": history[-2]["timestamp"],
            "options": [],
        }
        assert history[-1]["options"] == list(MAIN_MENU_OPTIONS)
        assert len(self.bot.sessions()) == 1

    def test_complete_flow(self):
        for option in ["Find Car Parts", "Truck/SUV", "Isuzu", "Engine Parts", "Genuine OEM"]:
            self.bot.select_option(option)

        assert re.search(r"PAR\d{6}", self.bot.history()[-1]["content"])
        assert self.bot.current_options() == ["New Inquiry", "Speak to Expert", "Start Over"]

    def test_start_new_chat_keeps_history(self):
        """Starting a new chat leaves the previous one in the list"""
        first = self.bot.select_option("Trade Pricing")
        second = self.bot.start_new_chat()
        self.bot.select_option("Order Support")

        assert second.id != first.id
        assert [s.id for s in self.bot.sessions()] == [second.id, first.id]

    def test_load_session(self):
        first = self.bot.select_option("Trade Pricing")
        self.bot.start_new_chat()

        loaded = self.bot.load_session(first.id)
        assert loaded.active_flow_id == "tradePricing"

        self.bot.select_option("Fleet Operator")
        assert self.bot.store.get(first.id).flow_answers == {"businessType": "Fleet Operator"}

    def test_load_missing_session(self):
        with pytest.raises(KeyError):
            self.bot.load_session("missing")

    def test_delete_current_session(self):
        """Deleting the open chat starts a new one"""
        current = self.bot.select_option("Technical Support")

        assert self.bot.delete_session(current.id) is True
        assert self.bot.session.id != current.id
        assert self.bot.sessions() == []
        assert self.bot.current_options() == list(MAIN_MENU_OPTIONS)

    def test_delete_other_session(self):
        first = self.bot.select_option("Trade Pricing")
        self.bot.start_new_chat()
        current = self.bot.select_option("Order Support")

        self.bot.delete_session(first.id)
        assert self.bot.session.id == current.id
        assert [s.id for s in self.bot.sessions()] == [current.id]

    def test_shared_store(self):
        store = SessionStore()
        bot = PartsChatbot(store=store, settings=self.settings)
        bot.select_option("Speak to Expert")

        assert len(store) == 1
        assert self.settings.support_phone in bot.history()[-1]["content"]


class TestCommandLine:
    """Test the interactive terminal loop"""

    @patch('partsbot.chatbot.configure_logging')
    @patch('partsbot.chatbot.get_settings', return_value=Settings())
    @patch('builtins.input', side_effect=["1", "2", "history", "quit"])
    def test_main_loop(self, mock_input, mock_settings, mock_logging, capsys):
        with patch.object(sys, 'argv', ['partsbot', '--no-persist']):
            main()

        output = capsys.readouterr().out
        assert "[1] Find Car Parts" in output
        assert "[2] Truck/SUV" in output
        assert "1. Truck/SUV" in output
        assert "Goodbye!" in output

    @patch('partsbot.chatbot.configure_logging')
    @patch('partsbot.chatbot.get_settings', return_value=Settings())
    @patch('builtins.input', side_effect=EOFError)
    def test_main_exits_on_eof(self, mock_input, mock_settings, mock_logging, capsys):
        with patch.object(sys, 'argv', ['partsbot', '--no-persist']):
            main()

        assert "Goodbye!" in capsys.readouterr().out
