"""
Chat widget controller for the parts assistant.
Holds the open conversation, routes clicks and typed messages through the
flow engine and keeps the session list up to date.
"""

import logging
from typing import Any, Dict, List, Optional

from .config import Settings, configure_logging, get_settings
from .database import SessionDatabase
from .engine import advance, reply_to_text
from .flows import DEFAULT_CATALOG, FlowCatalog
from .models import ChatSession
from .session_store import SessionStore

logger = logging.getLogger(__name__)


class PartsChatbot:
    """Scripted customer-support assistant with a session history"""

    def __init__(self,
                 store: Optional[SessionStore] = None,
                 catalog: FlowCatalog = DEFAULT_CATALOG,
                 settings: Optional[Settings] = None):
        """
        Initialize the chatbot

        Args:
            store: Session list, an in-memory one when omitted
            catalog: Flow catalog driving the conversation
            settings: Business contact details and storage configuration
        """
        self.settings = settings or get_settings()
        self.catalog = catalog
        self.store = store if store is not None else SessionStore(catalog=catalog)
        self.session = self.store.create_session()
        logger.info("Parts assistant initialized")

    def _commit(self, updated: ChatSession) -> ChatSession:
        if updated is not self.session:
            self.store.replace(updated.id, updated)
            self.session = updated
        return self.session

    def start_new_chat(self) -> ChatSession:
        """Open a fresh conversation; it is listed once the user interacts"""
        self.session = self.store.create_session()
        logger.info(f"Started new chat {self.session.id}")
        return self.session

    def select_option(self, option: str) -> ChatSession:
        """Handle a click on one of the offered options"""
        with self.store.lock_for(self.session.id):
            updated = advance(self.session, option, self.catalog, self.settings)
            return self._commit(updated)

    def send_message(self, text: str) -> ChatSession:
        """Handle typed input"""
        with self.store.lock_for(self.session.id):
            updated = reply_to_text(self.session, text, self.catalog, self.settings)
            return self._commit(updated)

    def load_session(self, session_id: str) -> ChatSession:
        """
        Continue a stored conversation

        Raises:
            KeyError: If the session is not stored
        """
        self.session = self.store.load(session_id)
        return self.session

    def delete_session(self, session_id: str) -> bool:
        """Delete a stored conversation; deleting the open one starts a new chat"""
        removed = self.store.remove(session_id)
        if session_id == self.session.id:
            self.start_new_chat()
        return removed

    def sessions(self) -> List[ChatSession]:
        return self.store.list_sessions()

    def history(self) -> List[Dict[str, Any]]:
        """Messages of the open conversation"""
        return [
            {
                "role": msg.role,
                "content": msg.content,
                "timestamp": msg.timestamp.isoformat(),
                "options": list(msg.options or []),
            }
            for msg in self.session.messages
        ]

    def current_options(self) -> List[str]:
        return self.session.current_options()


def _print_reply(bot: PartsChatbot) -> None:
    message = bot.session.last_message
    if message is None:
        return
    print(f"Bot: {message.content}")
    for number, option in enumerate(bot.current_options(), start=1):
        print(f"  [{number}] {option}")
    print()


def _print_sessions(bot: PartsChatbot) -> None:
    sessions = bot.sessions()
    if not sessions:
        print("No saved chats yet.\n")
        return
    for number, session in enumerate(sessions, start=1):
        marker = "*" if session.id == bot.session.id else " "
        print(f" {marker}{number}. {session.title} ({session.updated_at:%Y-%m-%d %H:%M})")
    print()


def main():
    """Run the assistant in the terminal"""
    import argparse

    parser = argparse.ArgumentParser(description="Auto parts support assistant")
    parser.add_argument("--db-path", default=None, help="Session database file path")
    parser.add_argument("--no-persist", action="store_true", help="Keep sessions in memory only")

    args = parser.parse_args()

    settings = get_settings()
    configure_logging(settings)

    try:
        database = None
        if not args.no_persist:
            database = SessionDatabase(args.db_path or settings.sessions_db_path)
        bot = PartsChatbot(store=SessionStore(database=database), settings=settings)
    except Exception as e:
        logger.error(f"Error in main: {e}")
        print(f"Error: {e}")
        return

    print("\n" + "=" * 50)
    print(f"{settings.business_name.upper()} ASSISTANT")
    print("Pick an option by number or type a message.")
    print("Commands: 'new', 'history', 'open <n>', 'delete <n>', 'quit'")
    print("=" * 50 + "\n")
    _print_reply(bot)

    while True:
        try:
            user_input = input("You: ").strip()
        except (KeyboardInterrupt, EOFError):
            print("\nGoodbye!")
            break

        command = user_input.lower()
        if command in ['quit', 'exit', 'q']:
            print("Goodbye!")
            break
        elif not user_input:
            continue
        elif command == 'new':
            bot.start_new_chat()
            _print_reply(bot)
            continue
        elif command == 'history':
            _print_sessions(bot)
            continue
        elif command.split()[0] in ('open', 'delete') and len(command.split()) == 2:
            action, number = command.split()
            sessions = bot.sessions()
            if not number.isdigit() or not 1 <= int(number) <= len(sessions):
                print("No chat with that number.\n")
                continue
            target = sessions[int(number) - 1]
            if action == 'open':
                bot.load_session(target.id)
            else:
                bot.delete_session(target.id)
                print(f"Deleted '{target.title}'.\n")
            _print_reply(bot)
            continue

        options = bot.current_options()
        if user_input.isdigit() and 1 <= int(user_input) <= len(options):
            bot.select_option(options[int(user_input) - 1])
        else:
            bot.send_message(user_input)
        _print_reply(bot)


if __name__ == "__main__":
    main()
