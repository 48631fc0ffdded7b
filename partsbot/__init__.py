"""
Auto Parts Storefront Assistant Package

A scripted, option-driven support chatbot that walks customers through
short intake flows, plus the storefront collaborators it works alongside:
product catalog, content API client, contact mailer and FAQ answering.
"""

__version__ = "1.0.0"
__author__ = "AI Engineer"

from .models import ChatMessage, ChatSession, FlowDefinition, FlowStep, Product, ContactInquiry
from .flows import FlowCatalog, MenuAction, DEFAULT_CATALOG
from .engine import advance, reply_to_text, new_session
from .summary import summarize
from .session_store import SessionStore
from .database import SessionDatabase
from .catalog import ProductCatalog
from .cache import TTLCache
from .api_client import ApiService
from .mailer import ContactMailer
from .faq import FaqAnswerer, FaqKnowledgeBase
from .chatbot import PartsChatbot

__all__ = [
    "ChatMessage",
    "ChatSession",
    "FlowDefinition",
    "FlowStep",
    "Product",
    "ContactInquiry",
    "FlowCatalog",
    "MenuAction",
    "DEFAULT_CATALOG",
    "advance",
    "reply_to_text",
    "new_session",
    "summarize",
    "SessionStore",
    "SessionDatabase",
    "ProductCatalog",
    "TTLCache",
    "ApiService",
    "ContactMailer",
    "FaqAnswerer",
    "FaqKnowledgeBase",
    "PartsChatbot",
]
