"""
FAQ answering.
Indexes FAQ entries in ChromaDB with OpenAI embeddings and answers
customer questions from the most relevant entries.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import chromadb
from chromadb.config import Settings as ChromaSettings
import openai
from openai import OpenAI

from .config import Settings, get_settings
from .exceptions import FaqAnswerError
from .models import Faq, HomeSettings

logger = logging.getLogger(__name__)

FAQ_SYSTEM_PROMPT = """You are an AI assistant providing answers to frequently asked questions about {business_name} services.
Use the context provided to answer the question accurately and helpfully.
Keep it concise, since this is an FAQ."""

FAQ_USER_PROMPT = """Context: {context}

Question: {question}
Answer:"""


def _openai_client(settings: Settings) -> OpenAI:
    if not settings.openai_api_key:
        raise ValueError("OPENAI_API_KEY environment variable is required")
    return OpenAI(api_key=settings.openai_api_key, base_url=settings.openai_base_url)


def build_context(faqs: Sequence[Faq], settings: Optional[Settings] = None,
                  home_settings: Optional[HomeSettings] = None) -> str:
    """Render business details and known FAQ entries as answer context"""
    settings = settings or get_settings()
    lines = [
        f"{settings.business_name} sells genuine and aftermarket automotive parts.",
        f"Phone: {settings.support_phone}",
        f"Email: {settings.support_email}",
        f"Business hours: {settings.business_hours}",
        f"Address: {settings.business_address}",
    ]
    if home_settings and home_settings.description:
        lines.append(home_settings.description)

    for faq in faqs:
        lines.append("")
        lines.append(f"Q: {faq.question}")
        lines.append(f"A: {faq.answer}")
    return "\n".join(lines)


class FaqAnswerer:
    """Generates answers to customer questions with the chat completions API"""

    def __init__(self, settings: Optional[Settings] = None, client: Optional[OpenAI] = None):
        self.settings = settings or get_settings()
        self.openai_client = client or _openai_client(self.settings)
        self.model = self.settings.chat_model

    def answer_faq(self, question: str, context: str) -> str:
        """
        Answer a question from the given context

        Args:
            question: Customer question
            context: Background text about the business

        Returns:
            Answer text

        Raises:
            ValueError: If the question is blank
            FaqAnswerError: If the model call fails or returns nothing
        """
        if not question or not question.strip():
            raise ValueError("Question cannot be empty")

        messages = [
            {"role": "system", "content": FAQ_SYSTEM_PROMPT.format(business_name=self.settings.business_name)},
            {"role": "user", "content": FAQ_USER_PROMPT.format(context=context, question=question.strip())},
        ]
        try:
            response = self.openai_client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=0.3,
                max_tokens=500
            )
        except openai.OpenAIError as e:
            logger.error(f"Error generating FAQ answer: {e}")
            raise FaqAnswerError(f"Could not generate an answer: {e}") from e

        answer = response.choices[0].message.content
        if not answer:
            raise FaqAnswerError("Model returned an empty answer")
        return answer.strip()


class FaqKnowledgeBase:
    """ChromaDB collection of FAQ entries"""

    def __init__(self,
                 settings: Optional[Settings] = None,
                 collection_name: str = "faqs",
                 openai_client: Optional[OpenAI] = None,
                 chroma_client: Optional[Any] = None):
        """
        Initialize the knowledge base

        Args:
            settings: Store path and embedding model
            collection_name: Name of the ChromaDB collection
            openai_client: Client used for embeddings
            chroma_client: ChromaDB client, a persistent one under settings.faq_store_path when omitted
        """
        self.settings = settings or get_settings()
        self.collection_name = collection_name
        self.embedding_model = self.settings.embedding_model
        self.openai_client = openai_client or _openai_client(self.settings)

        self.client = chroma_client or chromadb.PersistentClient(
            path=str(Path(self.settings.faq_store_path)),
            settings=ChromaSettings(anonymized_telemetry=False)
        )
        self.collection = self.client.get_or_create_collection(
            name=self.collection_name,
            metadata={"description": "FAQ embeddings for the parts assistant"}
        )
        logger.info(f"Using FAQ collection '{self.collection_name}'")

    def generate_embeddings(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings using OpenAI API

        Raises:
            FaqAnswerError: If the embedding call fails
        """
        try:
            response = self.openai_client.embeddings.create(
                model=self.embedding_model,
                input=texts
            )
        except openai.OpenAIError as e:
            logger.error(f"Error generating embeddings: {e}")
            raise FaqAnswerError(f"Could not embed text: {e}") from e

        return [data.embedding for data in response.data]

    def index_faqs(self, faqs: Sequence[Faq]) -> int:
        """Add or update FAQ entries, returning the number indexed"""
        if not faqs:
            logger.info("No FAQ entries to index")
            return 0

        ids = [f"faq_{faq.id}" if faq.id is not None else f"faq_{index}" for index, faq in enumerate(faqs)]
        documents = [f"Q: {faq.question}\nA: {faq.answer}" for faq in faqs]
        metadatas = [{"question": faq.question, "answer": faq.answer} for faq in faqs]

        self.collection.upsert(
            ids=ids,
            documents=documents,
            embeddings=self.generate_embeddings(documents),
            metadatas=metadatas
        )
        logger.info(f"Indexed {len(ids)} FAQ entries")
        return len(ids)

    def search(self, query: str, n_results: int = 3) -> List[Dict[str, Any]]:
        """
        FAQ entries most similar to the query

        Returns:
            List of results with question, answer and distance
        """
        if self.collection.count() == 0:
            return []

        query_embedding = self.generate_embeddings([query])[0]
        results = self.collection.query(
            query_embeddings=[query_embedding],
            n_results=n_results,
            include=['metadatas', 'distances']
        )

        search_results = []
        if results['metadatas'] and results['metadatas'][0]:
            for i, metadata in enumerate(results['metadatas'][0]):
                search_results.append({
                    'question': metadata['question'],
                    'answer': metadata['answer'],
                    'distance': results['distances'][0][i]
                })

        logger.info(f"Found {len(search_results)} FAQ entries for query: '{query}'")
        return search_results

    def context_for(self, question: str, n_results: int = 3) -> str:
        """Answer context built from the entries closest to the question"""
        faqs = [Faq(question=r['question'], answer=r['answer']) for r in self.search(question, n_results)]
        return build_context(faqs, self.settings)
