"""
Wiring for the AstraMath solver front-end.

Builds a ready-to-use SolveSession backed by Google Gemini. The view layer
drives the session directly; there is no server or CLI.
"""

import logging
from typing import Optional

from langchain_google_genai import ChatGoogleGenerativeAI

from config import settings
from history import HistoryStore
from session import SolveSession
from solver import SolveClient

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def create_llm() -> ChatGoogleGenerativeAI:
    # gemini-2.5-flash handles both text and vision/multimodal input
    return ChatGoogleGenerativeAI(
        model=settings.solver_model,
        google_api_key=settings.google_api_key,
        temperature=settings.solver_temperature,
        response_mime_type="application/json",
    )


def create_session(history: Optional[HistoryStore] = None) -> SolveSession:
    client = SolveClient(create_llm())
    logger.info(f"Solver session ready (model={settings.solver_model}, environment={settings.environment})")
    return SolveSession(client, history=history)
