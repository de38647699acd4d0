"""
Solve request builder and client.

`SolveClient.solve` is the only asynchronous boundary of the application. It
always returns a populated SolveResponse: network errors, malformed answers
and deadline expiry all come back as `SolveResponse.fallback()`.
"""

import asyncio
import logging
import re
from typing import Optional

from config import settings
from graph import create_solver_graph
from models import Modality, SolveRequest, SolveResponse, SolverMode, validate_precision

logger = logging.getLogger(__name__)

DATA_URI_PREFIX = re.compile(r"^data:([^;,]+)(?:;[^,]*)?;base64,", re.IGNORECASE)


def strip_data_uri(image: str) -> tuple[str, str]:
    """Split a data URI into (raw base64, mime type). Raw base64 is returned as image/png."""
    match = DATA_URI_PREFIX.match(image)
    if not match:
        return image, "image/png"
    return image[match.end():], match.group(1).lower()


def build_request(
    query: str,
    mode: SolverMode,
    precision: int,
    image: Optional[str] = None,
    source: Modality = "text",
) -> SolveRequest:
    """Build a SolveRequest. Precision outside 2..10 is rejected before anything is built."""
    validate_precision(precision)

    raw_image = None
    mime = "image/png"
    if image:
        raw_image, mime = strip_data_uri(image)

    return SolveRequest(
        query=query or "",
        mode=mode,
        precision=precision,
        image=raw_image or None,
        image_mime=mime,
        source=source,
    )


class SolveClient:
    """Runs the solve workflow against a chat model exposing `ainvoke`."""

    def __init__(self, llm, timeout: Optional[float] = None):
        self.llm = llm
        self.timeout = timeout if timeout is not None else settings.solve_timeout_seconds
        self._graph = create_solver_graph()

    async def solve(self, request: SolveRequest) -> SolveResponse:
        initial_state = {
            "request": request,
            "raw_response": None,
            "error": None,
            "response": None,
        }
        config = {"configurable": {"llm": self.llm}}

        try:
            run = self._graph.ainvoke(initial_state, config)
            if self.timeout:
                result = await asyncio.wait_for(run, self.timeout)
            else:
                result = await run
        except asyncio.TimeoutError:
            logger.error(f"[Solve] No answer within {self.timeout}s, using fallback")
            return SolveResponse.fallback()
        except Exception as e:
            logger.error(f"[Solve] Error: {e}", exc_info=True)
            return SolveResponse.fallback()

        return result.get("response") or SolveResponse.fallback()
