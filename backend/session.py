"""
Solve session orchestration.

A SolveSession moves through idle -> loading -> settled. Only one solve may
be in flight; a solve that cannot be submitted, or that arrives while
another is loading, is refused silently. Every completed attempt, successful
or not, is recorded in history.
"""

import logging
from typing import Optional

from config import settings
from history import HistoryStore
from inputs import InputController
from models import HistoryEntry, SolveRequest, SolveResponse, SolverMode, validate_precision
from result_view import HistoryItemView, ResultView, history_item_view, render_result
from solver import SolveClient, build_request
from state import SessionPhase

logger = logging.getLogger(__name__)

IMAGE_QUERY_LABEL = "Image Problem"
VOICE_QUERY_LABEL = "Voice Input"


class SolveSession:

    def __init__(
        self,
        client: SolveClient,
        history: Optional[HistoryStore] = None,
        precision: Optional[int] = None,
    ):
        self.client = client
        self.history = history if history is not None else HistoryStore()
        self.inputs = InputController()
        self.mode = SolverMode.GENERAL
        self.precision = validate_precision(
            precision if precision is not None else settings.default_precision
        )
        self.show_decimal = False
        self.result: Optional[SolveResponse] = None
        self.phase: SessionPhase = "idle"

    @property
    def loading(self) -> bool:
        return self.phase == "loading"

    @property
    def can_solve(self) -> bool:
        """False when the solve button should be inert."""
        return not self.loading and self.inputs.submittable_payload() is not None

    # --- Settings ---

    def set_mode(self, mode: SolverMode) -> None:
        self.mode = SolverMode(mode)

    def set_precision(self, precision: int) -> None:
        self.precision = validate_precision(precision)

    def toggle_decimal(self) -> bool:
        self.show_decimal = not self.show_decimal
        return self.show_decimal

    # --- Solving ---

    async def solve(self) -> Optional[HistoryEntry]:
        """
        Submit the active modality's payload.

        Returns the new history entry, or None when the solve was refused.
        """
        if self.loading:
            logger.debug("[Session] Solve already in flight, refusing")
            return None

        payload = self.inputs.submittable_payload()
        if payload is None:
            logger.debug(f"[Session] Nothing to submit for modality '{self.inputs.modality}'")
            return None

        request = build_request(
            payload.query,
            self.mode,
            self.precision,
            image=payload.image,
            source=payload.modality,
        )
        logger.info(f"[Session] Solving ({request.source}, {request.mode.value}, precision={request.precision})")

        self.phase = "loading"
        self.result = None

        response = None
        try:
            response = await self.client.solve(request)
        finally:
            # Loading always settles, even if the awaiting task is torn down
            entry = self._settle(request, response or SolveResponse.fallback())
        return entry

    def _settle(self, request: SolveRequest, response: SolveResponse) -> HistoryEntry:
        self.result = response
        self.phase = "settled"

        query = request.query
        if not query:
            query = IMAGE_QUERY_LABEL if request.has_image else VOICE_QUERY_LABEL

        entry = self.history.record(request.mode, query, response, request.source)
        if response.is_fallback:
            logger.warning(f"[Session] Solve settled with fallback result (entry {entry.id})")
        return entry

    def load_history_entry(self, entry: HistoryEntry) -> None:
        """Replay a stored entry. No backend call is made and history is untouched."""
        if self.loading:
            logger.debug("[Session] Ignoring history replay while a solve is in flight")
            return
        self.mode = entry.mode
        self.inputs.set_query(entry.query)
        self.result = entry.result
        self.phase = "settled"

    def clear_all(self) -> None:
        self.inputs.clear()
        if not self.loading:
            self.result = None
            self.phase = "idle"

    # --- Views ---

    def view(self) -> Optional[ResultView]:
        if self.result is None:
            return None
        return render_result(self.result, self.show_decimal)

    def history_view(self) -> list[HistoryItemView]:
        return [history_item_view(entry, self.show_decimal) for entry in self.history.entries]
