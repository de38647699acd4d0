"""
State definitions for the solver front-end.

SolveGraphState is the TypedDict that flows through the LangGraph solve
workflow. All nodes must accept it and return updates to this structure.
SessionPhase is the lifecycle of a SolveSession.
"""

from typing import TypedDict, Optional, Literal

from models import SolveRequest, SolveResponse


SessionPhase = Literal["idle", "loading", "settled"]


class SolveGraphState(TypedDict):
    """
    The state object that flows through the solve workflow.

    The workflow is compiled without a checkpointer: a solve is a single
    request/response exchange and nothing is persisted between runs.
    """

    # --- Input ---
    request: SolveRequest

    # --- Backend exchange ---
    raw_response: Optional[str]  # Text body returned by the model
    error: Optional[str]  # Set by any node that failed

    # --- Output ---
    response: Optional[SolveResponse]
