"""
Data model shared by the solver client, the renderers and the session.

Everything here is immutable once built: a response stored in history is the
same object that was rendered when the solve settled.
"""

from datetime import datetime
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


MIN_PRECISION = 2
MAX_PRECISION = 10

Modality = Literal["text", "draw", "image", "voice"]


class InvalidPrecisionError(ValueError):
    """Raised when a decimal precision falls outside MIN_PRECISION..MAX_PRECISION."""


def validate_precision(precision: int) -> int:
    if isinstance(precision, bool) or not isinstance(precision, int):
        raise InvalidPrecisionError(f"Precision must be an integer, got {precision!r}")
    if not MIN_PRECISION <= precision <= MAX_PRECISION:
        raise InvalidPrecisionError(
            f"Precision must be between {MIN_PRECISION} and {MAX_PRECISION}, got {precision}"
        )
    return precision


class SolverMode(str, Enum):
    """Solving domain selected by the user. The value is sent to the backend verbatim."""
    GENERAL = "General Helper"
    QUADRATIC = "Quadratic Equation"
    CUBIC = "Cubic Equation"
    LINEAR_SYSTEM = "Linear System"
    TRIGONOMETRY = "Trigonometry"
    CALCULUS = "Calculus (Deriv/Integ)"
    MATRIX = "Matrix Solver"
    STATISTICS = "Statistics"
    NUMBER_BASE = "Base Converter"
    WORD_PROBLEM = "Word Problem"
    GRAPHING = "Graph Plotter"


# ============================================================================
# RESPONSE
# ============================================================================

class GraphPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float
    y: float


class Graph(BaseModel):
    """Ordered points of a plottable function. Order is kept exactly as supplied."""
    model_config = ConfigDict(frozen=True)

    label: Optional[str] = None
    points: tuple[GraphPoint, ...] = ()

    @property
    def is_empty(self) -> bool:
        return len(self.points) == 0


FALLBACK_STEPS = (
    "An error occurred while processing your request.",
    "Please ensure your input is clear.",
)
FALLBACK_EXPLANATION = "We couldn't solve this problem. Please try again."


class SolveResponse(BaseModel):
    """
    A populated answer from the solving backend.

    Failed solves are represented by the same shape with `is_fallback=True`,
    so renderers never have to branch on missing fields.
    """
    model_config = ConfigDict(frozen=True)

    display_form: str = Field(description="Final answer in LaTeX for display")
    exact_result: str = Field(description="Mathematically exact value (LaTeX)")
    decimal_result: str = Field(description="Numeric value, already rounded by the backend")
    standard_form: Optional[str] = Field(default=None, description="Canonical equation form, if any")
    steps: tuple[str, ...] = Field(min_length=1)
    explanation: str
    graph: Optional[Graph] = None
    related_concepts: tuple[str, ...] = ()
    is_fallback: bool = False

    @classmethod
    def fallback(cls) -> "SolveResponse":
        return cls(
            display_form="\\text{Error}",
            exact_result="Error",
            decimal_result="Error",
            steps=FALLBACK_STEPS,
            explanation=FALLBACK_EXPLANATION,
            is_fallback=True,
        )


# ============================================================================
# REQUEST
# ============================================================================

class SolveRequest(BaseModel):
    """What gets sent to the backend. `image` is raw base64, never a data URI."""
    model_config = ConfigDict(frozen=True)

    query: str = ""
    mode: SolverMode = SolverMode.GENERAL
    precision: int = Field(ge=MIN_PRECISION, le=MAX_PRECISION)
    image: Optional[str] = None
    image_mime: str = "image/png"
    source: Modality = "text"

    @model_validator(mode="after")
    def check_not_empty(self) -> "SolveRequest":
        if not self.query.strip() and not self.image and self.source != "voice":
            raise ValueError("A solve request needs a query or an image")
        return self

    @property
    def has_image(self) -> bool:
        return bool(self.image)


# ============================================================================
# HISTORY
# ============================================================================

class HistoryEntry(BaseModel):
    """One completed solve attempt (success or fallback). Never mutated."""
    model_config = ConfigDict(frozen=True)

    id: str
    created_at: datetime
    mode: SolverMode
    query: str
    result: SolveResponse
    source: Modality
