"""
LangGraph Workflow for the Solver Backend

This module implements the single request/response exchange with the
solving model:
- Conditional entry routing (text vs image)
- System instruction carrying the response contract
- JSON parsing and schema validation of the model's answer
- Collapse of every failure into the fallback response
"""

import json
import logging
import re
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from langgraph.graph import StateGraph, END
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_core.runnables import RunnableConfig

from models import Graph, GraphPoint, SolveResponse, SolverMode
from state import SolveGraphState

logger = logging.getLogger(__name__)


# ============================================================================
# SYSTEM INSTRUCTION
# ============================================================================

def get_system_instruction(mode: SolverMode, precision: int) -> str:
    return f"""You are AstraMath AI, the world's most friendly and clear expert mathematics tutor.
Current Mode: {mode.value}.
Decimal Precision Goal: {precision} decimal places (rounding).

Your task is to solve the user's input problem and provide a JSON response.

CRITICAL INSTRUCTION FOR STEPS:
- You MUST write the steps in simple, plain, and easy-to-understand language.
- Act like a patient teacher explaining to a student who finds math difficult.
- Present the steps in the order a student should follow them, not as a raw computation trace.
- Explain the "WHY" and "HOW" of each step clearly.
- Instead of just saying "Differentiate", say "Now, we find the derivative to check the slope..."
- Break complex logic into smaller, digestible sentences.

CRITICAL OUTPUT REQUIREMENTS:
1. "exactResult": You MUST provide the mathematically exact form.
   - Example: \\frac{{\\sqrt{{5}}}}{{2}}, 2\\pi, \\ln(5).
   - Use standard LaTeX notation.
   - If the result is a simple integer, strictly repeat it (e.g., "5").

2. "decimalResult": You MUST provide the numeric approximate value.
   - Example: 1.1180, 6.2831, 1.6094.
   - Round strictly to {precision} decimal places.

3. "latex": The final answer formatted in LaTeX for display (e.g., "x = \\frac{{-b \\pm \\sqrt{{D}}}}{{2a}}").

4. "standardForm": IF this is an equation solver task (Quadratic, Cubic, Linear System, etc.), strictly provide the standard form of the equation.
   - Example: "2x^2 - 5x + 3 = 0" or "x + y = 10".
   - Use LaTeX format.
   - If not applicable (e.g. arithmetic, expression simplification), return null or empty string.

5. "steps": An array of easy-to-understand, conversational steps. At least one step.
   - Use LaTeX (wrapped in $) for math expressions within the text.
   - Example: "First, to simplify this, we need to move all $x$ terms to one side."

6. "graphData":
   - If the problem involves a function y=f(x), quadratic, cubic, linear, or calculus curve, generate an array of 40-60 points ({{"x": number, "y": number}}) in ascending x.
   - Range: -10 to 10, unless the function features (roots, intersections, asymptotes) are outside this range; then widen the range to include them.
   - If not applicable (e.g., matrix, number theory), return empty array.
   - "graphLabel": a short label for the plotted function (e.g., "y = 2x^2 - 5x + 3").

7. "explanation": A helpful, teacher-like summary of the concept and strategy used.

8. "relatedConcepts": An array of short names of related concepts.

If the user provides an image:
- It might be a handwritten equation, a textbook photo, or a shape.
- Transcribe it, solve it, and strictly follow the format.

JSON RESPONSE ONLY.
"""


# ============================================================================
# PYDANTIC SCHEMA FOR THE BACKEND ANSWER
# ============================================================================

class BackendPoint(BaseModel):
    x: float
    y: float


class BackendAnswer(BaseModel):
    """Wire format of the model's JSON answer."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    latex: str = Field(description="Final display answer in LaTeX")
    exact_result: str = Field(alias="exactResult", description="Exact mathematical value")
    decimal_result: str = Field(alias="decimalResult", description="Approximated decimal value")
    standard_form: Optional[str] = Field(
        default=None, alias="standardForm",
        description="The equation in standard form (ax^2+bx+c=0)"
    )
    steps: list[str] = Field(min_length=1, description="Step by step solution strings")
    explanation: str = Field(description="Teacher explanation")
    graph_label: Optional[str] = Field(default=None, alias="graphLabel")
    graph_data: list[BackendPoint] = Field(default_factory=list, alias="graphData")
    related_concepts: list[str] = Field(default_factory=list, alias="relatedConcepts")
    error: Optional[str] = None

    @field_validator("exact_result", "decimal_result", mode="before")
    @classmethod
    def numbers_as_text(cls, v: Any) -> Any:
        # Models sometimes emit 5 or 1.5 instead of "5" / "1.5"
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("graph_data", "related_concepts", mode="before")
    @classmethod
    def null_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("latex", "exact_result", "decimal_result", "standard_form", "steps")
    @classmethod
    def latex_commands_intact(cls, v: Any) -> Any:
        # Only the LaTeX-bearing fields; explanation keeps its real line breaks
        if isinstance(v, list):
            return [restore_latex_commands(item) for item in v]
        if isinstance(v, str):
            return restore_latex_commands(v)
        return v

    def to_response(self) -> SolveResponse:
        graph = None
        if self.graph_data:
            graph = Graph(
                label=self.graph_label or None,
                points=tuple(GraphPoint(x=p.x, y=p.y) for p in self.graph_data),
            )
        standard_form = (self.standard_form or "").strip() or None
        return SolveResponse(
            display_form=self.latex,
            exact_result=self.exact_result,
            decimal_result=self.decimal_result,
            standard_form=standard_form,
            steps=tuple(self.steps),
            explanation=self.explanation,
            graph=graph,
            related_concepts=tuple(self.related_concepts),
        )


class BackendReportedError(ValueError):
    """The model answered, but flagged the problem as unsolvable."""


# ============================================================================
# RESPONSE PARSING
# ============================================================================

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def message_text(content: Any) -> str:
    """Flatten a chat message content (string or list of parts) to text."""
    if isinstance(content, str):
        return content
    parts = []
    for part in content or []:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts)


_UNICODE_ESCAPE = re.compile(r"u[0-9a-fA-F]{4}")

# A LaTeX command whose backslash was read as a JSON escape (\frac -> form feed + "rac")
_SWALLOWED_COMMAND = re.compile(r"[\b\f\n\r\t](?=[A-Za-z])")
_CONTROL_TO_ESCAPE = {"\b": "b", "\f": "f", "\n": "n", "\r": "r", "\t": "t"}


def fix_backslashes(s: str) -> str:
    """Escape backslashes that do not start a valid JSON escape (\\sqrt, \\pi, \\le)."""
    result = []
    i = 0
    while i < len(s):
        if s[i] == '\\' and i + 1 < len(s):
            next_char = s[i + 1]
            if (
                next_char in '"\\/bfnrt'
                or (next_char == 'u' and _UNICODE_ESCAPE.match(s, i + 1))
            ):
                result.append(s[i:i + 2])
                i += 2
            else:
                result.append('\\\\')
                i += 1
        else:
            result.append(s[i])
            i += 1
    return ''.join(result)


def restore_latex_commands(value: str) -> str:
    """Undo \\frac, \\times, \\neq and friends that JSON decoding turned into control characters."""
    return _SWALLOWED_COMMAND.sub(lambda m: "\\" + _CONTROL_TO_ESCAPE[m.group(0)], value)


def _decode_first_object(body: str) -> Any:
    start_idx = body.find("{")
    if start_idx == -1:
        raise ValueError("No JSON in response")
    data, _ = json.JSONDecoder().raw_decode(body, start_idx)
    return data


def parse_backend_answer(text: str) -> SolveResponse:
    """
    Parse the model's text body into a SolveResponse.

    Well-formed JSON is decoded as-is; only a body that fails to decode gets
    its stray LaTeX backslashes escaped and is decoded again.

    Raises ValueError (including pydantic's ValidationError and
    json.JSONDecodeError) when the body is empty, is not JSON, misses a
    required field, or reports an error.
    """
    body = _FENCE.sub("", (text or "").strip())
    try:
        data = _decode_first_object(body)
    except json.JSONDecodeError:
        logger.debug("[Parser] Strict decode failed, escaping stray backslashes")
        data = _decode_first_object(fix_backslashes(body))

    if not isinstance(data, dict):
        raise ValueError("Response JSON is not an object")

    answer = BackendAnswer.model_validate(data)
    if answer.error:
        raise BackendReportedError(answer.error)
    return answer.to_response()


# ============================================================================
# NODE FUNCTIONS
# ============================================================================

def _get_llm(config: RunnableConfig):
    llm = (config or {}).get("configurable", {}).get("llm")
    if llm is None:
        raise RuntimeError("No solver model configured")
    return llm


async def text_solver_node(state: SolveGraphState, config: RunnableConfig) -> SolveGraphState:
    """Sends a typed or spoken problem to the solving model."""
    request = state["request"]
    logger.info(f"[TextSolver] Mode: {request.mode.value}, Query: {request.query[:50]}")

    messages = [
        SystemMessage(content=get_system_instruction(request.mode, request.precision)),
        HumanMessage(content=request.query),
    ]

    try:
        result = await _get_llm(config).ainvoke(messages)
        return {**state, "raw_response": message_text(result.content)}
    except Exception as e:
        logger.error(f"[TextSolver] Error: {e}", exc_info=True)
        return {**state, "error": str(e)}


async def vision_solver_node(state: SolveGraphState, config: RunnableConfig) -> SolveGraphState:
    """Sends a drawn or uploaded image, with any typed context, to the solving model."""
    request = state["request"]
    logger.info(f"[VisionSolver] Mode: {request.mode.value}, Image: {request.image_mime}")

    context = request.query or "Solve the equation in the image."
    messages = [
        SystemMessage(content=get_system_instruction(request.mode, request.precision)),
        HumanMessage(
            content=[
                {"type": "image_url", "image_url": {"url": f"data:{request.image_mime};base64,{request.image}"}},
                {"type": "text", "text": f"Analyze this math problem image. Solve it. Context: {context}"},
            ]
        ),
    ]

    try:
        result = await _get_llm(config).ainvoke(messages)
        return {**state, "raw_response": message_text(result.content)}
    except Exception as e:
        logger.error(f"[VisionSolver] Error: {e}", exc_info=True)
        return {**state, "error": str(e)}


async def parser_node(state: SolveGraphState) -> SolveGraphState:
    """Validates the model's answer; any failure becomes the fallback response."""
    if state.get("error"):
        logger.warning(f"[Parser] Backend call failed, using fallback: {state['error']}")
        return {**state, "response": SolveResponse.fallback()}

    raw = state.get("raw_response") or ""
    if not raw.strip():
        logger.warning("[Parser] Empty response from model, using fallback")
        return {**state, "error": "No response from AI", "response": SolveResponse.fallback()}

    try:
        response = parse_backend_answer(raw)
    except ValueError as e:
        logger.warning(f"[Parser] Invalid answer, using fallback: {e}")
        return {**state, "error": str(e), "response": SolveResponse.fallback()}

    logger.info(f"[Parser] Parsed answer with {len(response.steps)} steps")
    return {**state, "response": response}


# ============================================================================
# GRAPH CONSTRUCTION
# ============================================================================

def route_input_type(state: SolveGraphState) -> Literal["text_solver", "vision_solver"]:
    if state["request"].has_image:
        return "vision_solver"
    return "text_solver"


def create_solver_graph():
    workflow = StateGraph(SolveGraphState)

    workflow.add_node("text_solver", text_solver_node)
    workflow.add_node("vision_solver", vision_solver_node)
    workflow.add_node("parser", parser_node)

    # Entry point routing
    workflow.set_conditional_entry_point(
        route_input_type,
        {"text_solver": "text_solver", "vision_solver": "vision_solver"}
    )

    workflow.add_edge("text_solver", "parser")
    workflow.add_edge("vision_solver", "parser")
    workflow.add_edge("parser", END)

    return workflow.compile()
