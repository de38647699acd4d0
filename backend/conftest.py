"""
Shared fixtures and fakes for the backend tests.

The solving model is replaced by objects exposing `ainvoke`, the same
surface ChatGoogleGenerativeAI offers.
"""

import asyncio
import json

import pytest
from langchain_core.messages import AIMessage

from models import SolveResponse


QUADRATIC_ANSWER = {
    "latex": "x = \\frac{5 \\pm \\sqrt{1}}{4}",
    "exactResult": "\\frac{5 \\pm \\sqrt{1}}{4}",
    "decimalResult": "1.5000, 1.0000",
    "standardForm": "2x^2 - 5x + 3 = 0",
    "steps": [
        "First, we spot the numbers $a = 2$, $b = -5$ and $c = 3$.",
        "Next, we work out the discriminant $b^2 - 4ac = 1$.",
        "Finally, we plug into $\\frac{-b \\pm \\sqrt{D}}{2a}$.",
    ],
    "explanation": "We used the quadratic formula.",
    "graphLabel": "y = 2x^2 - 5x + 3",
    "graphData": [{"x": -1, "y": 10}, {"x": 0, "y": 3}, {"x": 1, "y": 0}, {"x": 2, "y": 1}],
    "relatedConcepts": ["Discriminant", "Quadratic formula"],
}


class RecordingLLM:
    """Answers every call with the same reply and keeps the messages it was sent."""

    def __init__(self, reply: str):
        self.reply = reply
        self.calls = []

    async def ainvoke(self, messages, *args, **kwargs):
        self.calls.append(messages)
        return AIMessage(content=self.reply)


class BrokenLLM:
    """Simulates a network failure."""

    def __init__(self):
        self.calls = 0

    async def ainvoke(self, messages, *args, **kwargs):
        self.calls += 1
        raise ConnectionError("network unreachable")


class SlowLLM:
    async def ainvoke(self, messages, *args, **kwargs):
        await asyncio.sleep(5)
        return AIMessage(content=json.dumps(QUADRATIC_ANSWER))


class FakeSolveClient:
    """
    Stands in for SolveClient in session tests.

    When `gate` is set, each solve waits on it, which keeps the session in
    the loading phase until the test releases it.
    """

    def __init__(self, response: SolveResponse = None, gate: asyncio.Event = None):
        self.response = response
        self.gate = gate
        self.requests = []
        self.on_call = None

    async def solve(self, request):
        self.requests.append(request)
        if self.on_call:
            self.on_call()
        if self.gate is not None:
            await self.gate.wait()
        return self.response


@pytest.fixture
def quadratic_json():
    return json.dumps(QUADRATIC_ANSWER)


@pytest.fixture
def quadratic_response():
    return SolveResponse(
        display_form="x = \\frac{5 \\pm \\sqrt{1}}{4}",
        exact_result="\\frac{5 \\pm \\sqrt{1}}{4}",
        decimal_result="1.5000, 1.0000",
        standard_form="2x^2 - 5x + 3 = 0",
        steps=("Identify $a$, $b$, $c$.", "Apply the formula."),
        explanation="We used the quadratic formula.",
    )
