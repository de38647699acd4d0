"""
Session orchestration tests, including a full run through the real solve
workflow with a fake model.
"""

import asyncio

import pytest
from langchain_core.language_models import FakeListChatModel

from conftest import BrokenLLM, FakeSolveClient
from drawing import DrawingSurface
from models import InvalidPrecisionError, SolveResponse, SolverMode
from session import SolveSession
from solver import SolveClient


async def test_empty_text_solve_is_a_no_op(quadratic_response):
    client = FakeSolveClient(quadratic_response)
    session = SolveSession(client)

    assert session.can_solve is False
    assert await session.solve() is None

    assert session.phase == "idle"
    assert len(session.history) == 0
    assert client.requests == []


async def test_successful_solve(quadratic_response):
    client = FakeSolveClient(quadratic_response)
    session = SolveSession(client, precision=4)
    session.set_mode(SolverMode.QUADRATIC)
    session.inputs.set_query("2x^2 - 5x + 3 = 0")

    entry = await session.solve()

    assert session.phase == "settled"
    assert session.result is quadratic_response
    assert session.history.entries == (entry,)
    assert entry.query == "2x^2 - 5x + 3 = 0"
    assert entry.mode is SolverMode.QUADRATIC
    assert entry.source == "text"

    request = client.requests[0]
    assert request.query == "2x^2 - 5x + 3 = 0"
    assert request.mode is SolverMode.QUADRATIC
    assert request.precision == 4
    assert request.image is None

    assert session.view().headline == "(5 ± √(1) / 4)"


async def test_fallback_attempts_are_recorded():
    session = SolveSession(FakeSolveClient(SolveResponse.fallback()))
    session.inputs.set_query("???")

    entry = await session.solve()

    assert entry.result.exact_result == entry.result.decimal_result == "Error"
    assert session.phase == "settled"
    assert len(session.history) == 1


async def test_history_grows_by_one_per_attempt(quadratic_response):
    responses = [quadratic_response, SolveResponse.fallback(), quadratic_response, SolveResponse.fallback()]
    client = FakeSolveClient()
    session = SolveSession(client)
    session.inputs.set_query("x + 1 = 2")

    for n, response in enumerate(responses, start=1):
        client.response = response
        await session.solve()
        assert len(session.history) == n

    entries = session.history.entries
    for newer, older in zip(entries, entries[1:]):
        assert newer.created_at >= older.created_at


async def test_concurrent_solve_is_rejected(quadratic_response):
    gate = asyncio.Event()
    client = FakeSolveClient(quadratic_response, gate=gate)
    session = SolveSession(client)
    session.inputs.set_query("1+1")

    first = asyncio.create_task(session.solve())
    await asyncio.sleep(0)
    assert session.phase == "loading"
    assert session.can_solve is False

    assert await session.solve() is None
    assert len(client.requests) == 1

    gate.set()
    await first
    assert session.phase == "settled"
    assert len(session.history) == 1


async def test_previous_result_is_cleared_while_loading(quadratic_response):
    client = FakeSolveClient(quadratic_response)
    session = SolveSession(client)
    session.inputs.set_query("1+1")
    await session.solve()
    assert session.result is not None

    seen = []
    client.on_call = lambda: seen.append((session.phase, session.result, session.view()))
    await session.solve()

    assert seen == [("loading", None, None)]


async def test_payload_is_captured_at_call_time(quadratic_response):
    gate = asyncio.Event()
    client = FakeSolveClient(quadratic_response, gate=gate)
    session = SolveSession(client)
    session.inputs.set_modality("draw")
    session.inputs.stage_drawing("data:image/png;base64,QUJD")

    task = asyncio.create_task(session.solve())
    await asyncio.sleep(0)
    session.inputs.set_modality("text")
    session.inputs.set_query("something else")
    gate.set()
    entry = await task

    assert client.requests[0].image == "QUJD"
    assert client.requests[0].source == "draw"
    assert entry.query == "Image Problem"
    assert entry.source == "draw"


async def test_voice_solve(quadratic_response):
    client = FakeSolveClient(quadratic_response)
    session = SolveSession(client)
    session.inputs.set_modality("voice")
    assert await session.solve() is None

    session.inputs.transcript = "two x plus five equals thirteen"
    entry = await session.solve()

    assert client.requests[0].query == "two x plus five equals thirteen"
    assert entry.source == "voice"


async def test_voice_solve_after_replay_sends_replayed_query(quadratic_response):
    class Recognizer:
        async def listen(self, language):
            return "solve x + 1 = 2"

    client = FakeSolveClient(quadratic_response)
    session = SolveSession(client)
    session.inputs.set_query("integrate x")
    typed = await session.solve()

    session.inputs.set_modality("voice")
    await session.inputs.capture_voice(Recognizer())
    await session.solve()

    session.load_history_entry(typed)
    entry = await session.solve()

    assert session.inputs.query == "integrate x"
    assert client.requests[-1].query == "integrate x"
    assert entry.source == "voice"


async def test_empty_voice_transcript_is_solved_as_voice_input(quadratic_response):
    client = FakeSolveClient(quadratic_response)
    session = SolveSession(client)
    session.inputs.set_modality("voice")
    session.inputs.transcript = ""

    entry = await session.solve()

    assert client.requests[0].query == ""
    assert client.requests[0].source == "voice"
    assert entry.query == "Voice Input"


async def test_cleared_drawing_is_refused(quadratic_response):
    client = FakeSolveClient(quadratic_response)
    session = SolveSession(client)
    session.inputs.set_modality("draw")
    surface = DrawingSurface(width=60, height=30, on_export=session.inputs.stage_drawing)

    surface.pointer_down(5, 5)
    surface.pointer_move(50, 20)
    surface.pointer_up()
    surface.clear()

    assert await session.solve() is None
    assert client.requests == []
    assert len(session.history) == 0


async def test_replay_does_not_call_backend(quadratic_response):
    client = FakeSolveClient(quadratic_response)
    session = SolveSession(client)
    session.set_mode(SolverMode.QUADRATIC)
    session.inputs.set_query("2x^2 - 5x + 3 = 0")
    older = await session.solve()

    client.response = SolveResponse.fallback()
    session.set_mode(SolverMode.MATRIX)
    session.inputs.set_query("[[1,2],[3,4]]")
    newer = await session.solve()

    before = session.history.entries
    session.load_history_entry(older)

    assert len(client.requests) == 2
    assert session.history.entries == before
    assert session.history.entries[0] is newer
    assert session.phase == "settled"
    assert session.mode is SolverMode.QUADRATIC
    assert session.inputs.query == "2x^2 - 5x + 3 = 0"
    assert session.result is older.result


async def test_loading_settles_even_if_client_fails():
    class ExplodingClient:
        async def solve(self, request):
            raise RuntimeError("boom")

    session = SolveSession(ExplodingClient())
    session.inputs.set_query("1+1")

    with pytest.raises(RuntimeError):
        await session.solve()

    assert session.phase == "settled"
    assert session.result.is_fallback
    assert len(session.history) == 1


@pytest.mark.parametrize("precision", range(2, 11))
async def test_precision_reaches_request(precision, quadratic_response):
    client = FakeSolveClient(quadratic_response)
    session = SolveSession(client)
    session.set_precision(precision)
    session.inputs.set_query("pi")
    await session.solve()
    assert client.requests[0].precision == precision


def test_invalid_precision_is_rejected():
    session = SolveSession(FakeSolveClient())
    with pytest.raises(InvalidPrecisionError):
        session.set_precision(11)
    with pytest.raises(InvalidPrecisionError):
        session.set_precision(1)
    assert session.precision == 4


async def test_clear_all_and_decimal_toggle(quadratic_response):
    session = SolveSession(FakeSolveClient(quadratic_response))
    session.inputs.set_query("1+1")
    await session.solve()

    assert session.toggle_decimal() is True
    assert session.view().headline == "1.5000, 1.0000"
    assert session.history_view()[0].summary == "= 1.5000, 1.0000"

    session.clear_all()
    assert session.phase == "idle"
    assert session.result is None
    assert session.view() is None
    assert session.inputs.query == ""
    assert len(session.history) == 1


async def test_full_workflow(quadratic_json):
    """Typed quadratic through the real solve workflow."""
    session = SolveSession(SolveClient(FakeListChatModel(responses=[quadratic_json])), precision=4)
    session.set_mode(SolverMode.QUADRATIC)
    session.inputs.set_query("2x^2 - 5x + 3 = 0")

    entry = await session.solve()
    view = session.view()

    assert entry.result.is_fallback is False
    assert view.headline == "(5 ± √(1) / 4)"
    assert view.caption == "1.5000, 1.0000"
    assert view.standard_form == "2x² - 5x + 3 = 0"
    assert len(view.steps) == 3
    assert len(view.graph.points) == 4


async def test_full_workflow_with_backend_down():
    session = SolveSession(SolveClient(BrokenLLM()))
    session.inputs.set_query("2x+5=13")

    entry = await session.solve()

    assert entry.result.is_fallback
    assert session.view().headline == "Error"
    assert len(session.history) == 1
