"""
Plan loop behaviour against a scripted planner and fake capabilities.
"""

import asyncio
import json

import pytest

from lumos.agent.context import RunContext
from lumos.agent.events import EventRecorder
from lumos.agent.runner import PlanLoop, run_task
from lumos.core.errors import CapabilityUnavailable, LLMError, PermissionFault


def steps(*items, continue_flag=True):
    return json.dumps({"steps": [{"name": n, "args": a} for n, a in items], "continueFlag": continue_flag})


def final(text):
    return json.dumps({"finalResponse": text, "continueFlag": False})


def user_turns(conversation):
    return [t.content for t in conversation if t.role == "user"]


class TestScenarios:
    @pytest.mark.asyncio
    async def test_summarize_then_final_answer(self, scripted, fake_caps):
        planner = scripted(
            [
                '{"steps":[{"name":"summarize","args":{"text":"Lorem ipsum...","sharedContext":"..."}}],"continueFlag":true}',
                '{"finalResponse":"Short summary.","continueFlag":false}',
            ]
        )
        recorder = EventRecorder()
        result = await run_task(
            "summarize this", "Lorem ipsum...", planner=planner, registry=fake_caps.registry, listeners=[recorder]
        )

        assert result == "Short summary."
        assert fake_caps.called("summarize") == [{"text": "Lorem ipsum...", "sharedContext": "..."}]
        assert recorder.types() == ["planningStart", "functionStart", "functionComplete", "planningComplete"]
        assert recorder.of_type("planningComplete") == [{"finalResponse": "Short summary."}]
        assert recorder.of_type("planningStart") == [{"instruction": "summarize this", "inputText": "Lorem ipsum..."}]

        # second planning turn saw the serialized step results
        second = planner.calls[1]
        assert second[-1].role == "user"
        assert '"step": "summarize"' in second[-1].content
        assert "Short summary." in second[-1].content

    @pytest.mark.asyncio
    async def test_unparsable_reply_gets_corrective_turn(self, scripted, fake_caps):
        planner = scripted(["Sure, I can help with that!", final("Done.")])
        result = await run_task("summarize this", "Some text", planner=planner, registry=fake_caps.registry)

        assert result == "Done."
        corrective = planner.calls[1][-1]
        assert corrective.role == "user"
        assert "valid JSON" in corrective.content
        assert "Some text" in corrective.content

    @pytest.mark.asyncio
    async def test_invalid_step_is_never_invoked(self, scripted, fake_caps):
        planner = scripted(
            [
                '{"steps":[{"name":"translate","args":{"text":"hi","sourceLanguage":"en"}},'
                '{"name":"summarize","args":{"text":"hi","sharedContext":"x"}}],"continueFlag":true}',
                final("hola"),
            ]
        )
        result = await run_task("translate", "hi", planner=planner, registry=fake_caps.registry)

        assert result == "hola"
        assert fake_caps.calls == []
        feedback = planner.calls[1][-1]
        assert feedback.role == "user"
        assert "Missing required arguments for translate" in feedback.content

    @pytest.mark.asyncio
    async def test_iteration_cap(self, scripted, fake_caps):
        reply = steps(("languageDetector", {"text": "hi"}))
        planner = scripted([reply] * 16)
        result = await run_task("detect forever", "hi", planner=planner, registry=fake_caps.registry)

        assert len(planner.calls) == 15
        assert len(fake_caps.called("languageDetector")) == 15
        assert result.startswith("I apologize")
        assert '"hi"' in result

    @pytest.mark.asyncio
    async def test_unavailable_capability_is_fed_back_as_text(self, scripted, fake_caps):
        fake_caps.fail("summarize", CapabilityUnavailable("summarize is unavailable: no model"))
        planner = scripted(
            [
                steps(("summarize", {"text": "t", "sharedContext": "c"})),
                final("Sorry, summarization is unavailable."),
            ]
        )
        recorder = EventRecorder()
        result = await run_task("summarize", "t", planner=planner, registry=fake_caps.registry, listeners=[recorder])

        assert result == "Sorry, summarization is unavailable."
        feedback = planner.calls[1][-1].content
        assert "Error: summarize is unavailable: no model" in feedback
        assert recorder.of_type("functionError") == [
            {"functionName": "summarize", "error": "Error: summarize is unavailable: no model"}
        ]


class TestRecovery:
    @pytest.mark.asyncio
    async def test_parse_failure_at_third_iteration_aborts(self, scripted, fake_caps):
        planner = scripted(["nope", "still nope", "nope again", final("never reached")])
        result = await run_task("x", "text", planner=planner, registry=fake_caps.registry)

        assert result.startswith("Error:")
        assert len(planner.calls) == 3

    @pytest.mark.asyncio
    async def test_missing_input_claim_gets_text_resupplied(self, scripted, fake_caps):
        planner = scripted(["a", "b", "I need the selected text to continue.", final("ok")])
        result = await run_task("summarize", "The input", planner=planner, registry=fake_caps.registry)

        assert result == "ok"
        resupply = planner.calls[3][-1]
        assert resupply.content.startswith('The input text is: "The input"')

    @pytest.mark.asyncio
    async def test_permission_fault_is_fatal(self, scripted, fake_caps):
        planner = scripted([PermissionFault("401 from provider")])
        result = await run_task("x", "text", planner=planner, registry=fake_caps.registry)
        assert result == PermissionFault.user_message

    @pytest.mark.asyncio
    async def test_permission_fault_from_capability_is_fatal(self, scripted, fake_caps):
        fake_caps.fail("prompt", PermissionFault("403"))
        planner = scripted([steps(("prompt", {"question": "q"})), final("unreachable")])
        recorder = EventRecorder()
        result = await run_task("ask", "", planner=planner, registry=fake_caps.registry, listeners=[recorder])
        assert result == PermissionFault.user_message
        assert len(planner.calls) == 1
        # every functionStart is closed, even when the run aborts
        assert recorder.types() == ["planningStart", "functionStart", "functionError"]
        assert recorder.of_type("functionError") == [{"functionName": "prompt", "error": "Error: 403"}]

    @pytest.mark.asyncio
    async def test_planner_transport_error_aborts(self, scripted, fake_caps):
        planner = scripted([LLMError("Groq call failed after retries")])
        result = await run_task("x", "text", planner=planner, registry=fake_caps.registry)
        assert result == "Error: Groq call failed after retries"

    @pytest.mark.asyncio
    async def test_empty_reply_aborts(self, scripted, fake_caps):
        planner = scripted(["   "])
        result = await run_task("x", "text", planner=planner, registry=fake_caps.registry)
        assert result == "Error: Failed to get response from AI"


class TestTermination:
    @pytest.mark.asyncio
    async def test_mixed_plan_runs_steps_and_continues(self, scripted, fake_caps):
        planner = scripted(
            [
                json.dumps(
                    {
                        "steps": [{"name": "prompt", "args": {"question": "q"}}],
                        "finalResponse": "too early",
                        "continueFlag": False,
                    }
                ),
                final("Answer."),
            ]
        )
        result = await run_task("ask", "", planner=planner, registry=fake_caps.registry)
        assert result == "Answer."
        assert len(fake_caps.called("prompt")) == 1
        assert len(planner.calls) == 2

    @pytest.mark.asyncio
    async def test_final_answer_claiming_missing_input_falls_back(self, scripted, fake_caps):
        planner = scripted([final("Please provide the text you want me to summarize.")])
        result = await run_task("summarize", "abc", planner=planner, registry=fake_caps.registry)
        assert result.startswith("I apologize")
        assert '"abc"' in result

    @pytest.mark.asyncio
    async def test_empty_object_stops_with_fallback(self, scripted, fake_caps):
        planner = scripted(["{}"])
        result = await run_task("x", "abc", planner=planner, registry=fake_caps.registry)
        assert result.startswith("I apologize")

    @pytest.mark.asyncio
    async def test_continue_without_steps_gets_nudged(self, scripted, fake_caps):
        planner = scripted(['{"continueFlag": true}', final("ok")])
        result = await run_task("x", "abc", planner=planner, registry=fake_caps.registry)
        assert result == "ok"
        assert "did not finish" in planner.calls[1][-1].content

    @pytest.mark.asyncio
    async def test_chained_steps_run_in_order(self, scripted, fake_caps):
        planner = scripted(
            [
                steps(
                    ("rewrite", {"text": "t", "tone": "more-casual", "context": "c"}),
                    ("translate", {"text": "Rewritten.", "sourceLanguage": "en", "targetLanguage": "es"}),
                ),
                final("Hola"),
            ]
        )
        result = await run_task("rewrite and translate", "t", planner=planner, registry=fake_caps.registry)
        assert result == "Hola"
        assert [n for n, _ in fake_caps.calls] == ["rewrite", "translate"]


class TestConversationInvariants:
    @pytest.mark.asyncio
    async def test_history_only_grows(self, scripted, fake_caps):
        planner = scripted(
            [
                "garbage",
                steps(("languageDetector", {"text": "hola"})),
                steps(("translate", {"text": "hola", "sourceLanguage": "es", "targetLanguage": "en"})),
                final("hello"),
            ]
        )
        await run_task("translate", "hola", planner=planner, registry=fake_caps.registry)

        snapshots = planner.calls
        for earlier, later in zip(snapshots, snapshots[1:]):
            assert len(later) > len(earlier)
            assert later[: len(earlier)] == earlier

    @pytest.mark.asyncio
    async def test_first_turn_contains_spec_instruction_and_input(self, scripted, fake_caps):
        planner = scripted([final("ok")])
        await run_task("make it formal", "yo whats up", planner=planner, registry=fake_caps.registry)
        first = planner.calls[0][0]
        assert first.role == "user"
        assert "AVAILABLE FUNCTIONS" in first.content
        assert "User instruction: make it formal" in first.content
        assert "Input text: yo whats up" in first.content


class TestEvents:
    @pytest.mark.asyncio
    async def test_broken_listener_does_not_affect_result(self, scripted, fake_caps):
        def broken(event_type, payload):
            raise RuntimeError("observer down")

        planner = scripted([steps(("prompt", {"question": "q"})), final("Answer.")])
        result = await run_task(
            "ask", "", planner=planner, registry=fake_caps.registry, listeners=[broken]
        )
        assert result == "Answer."

    @pytest.mark.asyncio
    async def test_async_listener_receives_events(self, scripted, fake_caps):
        seen = []

        async def listener(event_type, payload):
            seen.append(event_type)

        ctx = RunContext()
        ctx.events.subscribe(listener)
        loop = PlanLoop(planner=scripted([final("x")]), registry=fake_caps.registry)
        assert await loop.run("i", "t", ctx) == "x"
        await ctx.events.drain(timeout=1)
        assert seen == ["planningStart", "planningComplete"]

    @pytest.mark.asyncio
    async def test_stuck_async_listener_does_not_stall_the_loop(self, scripted, fake_caps):
        never = asyncio.Event()

        async def stuck(event_type, payload):
            await never.wait()

        ctx = RunContext()
        ctx.events.subscribe(stuck)
        planner = scripted([steps(("prompt", {"question": "q"})), final("Answer.")])
        result = await asyncio.wait_for(run_task("ask", "", planner=planner, registry=fake_caps.registry, ctx=ctx), 2)

        assert result == "Answer."
        await ctx.events.drain(timeout=0)

    @pytest.mark.asyncio
    async def test_failing_async_listener_is_dropped(self, scripted, fake_caps):
        async def failing(event_type, payload):
            raise RuntimeError("observer down")

        ctx = RunContext()
        ctx.events.subscribe(failing)
        planner = scripted([final("x")])
        assert await run_task("i", "t", planner=planner, registry=fake_caps.registry, ctx=ctx) == "x"
        await ctx.events.drain(timeout=1)
