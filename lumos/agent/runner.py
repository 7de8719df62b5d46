"""
Orchestrates full task execution.
What it does:
- Seeds the conversation with the planner rules, instruction and input text
- Loops: plan -> execute steps -> feed results back
- Recovers from malformed planner output with corrective turns
- Stops on continueFlag=false or after MAX_ITERATIONS
- Falls back to a deterministic answer when nothing usable came back

And, the main purpose:
Drive planning -> execution -> completion flow, always ending with a string.
"""


from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, Optional, Sequence

from lumos.agent.context import AudioInput, RunContext
from lumos.agent.conversation import Conversation, Turn
from lumos.agent.events import PLANNING_COMPLETE, PLANNING_START, EventListener
from lumos.agent.executor import execute_steps
from lumos.agent.planner import (
    answer_claims_missing_input,
    build_system_text,
    claims_missing_input,
    parse_plan,
    plan_turn,
)
from lumos.core.config import settings
from lumos.core.errors import EnvironmentFault, LLMError, PlanParseError
from lumos.core.logging import get_logger
from lumos.llm.prompts import (
    CONTINUE_NUDGE,
    FALLBACK_ANSWER,
    PARSE_CORRECTION,
    RESUPPLY_INPUT,
    STEP_RESULTS_FEEDBACK,
    STEP_VALIDATION_FEEDBACK,
    TASK_TEMPLATE,
)
from lumos.llm.schemas import Plan

log = get_logger("agent.runner")

PlanTurn = Callable[[Sequence[Turn]], Awaitable[str]]


@dataclass
class LoopState:
    conversation: Conversation
    iteration_count: int = 0
    final_answer: Optional[str] = None
    continue_flag: bool = True


class PlanLoop:
    def __init__(
        self,
        *,
        planner: Optional[PlanTurn] = None,
        registry=None,
        max_iterations: Optional[int] = None,
        parse_retry_limit: Optional[int] = None,
    ):
        if registry is None:
            from lumos.tools.registry import load_capabilities

            registry = load_capabilities()
        self.planner = planner or plan_turn
        self.registry = registry
        self.max_iterations = max_iterations or settings.MAX_ITERATIONS
        self.parse_retry_limit = parse_retry_limit or settings.PARSE_RETRY_LIMIT

    async def run(self, instruction: str, input_text: str = "", ctx: Optional[RunContext] = None) -> str:
        ctx = ctx or RunContext()
        state = LoopState(conversation=Conversation())
        try:
            return await self._run(state, instruction, input_text or "", ctx)
        except Exception as e:
            log.exception(f"[{ctx.run_id}] plan loop crashed: {e}")
            return f"Error: {e}"

    async def _run(self, state: LoopState, instruction: str, input_text: str, ctx: RunContext) -> str:
        convo = state.conversation
        convo.user(
            TASK_TEMPLATE.format(
                system=build_system_text(self.registry),
                instruction=instruction,
                input_text=input_text,
            )
        )
        await ctx.events.emit(PLANNING_START, {"instruction": instruction, "inputText": input_text})

        while state.continue_flag and state.iteration_count < self.max_iterations:
            state.iteration_count += 1
            log.info(f"[{ctx.run_id}] iteration {state.iteration_count}/{self.max_iterations}")

            raw: Optional[str] = None
            try:
                raw = await self.planner(convo.view())
                if not raw or not raw.strip():
                    raise LLMError("Failed to get response from AI")
                convo.assistant(raw)
                plan = parse_plan(raw)
                await self._apply(plan, state, ctx)

            except EnvironmentFault as e:
                log.error(f"[{ctx.run_id}] environment fault, aborting: {e}")
                return e.user_message

            except PlanParseError as e:
                log.warning(f"[{ctx.run_id}] could not parse plan (iteration {state.iteration_count}): {e}")
                if state.iteration_count < self.parse_retry_limit:
                    convo.user(PARSE_CORRECTION.format(response=raw, input_text=input_text))
                    continue
                if claims_missing_input(raw):
                    convo.user(RESUPPLY_INPUT.format(input_text=input_text))
                    continue
                log.error(f"[{ctx.run_id}] giving up after {state.iteration_count} unparsable responses")
                return f"Error: {e}"

            except Exception as e:
                if claims_missing_input(raw):
                    log.warning(f"[{ctx.run_id}] planner says it has no input text; re-supplying it")
                    convo.user(RESUPPLY_INPUT.format(input_text=input_text))
                    continue
                log.error(f"[{ctx.run_id}] iteration {state.iteration_count} failed: {e}")
                return f"Error: {e}"

        if state.continue_flag:
            log.warning(f"[{ctx.run_id}] max iterations ({self.max_iterations}) reached")

        answer = state.final_answer
        if not answer or answer_claims_missing_input(answer):
            log.warning(f"[{ctx.run_id}] no usable final answer, using fallback")
            answer = FALLBACK_ANSWER.format(input_text=input_text)

        await ctx.events.emit(PLANNING_COMPLETE, {"finalResponse": answer})
        return answer

    async def _apply(self, plan: Plan, state: LoopState, ctx: RunContext) -> None:
        convo = state.conversation

        if plan.steps:
            outcome = await execute_steps(plan.steps, self.registry, ctx)
            if outcome.validation_error:
                convo.user(STEP_VALIDATION_FEEDBACK.format(error=outcome.validation_error))
            if outcome.results:
                convo.user(STEP_RESULTS_FEEDBACK.format(results=outcome.serialize_results()))
        elif plan.continue_flag:
            convo.user(CONTINUE_NUDGE.format())

        if plan.final_response is not None:
            state.final_answer = plan.final_response
        state.continue_flag = plan.continue_flag


async def run_task(
    instruction: str,
    input_text: str = "",
    *,
    audio: Optional[AudioInput] = None,
    ctx: Optional[RunContext] = None,
    listeners: Optional[Iterable[EventListener]] = None,
    planner: Optional[PlanTurn] = None,
    registry=None,
) -> str:
    """
    Run one task to completion. Always returns a string: the final answer,
    a fallback asking the user to retry, or an "Error: ..." message.
    """
    ctx = ctx or RunContext()
    if audio is not None:
        ctx.audio = audio
    for listener in listeners or ():
        ctx.events.subscribe(listener)
    loop = PlanLoop(planner=planner, registry=registry)
    return await loop.run(instruction, input_text, ctx)
