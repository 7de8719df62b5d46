"""
Runs the steps of ONE planner turn.
What it does:
- Validates capability name and required arguments per step
- Stops the turn at the first invalid step (nothing is invoked for it)
- Invokes capabilities strictly in order
- Turns capability failures into error text instead of raising
- Emits functionStart / functionComplete / functionError

And, the main purpose:
Execute planned steps reliably and hand their results back as data.
"""


import json
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from lumos.agent.events import FUNCTION_COMPLETE, FUNCTION_ERROR, FUNCTION_START
from lumos.core.errors import CapabilityError, EnvironmentFault, StepValidationError
from lumos.core.logging import get_logger
from lumos.llm.schemas import Step

log = get_logger("agent.executor")


@dataclass
class StepResult:
    capability: str
    output: str
    ok: bool = True

    def to_wire(self) -> dict:
        return {"step": self.capability, "result": self.output}


@dataclass
class TurnOutcome:
    results: list[StepResult] = field(default_factory=list)
    validation_error: Optional[str] = None

    def serialize_results(self) -> str:
        return json.dumps([r.to_wire() for r in self.results], ensure_ascii=False)


def _pretty(value: Any, limit: int = 400) -> str:
    s = value if isinstance(value, str) else json.dumps(value, ensure_ascii=False)
    return s[:limit]


async def execute_steps(steps: Sequence[Step], registry, ctx) -> TurnOutcome:
    outcome = TurnOutcome()

    for step in steps:
        try:
            spec = registry.validate(step.name, step.args)
        except StepValidationError as e:
            log.warning(f"Invalid step {step.name!r}: {e}. Skipping the rest of this turn.")
            outcome.validation_error = str(e)
            break

        name = spec.name.value
        await ctx.events.emit(FUNCTION_START, {"functionName": name, "args": dict(step.args)})

        try:
            output = await registry.invoke(spec.name, step.args, ctx)
        except CapabilityError as e:
            log.warning(f"[{name}] failed: {e}")
            text = f"Error: {e}"
            await ctx.events.emit(FUNCTION_ERROR, {"functionName": name, "error": text})
            outcome.results.append(StepResult(capability=name, output=text, ok=False))
            continue
        except EnvironmentFault as e:
            log.error(f"[{name}] environment fault: {e}")
            await ctx.events.emit(FUNCTION_ERROR, {"functionName": name, "error": f"Error: {e}"})
            raise

        log.info(f"[{name}] -> {_pretty(output, 120)}")
        await ctx.events.emit(FUNCTION_COMPLETE, {"functionName": name, "result": output})
        outcome.results.append(StepResult(capability=name, output=output))

    return outcome
