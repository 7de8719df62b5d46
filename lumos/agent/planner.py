"""
Talks to the planning model and turns its text into a Plan.
What it does:
- Builds the planner system text from the capability registry
- Sends the conversation to the model (default planning interface)
- Parses raw text into a normalized Plan (pure, no model needed)
- Spots replies where the model says it has no input text

And, the main purpose:
Treat an unreliable free-text producer as a structured plan source.
"""


from typing import Sequence

from lumos.agent.conversation import Turn
from lumos.core.logging import get_logger
from lumos.llm import router
from lumos.llm.json_parse import extract_json_object
from lumos.llm.prompts import PLANNER_SYSTEM
from lumos.llm.schemas import Plan

log = get_logger("agent.planner")

# Planner replies that mean "I don't have the text" even though we sent it.
MISSING_INPUT_MARKERS = (
    "need the selected text",
    "need the input text",
    "provide the text",
    "selected text",
)
# Narrower set for final answers: "selected text" alone is a legitimate phrase there.
MISSING_INPUT_ANSWER_MARKERS = (
    "need the selected text",
    "need the input text",
    "provide the text",
)


def build_system_text(registry) -> str:
    return PLANNER_SYSTEM.format(capabilities=registry.describe())


async def plan_turn(conversation: Sequence[Turn]) -> str:
    return await router.chat([t.as_message() for t in conversation])


def parse_plan(raw: str) -> Plan:
    """raw planner text -> Plan. Raises PlanParseError."""
    data, layer = extract_json_object(raw)
    if layer != "direct":
        log.info(f"Plan extracted via {layer}")
    return Plan.from_raw(data)


def claims_missing_input(text: str | None) -> bool:
    low = (text or "").lower()
    return any(m in low for m in MISSING_INPUT_MARKERS)


def answer_claims_missing_input(text: str | None) -> bool:
    low = (text or "").lower()
    return any(m in low for m in MISSING_INPUT_ANSWER_MARKERS)
