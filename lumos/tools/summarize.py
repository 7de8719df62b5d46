from lumos.core.config import settings
from lumos.llm.prompts import SUMMARIZE_SYSTEM
from lumos.tools.model import run_model
from lumos.tools.registry import CapabilityName, register


@register(CapabilityName.SUMMARIZE, required=("text", "sharedContext"))
async def summarize(ctx, text: str, sharedContext: str = "") -> str:
    """Summarizes text"""
    system = SUMMARIZE_SYSTEM.format(shared_context=sharedContext or settings.SUMMARY_DEFAULT_CONTEXT)
    return await run_model("summarize", system, text)
