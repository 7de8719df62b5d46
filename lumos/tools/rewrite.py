from lumos.core.config import settings
from lumos.llm.prompts import REWRITE_SYSTEM
from lumos.tools.model import run_model
from lumos.tools.registry import CapabilityName, register

TONES = frozenset({"more-formal", "more-casual", "as-is"})


@register(
    CapabilityName.REWRITE,
    required=("text", "tone", "context"),
    allowed={"tone": TONES},
)
async def rewrite(ctx, text: str, tone: str = "more-formal", context: str = "") -> str:
    """Rewrites text in a different tone/style"""
    system = REWRITE_SYSTEM.format(
        tone=tone,
        length=settings.REWRITE_DEFAULT_LENGTH,
        context=context or settings.SUMMARY_DEFAULT_CONTEXT,
    )
    return await run_model("rewrite", system, text)
