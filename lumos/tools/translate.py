"""
Translation with gated per-pair models.

Pairs outside PREAPPROVED_TRANSLATION_PAIRS need an explicit confirmation
from the user before first use. The store of provisioned pairs is shared by
all runs; confirmation waits are per run. One lock per pair, so a second run
asking for the same pair queues behind the first and reuses its outcome.
"""


import asyncio
from typing import Dict, Set

from lumos.agent.events import CONFIRMATION_REQUIRED
from lumos.core.config import settings
from lumos.core.errors import CapabilityExecutionError
from lumos.core.logging import get_logger
from lumos.llm.prompts import TRANSLATE_SYSTEM
from lumos.tools.model import ensure_available, run_model
from lumos.tools.registry import CapabilityName, register

log = get_logger("tools.translate")


def pair_key(source: str, target: str) -> str:
    return f"{source.strip().lower()}-{target.strip().lower()}"


def resource_descriptor(source: str, target: str) -> str:
    return f"translation-model:{pair_key(source, target)}"


class TranslationModelStore:
    def __init__(self):
        self._ready: Set[str] = set()
        self._locks: Dict[str, asyncio.Lock] = {}

    def is_ready(self, pair: str) -> bool:
        return pair in self._ready or pair in settings.PREAPPROVED_TRANSLATION_PAIRS

    def reset(self) -> None:
        self._ready.clear()
        self._locks.clear()

    async def ensure(self, ctx, source: str, target: str) -> None:
        pair = pair_key(source, target)
        if self.is_ready(pair):
            return

        lock = self._locks.setdefault(pair, asyncio.Lock())
        async with lock:
            if self.is_ready(pair):
                return
            resource = resource_descriptor(source, target)
            await ctx.events.emit(
                CONFIRMATION_REQUIRED,
                {
                    "resource": resource,
                    "sourceLanguage": source,
                    "targetLanguage": target,
                    "runId": ctx.run_id,
                },
            )
            await ctx.confirmations.request(resource, settings.CONFIRMATION_TIMEOUT_S)
            self._ready.add(pair)
            log.info(f"Translation model {pair} provisioned")


translation_models = TranslationModelStore()


@register(CapabilityName.TRANSLATE, required=("text", "sourceLanguage", "targetLanguage"))
async def translate(ctx, text: str, sourceLanguage: str = "en", targetLanguage: str = "en") -> str:
    """Translates text"""
    if not text:
        raise CapabilityExecutionError("No text provided for translation")
    if sourceLanguage.strip().lower() == targetLanguage.strip().lower():
        return text

    ensure_available("translate")
    await translation_models.ensure(ctx, sourceLanguage, targetLanguage)
    system = TRANSLATE_SYSTEM.format(source=sourceLanguage, target=targetLanguage)
    return await run_model("translate", system, text)
