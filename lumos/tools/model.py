"""
Shared model access for the built-in capabilities.

Maps router failures onto the capability error contract:
- provider not configured -> CapabilityUnavailable
- any LLM/transport error  -> CapabilityExecutionError
- PermissionFault          -> propagates (fatal to the whole run)
"""


from lumos.core.errors import CapabilityExecutionError, CapabilityUnavailable, LLMError
from lumos.llm import router


def ensure_available(capability: str) -> None:
    if not router.is_configured():
        raise CapabilityUnavailable(f"{capability} is unavailable: no usable language model is configured")


async def run_model(capability: str, system: str, user: str) -> str:
    ensure_available(capability)
    try:
        out = await router.complete(system, user)
    except LLMError as e:
        raise CapabilityExecutionError(f"{capability} failed - {e}") from e
    return (out or "").strip()


async def run_transcription(capability: str, audio: bytes, mime: str) -> str:
    ensure_available(capability)
    try:
        return (await router.transcribe(audio, mime)).strip()
    except LLMError as e:
        raise CapabilityExecutionError(f"{capability} failed to transcribe audio - {e}") from e
