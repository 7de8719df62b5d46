"""
Question answering, with optional audio.

If the run carries an audio clip it is transcribed first and the question is
answered against the transcript. The clip is consumed by the first call.
"""


from lumos.llm.prompts import PROMPT_SYSTEM, PROMPT_WITH_AUDIO
from lumos.tools.model import run_model, run_transcription
from lumos.tools.registry import CapabilityName, register


@register(
    CapabilityName.PROMPT,
    required=("question",),
    description='Processes audio transcription or asks questions. For audio use question "What does this audio say?"',
)
async def prompt(ctx, question: str) -> str:
    audio = ctx.take_audio() if ctx is not None else None
    if audio is None:
        return await run_model("prompt", PROMPT_SYSTEM, question)

    transcript = await run_transcription("prompt", audio.data, audio.mime)
    return await run_model(
        "prompt",
        PROMPT_SYSTEM,
        PROMPT_WITH_AUDIO.format(transcript=transcript, question=question),
    )
