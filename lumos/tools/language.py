import re

from lumos.core.errors import CapabilityExecutionError
from lumos.llm.prompts import LANGUAGE_DETECT_SYSTEM
from lumos.tools.model import run_model
from lumos.tools.registry import CapabilityName, register

_CODE = re.compile(r"^[a-z]{2,3}(?:-[a-z0-9]{2,8})?$")


def _clean_code(raw: str) -> str:
    parts = (raw or "").split()
    if len(parts) != 1:
        return ""
    return parts[0].strip(" .,:;\"'`").lower().replace("_", "-")


@register(CapabilityName.LANGUAGE_DETECTOR, required=("text",))
async def language_detector(ctx, text: str) -> str:
    """Detects text language"""
    raw = await run_model("languageDetector", LANGUAGE_DETECT_SYSTEM, text)
    code = _clean_code(raw)
    if not _CODE.match(code):
        raise CapabilityExecutionError(f"languageDetector returned an unrecognised code: {raw[:40]!r}")
    return code
