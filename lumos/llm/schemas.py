import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from lumos.core.logging import get_logger

log = get_logger("llm.schemas")


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _as_flag(value: Any) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        low = value.strip().lower()
        if low in ("true", "yes", "1"):
            return True
        if low in ("false", "no", "0"):
            return False
        return None
    return bool(value)


class Step(BaseModel):
    name: Optional[str] = Field(None, description="Capability name")
    args: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_raw(cls, raw: Any) -> "Step":
        if not isinstance(raw, dict):
            return cls()
        name = raw.get("name") or raw.get("capability")
        args = raw.get("args")
        if args is None:
            args = raw.get("arguments")
        clean: Dict[str, str] = {}
        if isinstance(args, dict):
            clean = {str(k): _as_text(v) for k, v in args.items() if v is not None}
        return cls(name=name.strip() if isinstance(name, str) else None, args=clean)

    def to_wire(self) -> dict:
        return {"name": self.name, "args": dict(self.args)}


class Plan(BaseModel):
    steps: List[Step] = Field(default_factory=list)
    final_response: Optional[str] = None
    continue_flag: bool = False
    contract_violation: bool = False

    @property
    def is_completion(self) -> bool:
        return not self.steps and not self.continue_flag

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "Plan":
        """
        Normalize a parsed planner object.

        - steps: [] is the same as no steps
        - steps + finalResponse: steps win, finalResponse dropped, continue forced
        - steps + continueFlag false: continue forced
        - continueFlag missing: continue iff there are steps
        """
        raw_steps = raw.get("steps")
        if isinstance(raw_steps, dict):
            raw_steps = [raw_steps]
        if not isinstance(raw_steps, list):
            raw_steps = []
        steps = [Step.from_raw(s) for s in raw_steps]

        final = raw.get("finalResponse")
        final = _as_text(final) if final not in (None, "") else None

        flag = _as_flag(raw.get("continueFlag"))
        violation = False

        if steps and final is not None:
            log.warning("Planner mixed steps with finalResponse; keeping steps and continuing. raw=%s", _as_text(raw)[:400])
            final = None
            flag = True
            violation = True
        elif steps and flag is False:
            log.warning("Planner sent steps with continueFlag=false; forcing continueFlag=true")
            flag = True
            violation = True

        if flag is None:
            flag = bool(steps)

        return cls(steps=steps, final_response=final, continue_flag=flag, contract_violation=violation)
