"""
Capability registry.
What it holds:
- The five capability names (enum)
- Required arguments and allowed values per capability
- The async function that implements each one

And, the main purpose:
Single point of truth for step validation and dispatch.
"""


import enum
import inspect
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Mapping, Optional

from lumos.core.errors import (
    CapabilityError,
    CapabilityExecutionError,
    ConfirmationError,
    EnvironmentFault,
    StepValidationError,
)


class CapabilityName(str, enum.Enum):
    SUMMARIZE = "summarize"
    REWRITE = "rewrite"
    PROMPT = "prompt"
    LANGUAGE_DETECTOR = "languageDetector"
    TRANSLATE = "translate"

    @classmethod
    def parse(cls, name: object) -> Optional["CapabilityName"]:
        if not isinstance(name, str):
            return None
        try:
            return cls(name.strip())
        except ValueError:
            return None


CapabilityFn = Callable[..., Awaitable[str]]


@dataclass(frozen=True)
class CapabilitySpec:
    name: CapabilityName
    fn: CapabilityFn
    required: tuple[str, ...]
    allowed: Mapping[str, FrozenSet[str]] = field(default_factory=dict)
    description: str = ""


class CapabilityRegistry:
    def __init__(self):
        self._specs: Dict[CapabilityName, CapabilitySpec] = {}

    def register(
        self,
        name: CapabilityName,
        *,
        required: tuple[str, ...],
        allowed: Optional[Mapping[str, FrozenSet[str]]] = None,
        description: str = "",
    ):
        def deco(fn: CapabilityFn):
            doc = inspect.getdoc(fn) or ""
            self._specs[name] = CapabilitySpec(
                name=name,
                fn=fn,
                required=tuple(required),
                allowed=dict(allowed or {}),
                description=description or (doc.splitlines()[0] if doc else ""),
            )
            return fn
        return deco

    def get(self, name: object) -> CapabilitySpec:
        cap = CapabilityName.parse(name)
        if cap is None or cap not in self._specs:
            raise KeyError(f"Unknown capability: {name}. Known: {self.names()}")
        return self._specs[cap]

    def names(self) -> list[str]:
        return [c.value for c in CapabilityName if c in self._specs]

    def specs(self) -> list[CapabilitySpec]:
        return [self._specs[c] for c in CapabilityName if c in self._specs]

    def validate(self, name: object, args: Mapping[str, Any]) -> CapabilitySpec:
        if not name:
            raise StepValidationError("Missing step name")
        try:
            spec = self.get(name)
        except KeyError:
            raise StepValidationError(f"Unknown function '{name}'. Available: {', '.join(self.names())}", capability=str(name))

        missing = [k for k in spec.required if not str(args.get(k) or "").strip()]
        if missing:
            raise StepValidationError(
                f"Missing required arguments for {spec.name.value}: {', '.join(missing)}",
                capability=spec.name.value,
            )
        for key, values in spec.allowed.items():
            if key in args and args[key] not in values:
                raise StepValidationError(
                    f"Invalid {key} '{args[key]}' for {spec.name.value}. Use one of: {', '.join(sorted(values))}",
                    capability=spec.name.value,
                )
        return spec

    async def invoke(self, name: object, args: Mapping[str, str], ctx) -> str:
        """
        Run one capability. Only the required arguments are passed through.
        Raises CapabilityUnavailable / CapabilityExecutionError; EnvironmentFault
        propagates untouched.
        """
        spec = self.validate(name, args)
        kwargs = {k: args[k] for k in spec.required}
        try:
            out = await spec.fn(ctx, **kwargs)
        except (CapabilityError, EnvironmentFault):
            raise
        except ConfirmationError as e:
            raise CapabilityExecutionError(str(e)) from e
        except Exception as e:
            raise CapabilityExecutionError(f"{spec.name.value} failed - {e}") from e
        return "" if out is None else str(out)

    def describe(self) -> str:
        """Render the registry as the AVAILABLE FUNCTIONS block of the planner prompt."""
        lines = []
        for i, spec in enumerate(self.specs(), start=1):
            lines.append(f"{i}. {spec.name.value} - {spec.description}")
            fields = ", ".join(f"{k}: string" for k in spec.required)
            lines.append(f"   args: {{ {fields} }}")
            for key, values in spec.allowed.items():
                lines.append(f"   {key}: " + ", ".join(f'"{v}"' for v in sorted(values)))
        return "\n".join(lines)


registry = CapabilityRegistry()
register = registry.register


def get_capability(name: object) -> CapabilitySpec:
    return registry.get(name)


def load_capabilities() -> CapabilityRegistry:
    """Import the built-in capability modules and check every name is registered."""
    import lumos.tools.language  # noqa: F401
    import lumos.tools.prompt  # noqa: F401
    import lumos.tools.rewrite  # noqa: F401
    import lumos.tools.summarize  # noqa: F401
    import lumos.tools.translate  # noqa: F401

    missing = [c.value for c in CapabilityName if c not in registry._specs]
    if missing:
        raise RuntimeError(f"Capabilities without implementation: {missing}")
    return registry
