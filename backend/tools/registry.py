from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from tools.base import ToolArgumentError, ToolContext, ToolHandler, ToolSpec, UnknownToolError

logger = logging.getLogger(__name__)


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "arguments"
        parts.append(f"`{loc}`: {err.get('msg')}")
    return "Invalid arguments: " + "; ".join(parts)


class ToolRegistry:
    def __init__(self):
        self._specs: dict[str, ToolSpec] = {}
        self._handlers: dict[str, ToolHandler] = {}

    def register(self, spec: ToolSpec, handler: ToolHandler) -> None:
        if spec.name in self._specs:
            raise ValueError(f"Tool already registered: {spec.name}")
        self._specs[spec.name] = spec
        self._handlers[spec.name] = handler

    def list_specs(self) -> list[ToolSpec]:
        return sorted(self._specs.values(), key=lambda s: s.name)

    def get_spec(self, name: str) -> ToolSpec | None:
        return self._specs.get(name)

    def execute(self, name: str, args: dict[str, Any] | None, ctx: ToolContext) -> Any:
        spec = self._specs.get(name)
        handler = self._handlers.get(name)
        if not spec or not handler:
            raise UnknownToolError(f"Unknown tool: {name}")

        payload = {} if args is None else args
        if not isinstance(payload, dict):
            raise ToolArgumentError("Tool arguments must be a JSON object")

        try:
            validated = spec.input_model.model_validate(payload)
        except ValidationError as exc:
            errors = exc.errors(include_url=False, include_context=False, include_input=False)
            raise ToolArgumentError(_format_validation_error(exc), errors) from exc

        logger.info("Tool call %s for user %s", name, ctx.user_id)
        return handler(ctx, validated)
