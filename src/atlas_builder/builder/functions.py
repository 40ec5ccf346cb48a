"""Custom function management and test execution."""

from __future__ import annotations

import time
import uuid
from typing import Any

import httpx
import structlog
from pydantic import BaseModel

from atlas_builder.builder.controller import StepController
from atlas_builder.builder.validation import validate_custom_function
from atlas_builder.core.constants import BuilderStep, ImplementationType
from atlas_builder.core.exceptions import FunctionNotFoundError, FunctionValidationError
from atlas_builder.core.types import BuilderState, CustomFunction

logger = structlog.get_logger(__name__)


class FunctionTestResult(BaseModel):
    success: bool
    output: Any = None
    error: str | None = None
    execution_time_ms: int = 0


class FunctionManager:
    """Adds, removes and toggles custom functions in the ``tools`` section.

    Args:
        controller: Controller through which the tools section is replaced.
        timeout: HTTP timeout in seconds for :meth:`test_function`.
        transport: Optional ``httpx`` transport, used by tests.
    """

    def __init__(
        self,
        controller: StepController,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.controller = controller
        self._timeout = timeout
        self._transport = transport

    async def add_function(
        self, builder_id: str, owner_id: str, function: CustomFunction
    ) -> CustomFunction:
        """Validate *function*, give it an id, and append it to the agent.

        Raises:
            FunctionValidationError: If the definition is invalid or its name
                is already used by another function of this agent.
        """
        errors = validate_custom_function(function)
        state = await self.controller.get_state(builder_id, owner_id)
        if any(f.name == function.name for f in state.config.tools.functions):
            errors.append(f"Function name '{function.name}' is already in use")
        if errors:
            raise FunctionValidationError(
                f"Function validation failed: {', '.join(errors)}",
                details={"errors": errors},
            )

        added = function.model_copy(update={"id": f"func_{uuid.uuid4().hex}"}, deep=True)
        tools = state.config.tools.model_copy(deep=True)
        tools.functions.append(added)
        await self.controller.update_step(builder_id, owner_id, BuilderStep.TOOLS, tools)
        logger.info(
            "functions.added", builder_id=builder_id, function=added.name, function_id=added.id
        )
        return added

    async def remove_function(
        self, builder_id: str, owner_id: str, function_id: str
    ) -> BuilderState:
        state = await self.controller.get_state(builder_id, owner_id)
        tools = state.config.tools.model_copy(deep=True)
        remaining = [f for f in tools.functions if f.id != function_id]
        if len(remaining) == len(tools.functions):
            raise FunctionNotFoundError(
                f"Function '{function_id}' not found in '{builder_id}'",
                details={"function_id": function_id},
            )
        tools.functions = remaining
        return await self.controller.update_step(
            builder_id, owner_id, BuilderStep.TOOLS, tools
        )

    async def set_enabled(
        self, builder_id: str, owner_id: str, function_id: str, enabled: bool
    ) -> BuilderState:
        state = await self.controller.get_state(builder_id, owner_id)
        tools = state.config.tools.model_copy(deep=True)
        for func in tools.functions:
            if func.id == function_id:
                func.enabled = enabled
                break
        else:
            raise FunctionNotFoundError(
                f"Function '{function_id}' not found in '{builder_id}'",
                details={"function_id": function_id},
            )
        return await self.controller.update_step(
            builder_id, owner_id, BuilderStep.TOOLS, tools
        )

    async def test_function(
        self, function: CustomFunction, payload: dict[str, Any]
    ) -> FunctionTestResult:
        """Run *function* once against *payload*.

        Only ``api_call`` functions can be executed: the payload is POSTed as
        JSON to the endpoint with the configured headers.  Failures are
        reported in the result, never raised.
        """
        impl = function.implementation
        if impl.type != ImplementationType.API_CALL:
            return FunctionTestResult(
                success=False,
                error=f"Function type '{impl.type}' cannot be test-run",
            )
        if not impl.endpoint:
            return FunctionTestResult(success=False, error="API endpoint not configured")

        t0 = time.monotonic()
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                resp = await client.post(
                    impl.endpoint,
                    json=payload,
                    headers={"Content-Type": "application/json", **impl.headers},
                )
            resp.raise_for_status()
            output = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(
                "functions.test_failed", function=function.name, error=str(exc)
            )
            return FunctionTestResult(
                success=False,
                error=f"API call failed: {exc}",
                execution_time_ms=int((time.monotonic() - t0) * 1000),
            )

        return FunctionTestResult(
            success=True,
            output=output,
            execution_time_ms=int((time.monotonic() - t0) * 1000),
        )
