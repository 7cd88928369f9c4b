"""Tool types and the function-backed tool implementations."""

from __future__ import annotations

import asyncio
import functools
import inspect
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal, get_type_hints

from pydantic import BaseModel, ConfigDict, create_model

from braid.model import ToolResultBlock, ToolUseBlock

if TYPE_CHECKING:
    from braid.kernel.cancel import CancellationToken

ToolUse = ToolUseBlock
ToolResult = ToolResultBlock


class ToolSpec(BaseModel):
    """Tool description advertised to the model each turn."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    input_schema: dict[str, Any]


@dataclass
class ToolContext:
    """What a tool gets to see besides its input."""

    tool_use: ToolUse
    agent: Any = None
    cancel_token: CancellationToken | None = None
    invocation_state: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolStreamEvent:
    """Intermediate progress reported by a running tool."""

    tool_use: ToolUse
    data: Any
    type: Literal["tool_stream"] = "tool_stream"


class Tool(ABC):
    """A capability the model can call.

    ``stream`` yields any number of :class:`ToolStreamEvent` values and then
    exactly one :class:`ToolResult` as its final item.
    """

    @property
    @abstractmethod
    def spec(self) -> ToolSpec: ...

    @property
    def name(self) -> str:
        return self.spec.name

    @abstractmethod
    def stream(self, tool_use: ToolUse, context: ToolContext) -> AsyncIterator[ToolStreamEvent | ToolResult]: ...


ToolCallback = Callable[[Any, ToolContext], Any]

_NOTHING = object()


class FunctionTool(Tool):
    """Wrap a callable ``(input, context)`` as a tool.

    The callable may be sync, async, or an async generator. Sync callables
    run in a worker thread so a batch of them runs concurrently. For
    generators, every yielded item but the last is reported as progress and
    the last one becomes the result. Return values are converted with
    :meth:`ToolResult.success` unless they already are a ``ToolResult``.
    Exceptions propagate to the registry, which reports them as error results.
    """

    def __init__(self, func: ToolCallback, spec: ToolSpec) -> None:
        self._func = func
        self._spec = spec
        self._blocking = not _is_async_callable(func)

    @property
    def spec(self) -> ToolSpec:
        return self._spec

    def _call(self, tool_use: ToolUse, context: ToolContext) -> Any:
        return self._func(tool_use.input, context)

    async def stream(self, tool_use: ToolUse, context: ToolContext) -> AsyncIterator[ToolStreamEvent | ToolResult]:
        if self._blocking:
            outcome = await asyncio.to_thread(self._call, tool_use, context)
        else:
            outcome = self._call(tool_use, context)
        if inspect.isasyncgen(outcome):
            last: Any = _NOTHING
            async for item in outcome:
                if last is not _NOTHING:
                    yield ToolStreamEvent(tool_use=tool_use, data=last)
                last = item
            outcome = None if last is _NOTHING else last
        elif inspect.isawaitable(outcome):
            outcome = await outcome

        if isinstance(outcome, ToolResultBlock):
            yield outcome
        else:
            yield ToolResult.success(tool_use.tool_use_id, "" if outcome is None else outcome)


class DecoratedFunctionTool(FunctionTool):
    """A plain Python function exposed as a tool by :func:`tool`.

    Keyword arguments are validated against a pydantic model derived from the
    function signature before the call. A parameter named ``tool_context`` or
    annotated with :class:`ToolContext` receives the context.
    """

    def __init__(self, func: Callable[..., Any], name: str | None = None, description: str | None = None) -> None:
        self._target = func
        hints = get_type_hints(func)
        self._context_param: str | None = None
        fields: dict[str, Any] = {}
        for param in inspect.signature(func).parameters.values():
            annotation = hints.get(param.name, Any)
            if param.name == "tool_context" or annotation is ToolContext:
                self._context_param = param.name
                continue
            default = ... if param.default is inspect.Parameter.empty else param.default
            fields[param.name] = (annotation, default)

        tool_name = name or func.__name__
        self._input_model: type[BaseModel] = create_model(f"{_camel(tool_name)}Input", **fields)
        spec = ToolSpec(
            name=tool_name,
            description=description or _first_paragraph(inspect.getdoc(func)) or tool_name,
            input_schema=self._input_model.model_json_schema(),
        )
        super().__init__(self._invoke, spec)
        self._blocking = not _is_async_callable(func)
        functools.update_wrapper(self, func)

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self._target(*args, **kwargs)

    def _invoke(self, input: Any, context: ToolContext) -> Any:
        validated = self._input_model.model_validate(input if input is not None else {})
        kwargs = {name: getattr(validated, name) for name in type(validated).model_fields}
        if self._context_param is not None:
            kwargs[self._context_param] = context
        return self._target(**kwargs)


def tool(
    func: Callable[..., Any] | None = None,
    *,
    name: str | None = None,
    description: str | None = None,
) -> Any:
    """Turn a function into a tool.

    Example:
        @tool
        def add(a: int, b: int) -> int:
            \"\"\"Add two numbers.\"\"\"
            return a + b

        registry.register(add)
    """
    def decorator(fn: Callable[..., Any]) -> DecoratedFunctionTool:
        return DecoratedFunctionTool(fn, name=name, description=description)

    if func is not None:
        return decorator(func)
    return decorator


def _is_async_callable(func: Callable[..., Any]) -> bool:
    while isinstance(func, functools.partial):
        func = func.func
    if not inspect.isfunction(func) and not inspect.ismethod(func):
        func = getattr(func, "__call__", func)
    return inspect.iscoroutinefunction(func) or inspect.isasyncgenfunction(func)


def _first_paragraph(doc: str | None) -> str:
    if not doc:
        return ""
    return doc.strip().split("\n\n", 1)[0].replace("\n", " ")


def _camel(name: str) -> str:
    return "".join(part.capitalize() for part in name.replace("-", "_").split("_")) or "Tool"
