#!/usr/bin/env python3
"""
Tool-using agent example with the LiteLLM model provider.

This agent can:
- Fetch URL content
- Calculate mathematical expressions

Text is streamed to the terminal as it arrives and every tool call is
printed by a hook. Press Ctrl-C during a run to cancel it.

Requirements:
- BRAID_MODEL_ID (e.g. ``openai/gpt-4o-mini``) plus the provider's API key,
  in the environment or a .env file
"""

from __future__ import annotations

import argparse
import ast
import asyncio
import operator
import re
import urllib.request

from braid import Agent, AgentConfig, BeforeToolsEvent, AfterToolsEvent, CancellationToken, HookRegistry, tool
from braid.errors import AgentCancelledError, MaxIterationsError
from braid.logging import setup_logging
from braid.model import ContentBlockDeltaEvent, TextDelta
from braid.providers.litellm import LiteLLMModel


# ==================== Tools ====================

@tool
def get_url(url: str, max_chars: int = 4000) -> str:
    """Fetch a web page and return its visible text."""
    request = urllib.request.Request(url, headers={"User-Agent": "braid-example/0.1"})
    with urllib.request.urlopen(request, timeout=10) as response:
        html = response.read().decode("utf-8", errors="replace")
    text = re.sub(r"<(script|style)[^>]*>.*?</\1>", " ", html, flags=re.S | re.I)
    text = re.sub(r"<[^>]+>", " ", text)
    return re.sub(r"\s+", " ", text).strip()[:max_chars]


_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Pow: operator.pow,
    ast.Mod: operator.mod,
    ast.USub: operator.neg,
}


def _evaluate(node: ast.AST) -> float:
    if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)):
        return node.value
    if isinstance(node, ast.BinOp) and type(node.op) in _OPERATORS:
        return _OPERATORS[type(node.op)](_evaluate(node.left), _evaluate(node.right))
    if isinstance(node, ast.UnaryOp) and type(node.op) in _OPERATORS:
        return _OPERATORS[type(node.op)](_evaluate(node.operand))
    raise ValueError(f"Unsupported expression: {ast.dump(node)}")


@tool
def calculate(expression: str) -> float:
    """Evaluate an arithmetic expression such as ``(3 + 4) * 2``."""
    return _evaluate(ast.parse(expression, mode="eval").body)


# ==================== Hooks ====================

class PrintToolCalls:
    """Print tool uses and their outcome."""

    def register_hooks(self, registry: HookRegistry) -> None:
        registry.add_callback(BeforeToolsEvent, self.before_tools)
        registry.add_callback(AfterToolsEvent, self.after_tools)

    def before_tools(self, event: BeforeToolsEvent) -> None:
        for call in event.message.tool_uses():
            print(f"\n  -> {call.name}({call.input})")

    def after_tools(self, event: AfterToolsEvent) -> None:
        for result in event.message.content:
            print(f"  <- {result.tool_use_id}: {result.status}")


# ==================== Runner ====================

async def run_task(agent: Agent, task: str) -> None:
    token = CancellationToken()
    loop = asyncio.get_running_loop()
    run = loop.create_task(_stream(agent, task, token))
    try:
        await asyncio.shield(run)
    except asyncio.CancelledError:
        token.cancel("interrupted")
        await asyncio.gather(run, return_exceptions=True)


async def _stream(agent: Agent, task: str, token: CancellationToken) -> None:
    try:
        async for event in agent.stream(task, cancel_token=token):
            if isinstance(event, ContentBlockDeltaEvent) and isinstance(event.delta, TextDelta):
                print(event.delta.text, end="", flush=True)
        print()
    except AgentCancelledError as exc:
        print(f"\n[cancelled: {exc}]")
    except MaxIterationsError as exc:
        print(f"\n[stopped: {exc}]")


async def main():
    """Run the tool-using assistant."""
    parser = argparse.ArgumentParser(description="Tool-using assistant built on braid")
    parser.add_argument(
        "task", nargs="?", type=str,
        help="Task to perform (optional, for interactive mode)"
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    setup_logging("DEBUG" if args.debug else "WARNING")
    model = LiteLLMModel.from_env(quiet=not args.debug)
    agent = Agent(
        model,
        tools=[get_url, calculate],
        hooks=[PrintToolCalls()],
        config=AgentConfig.from_env(system_prompt="You are a concise research assistant."),
    )

    print("=" * 60)
    print(f"braid assistant ({model.config.model_id})")
    print("=" * 60)
    print(f"Available tools: {', '.join(agent.tool_names)}")
    print("Type 'quit' to exit")
    print()

    if args.task:
        await run_task(agent, args.task)
        return

    while True:
        task = input("Task: ").strip()
        if task.lower() in ("quit", "exit", "q"):
            print("Goodbye!")
            break
        if not task:
            continue
        await run_task(agent, task)
        print("\n" + "=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
