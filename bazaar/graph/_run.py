"""
Graph runner — thin layer over nodnod.

compose() builds an agent for the target node, seeds a scope with the inputs
(keyed by runtime type) and hands back the target once every dependency has
resolved.
"""

from __future__ import annotations

from typing import Any, cast

from nodnod import EventLoopAgent, Node, Scope, Value


async def compose[T](target: type[T], *inputs: object) -> T:
    """
    Resolve target and everything it depends on.

    Nodes without a path between them run concurrently. An exception raised
    by any node's __compose__ propagates unchanged.

    Example:
        quote = await compose(QuoteNode, request, ctx)
    """
    agent = EventLoopAgent.build({cast(type[Node[Any, Any]], target)})
    scope = Scope(detail=f"compose:{target.__name__}")

    async with scope:
        for value in inputs:
            scope.push(Value(type(value), value))
        await agent.run(scope, {})

        resolved = scope.get(target)
        if resolved is None:
            raise LookupError(f"{target.__name__} was not produced")
        return cast(T, resolved.value)


__all__ = ("compose",)
