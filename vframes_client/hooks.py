"""Hook system for API clients.

Hooks are plain callables receiving a call context object. Clients declare
built-in hooks (metrics, logging, latency) with ``@with_hooks`` and mark each
remote call with ``@invoke_with_hooks``; callers may pass extra hooks which are
merged after the built-in ones.
"""

import contextlib
import functools
from collections.abc import Awaitable, Callable, Generator
from dataclasses import dataclass, field
from typing import Any, Concatenate

type Hook = Callable[[Any], None]


@dataclass(frozen=True)
class Hooks:
    """Collection of hooks run around every API call.

    Attributes:
        pre_hooks: Run before the call
        post_hooks: Run after the call, whether it succeeded or not
        error_hooks: Run when the call raised, before post hooks
    """

    pre_hooks: list[Hook] = field(default_factory=list)
    post_hooks: list[Hook] = field(default_factory=list)
    error_hooks: list[Hook] = field(default_factory=list)

    def merge(self, other: "Hooks | None") -> "Hooks":
        """Return a new Hooks with ``other``'s hooks appended to ours."""
        if other is None:
            return self
        return Hooks(
            pre_hooks=[*self.pre_hooks, *other.pre_hooks],
            post_hooks=[*self.post_hooks, *other.post_hooks],
            error_hooks=[*self.error_hooks, *other.error_hooks],
        )


@contextlib.contextmanager
def hook_scope[T](context: T, hooks: Hooks) -> Generator[None, Any, None]:
    for hook in hooks.pre_hooks:
        hook(context)
    try:
        yield
    except Exception:
        for hook in hooks.error_hooks:
            hook(context)
        raise
    finally:
        for hook in hooks.post_hooks:
            hook(context)


def with_hooks[C: type](hooks: Hooks) -> Callable[[C], C]:
    """Class decorator installing built-in hooks on every instance.

    The decorated class' ``__init__`` may accept a ``hooks`` keyword argument;
    those user hooks run after the built-in ones.
    """

    def decorator(cls: C) -> C:
        original_init = cls.__init__

        @functools.wraps(original_init)
        def __init__(self: Any, *args: Any, **kwargs: Any) -> None:
            self._hooks = hooks.merge(kwargs.get("hooks"))
            original_init(self, *args, **kwargs)

        cls.__init__ = __init__  # type: ignore[misc]
        return cls

    return decorator


def invoke_with_hooks[S, **P, R](
    context_factory: Callable[[S], Any],
) -> Callable[
    [Callable[Concatenate[S, P], Awaitable[R]]],
    Callable[Concatenate[S, P], Awaitable[R]],
]:
    """Run the instance's hooks around an async method.

    Args:
        context_factory: Builds the hook context from the instance,
            e.g. ``lambda self: ApiCallContext(method="videos.list", verb="GET", id=self.base_url)``
    """

    def decorator(
        func: Callable[Concatenate[S, P], Awaitable[R]],
    ) -> Callable[Concatenate[S, P], Awaitable[R]]:
        @functools.wraps(func)
        async def wrapper(self: S, *args: P.args, **kwargs: P.kwargs) -> R:
            hooks: Hooks = getattr(self, "_hooks", None) or Hooks()
            with hook_scope(context_factory(self), hooks):
                return await func(self, *args, **kwargs)

        return wrapper

    return decorator
