from typing import Protocol, runtime_checkable


@runtime_checkable
class HasLifecycle(Protocol):
    async def on_startup(self) -> None:
        """Called when the host application starts."""
        ...

    async def on_shutdown(self) -> None:
        """Called when the host application shuts down."""
        ...
