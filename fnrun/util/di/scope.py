"""Custom Dishka scopes for fnrun."""

from dishka import BaseScope, new_scope


class Scope(BaseScope):  # type: ignore[misc]  # BaseScope is designed to be subclassed
    """fnrun dependency injection scopes.

    Hierarchy: APP -> UOW

    - APP: Process lifetime (descriptor, sidecar client, tracing, triggers)
    - UOW: Unit of Work (one HTTP request or one broker delivery)
    """

    APP = new_scope("APP")
    UOW = new_scope("UOW")
