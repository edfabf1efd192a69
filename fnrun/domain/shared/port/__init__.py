from typing import Protocol


class Port(Protocol):
    """Marker base for outbound ports implemented in infrastructure."""
