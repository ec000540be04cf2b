"""
Browser Pool Data Models

Defines the record the pool keeps for every browser it manages.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from ..renderer import RenderEngine


class ResourceState(str, Enum):
    """Lifecycle states of a pooled browser."""

    IDLE = "idle"                # In the idle list, ready for checkout
    CHECKED_OUT = "checked_out"  # Held by exactly one job
    RETIRED = "retired"          # Closed or discarded, never handed out again


@dataclass
class PooledResource:
    """
    A pool-owned handle to one rendering engine.

    The usage counter lives here rather than in a side table so that the
    record and the browser it tracks can never drift apart.
    """

    resource_id: int
    handle: RenderEngine
    created_at: datetime = field(default_factory=datetime.utcnow)
    usage_count: int = 0         # Completed checkouts
    state: ResourceState = ResourceState.CHECKED_OUT
    last_used_at: Optional[datetime] = None

    @property
    def is_connected(self) -> bool:
        try:
            return bool(self.handle.is_connected())
        except Exception:
            return False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "resource_id": self.resource_id,
            "state": self.state.value,
            "usage_count": self.usage_count,
            "connected": self.is_connected,
            "created_at": self.created_at.isoformat(),
            "last_used_at": self.last_used_at.isoformat() if self.last_used_at else None,
        }
