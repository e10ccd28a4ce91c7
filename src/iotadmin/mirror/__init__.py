"""Object mirror layer.

This package is the single source of truth for how object-store change
notifications are merged into the process-local view of the store.
"""

from iotadmin.mirror.events import ObjectChange
from iotadmin.mirror.store import ObjectMirror, triggers_update_check

__all__ = ["ObjectChange", "ObjectMirror", "triggers_update_check"]
