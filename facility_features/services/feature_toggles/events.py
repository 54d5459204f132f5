"""Change records emitted after every committed configuration mutation.

Synopsis:
The toggle service does not store an audit trail; it hands a ConfigChange to
each registered listener once the write has committed and locks are released.
An audit collaborator subscribes here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from .results import GLOBAL_SCOPE

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConfigChange:
    action: str
    facility_id: Optional[str]
    changes: Dict[str, Tuple[bool, bool]]
    forced: bool = False
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def scope(self) -> str:
        return self.facility_id if self.facility_id is not None else GLOBAL_SCOPE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action,
            "scope": self.scope,
            "facility_id": self.facility_id,
            "changes": {
                feature_id: {"before": before, "after": after}
                for feature_id, (before, after) in self.changes.items()
            },
            "forced": self.forced,
            "occurred_at": self.occurred_at.isoformat(),
        }


ChangeListener = Callable[[ConfigChange], None]


def diff_configs(before: Mapping[str, bool], after: Mapping[str, bool]) -> Dict[str, Tuple[bool, bool]]:
    keys = list(dict.fromkeys(list(before.keys()) + list(after.keys())))
    return {
        key: (bool(before.get(key, False)), bool(after.get(key, False)))
        for key in keys
        if bool(before.get(key, False)) != bool(after.get(key, False))
    }


def log_config_change(change: ConfigChange) -> None:
    if not change.changes:
        logger.debug("Feature %s on %s committed with no effective changes", change.action, change.scope)
        return
    summary = ", ".join(
        f"{feature_id}={'on' if after else 'off'}" for feature_id, (_, after) in change.changes.items()
    )
    if change.forced:
        logger.warning("Forced feature %s on %s: %s", change.action, change.scope, summary)
    else:
        logger.info("Feature %s on %s: %s", change.action, change.scope, summary)
