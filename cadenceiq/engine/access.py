"""Access gate for the paid unlock.

A token is issued when a checkout session is created and redeemed
when the buyer lands on the success URL. Each token unlocks once.
"""

from datetime import datetime
from typing import Optional

from cadenceiq.core.logging import get_logger
from cadenceiq.db.database import ACCESS_KEY, SnapshotStore

logger = get_logger(__name__)


class AccessGate:
    """Tracks issued and redeemed access tokens.

    State is persisted as one snapshot:
        {"tokens": {token: {"used": bool}}, "unlocked_at": iso-or-null}
    """

    def __init__(self, snapshots: SnapshotStore):
        self._snapshots = snapshots
        state = snapshots.load(ACCESS_KEY, None) or {}
        self._tokens: dict[str, dict] = dict(state.get("tokens", {}))
        self._unlocked_at: Optional[str] = state.get("unlocked_at")

    def _persist(self) -> None:
        self._snapshots.save(
            ACCESS_KEY, {"tokens": self._tokens, "unlocked_at": self._unlocked_at}
        )

    @property
    def is_unlocked(self) -> bool:
        return self._unlocked_at is not None

    def issue(self, token: str) -> None:
        """Record a token minted for a checkout session."""
        self._tokens[token] = {"used": False}
        self._persist()
        logger.info("Access token issued")

    def redeem(self, token: str) -> bool:
        """Unlock with a token.

        Returns:
            True if the token was issued and unused; it is then marked used.
            False for unknown or already-used tokens.
        """
        entry = self._tokens.get(token)
        if entry is None or entry.get("used"):
            logger.warning("Access token rejected")
            return False

        entry["used"] = True
        if self._unlocked_at is None:
            self._unlocked_at = datetime.now().isoformat()
        self._persist()
        logger.info("Access unlocked")
        return True
