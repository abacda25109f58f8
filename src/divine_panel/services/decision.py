"""Access decisions for visiting clients.

Rules are applied in a fixed order and the first match wins:

1. An IP ban denies, whatever the client record says.
2. A request without a client id is allowed, unless the access lockdown is on.
3. A banned client is denied and shown its ban message.
4. A suspicious client is allowed with its status surfaced, and nothing else
   is checked.
5. An unverified client whose telemetry matches the reclassification
   predicate becomes suspicious. This writes to the store. Under access
   lockdown the flipped client is denied like any other non-verified client;
   only an operator-flagged suspicious client (rule 4) skips the lockdown.
6. Under access lockdown only verified clients are allowed.
7. Everyone else is allowed.
"""

from __future__ import annotations

from typing import Final

from divine_panel.schemas.access import (
    STATUS_BANNED,
    STATUS_SUSPICIOUS,
    STATUS_UNVERIFIED,
    STATUS_VERIFIED,
    Decision,
)
from divine_panel.services.access_store import AccessStore, ReclassificationPredicate
from divine_panel.services.heuristics import looks_like_desktop

REASON_IP_BAN: Final = "ip_ban"
REASON_MISSING_CLIENT_ID: Final = "missing_client_id"
REASON_LOCKDOWN_MISSING_CLIENT_ID: Final = "lockdown_missing_client_id"
REASON_BANNED: Final = "banned"
REASON_SUSPICIOUS: Final = "suspicious"
REASON_HEURISTIC_SUSPICIOUS: Final = "heuristic_suspicious"
REASON_LOCKDOWN_UNKNOWN: Final = "lockdown_unknown"
REASON_LOCKDOWN_VERIFIED: Final = "lockdown_verified"
REASON_LOCKDOWN_NOT_VERIFIED: Final = "lockdown_not_verified"
REASON_UNKNOWN_ALLOWED: Final = "unknown_allowed"
REASON_ALLOWED: Final = "allowed"


class DecisionEngine:
    """Evaluates visitors against the access store."""

    def __init__(
        self,
        store: AccessStore,
        predicate: ReclassificationPredicate = looks_like_desktop,
    ) -> None:
        self._store = store
        self._predicate = predicate

    def evaluate_and_reclassify(self, client_id: str | None, source_ip: str | None) -> Decision:
        """Decide whether a visitor may proceed.

        This is not a read-only query: an unverified client whose telemetry
        matches the predicate is moved to suspicious and the store persisted
        before the decision is returned (`Decision.reclassified` is then True).

        Args:
            client_id: Self-reported client token, or None when absent.
            source_ip: Normalized source address of the request.

        Returns:
            The decision for this request.
        """
        ip_ban = self._store.get_ip_ban(source_ip)
        if ip_ban is not None:
            return Decision(
                allowed=False,
                banned=True,
                status=STATUS_BANNED,
                reason=REASON_IP_BAN,
                ban_message=ip_ban.message,
            )

        lockdown = self._store.lockdown
        if not client_id:
            if lockdown:
                return Decision(allowed=False, reason=REASON_LOCKDOWN_MISSING_CLIENT_ID)
            return Decision(allowed=True, reason=REASON_MISSING_CLIENT_ID)

        record = self._store.get_client(client_id)
        if record is not None:
            if record.status == STATUS_BANNED:
                return Decision(
                    allowed=False,
                    banned=True,
                    status=STATUS_BANNED,
                    reason=REASON_BANNED,
                    ban_message=record.ban_message,
                )
            if record.status == STATUS_SUSPICIOUS:
                return Decision(allowed=True, status=STATUS_SUSPICIOUS, reason=REASON_SUSPICIOUS)
            if record.status == STATUS_UNVERIFIED:
                flipped = self._store.reclassify_if_unverified(record.client_id, self._predicate)
                if flipped is not None:
                    if lockdown:
                        return Decision(
                            allowed=False,
                            status=STATUS_SUSPICIOUS,
                            reason=REASON_LOCKDOWN_NOT_VERIFIED,
                            reclassified=True,
                        )
                    return Decision(
                        allowed=True,
                        status=STATUS_SUSPICIOUS,
                        reason=REASON_HEURISTIC_SUSPICIOUS,
                        reclassified=True,
                    )

        if lockdown:
            if record is None:
                return Decision(allowed=False, reason=REASON_LOCKDOWN_UNKNOWN)
            if record.status == STATUS_VERIFIED:
                return Decision(allowed=True, status=STATUS_VERIFIED, reason=REASON_LOCKDOWN_VERIFIED)
            return Decision(allowed=False, status=record.status, reason=REASON_LOCKDOWN_NOT_VERIFIED)

        if record is None:
            return Decision(allowed=True, reason=REASON_UNKNOWN_ALLOWED)
        return Decision(allowed=True, status=record.status, reason=REASON_ALLOWED)
