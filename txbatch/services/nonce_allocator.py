"""Per-address nonce leases shared by concurrent batch runs."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import Callable

logger = structlog.get_logger(__name__)

DEFAULT_LEASE_TTL_SECONDS = 30.0


@dataclass
class NonceLease:
    """Next nonce for one address plus the lock serializing its allocations."""

    next_nonce: int | None = None
    lock: threading.Lock = field(default_factory=threading.Lock)
    expiry: threading.Timer | None = None


class NonceAllocator:
    """Hands out nonces per sender, reading the network only once per lease.

    The first allocation for an address reads the pending transaction count;
    later ones increment locally. Each address has its own lock, so different
    senders never wait on each other.
    """

    def __init__(self, lease_ttl_seconds: float = DEFAULT_LEASE_TTL_SECONDS) -> None:
        self._ttl = lease_ttl_seconds
        self._leases: dict[str, NonceLease] = {}
        self._registry_lock = threading.Lock()

    @staticmethod
    def _key(address: str) -> str:
        return address.lower()

    def _acquire_lease(self, key: str) -> NonceLease:
        with self._registry_lock:
            lease = self._leases.get(key)
            if lease is None:
                lease = NonceLease()
                self._leases[key] = lease
            if lease.expiry is not None:
                lease.expiry.cancel()
                lease.expiry = None
            return lease

    def allocate(self, address: str, fetch: Callable[[str], int]) -> int:
        """Return the next nonce for `address`.

        `fetch` is only called when the lease holds no nonce yet. If it raises, the
        error reaches this caller alone and the next caller fetches again.
        """
        lease = self._acquire_lease(self._key(address))
        with lease.lock:
            if lease.next_nonce is None:
                nonce = fetch(address)
                logger.debug("nonce_lease_started", address=address, nonce=nonce)
            else:
                nonce = lease.next_nonce
            lease.next_nonce = nonce + 1
            return nonce

    def invalidate(self, address: str) -> None:
        """Forget the local counter so the next allocation re-reads the network."""
        with self._registry_lock:
            lease = self._leases.get(self._key(address))
        if lease is None:
            return
        with lease.lock:
            lease.next_nonce = None
        logger.debug("nonce_lease_invalidated", address=address)

    def release(self, address: str) -> None:
        """Drop the lease once it has been idle for the quiescence window."""
        key = self._key(address)
        with self._registry_lock:
            lease = self._leases.get(key)
            if lease is None:
                return
            if lease.expiry is not None:
                lease.expiry.cancel()
            timer = threading.Timer(self._ttl, self._expire)
            timer.args = (key, lease, timer)
            timer.daemon = True
            lease.expiry = timer
            timer.start()

    def _expire(self, key: str, lease: NonceLease, timer: threading.Timer) -> None:
        with self._registry_lock:
            # Superseded when an allocation or a later release replaced the timer.
            if self._leases.get(key) is lease and lease.expiry is timer:
                del self._leases[key]
                logger.debug("nonce_lease_expired", address=key)

    def has_lease(self, address: str) -> bool:
        with self._registry_lock:
            return self._key(address) in self._leases

    def close(self) -> None:
        """Cancel pending expiry timers and drop every lease."""
        with self._registry_lock:
            for lease in self._leases.values():
                if lease.expiry is not None:
                    lease.expiry.cancel()
            self._leases.clear()
