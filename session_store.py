"""
Yönetici girişleri için sunucu tarafı oturum deposu.

Oturumlar süreç belleğinde tutulur ve istemciden bir çerezde saklanan
opak, rastgele bir belirteçle başvurulur. Bitiş süresi oturum her
yazıldığında ileri kayar; süresi dolan girişler okumada ve periyodik
temizlikte silinir.
"""

import asyncio
import copy
import logging
import secrets
import threading
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from config import settings

logger = logging.getLogger(__name__)


class SessionStore:
    """Kayan sona erme penceresine sahip, iş parçacığı güvenli bellek içi oturum deposu."""

    def __init__(self, max_age: Optional[int] = None):
        self.max_age = max_age if max_age is not None else settings.session_max_age
        self.sessions: Dict[str, tuple] = {}
        self.sessions_lock = threading.RLock()
        self.session_stats = {
            'created': 0,
            'destroyed': 0,
            'expired': 0,
        }

    def _expiry(self) -> datetime:
        return datetime.now() + timedelta(seconds=self.max_age)

    def create(self, data: Dict[str, Any]) -> str:
        """Yeni bir oturum kaydet ve belirtecini döndür."""
        token = secrets.token_urlsafe(32)
        with self.sessions_lock:
            self.sessions[token] = (copy.deepcopy(data), self._expiry())
            self.session_stats['created'] += 1
        return token

    def get(self, token: Optional[str]) -> Optional[Dict[str, Any]]:
        """Oturum verisinin kopyasını döndür; yoksa veya süresi dolmuşsa None."""
        if not token:
            return None
        with self.sessions_lock:
            entry = self.sessions.get(token)
            if not entry:
                return None
            data, expires_at = entry
            if datetime.now() >= expires_at:
                # Süresi dolmuş, sil
                del self.sessions[token]
                self.session_stats['expired'] += 1
                return None
            return copy.deepcopy(data)

    def touch(self, token: Optional[str]) -> bool:
        """Canlı bir oturumun bitişini şu andan itibaren tam bir pencereye uzat."""
        if not token:
            return False
        with self.sessions_lock:
            entry = self.sessions.get(token)
            if not entry or datetime.now() >= entry[1]:
                return False
            self.sessions[token] = (entry[0], self._expiry())
            return True

    def destroy(self, token: Optional[str]) -> bool:
        """Bir oturumu kaldır. Kaldırılacak bir şey yoksa False döndürür."""
        if not token:
            return False
        with self.sessions_lock:
            removed = self.sessions.pop(token, None) is not None
            if removed:
                self.session_stats['destroyed'] += 1
            return removed

    def prune_expired(self) -> int:
        """Süresi dolmuş tüm oturumları kaldır ve kaç tanesinin silindiğini döndür."""
        now = datetime.now()
        with self.sessions_lock:
            expired = [t for t, (_, expires_at) in self.sessions.items() if now >= expires_at]
            for token in expired:
                del self.sessions[token]
            self.session_stats['expired'] += len(expired)
        if expired:
            logger.info(f"Pruned {len(expired)} expired session(s)")
        return len(expired)

    def get_stats(self) -> Dict[str, Any]:
        stats = self.session_stats.copy()
        with self.sessions_lock:
            stats['active'] = len(self.sessions)
        return stats


async def prune_periodically(store: SessionStore, interval: Optional[int] = None) -> None:
    """İptal edilene kadar her `interval` saniyede süresi dolmuş oturumları temizle."""
    interval = interval if interval is not None else settings.session_prune_interval
    while True:
        await asyncio.sleep(interval)
        try:
            store.prune_expired()
        except Exception:
            logger.exception("Session prune failed")
