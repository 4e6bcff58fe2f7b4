"""
Cache Redis des sessions de paiement.
- Clé: "payment-session:<session_id>", TTL fixe posé à l'écriture.
- Index par propriétaire: "payment-session-owner:<user_id>" (SET des session_id, même TTL),
  pour retrouver les sessions d'un utilisateur sans parcourir tout le keyspace.
- Lecture sans effet sur le TTL (GET simple).
- Verrous consultatifs (SET NX EX + jeton) pour sérialiser la création de session par
  utilisateur et revendiquer une matérialisation en cours.
"""
import logging
import time
import uuid
from contextlib import contextmanager
from typing import Iterator, List, Optional

import pydantic
import redis

from marketplace import config
from marketplace.infra.redis_client import get_redis
from marketplace.payments.models import PaymentSession
from marketplace.utils.errors import ConflictError

logger = logging.getLogger(__name__)

SESSION_PREFIX = "payment-session:"
OWNER_LOCK_PREFIX = "payment-session-lock:"
OWNER_INDEX_PREFIX = "payment-session-owner:"
MATERIALIZE_CLAIM_PREFIX = "payment-session-materializing:"


def session_key(session_id: str) -> str:
    return f"{SESSION_PREFIX}{session_id}"


def owner_index_key(user_id: str) -> str:
    return f"{OWNER_INDEX_PREFIX}{user_id}"


class SessionStore:
    def __init__(self, client: redis.Redis, ttl_seconds: Optional[int] = None):
        self.client = client
        self.ttl_seconds = ttl_seconds or config.PAYMENT_SESSION_TTL_SECONDS

    # --- primitives clé/valeur ---

    def get_raw(self, key: str) -> Optional[str]:
        return self.client.get(key)

    def set_raw(self, key: str, value: str, ttl_seconds: int) -> None:
        self.client.set(key, value, ex=ttl_seconds)

    def delete_key(self, key: str) -> None:
        self.client.delete(key)

    def list_keys_by_prefix(self, prefix: str) -> List[str]:
        # SCAN plutôt que KEYS: ne bloque pas Redis sur un gros keyspace
        return list(self.client.scan_iter(match=f"{prefix}*", count=500))

    def ttl(self, session_id: str) -> int:
        return self.client.ttl(session_key(session_id))

    # --- sessions ---

    def load(self, key: str) -> Optional[PaymentSession]:
        raw = self.get_raw(key)
        if raw is None:
            return None
        try:
            return PaymentSession.model_validate_json(raw)
        except pydantic.ValidationError:
            logger.warning("sessions.store corrupted session key=%s", key)
            return None

    def get(self, session_id: str) -> Optional[PaymentSession]:
        return self.load(session_key(session_id))

    def save(self, session: PaymentSession) -> None:
        index = owner_index_key(session.user_id)
        with self.client.pipeline() as pipe:
            pipe.set(session_key(session.session_id), session.model_dump_json(), ex=self.ttl_seconds)
            pipe.sadd(index, session.session_id)
            pipe.expire(index, self.ttl_seconds)
            pipe.execute()

    def delete(self, session_id: str, user_id: Optional[str] = None) -> None:
        self.delete_key(session_key(session_id))
        if user_id:
            self.client.srem(owner_index_key(user_id), session_id)

    def sessions_for_owner(self, user_id: str) -> List[PaymentSession]:
        """Sessions vivantes de `user_id` via l'index; les entrées expirées sont retirées de l'index."""
        index = owner_index_key(user_id)
        sessions: List[PaymentSession] = []
        for session_id in sorted(self.client.smembers(index)):
            session = self.get(session_id)
            if session is None or session.user_id != user_id:
                self.client.srem(index, session_id)
                continue
            sessions.append(session)
        return sessions

    def list_sessions(self) -> Iterator[PaymentSession]:
        """Sessions vivantes (une clé expirée entre SCAN et GET est simplement ignorée)."""
        for key in self.list_keys_by_prefix(SESSION_PREFIX):
            session = self.load(key)
            if session is not None:
                yield session

    # --- verrous ---

    def try_acquire(self, name: str, ttl_seconds: int) -> Optional[str]:
        token = uuid.uuid4().hex
        if self.client.set(name, token, nx=True, ex=ttl_seconds):
            return token
        return None

    def release(self, name: str, token: str) -> None:
        if self.client.get(name) == token:
            self.client.delete(name)

    @contextmanager
    def owner_lock(self, user_id: str, ttl_seconds: int = 10, wait_seconds: float = 5.0):
        """
        Verrou consultatif par utilisateur: une seule création de session à la fois.
        Soulève ConflictError si le verrou n'est pas obtenu dans `wait_seconds`.
        """
        name = f"{OWNER_LOCK_PREFIX}{user_id}"
        deadline = time.monotonic() + wait_seconds
        token = self.try_acquire(name, ttl_seconds)
        while token is None:
            if time.monotonic() >= deadline:
                raise ConflictError("Une session de paiement est déjà en cours de création")
            time.sleep(0.05)
            token = self.try_acquire(name, ttl_seconds)
        try:
            yield
        finally:
            self.release(name, token)

    def claim_materialization(self, session_id: str, ttl_seconds: int = 120) -> Optional[str]:
        """Revendique la matérialisation d'une session; None si une autre livraison la traite déjà."""
        return self.try_acquire(f"{MATERIALIZE_CLAIM_PREFIX}{session_id}", ttl_seconds)

    def release_materialization(self, session_id: str, token: str) -> None:
        self.release(f"{MATERIALIZE_CLAIM_PREFIX}{session_id}", token)


def get_session_store() -> SessionStore:
    return SessionStore(get_redis())
