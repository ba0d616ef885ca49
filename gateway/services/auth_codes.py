"""
Short-lived code handoff between the web session and the desktop app.

The web session posts its credential and receives a 6-digit code; the user
types the code into the desktop app, which redeems it (proving it is the
desktop client with a pre-shared secret) and receives the credential. The
credential never appears in a URL or a long-lived cookie.

Code lifecycle::

    ISSUED --redeem--> REDEEMED   (credential erased, tombstone kept until expiry)
    ISSUED --ttl-----> EXPIRED    (dropped by the next issue/redeem sweep)

A second redemption of a REDEEMED code reports "gone". An EXPIRED code is
reported exactly like a code that never existed. There is no background
timer: every call first sweeps expired records.
"""
import abc
import enum
import json
import logging
import math
import re
import secrets
import threading
import time
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

import redis

from ..core.errors import AuthenticationError, AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..core.security import request_from_origins, secrets_match

logger = logging.getLogger(__name__)

CODE_PATTERN = re.compile(r"[0-9]{6}")


def generate_code() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"


@dataclass
class AuthCodeRecord:
    code: str
    credential: Optional[str]
    user: Any
    expires_at: float
    used: bool = False

    def expired(self, now: float) -> bool:
        return now >= self.expires_at


class RedeemStatus(enum.Enum):
    REDEEMED = "redeemed"
    ALREADY_USED = "already_used"
    MISSING = "missing"


class CodeStore(abc.ABC):
    """Storage for live auth codes. Only the broker touches it."""

    @abc.abstractmethod
    def add(self, record: AuthCodeRecord, now: float) -> bool:
        """Store ``record`` unless its code is still live. Returns False on collision."""

    @abc.abstractmethod
    def consume(self, code: str, now: float) -> Tuple[RedeemStatus, Optional[AuthCodeRecord]]:
        """Atomically mark a live code used and return the record as it was."""

    @abc.abstractmethod
    def purge_expired(self, now: float) -> int:
        """Drop expired records; returns how many were dropped."""


class InMemoryCodeStore(CodeStore):
    def __init__(self):
        self._records: Dict[str, AuthCodeRecord] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._records)

    def add(self, record: AuthCodeRecord, now: float) -> bool:
        with self._lock:
            existing = self._records.get(record.code)
            if existing is not None and not existing.expired(now):
                return False
            self._records[record.code] = record
            return True

    def consume(self, code: str, now: float) -> Tuple[RedeemStatus, Optional[AuthCodeRecord]]:
        with self._lock:
            record = self._records.get(code)
            if record is None or record.expired(now):
                self._records.pop(code, None)
                return RedeemStatus.MISSING, None
            if record.used:
                return RedeemStatus.ALREADY_USED, None
            redeemed = replace(record)
            record.used = True
            record.credential = None
            record.user = None
            return RedeemStatus.REDEEMED, redeemed

    def purge_expired(self, now: float) -> int:
        with self._lock:
            expired = [code for code, record in self._records.items() if record.expired(now)]
            for code in expired:
                del self._records[code]
            return len(expired)


class RedisCodeStore(CodeStore):
    """Codes shared between instances; Redis key expiry does the sweeping."""

    def __init__(self, client: redis.Redis, prefix: str = "authcode"):
        self.redis = client
        self.prefix = prefix

    def _key(self, code: str) -> str:
        return f"{self.prefix}:{code}"

    def add(self, record: AuthCodeRecord, now: float) -> bool:
        ttl_ms = max(1, math.ceil((record.expires_at - now) * 1000))
        value = json.dumps({
            "credential": record.credential,
            "user": record.user,
            "expiresAt": record.expires_at,
            "used": record.used,
        })
        return bool(self.redis.set(self._key(record.code), value, px=ttl_ms, nx=True))

    def consume(self, code: str, now: float) -> Tuple[RedeemStatus, Optional[AuthCodeRecord]]:
        key = self._key(code)
        with self.redis.pipeline() as pipe:
            try:
                pipe.watch(key)
                raw = pipe.get(key)
                if raw is None:
                    return RedeemStatus.MISSING, None
                data = json.loads(raw)
                if now >= data["expiresAt"]:
                    return RedeemStatus.MISSING, None
                if data.get("used"):
                    return RedeemStatus.ALREADY_USED, None
                ttl_ms = pipe.pttl(key)
                pipe.multi()
                pipe.set(key, json.dumps({"used": True, "expiresAt": data["expiresAt"]}), px=max(1, ttl_ms))
                pipe.execute()
            except redis.WatchError:
                # Another redeemer changed the record between WATCH and EXEC.
                return RedeemStatus.ALREADY_USED, None
        return RedeemStatus.REDEEMED, AuthCodeRecord(
            code=code,
            credential=data["credential"],
            user=data.get("user"),
            expires_at=data["expiresAt"],
        )

    def purge_expired(self, now: float) -> int:
        return 0


@dataclass(frozen=True)
class IssuedCode:
    code: str
    expires_in: int


@dataclass(frozen=True)
class RedeemedCode:
    credential: str
    user: Any = None


class AuthCodeBroker:
    def __init__(
        self,
        store: CodeStore,
        allowed_origins: Iterable[str],
        desktop_secret: Optional[str],
        ttl_seconds: int = 300,
        clock: Callable[[], float] = time.time,
        code_factory: Callable[[], str] = generate_code,
    ):
        self.store = store
        self.allowed_origins = list(allowed_origins)
        self.desktop_secret = desktop_secret
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self.code_factory = code_factory

    def check_origin(self, origin: Optional[str], referer: Optional[str]) -> None:
        if not request_from_origins(self.allowed_origins, origin, referer):
            logger.warning("Auth code request from disallowed origin %r", origin or referer)
            raise AuthorizationError("Auth codes can only be requested from the official site")

    def check_desktop_secret(self, presented: Optional[str]) -> None:
        if not secrets_match(presented, self.desktop_secret):
            raise AuthenticationError("Unrecognized client")

    def issue(
        self,
        credential: Optional[str],
        user: Any = None,
        origin: Optional[str] = None,
        referer: Optional[str] = None,
    ) -> IssuedCode:
        self.check_origin(origin, referer)
        if not isinstance(credential, str) or not credential.strip():
            raise ValidationError(["credential is required"], message="Missing credential")
        now = self.clock()
        self.store.purge_expired(now)
        while True:
            record = AuthCodeRecord(
                code=self.code_factory(),
                credential=credential,
                user=user,
                expires_at=now + self.ttl_seconds,
            )
            if self.store.add(record, now):
                break
        logger.info("Issued auth code expiring in %ss", self.ttl_seconds)
        return IssuedCode(code=record.code, expires_in=self.ttl_seconds)

    def redeem(self, code: Optional[str], caller_secret: Optional[str]) -> RedeemedCode:
        self.check_desktop_secret(caller_secret)
        if not code or not CODE_PATTERN.fullmatch(code):
            raise ValidationError(["code must be exactly 6 digits"], message="Malformed code")
        now = self.clock()
        self.store.purge_expired(now)
        status, record = self.store.consume(code, now)
        if status is RedeemStatus.MISSING:
            logger.info("Auth code redemption failed: unknown or expired")
            raise NotFoundError("Code not found or expired")
        if status is RedeemStatus.ALREADY_USED:
            logger.info("Auth code redemption refused: already used")
            raise ConflictError("Code has already been used")
        logger.info("Auth code redeemed")
        return RedeemedCode(credential=record.credential, user=record.user)
