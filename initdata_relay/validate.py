# initdata_relay/validate.py
"""
Telegram Web-App initData verification + re-signing.

    secret_key = HMAC_SHA256(key="WebAppData", msg=bot_token)
    hash       = HMAC_SHA256(key=secret_key, msg=data_check_string)

The inbound payload is checked against the bot token, then `client_id` is
appended and the payload is signed again with the client secret so the
downstream identity service can trust it.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import time
from typing import NamedTuple, Optional, Tuple, Union
from urllib.parse import parse_qsl, urlencode

logger = logging.getLogger(__name__)

WEB_APP_DATA = b"WebAppData"

Field = Tuple[str, str]
Secret = Union[str, bytes]


# ──────────────────────────────────────────────────────────
# Errors
# ──────────────────────────────────────────────────────────
class RelayError(Exception):
    status_code = 500
    message = "Server error"

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ConfigurationError(RelayError):
    status_code = 500


class MissingSignature(RelayError):
    status_code = 401
    message = "Hash parameter is missing"


class InvalidSignature(RelayError):
    status_code = 401
    message = "Invalid InitData"


class ExpiredInitData(RelayError):
    status_code = 401
    message = "InitData expired"


class UnexpectedError(RelayError):
    status_code = 500


# ──────────────────────────────────────────────────────────
# Payload
# ──────────────────────────────────────────────────────────
class SignedPayload(NamedTuple):
    fields: Tuple[Field, ...]
    hash: Optional[str] = None

    def get(self, key: str) -> Optional[str]:
        for k, v in self.fields:
            if k == key:
                return v
        return None


def parse_init_data(raw: str) -> SignedPayload:
    """Split a URL-encoded initData string into its fields and `hash`."""
    pairs = parse_qsl(raw or "", keep_blank_values=True)
    hashes = [v for k, v in pairs if k == "hash"]
    fields = tuple((k, v) for k, v in pairs if k != "hash")
    return SignedPayload(fields, hashes[0] if hashes else None)


def build_data_check_string(fields) -> str:
    # sorted() is stable, so repeated keys keep their relative order
    return "\n".join(f"{k}={v}" for k, v in sorted(fields, key=lambda kv: kv[0]))


def _as_bytes(secret: Secret) -> bytes:
    return secret if isinstance(secret, bytes) else secret.encode("utf-8")


def derive_key(secret: Secret) -> bytes:
    return hmac.new(WEB_APP_DATA, _as_bytes(secret), hashlib.sha256).digest()


def sign(fields, secret: Secret) -> str:
    data_check = build_data_check_string(fields)
    return hmac.new(
        derive_key(secret), data_check.encode("utf-8"), hashlib.sha256
    ).hexdigest()


def verify(payload: SignedPayload, secret: Secret) -> None:
    """
    Raise MissingSignature / InvalidSignature unless `payload.hash` is the
    signature of its fields under `secret`.
    """
    if not payload.hash:
        raise MissingSignature()

    expected = sign(payload.fields, secret)
    if not hmac.compare_digest(expected.encode(), payload.hash.encode("utf-8")):
        raise InvalidSignature()


def check_freshness(payload: SignedPayload, lifetime: int, now: Optional[float] = None):
    if lifetime <= 0:
        return
    try:
        auth_date = int(payload.get("auth_date") or "")
    except ValueError:
        raise ExpiredInitData()

    now = time.time() if now is None else now
    if now - auth_date > lifetime:
        raise ExpiredInitData()


def _require(bot_token, client_id, client_secret) -> None:
    if not bot_token:
        raise ConfigurationError("BOT_TOKEN is not configured")
    if not client_id or not client_secret:
        raise ConfigurationError("CLIENT_ID or CLIENT_SECRET is not configured")


def relay(
    payload: Union[SignedPayload, str],
    bot_token: Secret,
    client_id: str,
    client_secret: Secret,
    *,
    lifetime: int = 0,
    now: Optional[float] = None,
) -> str:
    """
    Verify `payload` with `bot_token`, append `client_id` and re-sign with
    `client_secret`. Returns the URL-encoded relayed initData.
    """
    _require(bot_token, client_id, client_secret)

    if isinstance(payload, str):
        payload = parse_init_data(payload)

    verify(payload, bot_token)
    check_freshness(payload, lifetime, now)

    fields = payload.fields + (("client_id", client_id),)
    fields += (("hash", sign(fields, client_secret)),)

    return urlencode(fields)


class SignatureRelay:
    """Binds `relay` to one RelayConfig."""

    def __init__(self, config):
        self.config = config

    def relay(self, raw: str) -> str:
        cfg = self.config
        try:
            return relay(
                raw,
                cfg.bot_token,
                cfg.client_id,
                cfg.client_secret,
                lifetime=cfg.init_data_lifetime,
            )
        except (MissingSignature, InvalidSignature, ExpiredInitData) as exc:
            logger.warning("initData rejected: %s", exc.message)
            raise
