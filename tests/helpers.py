import hashlib
import hmac
import json
import time
import urllib.parse

BOT_TOKEN = "test:token"
CLIENT_ID = "client-42"
CLIENT_SECRET = "central:secret"


def telegram_hash(fields: dict, secret: str) -> str:
    """Independent HMAC of the Telegram data-check string."""
    data_check = "\n".join(f"{k}={fields[k]}" for k in sorted(fields))
    key = hmac.new(b"WebAppData", secret.encode(), hashlib.sha256).digest()
    return hmac.new(key, data_check.encode(), hashlib.sha256).hexdigest()


def make_fields(user_id: int = 123, auth_date: int = None) -> dict:
    return {
        "query_id": "AAA",  # any opaque string
        "user": json.dumps(
            {"id": user_id, "first_name": "Test"}, separators=(",", ":")
        ),
        "auth_date": str(int(time.time()) if auth_date is None else auth_date),
    }


def make_signed_init_data(fields: dict = None, bot_token: str = BOT_TOKEN) -> str:
    """Return a Telegram-compliant initData string for tests."""
    payload = dict(fields if fields is not None else make_fields())
    payload["hash"] = telegram_hash(payload, bot_token)
    return urllib.parse.urlencode(payload, quote_via=urllib.parse.quote)


def split(raw: str) -> list:
    return urllib.parse.parse_qsl(raw, keep_blank_values=True)
