# initdata_relay/config.py
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

ROOT_DIR = Path(__file__).parent.parent  # project root “…/”
ENV_FILE = ROOT_DIR / ".env"


class RelayConfig(BaseModel):
    """Secrets + HTTP settings, read once per process."""

    model_config = ConfigDict(frozen=True)

    bot_token: str = Field("", description="Telegram bot token (first secret)")
    client_id: str = Field("", description="Public id appended to relayed initData")
    client_secret: str = Field("", description="Secret shared with the identity service")
    allowed_origin: str = "*"
    rate_limit: str = "60/minute"
    init_data_lifetime: int = Field(0, ge=0, description="Max auth_date age, 0 = off")


def load_config(env_file: Optional[Union[str, Path]] = None) -> RelayConfig:
    """
    Build a RelayConfig from the environment. A .env file is loaded first
    (no-op if vars already set). Missing secrets are not an error here; the
    relay reports them per request.
    """
    load_dotenv(env_file or ENV_FILE, override=False)

    return RelayConfig(
        bot_token=os.getenv("BOT_TOKEN", ""),
        client_id=os.getenv("CLIENT_ID", ""),
        client_secret=os.getenv("CLIENT_SECRET", ""),
        allowed_origin=os.getenv("ALLOWED_ORIGIN", "*"),
        rate_limit=os.getenv("RATE_LIMIT", "60/minute"),
        init_data_lifetime=os.getenv("INIT_DATA_LIFETIME") or 0,
    )
