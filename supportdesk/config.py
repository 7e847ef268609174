from __future__ import annotations

import tempfile
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # --- app ---
    app_name: str = "Support Desk"
    debug: bool = False
    environment: str = "production"

    # --- snapshot pipeline ---
    poll_interval: float = 120.0  # seconds between UI snapshot pushes
    probe_timeout: float = 5.0  # upper bound for any single probe
    command_timeout: float = 3.0  # upper bound for platform shell-outs

    # --- mail ---
    smtp_host: str = "localhost"
    smtp_port: int = 465
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_use_ssl: bool = True
    smtp_starttls: bool = False
    smtp_timeout: float = 30.0
    mail_from: str = "support-desk@localhost"
    mail_to: str = "support@localhost"

    # --- updates ---
    update_feed_url: str = ""
    update_check_interval: float = 4 * 60 * 60.0
    update_initial_delay: float = 10.0
    install_delay: float = 5.0
    download_dir: str = str(Path(tempfile.gettempdir()) / "supportdesk-updates")
    app_version: str = "1.0.0"

    # --- server ---
    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: list[str] = ["http://localhost:5173"]

    model_config = {"env_file": ".env", "env_prefix": "SUPPORTDESK_"}


settings = Settings()
