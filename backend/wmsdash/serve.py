# backend/wmsdash/serve.py
"""Run the dashboard API under uvicorn, configured from the environment."""

import logging
import os
from typing import Dict, Optional

import uvicorn

_TRUE = {"1", "true", "yes", "on"}


def _ssl_options() -> Dict[str, Optional[str]]:
    env_to_option = {
        "SSL_CERTFILE": "ssl_certfile",
        "SSL_KEYFILE": "ssl_keyfile",
        "SSL_CA_CERTS": "ssl_ca_certs",
        "SSL_KEYFILE_PASSWORD": "ssl_keyfile_password",
    }
    return {option: os.environ[env] for env, option in env_to_option.items() if os.getenv(env)}


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main() -> None:
    log_level = os.getenv("LOG_LEVEL", "info")
    reload_enabled = os.getenv("RELOAD", "false").lower() in _TRUE
    _configure_logging(log_level)

    uvicorn.run(
        "wmsdash.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=reload_enabled,
        workers=None if reload_enabled else int(os.getenv("WEB_CONCURRENCY", "1")),
        log_level=log_level,
        proxy_headers=True,
        forwarded_allow_ips=os.getenv("FORWARDED_ALLOW_IPS", "*"),
        **_ssl_options(),
    )


if __name__ == "__main__":
    main()
