"""Entry point for running the API server."""

import logging
import os

import uvicorn

from core.config import get_settings

if __name__ == "__main__":
    log_level = get_settings().log_level.upper()
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    host = os.getenv("HOST", "0.0.0.0")
    # PORT for PaaS platforms (Railway, Heroku, etc.)
    port = int(os.getenv("PORT") or "8000")

    uvicorn.run(
        "api.main:app",
        host=host,
        port=port,
        log_level=log_level.lower(),
    )
