"""
Run the API with uvicorn: ``python -m portfolio_backend``.
"""

from __future__ import annotations

import logging

import uvicorn

from portfolio_backend.config import get_settings


def main() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "portfolio_backend.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
