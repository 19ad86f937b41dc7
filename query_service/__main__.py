"""Run llm-query-service with uvicorn: ``python -m query_service``."""

import uvicorn

from query_service.core.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "query_service.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
