"""Run the service: python -m authgate"""

import uvicorn

from authgate.core.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "authgate.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
