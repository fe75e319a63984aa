"""Run the API server: ``python -m burnnote`` or the ``burnnote`` script."""

import uvicorn

from burnnote.config import settings


def main() -> None:
    uvicorn.run(
        "burnnote.main:app",
        host=settings.host,
        port=settings.port,
        reload=(settings.env == "development"),
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
