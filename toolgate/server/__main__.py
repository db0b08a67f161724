"""Run the Toolgate server: ``python -m toolgate.server``."""

import uvicorn

from toolgate.core.config import settings


def main() -> None:
    uvicorn.run(
        "toolgate.server.main:app",
        host=settings.server_host,
        port=settings.server_port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
