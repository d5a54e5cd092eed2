import logging

import uvicorn

from .config import getenv

logger = logging.getLogger("ollama_gateway")


def main() -> None:
    logging.basicConfig(
        level=getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    host = getenv("HOST", "0.0.0.0")
    port = int(getenv("PORT", "8082"))

    logger.info("Server on %s:%d -> /chat POST {prompt}", host, port)
    uvicorn.run(
        "ollama_gateway.main:create_app",
        factory=True,
        host=host,
        port=port,
        log_level=getenv("LOG_LEVEL", "info").lower(),
    )


if __name__ == "__main__":
    main()
