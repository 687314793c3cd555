"""Run the API locally: ``python -m paywall``."""

import uvicorn

from paywall.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "paywall.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
