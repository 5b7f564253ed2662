import os

import uvicorn

from .core.config import get_settings


def main() -> None:
    settings = get_settings()
    # Hosting platforms hand the listen port over as a bare PORT variable.
    port = int(os.getenv("PORT", settings.port))
    uvicorn.run("player_ledger.app.main:app", host=settings.host, port=port)


if __name__ == "__main__":
    main()
