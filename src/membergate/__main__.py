"""membergate entrypoint.

Run with:
  python -m membergate
"""

import logging
import os

import uvicorn
from dotenv import load_dotenv


def main() -> None:
    load_dotenv()
    logging.basicConfig(
        level=os.getenv("MEMBERGATE_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    host = os.getenv("MEMBERGATE_HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "3000"))
    reload = os.getenv("MEMBERGATE_RELOAD", "false").lower() in {"1", "true", "yes", "y"}
    uvicorn.run("membergate.app:app", host=host, port=port, reload=reload)

if __name__ == "__main__":
    main()
