"""Run the subscription service with uvicorn: ``python -m misub``."""
import os

import uvicorn


def main() -> None:
    host = str(os.environ.get("MISUB_HOST", "") or "0.0.0.0")
    port = int(os.environ.get("MISUB_PORT", "") or 8787)
    uvicorn.run("misub.web.app:app", host=host, port=port)


if __name__ == "__main__":
    main()
