"""
Module entrypoint: `python -m almanac`

Starts the registry API server.
"""

from __future__ import annotations

import os


def main() -> None:
    import uvicorn

    uvicorn.run(
        "almanac.api_server:app",
        host=os.environ.get("ALMANAC_HOST", "127.0.0.1"),
        port=int(os.environ.get("ALMANAC_PORT", "8000")),
    )


if __name__ == "__main__":
    main()
