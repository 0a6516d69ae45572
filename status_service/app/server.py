"""Run the status API under uvicorn."""

import os

import uvicorn


def main() -> None:
    host = os.getenv("STATUS_API_HOST", "0.0.0.0").strip() or "0.0.0.0"
    port = int(os.getenv("STATUS_API_PORT", "8000"))
    uvicorn.run("app.main:app", host=host, port=port, log_level="info")


if __name__ == "__main__":
    main()
