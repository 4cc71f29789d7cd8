import os
import signal
import sys
import traceback
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

# Load .env before reading PORT/HOST/ENVIRONMENT
env_path = Path(__file__).resolve().parent / ".env"
if env_path.exists():
    load_dotenv(env_path)

from footballbook.core.config import check_signing_key, load_settings  # noqa: E402
from footballbook.utils.exceptions import ConfigError  # noqa: E402


def _unhandled_exception(exc_type, exc_value, exc_tb):
    """Print unhandled exceptions to stderr before the process exits."""
    if exc_type is KeyboardInterrupt:
        sys.__excepthook__(exc_type, exc_value, exc_tb)
        return
    msg = "".join(traceback.format_exception(exc_type, exc_value, exc_tb))
    print("Unhandled exception (process will exit):\n" + msg, file=sys.stderr, flush=True)
    sys.__excepthook__(exc_type, exc_value, exc_tb)


if __name__ == "__main__":
    """
    Entry point for the FootballBook auth server.
    """
    sys.excepthook = _unhandled_exception

    PORT = int(os.getenv("PORT", "8000"))
    HOST = os.getenv("HOST", "127.0.0.1")

    try:
        settings = load_settings()
        check_signing_key(settings)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    ENVIRONMENT = settings.app.environment.lower()
    RELOAD = ENVIRONMENT == "development"
    WORKERS = int(os.getenv("WORKERS", "1")) if ENVIRONMENT == "production" else 1

    print(f"Starting FootballBook auth server ({ENVIRONMENT})...")
    print(f"Listening on http://{HOST}:{PORT}")
    print("Press CTRL+C to stop the server")

    def signal_handler(sig, frame):
        print("\n\nShutdown signal received. Stopping server...")
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    if hasattr(signal, "SIGTERM"):
        signal.signal(signal.SIGTERM, signal_handler)

    try:
        if WORKERS > 1:
            uvicorn.run("web.main:create_app", factory=True, host=HOST, port=PORT, workers=WORKERS, log_level="info")
        else:
            uvicorn.run(
                "web.main:create_app",
                factory=True,
                host=HOST,
                port=PORT,
                reload=RELOAD,
                log_level="info" if ENVIRONMENT == "production" else "debug",
            )
    except KeyboardInterrupt:
        print("\n\nShutdown complete.")
        sys.exit(0)
    except Exception as e:
        print(f"\nFatal error: {e}", file=sys.stderr)
        traceback.print_exc(file=sys.stderr)
        sys.exit(1)
