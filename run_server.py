# run_server.py
# Entry point for the packaged backend (and `python run_server.py` in dev).
import faulthandler
import logging
import os
import sys
from pathlib import Path

# crash log lives next to the executable when frozen, next to this file otherwise
BASE_DIR = Path(sys.executable).resolve().parent if getattr(sys, "frozen", False) else Path(__file__).resolve().parent
CRASH_LOG = BASE_DIR / "backend_crash.log"


def main() -> int:
    with open(CRASH_LOG, "a", encoding="utf-8") as crash_log:
        faulthandler.enable(crash_log)
        try:
            return _serve(crash_log)
        finally:
            faulthandler.disable()


def _serve(crash_log) -> int:
    # .env beside the executable wins over the working directory one
    from dotenv import load_dotenv
    load_dotenv(BASE_DIR / ".env", override=True)

    import uvicorn
    from main import app

    logger = logging.getLogger("car_leasing.server")
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "5001"))
    logger.info("Serving on %s:%s (base dir %s)", host, port, BASE_DIR)

    try:
        uvicorn.run(app, host=host, port=port, reload=False, log_level="info", log_config=None)
    except Exception:
        logger.exception("Backend crashed")
        crash_log.write(f"--- crash, cwd={os.getcwd()} exe={sys.executable}\n")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
