"""Start the taleloop API server.

Usage:
    python run_server.py              # 0.0.0.0:8000 with auto-reload
    python run_server.py --no-reload
"""

import os
import sys

import uvicorn

from taleloop.config import Config

# Unbuffered output
sys.stdout.reconfigure(encoding='utf-8')

if __name__ == "__main__":
    reload = "--no-reload" not in sys.argv[1:]
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))

    print(f"[run_server] Starting taleloop API on {host}:{port} (reload={'on' if reload else 'off'})")
    uvicorn.run(
        "api.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level=Config.LOG_LEVEL.lower(),
    )
