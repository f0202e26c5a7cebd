#!/usr/bin/env python3
"""Entry point for the workflow API server."""
import os
import shutil
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

BASE_DIR = Path(__file__).parent
env_path = BASE_DIR / ".env"
env_example = BASE_DIR / ".env.example"

if not env_path.exists() and env_example.exists():
    shutil.copy(env_example, env_path)
    print("[!] Created .env from .env.example")
    print("[!] Fill in FAL_KEY, STABILITY_API_KEY and GEMINI_API_KEY in .env")

load_dotenv(env_path)

PORT = int(os.getenv("PALACE3D_PORT", 8000))
HOST = os.getenv("PALACE3D_HOST", "0.0.0.0")
RELOAD = os.getenv("PALACE3D_DEV", "false").lower() == "true"


if __name__ == "__main__":
    print(f"[+] API docs: http://localhost:{PORT}/docs")
    uvicorn.run(
        "palace3d.main:app",
        host=HOST,
        port=PORT,
        reload=RELOAD,
        log_level="info",
    )
