# in scripts/host_backend.py
import uvicorn
import os
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5000))
    src_path = str(PROJECT_ROOT / "src")

    print(f"--- Serving tutor billing backend on port {port} (TEST_MODE={os.environ.get('TEST_MODE', 'False')}) ---")
    uvicorn.run(
        "src.tutor_billing_backend.main:app",
        host="127.0.0.1",
        port=port,
        reload=True,
        reload_dirs=[src_path]
    )
