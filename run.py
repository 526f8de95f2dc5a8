import os
import sys
from pathlib import Path

# Ensure we can import the package from ./src
ROOT = Path(__file__).resolve().parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from workfree.main import main  # noqa: E402

if __name__ == "__main__":
    # Debug logging via env or flag
    argv = sys.argv[1:]
    if os.environ.get("WORKFREE_DEBUG", "").lower() in {"1", "true", "yes"} and "-v" not in argv:
        argv.append("-v")
    raise SystemExit(main(argv))
