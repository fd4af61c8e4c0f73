import os
import tempfile
from pathlib import Path

# Keep server logs and uploads out of the package directory during tests.
_TMP = Path(tempfile.mkdtemp(prefix="private_chat_tests_"))
os.environ.setdefault("PRIVATE_CHAT_LOG_FILE", str(_TMP / "server.log"))
os.environ.setdefault("PRIVATE_CHAT_UPLOAD_DIR", str(_TMP / "uploads"))
os.environ.setdefault("PRIVATE_CHAT_DATABASE_URL", "sqlite://")
