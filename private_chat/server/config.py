"""Server configuration values."""
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent
DATABASE_URL = os.getenv("PRIVATE_CHAT_DATABASE_URL", f"sqlite:///{BASE_DIR / 'private_chat.db'}")
UPLOAD_DIR = Path(os.getenv("PRIVATE_CHAT_UPLOAD_DIR", str(BASE_DIR / "uploads")))
LOG_FILE = Path(os.getenv("PRIVATE_CHAT_LOG_FILE", str(BASE_DIR / "server.log")))
HOST = os.getenv("PRIVATE_CHAT_HOST", "0.0.0.0")
PORT = int(os.getenv("PRIVATE_CHAT_PORT", "8000"))
TOKEN_EXPIRY_MINUTES = int(os.getenv("PRIVATE_CHAT_TOKEN_EXPIRY_MINUTES", str(60 * 24)))
DEFAULT_AVATAR = "/default-avatar.png"
MAX_FAILED_LOGINS = 5
LOCKOUT_MINUTES = 10
