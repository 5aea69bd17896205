# Server settings, overridable through environment variables
import os
from pathlib import Path

BASE_DIR = Path(__file__).parent

HOST = os.getenv("BLOG_HOST", "0.0.0.0")
PORT = int(os.getenv("BLOG_PORT", "3000"))

DATA_DIR = Path(os.getenv("BLOG_DATA_DIR", BASE_DIR / "data"))
POSTS_FILE = DATA_DIR / "posts.json"

PUBLIC_DIR = Path(os.getenv("BLOG_PUBLIC_DIR", BASE_DIR / "public"))
UPLOADS_DIR = Path(os.getenv("BLOG_UPLOADS_DIR", PUBLIC_DIR / "uploads"))
UPLOADS_ENABLED = os.getenv("BLOG_UPLOADS_ENABLED", "true").lower() == "true"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
