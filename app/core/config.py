import os

# ✅ Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./role_play.db")

# ✅ OpenAI
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

# ✅ Role-play sessions
SESSION_TTL_SECONDS = int(os.getenv("ROLE_PLAY_SESSION_TTL", "3600"))
COMPRESSION_THRESHOLD = int(os.getenv("ROLE_PLAY_COMPRESSION_THRESHOLD", "2000"))
SESSION_STORE_BACKEND = os.getenv("ROLE_PLAY_STORE", "sql")  # sql / memory

# ✅ Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
