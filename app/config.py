from dotenv import load_dotenv
import os

load_dotenv()

# Base & storage directories
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
CACHE_DIR = os.path.join(BASE_DIR, "cache")

DATABASE_URL = os.getenv(
    "DATABASE_URL", f"sqlite:///{os.path.join(CACHE_DIR, 'unifier.db')}"
)

# 64 hex characters (32 bytes). No default: see get_encryption_key().
ENCRYPTION_KEY = os.getenv("ENCRYPTION_KEY")

APP_URL = os.getenv("APP_URL", "http://localhost:5173")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Spotify credentials
SPOTIFY_CLIENT_ID = os.getenv("SPOTIFY_CLIENT_ID")
SPOTIFY_CLIENT_SECRET = os.getenv("SPOTIFY_CLIENT_SECRET")
SPOTIFY_REDIRECT_URI = os.getenv(
    "SPOTIFY_REDIRECT_URI", "http://127.0.0.1:8000/providers/spotify/callback"
)

# SoundCloud credentials
SOUNDCLOUD_CLIENT_ID = os.getenv("SOUNDCLOUD_CLIENT_ID")
SOUNDCLOUD_CLIENT_SECRET = os.getenv("SOUNDCLOUD_CLIENT_SECRET")
SOUNDCLOUD_REDIRECT_URI = os.getenv(
    "SOUNDCLOUD_REDIRECT_URI", "http://127.0.0.1:8000/providers/soundcloud/callback"
)

# Spotify API constants
SPOTIFY_AUTH_URL = "https://accounts.spotify.com/authorize"
SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
SPOTIFY_API_BASE = "https://api.spotify.com/v1"

SPOTIFY_SCOPES = [
    "user-read-private",
    "user-read-email",
    "playlist-read-private",
    "playlist-read-collaborative",
    "playlist-modify-public",
    "playlist-modify-private",
    "user-library-read",
    "streaming",
    "user-read-playback-state",
    "user-modify-playback-state",
]

# SoundCloud API constants
SOUNDCLOUD_AUTH_URL = "https://api.soundcloud.com/connect"
SOUNDCLOUD_TOKEN_URL = "https://api.soundcloud.com/oauth2/token"
SOUNDCLOUD_API_BASE = "https://api.soundcloud.com"

# Outbound provider calls (seconds)
PROVIDER_REQUEST_TIMEOUT = float(os.getenv("PROVIDER_REQUEST_TIMEOUT", "15"))

# Attempts per provider account during a pull run (transport errors only)
SYNC_MAX_ATTEMPTS = int(os.getenv("SYNC_MAX_ATTEMPTS", "2"))

OAUTH_STATE_TTL_SECONDS = 10 * 60
TOKEN_REFRESH_BUFFER_SECONDS = 5 * 60


def get_encryption_key() -> str:
    """
    Return the process-wide token encryption key.

    Raises ConfigurationError when ENCRYPTION_KEY is not set, so the
    application never encrypts tokens with an empty key.
    """
    from app.core.errors import ConfigurationError

    key = os.getenv("ENCRYPTION_KEY") or ENCRYPTION_KEY
    if not key:
        raise ConfigurationError(
            "ENCRYPTION_KEY is not set; generate one with "
            "app.core.generate_encryption_key()."
        )
    return key
