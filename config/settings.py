"""AllianceRank Configuration Settings"""
from pathlib import Path
from dotenv import load_dotenv
import os
from datetime import date

# Load environment variables
load_dotenv()

# Project Info
PROJECT_NAME = "AllianceRank"
VERSION = "1.4.0"

# Paths
BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = Path(os.getenv("ALLIANCE_DATA_DIR", BASE_DIR / "data"))

# Database
# Environment detection: local vs production
USE_LOCAL_SUPABASE = os.getenv("USE_LOCAL_SUPABASE", "false").lower() == "true"

if USE_LOCAL_SUPABASE:
    # Local Supabase instance (for development/testing)
    SUPABASE_URL = os.getenv("SUPABASE_URL", "http://localhost:54321")
    SUPABASE_KEY = os.getenv("SUPABASE_KEY")
    SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
else:
    # Production Supabase instance
    SUPABASE_URL = os.getenv("SUPABASE_URL")
    SUPABASE_KEY = os.getenv("SUPABASE_KEY")
    SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY")

# Table names
TABLES = {
    'rankings': 'rankings',
    'special_events': 'special_events',
    'alliance_leaders': 'alliance_leaders',
    'rotation': 'train_conductor_rotation',
    'vip_selections': 'vip_selections',
    'player_aliases': 'player_aliases',
    'kudos': 'kudos_points',
    'removed_players': 'removed_players',
    'season_rankings': 'season_rankings',
}

# Train conductor rotation
ROTATION_CONFIG = {
    # Day zero for the round-robin; changing it shifts every conductor assignment
    'epoch': date.fromisoformat(os.getenv("ROTATION_EPOCH", "2024-01-01")),
    'default_train_time': os.getenv("DEFAULT_TRAIN_TIME", "04:00:00"),
    'vip_frequency_window_days': 30,
    'recent_vips_limit': 10,
}

# Weekly statistics
WEEKLY_CONFIG = {
    'top_band_size': 10,
    'bottom_band_start': 11,
    'bottom_band_end': 30,
    'min_occurrences': int(os.getenv("WEEKLY_MIN_OCCURRENCES", 2)),
    'cumulative_top_n': 5,
    'player_history_days': int(os.getenv("PLAYER_HISTORY_DAYS", 30)),
    'include_special_events': os.getenv("WEEKLY_INCLUDE_SPECIAL_EVENTS", "true").lower() in ("true", "1", "yes"),
}

# Season rankings
SEASON_CONFIG = {
    'default_weights': {
        'kudos': float(os.getenv("SEASON_KUDOS_WEIGHT", 30)),
        'vs_performance': float(os.getenv("SEASON_VS_WEIGHT", 40)),
        'special_events': float(os.getenv("SEASON_EVENTS_WEIGHT", 30)),
    },
    'kudos_multiplier': 10,
    'kudos_min_points': 1,
    'kudos_max_points': 10,
    'vs_top_rank': 10,
    # Assumed participant count when converting an event rank to a 0-100 score
    'participant_baseline': int(os.getenv("SEASON_PARTICIPANT_BASELINE", 50)),
    'alliance_keywords': ('alliance', 'contribution'),
    'default_event_weight': 10.0,
    'score_precision': 2,
}

# Player aliases
ALIAS_CONFIG = {
    'cache_ttl_seconds': int(os.getenv("ALIAS_CACHE_TTL", 300)),
    'similarity_threshold': 0.3,
    'max_suggestions': 10,
    'min_query_length': 2,
}

# Persistence
STORE_CONFIG = {
    'request_timeout': float(os.getenv("STORE_REQUEST_TIMEOUT", 15)),
    'max_retries': int(os.getenv("STORE_MAX_RETRIES", 3)),
    'retry_delay': float(os.getenv("STORE_RETRY_DELAY", 1)),
    'local_path': DATA_DIR / "alliance_local.json",
}

# Logging
DEBUG_MODE = os.getenv("DEBUG_MODE", "false").lower() == "true"
LOG_LEVEL = "DEBUG" if DEBUG_MODE else os.getenv("LOG_LEVEL", "INFO")
