# arena_server/config/settings.py
"""Game configuration constants and settings."""

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

# World settings
WORLD_WIDTH = 2000
WORLD_HEIGHT = 2000

# Player settings
PLAYER_SPEED = 250  # advertised to clients, not enforced server-side
BASE_RADIUS = 20
RADIUS_PER_EAT = 3
SPAWN_SPREAD = 200

# Eat settings
EAT_DISTANCE = 60
EAT_COOLDOWN = 30  # seconds
EAT_WINDUP = 3  # seconds
RESPAWN_DELAY = 3  # seconds

# House (shelter) settings
HOUSE_COUNT = 15
HOUSE_SIZE = 60
HOUSE_MARGIN = 100
HOUSE_ENTER_DISTANCE = 50
HOUSE_EXIT_OFFSET = 30
COLLISION_MARGIN = 2

# Server settings
TICK_INTERVAL = 50  # ms
IDLE_TIMEOUT = 30  # seconds


class ServerSettings(BaseSettings):
    """Process settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    host: str = "0.0.0.0"
    port: int = 10000
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]

    # Frames buffered per connection before new ones are dropped
    send_queue_size: int = 256


def get_game_config():
    """Get the complete game configuration as a dictionary."""
    return {
        "worldWidth": WORLD_WIDTH,
        "worldHeight": WORLD_HEIGHT,
        "playerSpeed": PLAYER_SPEED,
        "baseRadius": BASE_RADIUS,
        "radiusPerEat": RADIUS_PER_EAT,
        "eatDistance": EAT_DISTANCE,
        "eatCooldown": EAT_COOLDOWN,
        "eatWindup": EAT_WINDUP,
        "respawnDelay": RESPAWN_DELAY,
        "houseCount": HOUSE_COUNT,
        "houseSize": HOUSE_SIZE,
        "houseEnterDistance": HOUSE_ENTER_DISTANCE,
        "tickInterval": TICK_INTERVAL,
        "idleTimeout": IDLE_TIMEOUT,
    }
