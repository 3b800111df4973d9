"""
CoreOne Bridge - Configuration settings.

Loads from environment variables with sensible defaults.
"""

from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    # Serial console - leave serial_port empty to discover the device by USB VID/PID
    serial_port: Optional[str] = None
    serial_vid: int = 0x2C99  # Prusa Research
    serial_pid: int = 0x001F  # CORE One
    serial_baudrate: int = 115200
    serial_read_timeout: float = 0.1
    serial_write_timeout: float = 1.0
    reconnect_interval: float = 2.0

    # Sent after every (re)connect: chirp, temperature auto-report every 2s, progress report
    init_commands: str = "M300 S2000 P50\nM155 S2\nM73\n"

    # Console line assembly
    max_line_length: int = 255

    # Subscriber fan-out
    max_subscribers: int = 8
    subscriber_queue_size: int = 64
    delivery_idle_interval: float = 0.02
    send_timeout: float = 5.0  # per-subscriber bound on one WebSocket send

    # WebSocket protocol
    handshake_token: str = "hello"
    command_prefix: str = "cmd:"
    max_command_length: int = 255

    # Frontend - comma-separated list in .env, e.g. CORS_ORIGINS=http://localhost:3000
    cors_origins: str = ""

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
