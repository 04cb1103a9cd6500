"""Runtime configuration for ARIA Voice."""

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven runtime settings."""

    model_config = SettingsConfigDict(env_prefix="ARIA_VOICE_", env_file=".env", extra="ignore")

    app_name: str = "aria-voice"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = Field(default=3000, validation_alias=AliasChoices("ARIA_VOICE_PORT", "PORT"))
    serverless: bool = Field(
        default=False,
        validation_alias=AliasChoices("ARIA_VOICE_SERVERLESS", "VERCEL"),
        description="Serverless deployments skip server-side speech and ask clients to speak locally.",
    )

    openrouter_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("ARIA_VOICE_OPENROUTER_API_KEY", "OPENROUTER_API_KEY"),
    )
    openrouter_url: str = "https://openrouter.ai/api/v1/chat/completions"
    openrouter_referer: str = "https://aria-voice.app"
    openrouter_title: str = "ARIA Voice"
    chat_temperature: float = 0.7
    chat_top_p: float = 0.9
    chat_max_tokens: int = 150
    chat_timeout_seconds: float = 30.0

    session_history_cap: int = 20
    prompt_history_turns: int = 10
    memory_fact_cap: int = 50
    memory_prompt_facts: int = 10
    conversation_log_max: int = 1_000
    conversation_log_keep: int = 500

    data_dir: Path = Path("data")
    flush_interval_seconds: float = 30.0

    tts_backend: str = Field(default="edge", description="edge, elevenlabs, pyttsx3 or none.")
    tts_max_chars: int = 800
    tts_timeout_seconds: float = 30.0
    edge_tts_binary: str = "edge-tts"
    elevenlabs_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("ARIA_VOICE_ELEVENLABS_API_KEY", "ELEVENLABS_API_KEY"),
    )
    elevenlabs_url: str = "https://api.elevenlabs.io/v1/text-to-speech"
    elevenlabs_model: str = "eleven_multilingual_v2"
    elevenlabs_voice_id: str = "EXAVITQu4vr4xnSDxMaL"
    inline_chat_audio: bool = Field(
        default=False,
        description="Attach base64 audio to /api/chat responses instead of serving files.",
    )

    audio_cache: str = Field(default="file", description="file (served under audio_url_prefix) or memory (base64).")
    audio_dir: Path = Path("public/audio")
    audio_url_prefix: str = "/audio"
    audio_ttl_seconds: float = 600.0
    audio_sweep_interval_seconds: float = 60.0

    server_url: str = "http://localhost:3000"
    client_timeout_seconds: float = 30.0
    audio_player_command: str = "ffplay -nodisp -autoexit -loglevel quiet -"


settings = Settings()
