from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

MEMORY_PALACE_INSTRUCTION = (
    "Your task is to create a prompt for an AI image generator. The prompt will generate a 2D image "
    "of a 3D model to help the user remember the object at the center of the image. "
    "This is for the memory palace technique."
)


class Settings(BaseSettings):
    app_name: str = "Palace3D"
    log_level: str = "INFO"

    # Capture: image file read as the latest frame; empty means a grey placeholder frame
    capture_path: str = ""

    # Captioning
    caption_provider: str = "gemini"
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash"
    gemini_endpoint: str = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
    caption_instruction: str = MEMORY_PALACE_INSTRUCTION

    # Image generation queue
    image_provider: str = "fal"
    fal_key: str = ""
    fal_submit_url: str = "https://queue.fal.run/fal-ai/flux/dev"
    fal_requests_base: str = "https://queue.fal.run/fal-ai/flux"
    poll_interval_s: float = 2.0
    poll_max_attempts: int = 30

    # Image to 3D
    mesh_provider: str = "stability"
    stability_api_key: str = ""
    stability_3d_url: str = "https://api.stability.ai/v2beta/3d/stable-fast-3d"

    request_timeout_s: float = 100.0

    # API run history kept in memory
    max_kept_runs: int = 100

    # Storage
    persistent_dir: str = "data"
    models_subdir: str = "3DModels"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def models_dir(self) -> Path:
        return Path(self.persistent_dir) / self.models_subdir


settings = Settings()


def ensure_directories() -> None:
    settings.models_dir.mkdir(parents=True, exist_ok=True)
