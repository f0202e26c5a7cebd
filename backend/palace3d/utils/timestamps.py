from datetime import datetime

MODEL_PREFIX = "3d_model_"
MODEL_SUFFIX = ".glb"


def build_timestamp(now: datetime | None = None) -> str:
    return (now or datetime.now()).strftime("%Y%m%d_%H%M%S")


def model_file_name(now: datetime | None = None) -> str:
    return f"{MODEL_PREFIX}{build_timestamp(now)}{MODEL_SUFFIX}"


def upload_file_name(now: datetime | None = None) -> str:
    return f"image_{build_timestamp(now)}.png"
